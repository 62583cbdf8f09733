"""
core/exceptions.py - Snapshot Tool Exceptions

Exception hierarchy for the snapshot reconciliation and injection tool.

Features:
- Hierarchical exception structure
- Rich error context
- Error codes for programmatic handling
- Serializable for logging
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorCode(Enum):
    """Standard error codes for snapshot operations."""
    # Connection errors (1xx)
    CONNECTION_FAILED = "E101"
    CONNECTION_TIMEOUT = "E102"

    # Ledger errors (2xx)
    QUERY_FAILED = "E201"
    QUERY_MALFORMED = "E202"
    TRANSACTION_REJECTED = "E203"
    SIGNING_FAILED = "E204"

    # Snapshot file errors (3xx)
    SNAPSHOT_UNREADABLE = "E301"

    # System errors (5xx)
    CONFIGURATION_ERROR = "E503"
    INTERNAL_ERROR = "E504"


@dataclass
class ErrorContext:
    """Rich context for errors."""
    error_code: ErrorCode
    timestamp: datetime = field(default_factory=datetime.now)
    account_name: Optional[str] = None
    additional_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error_code': self.error_code.value,
            'timestamp': self.timestamp.isoformat(),
            'account_name': self.account_name,
            **self.additional_data
        }


class SnapshotToolError(Exception):
    """Base exception for all snapshot tool errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or ErrorContext(error_code=error_code)
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'context': self.context.to_dict() if self.context else None
        }


class ConfigurationError(SnapshotToolError):
    """Run options or static configuration cannot be used."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, cause=cause)


class SnapshotFileError(SnapshotToolError):
    """The snapshot file could not be opened or decoded."""

    def __init__(self, message: str, path: str = "", cause: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.SNAPSHOT_UNREADABLE,
            ErrorContext(
                error_code=ErrorCode.SNAPSHOT_UNREADABLE,
                additional_data={'path': path}
            ),
            cause
        )
        self.path = path


# ============================================================================
# Ledger Errors
# ============================================================================

class LedgerError(SnapshotToolError):
    """Base class for errors raised by the remote ledger or its transport."""
    pass


class LedgerConnectionError(LedgerError):
    """Transport-level failure talking to a ledger or wallet endpoint."""

    def __init__(
        self,
        message: str = "Failed to reach ledger",
        url: str = "",
        timed_out: bool = False,
        cause: Optional[Exception] = None
    ):
        code = ErrorCode.CONNECTION_TIMEOUT if timed_out else ErrorCode.CONNECTION_FAILED
        super().__init__(
            message,
            code,
            ErrorContext(error_code=code, additional_data={'url': url}),
            cause
        )
        self.url = url
        self.timed_out = timed_out


class LedgerQueryError(LedgerError):
    """The ledger answered a query with an error or an unusable payload."""

    def __init__(
        self,
        message: str,
        path: str = "",
        status_code: Optional[int] = None,
        account_name: Optional[str] = None,
        remote_error: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.QUERY_FAILED,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message,
            error_code,
            ErrorContext(
                error_code=error_code,
                account_name=account_name,
                additional_data={
                    'path': path,
                    'status_code': status_code,
                    'remote_error': remote_error,
                }
            ),
            cause
        )
        self.path = path
        self.status_code = status_code
        self.account_name = account_name
        # Error name reported by the node, e.g. 'key_exist' or 'tx_duplicate'
        self.remote_error = remote_error


class SigningError(LedgerError):
    """The signing capability could not produce signatures."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.SIGNING_FAILED, cause=cause)


class TransactionSubmissionError(LedgerError):
    """A batch of actions was rejected or could not be pushed."""

    def __init__(
        self,
        message: str,
        batch: Optional[List[Dict[str, Any]]] = None,
        batch_number: int = 0,
        cause: Optional[Exception] = None
    ):
        batch = list(batch or [])
        super().__init__(
            message,
            ErrorCode.TRANSACTION_REJECTED,
            ErrorContext(
                error_code=ErrorCode.TRANSACTION_REJECTED,
                additional_data={'batch_number': batch_number, 'action_count': len(batch)}
            ),
            cause
        )
        self.batch = batch
        self.batch_number = batch_number
