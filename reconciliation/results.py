"""
reconciliation/results.py - Mismatch records and the run report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class MismatchType(Enum):
    """Kinds of disagreement between the snapshot and the live ledger."""
    BALANCE_MISMATCH = "balance_mismatch"
    LIQUID_MISMATCH = "liquid_mismatch"
    CPU_STAKE_MISMATCH = "cpu_stake_mismatch"
    NET_STAKE_MISMATCH = "net_stake_mismatch"
    PRIVILEGED_MISMATCH = "privileged_mismatch"
    UNEXPECTED_PERMISSION = "unexpected_permission"
    PERMISSION_MISMATCH = "permission_mismatch"
    PERMISSION_COUNT_MISMATCH = "permission_count_mismatch"
    SUPPLY_MISMATCH = "supply_mismatch"


@dataclass
class Mismatch:
    """One detected disagreement. Never fatal."""
    type: MismatchType
    account_name: Optional[str]
    expected: Any
    actual: Any
    message: str

    def sort_key(self) -> tuple:
        return (self.account_name or "", self.type.value, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'account_name': self.account_name,
            'expected': None if self.expected is None else str(self.expected),
            'actual': None if self.actual is None else str(self.actual),
            'message': self.message,
        }


@dataclass
class QueryFailure:
    """An account whose live state could not be fetched."""
    account_name: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'account_name': self.account_name, 'error': self.error}


@dataclass
class ReconciliationReport:
    """Everything a validation pass found, in a completion-order-free form."""
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    accounts_total: int = 0
    accounts_validated: int = 0
    mismatches: List[Mismatch] = field(default_factory=list)
    query_failures: List[QueryFailure] = field(default_factory=list)

    @property
    def has_mismatches(self) -> bool:
        return len(self.mismatches) > 0

    def extend(self, mismatches: List[Mismatch]) -> None:
        self.mismatches.extend(mismatches)

    def sorted_mismatches(self) -> List[Mismatch]:
        return sorted(self.mismatches, key=Mismatch.sort_key)

    def sorted_failures(self) -> List[QueryFailure]:
        return sorted(self.query_failures, key=lambda f: (f.account_name, f.error))

    def counts_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for mismatch in self.mismatches:
            counts[mismatch.type.value] = counts.get(mismatch.type.value, 0) + 1
        return dict(sorted(counts.items()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'accounts_total': self.accounts_total,
            'accounts_validated': self.accounts_validated,
            'query_failure_count': len(self.query_failures),
            'mismatch_count': len(self.mismatches),
            'mismatches_by_type': self.counts_by_type(),
            'mismatches': [m.to_dict() for m in self.sorted_mismatches()],
            'query_failures': [f.to_dict() for f in self.sorted_failures()],
        }
