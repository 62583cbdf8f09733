"""
config.py - Genesis Snapshot Tool Configuration

Central configuration for the snapshot reconciliation and injection tool:
- Ledger endpoints (chain API and wallet daemon)
- Token and system account naming
- Batch size and concurrency ceilings
- Per-run options selected on the command line

Environment variables can override defaults:
- SNAPSHOT_HTTP_ENDPOINT, SNAPSHOT_WALLET_URL, SNAPSHOT_WALLET_NAME
- SNAPSHOT_PRIVATE_KEY
- SNAPSHOT_MAX_BATCH_SIZE, SNAPSHOT_VALIDATION_CONCURRENCY
"""

import os
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from core.exceptions import ConfigurationError

# Load .env file automatically (allows overriding any setting without shell exports)
load_dotenv(Path(__file__).parent / ".env", override=False)

_config_logger = logging.getLogger(__name__)


class SnapshotConfig:
    """
    Static configuration for the snapshot tool.

    All settings can be overridden via environment variables prefixed with SNAPSHOT_.
    Example: SNAPSHOT_MAX_BATCH_SIZE=400 shrinks every pushed transaction.
    """

    # System Info
    SYSTEM_NAME: str = "Genesis Snapshot Tool"
    VERSION: str = "1.0.0"

    # ═══════════════════════════════════════════════════════════════
    # LEDGER CONNECTION
    # ═══════════════════════════════════════════════════════════════
    HTTP_ENDPOINT: str = os.getenv("SNAPSHOT_HTTP_ENDPOINT", "http://127.0.0.1:8888")
    WALLET_URL: str = os.getenv("SNAPSHOT_WALLET_URL", "http://127.0.0.1:8900")
    WALLET_NAME: str = os.getenv("SNAPSHOT_WALLET_NAME", "default")
    LEDGER_TIMEOUT: float = float(os.getenv("SNAPSHOT_LEDGER_TIMEOUT", "30"))

    # Reference block offset and expiry used when building transactions
    BLOCKS_BEHIND: int = 3
    EXPIRE_SECONDS: int = 30

    # ═══════════════════════════════════════════════════════════════
    # TOKEN & SYSTEM ACCOUNTS
    # ═══════════════════════════════════════════════════════════════
    TOKEN_SYMBOL: str = os.getenv("SNAPSHOT_TOKEN_SYMBOL", "XEC")
    TOKEN_CONTRACT: str = "eosio.token"
    SYSTEM_ACCOUNT: str = "eosio"
    CREATOR_PERMISSION: str = "active"
    RAM_BYTES: int = 4096
    GENESIS_MEMO: str = "XEC Genesis"

    # ═══════════════════════════════════════════════════════════════
    # DISPATCH LIMITS
    # ═══════════════════════════════════════════════════════════════
    ACTIONS_PER_ACCOUNT: int = 4
    MAX_BATCH_SIZE: int = int(os.getenv("SNAPSHOT_MAX_BATCH_SIZE", "600"))
    VALIDATION_CONCURRENCY: int = int(os.getenv("SNAPSHOT_VALIDATION_CONCURRENCY", "8"))
    PROGRESS_INTERVAL: int = 1000

    # ═══════════════════════════════════════════════════════════════
    # SNAPSHOT FILES
    # ═══════════════════════════════════════════════════════════════
    SNAPSHOT_INPUT: str = os.getenv("SNAPSHOT_INPUT", "snapshot.csv")
    SNAPSHOT_OUTPUT: str = os.getenv("SNAPSHOT_OUTPUT", "snapshot_balances.csv")
    LOG_FILE: Optional[str] = os.getenv("SNAPSHOT_LOG_FILE") or None
    MISMATCH_LOG_FILE: Optional[str] = os.getenv("SNAPSHOT_MISMATCH_LOG_FILE") or None


@dataclass
class RunOptions:
    """Options selected for a single invocation."""
    inject: bool = False
    validate: bool = False
    validate_stake: bool = False
    write_csv: bool = False
    debug_accounts: List[str] = field(default_factory=list)
    debug: bool = False
    snapshot_input: str = SnapshotConfig.SNAPSHOT_INPUT
    snapshot_output: str = SnapshotConfig.SNAPSHOT_OUTPUT
    http_endpoint: str = SnapshotConfig.HTTP_ENDPOINT
    private_key: Optional[str] = field(default=None, repr=False)
    wallet_url: str = SnapshotConfig.WALLET_URL
    wallet_name: str = SnapshotConfig.WALLET_NAME
    report_json: Optional[str] = None
    fail_on_mismatch: bool = False

    @property
    def any_mode(self) -> bool:
        return self.inject or self.validate or self.write_csv

    def validate_options(self) -> None:
        """Raise ConfigurationError when the combination of options cannot run."""
        errors = []
        warnings = []

        if not self.any_mode:
            errors.append("No mode selected: enable at least one of inject, validate, write_csv")

        if self.inject and not self.private_key:
            errors.append("A private key is required to inject (set SNAPSHOT_PRIVATE_KEY)")

        if self.write_csv and not self.snapshot_output:
            errors.append("write_csv requires an output path")

        if not self.snapshot_input or not Path(self.snapshot_input).is_file():
            errors.append(f"Snapshot input not found: {self.snapshot_input}")

        if self.validate_stake and not self.validate:
            warnings.append("validate_stake has no effect without validate")

        if SnapshotConfig.MAX_BATCH_SIZE < SnapshotConfig.ACTIONS_PER_ACCOUNT:
            errors.append(
                f"MAX_BATCH_SIZE ({SnapshotConfig.MAX_BATCH_SIZE}) must hold at least "
                f"one account ({SnapshotConfig.ACTIONS_PER_ACCOUNT} actions)"
            )

        if SnapshotConfig.VALIDATION_CONCURRENCY < 1:
            errors.append("VALIDATION_CONCURRENCY must be >= 1")

        for warning in warnings:
            _config_logger.warning(warning)

        if errors:
            raise ConfigurationError("; ".join(errors))

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["private_key"] = "***" if self.private_key else None
        return payload
