"""
core/run_context.py - Per-invocation run metadata.

Owned by the coordinating flow. The parser, injector and validator receive
the context explicitly and update their own counters; nothing else writes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from utils.formatters import format_amount


@dataclass
class RunContext:
    account_count: int = 0
    total_balance: Decimal = Decimal("0")
    contract_supply: Optional[Decimal] = None

    # Injection
    accounts_created: int = 0
    batches_written: int = 0

    # Validation
    balances_checked: int = 0
    accounts_validated: int = 0
    query_failures: int = 0

    started_at: datetime = field(default_factory=datetime.now)

    def record_parsed(self, balance: Decimal) -> None:
        self.account_count += 1
        self.total_balance += balance

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_count": self.account_count,
            "total_balance": format_amount(self.total_balance),
            "contract_supply": (
                format_amount(self.contract_supply) if self.contract_supply is not None else None
            ),
            "accounts_created": self.accounts_created,
            "batches_written": self.batches_written,
            "balances_checked": self.balances_checked,
            "accounts_validated": self.accounts_validated,
            "query_failures": self.query_failures,
            "started_at": self.started_at.isoformat(),
        }
