"""
snapshot/models.py - Canonical account model.

AccountRecord is one parsed snapshot line. AccountModel maps account names to
records and is the single source of truth for injection, validation and
export. It is frozen once parsing completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from utils.formatters import format_amount


@dataclass(frozen=True)
class AccountRecord:
    """Expected state of one account, as exported in the snapshot."""
    account_name: str
    pub_key: str
    liquid: Decimal
    cpu_stake: Decimal
    net_stake: Decimal
    balance: Decimal
    privileged: bool = False
    permissions: Mapping[str, Optional[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Callers keep no handle that could mutate the record's permissions
        object.__setattr__(self, "permissions", MappingProxyType(dict(self.permissions)))

    @classmethod
    def from_amounts(
        cls,
        account_name: str,
        pub_key: str,
        liquid: Decimal,
        staked: Decimal,
        privileged: bool = False,
        permissions: Optional[Mapping[str, Optional[str]]] = None,
    ) -> "AccountRecord":
        """
        Build a record from the snapshot's single staked figure.

        The snapshot carries one staked column; it is used for both CPU and
        NET, and so counts twice towards the balance.
        """
        return cls(
            account_name=account_name,
            pub_key=pub_key,
            liquid=liquid,
            cpu_stake=staked,
            net_stake=staked,
            balance=liquid + staked + staked,
            privileged=privileged,
            permissions=permissions or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_name": self.account_name,
            "pub_key": self.pub_key,
            "liquid": format_amount(self.liquid),
            "cpu_stake": format_amount(self.cpu_stake),
            "net_stake": format_amount(self.net_stake),
            "balance": format_amount(self.balance),
            "privileged": self.privileged,
            "permissions": dict(self.permissions),
        }


class FrozenModelError(RuntimeError):
    """Raised on any write to an AccountModel after parsing completed."""


class AccountModel:
    """
    Account name -> AccountRecord.

    Iteration is sorted by account name so batch contents, CSV rows and
    reports are reproducible across runs regardless of snapshot line order.
    """

    def __init__(self) -> None:
        self._records: Dict[str, AccountRecord] = {}
        self._frozen = False
        self._order: Optional[List[str]] = None

    def add(self, record: AccountRecord) -> bool:
        """Insert or replace a record. Returns True if it replaced one."""
        if self._frozen:
            raise FrozenModelError(
                f"Cannot add {record.account_name!r}: account model is read-only after parsing"
            )
        replaced = record.account_name in self._records
        self._records[record.account_name] = record
        self._order = None
        return replaced

    def freeze(self) -> None:
        self._frozen = True
        self._order = sorted(self._records)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        if self._order is not None:
            return list(self._order)
        return sorted(self._records)

    def get(self, account_name: str) -> Optional[AccountRecord]:
        return self._records.get(account_name)

    def __getitem__(self, account_name: str) -> AccountRecord:
        return self._records[account_name]

    def __contains__(self, account_name: object) -> bool:
        return account_name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AccountRecord]:
        for name in self.names():
            yield self._records[name]
