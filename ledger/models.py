"""
ledger/models.py - Live account state as reported by the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from utils.formatters import parse_asset


@dataclass
class LivePermission:
    perm_name: str
    threshold: int
    # 'actor@permission' for every account in required_auth
    accounts: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Composite key matching the snapshot's permission names: 'active(1)'."""
        return f"{self.perm_name}({self.threshold})"


@dataclass
class LiveAccount:
    account_name: str
    liquid: Optional[Decimal] = None
    cpu_weight: Optional[Decimal] = None
    net_weight: Optional[Decimal] = None
    permissions: List[LivePermission] = field(default_factory=list)
    privileged: Optional[bool] = None

    @property
    def has_resources(self) -> bool:
        return self.cpu_weight is not None or self.net_weight is not None

    @classmethod
    def from_rpc(cls, payload: Dict[str, Any]) -> "LiveAccount":
        """
        Build from a get_account reply.

        Raises KeyError/ValueError/TypeError when the reply is missing the
        account name or carries malformed assets.
        """
        liquid_raw = payload.get("core_liquid_balance")
        resources = payload.get("total_resources") or None

        permissions = []
        for perm in payload.get("permissions") or []:
            required_auth = perm.get("required_auth") or {}
            accounts = [
                f"{entry['permission']['actor']}@{entry['permission']['permission']}"
                for entry in required_auth.get("accounts") or []
            ]
            permissions.append(LivePermission(
                perm_name=perm["perm_name"],
                threshold=int(required_auth.get("threshold", 1)),
                accounts=accounts,
            ))

        return cls(
            account_name=payload["account_name"],
            liquid=parse_asset(liquid_raw) if liquid_raw is not None else None,
            cpu_weight=parse_asset(resources.get("cpu_weight")) if resources else None,
            net_weight=parse_asset(resources.get("net_weight")) if resources else None,
            permissions=permissions,
            privileged=payload.get("privileged"),
        )
