"""
ledger/actions.py - Action builders for genesis injection.

Each snapshot account becomes four system actions, always in this order:
newaccount, buyrambytes, delegatebw, transfer. All are authorized by the
system account's active permission.
"""

from typing import Any, Dict, List

from config import SnapshotConfig
from snapshot.models import AccountRecord
from utils.formatters import format_asset


def _authorization() -> List[Dict[str, str]]:
    return [{
        "actor": SnapshotConfig.SYSTEM_ACCOUNT,
        "permission": SnapshotConfig.CREATOR_PERMISSION,
    }]


def _single_key_authority(pub_key: str) -> Dict[str, Any]:
    return {
        "threshold": 1,
        "keys": [{"key": pub_key, "weight": 1}],
        "accounts": [],
        "waits": [],
    }


def new_account_action(record: AccountRecord) -> Dict[str, Any]:
    return {
        "account": SnapshotConfig.SYSTEM_ACCOUNT,
        "name": "newaccount",
        "authorization": _authorization(),
        "data": {
            "creator": SnapshotConfig.SYSTEM_ACCOUNT,
            "name": record.account_name,
            "owner": _single_key_authority(record.pub_key),
            "active": _single_key_authority(record.pub_key),
        },
    }


def buy_ram_action(record: AccountRecord) -> Dict[str, Any]:
    return {
        "account": SnapshotConfig.SYSTEM_ACCOUNT,
        "name": "buyrambytes",
        "authorization": _authorization(),
        "data": {
            "payer": SnapshotConfig.SYSTEM_ACCOUNT,
            "receiver": record.account_name,
            "bytes": SnapshotConfig.RAM_BYTES,
        },
    }


def delegate_bandwidth_action(record: AccountRecord) -> Dict[str, Any]:
    symbol = SnapshotConfig.TOKEN_SYMBOL
    return {
        "account": SnapshotConfig.SYSTEM_ACCOUNT,
        "name": "delegatebw",
        "authorization": _authorization(),
        "data": {
            "from": SnapshotConfig.SYSTEM_ACCOUNT,
            "receiver": record.account_name,
            "stake_net_quantity": format_asset(record.net_stake, symbol),
            "stake_cpu_quantity": format_asset(record.cpu_stake, symbol),
            "transfer": True,
        },
    }


def transfer_action(record: AccountRecord) -> Dict[str, Any]:
    return {
        "account": SnapshotConfig.TOKEN_CONTRACT,
        "name": "transfer",
        "authorization": _authorization(),
        "data": {
            "from": SnapshotConfig.SYSTEM_ACCOUNT,
            "to": record.account_name,
            "quantity": format_asset(record.liquid, SnapshotConfig.TOKEN_SYMBOL),
            "memo": SnapshotConfig.GENESIS_MEMO,
        },
    }


def build_account_actions(record: AccountRecord) -> List[Dict[str, Any]]:
    """The four genesis actions for one account."""
    return [
        new_account_action(record),
        buy_ram_action(record),
        delegate_bandwidth_action(record),
        transfer_action(record),
    ]
