"""
reconciliation - Snapshot vs Live Ledger Reconciliation

Compares every snapshot account with its live ledger state, and the snapshot
total with the token's issued supply.
"""

from .checks import check_balance, check_permissions, check_supply
from .results import Mismatch, MismatchType, QueryFailure, ReconciliationReport
from .validator import SnapshotValidator

__all__ = [
    'check_balance',
    'check_permissions',
    'check_supply',
    'Mismatch',
    'MismatchType',
    'QueryFailure',
    'ReconciliationReport',
    'SnapshotValidator',
]
