"""
ledger - Remote Ledger Client, Signing and Action Builders
"""

from .client import LedgerClient
from .models import LiveAccount, LivePermission
from .signer import TransactionSigner, WalletSigner

__all__ = [
    'LedgerClient',
    'LiveAccount',
    'LivePermission',
    'TransactionSigner',
    'WalletSigner',
]
