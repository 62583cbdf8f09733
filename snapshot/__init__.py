"""
snapshot - Snapshot Parsing, Account Model and CSV Export
"""

from .models import AccountModel, AccountRecord, FrozenModelError
from .parser import SnapshotParser, parse_line, parse_permissions
from .report import CsvReportWriter

__all__ = [
    'AccountModel',
    'AccountRecord',
    'FrozenModelError',
    'SnapshotParser',
    'parse_line',
    'parse_permissions',
    'CsvReportWriter',
]
