"""
snapshot/parser.py - Snapshot file parser.

Reads the comma-delimited snapshot one line at a time:

    [0] [1]  unused
    [2]      account name
    [3]      public key
    [4]      liquid amount
    [5]      staked amount (used for both CPU and NET)
    [6]      "true" when the account is privileged
    [7]      optional permission blob: ';'-separated 'name[:descriptor]'

No header row and no quoting. Parsing is synchronous; the returned model is
frozen, which is the signal that downstream stages may start.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Union

from core.exceptions import SnapshotFileError
from core.run_context import RunContext
from snapshot.models import AccountModel, AccountRecord
from utils.formatters import parse_amount

logger = logging.getLogger(__name__)

FIELD_DELIMITER = ","
PERMISSION_DELIMITER = ";"
DESCRIPTOR_DELIMITER = ":"
DEFAULT_THRESHOLD = 1


def normalize_permission_name(name: str) -> str:
    """'active' -> 'active(1)'; names that already carry a threshold are kept."""
    name = name.strip()
    if "(" in name:
        return name
    return f"{name}({DEFAULT_THRESHOLD})"


def parse_permissions(blob: Optional[str]) -> Dict[str, Optional[str]]:
    """
    Parse the permission column.

    'owner:EOS5...;active(2):alice@active,bob@active' ->
        {'owner(1)': 'EOS5...', 'active(2)': 'alice@active,bob@active'}

    An entry without ':' maps to None.
    """
    permissions: Dict[str, Optional[str]] = {}
    if not blob:
        return permissions
    for entry in blob.split(PERMISSION_DELIMITER):
        if not entry.strip():
            continue
        name, sep, descriptor = entry.partition(DESCRIPTOR_DELIMITER)
        permissions[normalize_permission_name(name)] = descriptor if sep else None
    return permissions


def _field(parts: Sequence[str], index: int) -> Optional[str]:
    return parts[index] if len(parts) > index else None


def parse_line(line: str) -> Optional[AccountRecord]:
    """Parse one snapshot line, or return None for a line with no account."""
    line = line.rstrip("\r\n")
    if not line.strip():
        return None

    parts = line.split(FIELD_DELIMITER)
    account_name = (_field(parts, 2) or "").strip()
    if not account_name:
        logger.warning(f"Skipping snapshot line without an account name: {line[:80]!r}")
        return None

    return AccountRecord.from_amounts(
        account_name=account_name,
        pub_key=(_field(parts, 3) or "").strip(),
        liquid=parse_amount(_field(parts, 4)),
        staked=parse_amount(_field(parts, 5)),
        privileged=_field(parts, 6) == "true",
        permissions=parse_permissions(_field(parts, 7)),
    )


class SnapshotParser:
    """
    Builds the account model and accumulates run metadata.

    Duplicate account names are not rejected: the later line wins, but both
    lines count towards account_count and total_balance.
    """

    def __init__(self, context: RunContext, debug_accounts: Iterable[str] = ()):
        self.context = context
        self.debug_accounts = set(debug_accounts)
        self.duplicates = 0

    def parse(self, lines: Iterable[str]) -> AccountModel:
        model = AccountModel()
        for line in lines:
            record = parse_line(line)
            if record is None:
                continue

            self.context.record_parsed(record.balance)

            if record.account_name in self.debug_accounts:
                logger.info(
                    f"Account {record.account_name} =========\n"
                    f"{json.dumps(record.to_dict(), indent=4)}"
                )

            if model.add(record):
                self.duplicates += 1
                logger.debug(f"Duplicate account {record.account_name}; keeping the later line")

        model.freeze()
        if self.duplicates:
            logger.warning(f"{self.duplicates} duplicate account lines replaced earlier entries")
        return model

    def parse_file(self, path: Union[str, Path]) -> AccountModel:
        logger.info(f"Parsing: {path}")
        try:
            with open(path, "r", encoding="utf-8", newline="") as handle:
                return self.parse(handle)
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotFileError(
                f"Cannot read snapshot {path}: {e}", path=str(path), cause=e
            ) from e
