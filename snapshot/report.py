"""
snapshot/report.py - CSV export of the account model.

One row per account, no header:

    accountName,balance,cpuStake,netStake,liquid

Amounts at exactly four decimals. Accounts with a zero balance are skipped.
"""

import csv
import logging
from pathlib import Path
from typing import Union

from snapshot.models import AccountModel
from utils.formatters import format_amount

logger = logging.getLogger(__name__)


class CsvReportWriter:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def reset(self) -> None:
        """Discard any file left by a previous run."""
        logger.info(f"Writing to {self.path}")
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning(f"{self.path} did not yet exist")

    def write_model(self, model: AccountModel) -> int:
        """Append every non-zero account. Returns the number of rows written."""
        rows = 0
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, lineterminator="\n")
            for record in model:
                if record.balance == 0:
                    continue
                writer.writerow([
                    record.account_name,
                    format_amount(record.balance),
                    format_amount(record.cpu_stake),
                    format_amount(record.net_stake),
                    format_amount(record.liquid),
                ])
                rows += 1
        logger.info(f"Wrote {rows} of {len(model)} accounts to {self.path}")
        return rows
