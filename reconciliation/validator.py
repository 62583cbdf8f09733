"""
reconciliation/validator.py - Snapshot vs live ledger validation pass.

Fetches every account in the model with a bounded number of outstanding
queries and runs the balance and permission checks on each reply.

Failure isolation:
- A mismatch is logged and recorded; the pass continues.
- A failed query is logged with the account name as soon as it fails and
  is recorded; the pass continues with the remaining accounts.
There is no retry and no cancellation: the pass always covers every account.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from config import SnapshotConfig
from core.run_context import RunContext
from core.throttle import ItemFailure, Throttle, ThrottleConfig
from ledger.models import LiveAccount
from reconciliation.checks import balance_matches, check_balance, check_permissions
from reconciliation.results import QueryFailure, ReconciliationReport
from snapshot.models import AccountModel

logger = logging.getLogger(__name__)

FetchAccount = Callable[[str], Awaitable[LiveAccount]]
ProgressCallback = Callable[[int, int, str], None]


def _log_progress(checked: int, total: int, account_name: str) -> None:
    logger.info(f"Checked {checked} out of {total} accounts (last: {account_name})")


class SnapshotValidator:
    """
    Read-only validation of a frozen account model.

    Args:
        fetch_account: Coroutine returning the live state of one account
        context: Run context; the validator owns its validation counters
        validate_stake: Also compare CPU and NET stake individually
        max_concurrent: Ceiling on outstanding queries
        on_progress: Called every PROGRESS_INTERVAL matched balances
    """

    def __init__(
        self,
        fetch_account: FetchAccount,
        context: RunContext,
        validate_stake: bool = False,
        max_concurrent: int = 0,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.fetch_account = fetch_account
        self.context = context
        self.validate_stake = validate_stake
        self.throttle = Throttle(
            "validation",
            ThrottleConfig(max_concurrent=max_concurrent or SnapshotConfig.VALIDATION_CONCURRENCY),
        )
        self.on_progress = on_progress or _log_progress
        self.report = ReconciliationReport()

    async def validate_all(self, model: AccountModel) -> ReconciliationReport:
        logger.info(f"Validating all accounts {datetime.now().isoformat()}")
        self.report = ReconciliationReport(accounts_total=len(model))
        total = len(model)

        async def _validate(account_name: str) -> None:
            live = await self.fetch_account(account_name)
            record = model[account_name]

            balance_findings = check_balance(live, record, self.validate_stake)
            permission_findings = check_permissions(live, record)
            for mismatch in balance_findings + permission_findings:
                logger.error(mismatch.message)
            self.report.extend(balance_findings)
            self.report.extend(permission_findings)

            self.context.accounts_validated += 1
            self.report.accounts_validated += 1
            if balance_matches(balance_findings):
                self.context.balances_checked += 1
                if self.context.balances_checked % SnapshotConfig.PROGRESS_INTERVAL == 0:
                    self.on_progress(self.context.balances_checked, total, account_name)

        def _on_failure(failure: ItemFailure[str]) -> None:
            logger.error(
                f"Error with accountName: {failure.item} and error:\n{failure.error}"
            )
            self.report.query_failures.append(
                QueryFailure(account_name=failure.item, error=str(failure.error))
            )
            self.context.query_failures += 1

        await self.throttle.run(model.names(), _validate, on_failure=_on_failure)

        self.report.finished_at = datetime.now()
        logger.info(
            f"Validating complete {self.report.finished_at.isoformat()}: "
            f"{self.report.accounts_validated}/{total} validated, "
            f"{len(self.report.mismatches)} mismatches, "
            f"{len(self.report.query_failures)} query failures"
        )
        return self.report
