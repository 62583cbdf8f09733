"""
core/snapshot_runner.py - Coordinating flow for one invocation.

Order of a run:
  1. Fetch the token's issued supply
  2. Parse the snapshot into a frozen account model
  3. Inject (optional, fatal on the first failed transaction)
  4. Validate (optional, never aborts)
  5. Export CSV (optional)
  6. Summary and supply check

The runner is the only writer of the RunContext outside the stages it hands
the context to.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from config import RunOptions, SnapshotConfig
from core.exceptions import TransactionSubmissionError
from core.logging_config import log_stage
from core.run_context import RunContext
from execution.batcher import OperationBatcher
from execution.injector import Injector
from reconciliation.checks import check_supply
from reconciliation.results import ReconciliationReport
from reconciliation.validator import ProgressCallback, SnapshotValidator
from snapshot.models import AccountModel
from snapshot.parser import SnapshotParser
from snapshot.report import CsvReportWriter
from utils.formatters import format_amount

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """What a completed run produced."""
    context: RunContext
    model: AccountModel
    report: ReconciliationReport = field(default_factory=ReconciliationReport)
    csv_rows: Optional[int] = None

    @property
    def has_mismatches(self) -> bool:
        return self.report.has_mismatches or bool(self.report.query_failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": self.context.to_dict(),
            "csv_rows": self.csv_rows,
            "reconciliation": self.report.to_dict(),
        }


class SnapshotRunner:
    """
    Runs the selected modes against one ledger.

    Args:
        options: Validated run options
        ledger: Object exposing get_token_supply(), get_account(name) and
            transact(actions); normally a LedgerClient
        on_progress: Validation progress callback
        on_batch: Called after every pushed batch with (batch_number, accounts_created)
    """

    def __init__(
        self,
        options: RunOptions,
        ledger: Any,
        context: Optional[RunContext] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_batch: Optional[Callable[[int, int], None]] = None,
    ):
        self.options = options
        self.ledger = ledger
        self.context = context or RunContext()
        self.on_progress = on_progress
        self.on_batch = on_batch
        self.csv_writer = CsvReportWriter(options.snapshot_output) if options.write_csv else None

    async def run(self) -> RunOutcome:
        self.options.validate_options()
        if self.csv_writer:
            self.csv_writer.reset()

        await self.check_issued()

        with log_stage("parse"):
            parser = SnapshotParser(self.context, self.options.debug_accounts)
            model = parser.parse_file(self.options.snapshot_input)
        outcome = RunOutcome(context=self.context, model=model)

        if self.options.inject:
            with log_stage("inject"):
                await self.inject(model)

        if self.options.validate:
            with log_stage("validate"):
                outcome.report = await self.validate(model)

        if self.csv_writer:
            with log_stage("export"):
                outcome.csv_rows = self.csv_writer.write_model(model)

        self.finish(outcome)
        return outcome

    async def check_issued(self) -> None:
        self.context.contract_supply = await self.ledger.get_token_supply(
            SnapshotConfig.TOKEN_CONTRACT, SnapshotConfig.TOKEN_SYMBOL
        )
        logger.info(f"Total supply: {format_amount(self.context.contract_supply)}")

    async def inject(self, model: AccountModel) -> None:
        def _on_flush(batch_number: int, size: int) -> None:
            logger.info(f"Created {batcher.accounts_flushed} accounts")
            if self.on_batch:
                self.on_batch(batch_number, batcher.accounts_flushed)

        batcher = OperationBatcher(self.ledger.transact, on_flush=_on_flush)
        injector = Injector(batcher, self.context, debug=self.options.debug)
        try:
            await injector.inject_all(model)
        except TransactionSubmissionError as e:
            logger.critical(
                f"Error while writing the action queue: {e.message}\n\n"
                f"Action queue was: {json.dumps(e.batch, indent=4)}"
            )
            raise

    async def validate(self, model: AccountModel) -> ReconciliationReport:
        validator = SnapshotValidator(
            self.ledger.get_account,
            self.context,
            validate_stake=self.options.validate_stake,
            on_progress=self.on_progress,
        )
        return await validator.validate_all(model)

    def finish(self, outcome: RunOutcome) -> None:
        logger.info(
            f"Account count: {self.context.account_count}\n"
            f"Total balance: {format_amount(self.context.total_balance)}"
        )
        supply_findings = check_supply(
            self.context.total_balance,
            self.context.contract_supply,
            SnapshotConfig.TOKEN_SYMBOL,
        )
        for mismatch in supply_findings:
            logger.error(mismatch.message)
        outcome.report.extend(supply_findings)
