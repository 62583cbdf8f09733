"""
execution/injector.py - Replays the account model onto a fresh ledger.

Strictly sequential: one account at a time, each batch push awaited before
the next account is batched. The first failed push ends the injection; later
accounts are never batched.
"""

import json
import logging
from datetime import datetime

from core.run_context import RunContext
from execution.batcher import OperationBatcher
from snapshot.models import AccountModel

logger = logging.getLogger(__name__)


class Injector:
    def __init__(self, batcher: OperationBatcher, context: RunContext, debug: bool = False):
        self.batcher = batcher
        self.context = context
        self.debug = debug

    async def inject_all(self, model: AccountModel) -> int:
        """
        Inject every account in enumeration order, then flush the remainder.

        Returns the number of accounts pushed. A TransactionSubmissionError
        propagates unchanged.
        """
        logger.info(f"Injecting all accounts {datetime.now().isoformat()}")
        batches_before = self.batcher.batches_flushed

        try:
            for record in model:
                if self.debug:
                    logger.debug(json.dumps(record.to_dict(), indent=4))
                await self.batcher.add_account(record)
                self._sync_counters()

            await self.batcher.flush()
        finally:
            self._sync_counters()

        logger.info(
            f"Injecting complete {datetime.now().isoformat()}: "
            f"{self.context.accounts_created} accounts in "
            f"{self.batcher.batches_flushed - batches_before} transactions"
        )
        return self.context.accounts_created

    def _sync_counters(self) -> None:
        # Only accounts in a pushed batch count as created
        self.context.accounts_created = self.batcher.accounts_flushed
        self.context.batches_written = self.batcher.batches_flushed
