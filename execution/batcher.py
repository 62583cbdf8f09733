"""
execution/batcher.py - Operation batching for genesis injection.

Accumulates the four actions of each account into a pending batch and pushes
the batch as one transaction once it reaches the size bound. An account's
actions always travel in the same transaction.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config import SnapshotConfig
from core.exceptions import TransactionSubmissionError
from ledger.actions import build_account_actions
from snapshot.models import AccountRecord

logger = logging.getLogger(__name__)

Action = Dict[str, Any]
SubmitFn = Callable[[List[Action]], Awaitable[Any]]


class OperationBatcher:
    """
    Pending action batch with a hard size bound.

    Args:
        submit: Coroutine function that pushes one batch (e.g. LedgerClient.transact)
        max_batch_size: Flush once the pending batch holds this many actions
        on_flush: Optional callback run after each successful flush
    """

    def __init__(
        self,
        submit: SubmitFn,
        max_batch_size: int = 0,
        on_flush: Optional[Callable[[int, int], None]] = None,
    ):
        self.submit = submit
        self.max_batch_size = max_batch_size or SnapshotConfig.MAX_BATCH_SIZE
        if self.max_batch_size < SnapshotConfig.ACTIONS_PER_ACCOUNT:
            raise ValueError(
                f"max_batch_size {self.max_batch_size} cannot hold one account's actions"
            )
        self.on_flush = on_flush
        self.pending: List[Action] = []
        self.batches_flushed = 0
        self.actions_flushed = 0

    @property
    def accounts_flushed(self) -> int:
        """Accounts whose actions have been pushed in a successful batch."""
        return self.actions_flushed // SnapshotConfig.ACTIONS_PER_ACCOUNT

    async def add_account(self, record: AccountRecord) -> None:
        """Append one account's actions, flushing when the bound is reached."""
        actions = build_account_actions(record)
        if self.pending and len(self.pending) + len(actions) > self.max_batch_size:
            await self.flush()

        self.pending.extend(actions)

        if len(self.pending) >= self.max_batch_size:
            await self.flush()

    async def flush(self) -> None:
        """
        Push the pending batch, if any, and clear it.

        Raises TransactionSubmissionError with the full batch on failure; the
        pending batch is left untouched so it can be inspected.
        """
        if not self.pending:
            return

        batch = list(self.pending)
        batch_number = self.batches_flushed + 1
        try:
            await self.submit(batch)
        except TransactionSubmissionError as e:
            e.batch = batch
            e.batch_number = batch_number
            raise
        except Exception as e:
            raise TransactionSubmissionError(
                f"Batch {batch_number} failed: {e}",
                batch=batch,
                batch_number=batch_number,
                cause=e,
            ) from e

        self.pending = []
        self.batches_flushed = batch_number
        self.actions_flushed += len(batch)
        logger.debug(f"Wrote action batch {batch_number} ({len(batch)} actions)")
        if self.on_flush:
            self.on_flush(batch_number, len(batch))
