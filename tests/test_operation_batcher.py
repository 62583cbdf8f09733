from unittest.mock import AsyncMock

import pytest

from core.exceptions import LedgerQueryError, TransactionSubmissionError
from core.run_context import RunContext
from execution.batcher import OperationBatcher
from execution.injector import Injector
from snapshot.models import AccountModel

from factories import PUB_KEY, make_record


def _model(count: int) -> AccountModel:
    model = AccountModel()
    for i in range(count):
        model.add(make_record(f"acct{i:05d}"))
    model.freeze()
    return model


def _batch_sizes(submit: AsyncMock):
    return [len(call.args[0]) for call in submit.await_args_list]


class TestAccountActions:

    @pytest.mark.asyncio
    async def test_actions_in_order_and_formatted(self):
        submit = AsyncMock()
        batcher = OperationBatcher(submit)
        await batcher.add_account(make_record("alice", liquid="12.5", staked="0.25"))
        await batcher.flush()

        batch = submit.await_args.args[0]
        assert [a["name"] for a in batch] == ["newaccount", "buyrambytes", "delegatebw", "transfer"]

        newaccount, buyram, delegate, transfer = batch
        assert newaccount["data"]["name"] == "alice"
        assert newaccount["data"]["owner"]["keys"] == [{"key": PUB_KEY, "weight": 1}]
        assert newaccount["data"]["active"]["keys"] == [{"key": PUB_KEY, "weight": 1}]
        assert buyram["data"] == {"payer": "eosio", "receiver": "alice", "bytes": 4096}
        assert delegate["data"]["stake_cpu_quantity"] == "0.2500 XEC"
        assert delegate["data"]["stake_net_quantity"] == "0.2500 XEC"
        assert delegate["data"]["transfer"] is True
        assert transfer["account"] == "eosio.token"
        assert transfer["data"]["quantity"] == "12.5000 XEC"
        assert transfer["data"]["memo"] == "XEC Genesis"
        for action in batch:
            assert action["authorization"] == [{"actor": "eosio", "permission": "active"}]


class TestBatching:

    @pytest.mark.asyncio
    async def test_exact_multiple_flushes_once_and_leaves_nothing_pending(self):
        submit = AsyncMock()
        batcher = OperationBatcher(submit)
        for record in _model(150):
            await batcher.add_account(record)

        assert _batch_sizes(submit) == [600]
        assert batcher.pending == []

        await batcher.flush()
        assert submit.await_count == 1

    @pytest.mark.asyncio
    async def test_one_more_account_gives_a_second_batch_of_four(self):
        submit = AsyncMock()
        context = RunContext()
        injector = Injector(OperationBatcher(submit), context)

        created = await injector.inject_all(_model(151))

        assert created == 151
        assert _batch_sizes(submit) == [600, 4]
        assert context.accounts_created == 151
        assert context.batches_written == 2

    @pytest.mark.asyncio
    async def test_account_never_split_across_batches(self):
        submit = AsyncMock()
        batcher = OperationBatcher(submit, max_batch_size=10)
        for record in _model(5):
            await batcher.add_account(record)
        await batcher.flush()

        assert _batch_sizes(submit) == [8, 8, 4]
        for call in submit.await_args_list:
            names = [a["name"] for a in call.args[0]]
            assert names[0] == "newaccount"
            assert len(names) % 4 == 0

    def test_batch_size_smaller_than_one_account_is_rejected(self):
        with pytest.raises(ValueError):
            OperationBatcher(AsyncMock(), max_batch_size=3)

    @pytest.mark.asyncio
    async def test_accounts_injected_in_name_order(self):
        model = AccountModel()
        for name in ("carol", "alice", "bob"):
            model.add(make_record(name))
        model.freeze()
        submit = AsyncMock()

        await Injector(OperationBatcher(submit), RunContext()).inject_all(model)

        batch = submit.await_args.args[0]
        created = [a["data"]["name"] for a in batch if a["name"] == "newaccount"]
        assert created == ["alice", "bob", "carol"]

    @pytest.mark.asyncio
    async def test_on_flush_reports_batch_number(self):
        flushed = []
        batcher = OperationBatcher(AsyncMock(), max_batch_size=8,
                                   on_flush=lambda n, size: flushed.append((n, size)))
        for record in _model(3):
            await batcher.add_account(record)
        await batcher.flush()

        assert flushed == [(1, 8), (2, 4)]


class TestSubmissionFailure:

    @pytest.mark.asyncio
    async def test_failed_push_is_fatal_and_carries_batch(self):
        submit = AsyncMock(side_effect=[None, LedgerQueryError("rejected", path="/v1/chain/push_transaction")])
        context = RunContext()
        batcher = OperationBatcher(submit, max_batch_size=8)

        with pytest.raises(TransactionSubmissionError) as exc_info:
            await Injector(batcher, context).inject_all(_model(10))

        error = exc_info.value
        assert error.batch_number == 2
        assert len(error.batch) == 8
        assert error.batch[0]["data"]["name"] == "acct00002"
        # Accounts after the failed batch were never batched; only the first
        # batch counts as created
        assert submit.await_count == 2
        assert context.accounts_created == 2
        assert batcher.accounts_flushed == 2
        assert context.batches_written == 1
        assert len(batcher.pending) == 8

    @pytest.mark.asyncio
    async def test_failed_final_flush_leaves_its_accounts_uncounted(self):
        submit = AsyncMock(side_effect=[None, LedgerQueryError("rejected", path="/v1/chain/push_transaction")])
        context = RunContext()

        with pytest.raises(TransactionSubmissionError):
            await Injector(OperationBatcher(submit, max_batch_size=8), context).inject_all(_model(3))

        assert context.accounts_created == 2
        assert context.batches_written == 1

    @pytest.mark.asyncio
    async def test_submission_error_keeps_its_own_message(self):
        submit = AsyncMock(side_effect=TransactionSubmissionError("no signer configured"))
        batcher = OperationBatcher(submit)
        await batcher.add_account(make_record("alice"))

        with pytest.raises(TransactionSubmissionError) as exc_info:
            await batcher.flush()

        assert "no signer configured" in str(exc_info.value)
        assert exc_info.value.batch_number == 1
        assert len(exc_info.value.batch) == 4

    @pytest.mark.asyncio
    async def test_empty_flush_is_a_no_op(self):
        submit = AsyncMock()
        await OperationBatcher(submit).flush()
        submit.assert_not_awaited()
