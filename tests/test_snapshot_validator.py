import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from core.exceptions import LedgerConnectionError, LedgerQueryError
from core.run_context import RunContext
from reconciliation.results import MismatchType
from reconciliation.validator import SnapshotValidator
from snapshot.models import AccountModel

from factories import live_for, make_live, make_record


def _model(names):
    model = AccountModel()
    for name in names:
        model.add(make_record(name))
    model.freeze()
    return model


class TestSnapshotValidator:

    @pytest.mark.asyncio
    async def test_agreeing_ledger_reports_nothing(self):
        model = _model(["alice", "bob", "carol"])
        context = RunContext()

        async def fetch(name):
            return live_for(model[name])

        report = await SnapshotValidator(fetch, context).validate_all(model)

        assert report.mismatches == []
        assert report.query_failures == []
        assert context.accounts_validated == 3
        assert context.balances_checked == 3

    @pytest.mark.asyncio
    async def test_query_failures_are_isolated(self):
        model = _model([f"acct{i:02d}" for i in range(20)])
        failing = {"acct03", "acct11", "acct17"}
        context = RunContext()

        async def fetch(name):
            if name in failing:
                raise LedgerConnectionError(f"boom {name}", url="http://node")
            return live_for(model[name])

        validator = SnapshotValidator(fetch, context)
        report = await validator.validate_all(model)

        assert report.accounts_validated == 20 - len(failing)
        assert context.accounts_validated == 17
        assert context.query_failures == 3
        assert [f.account_name for f in report.sorted_failures()] == sorted(failing)
        assert "boom acct03" in report.sorted_failures()[0].error

    @pytest.mark.asyncio
    async def test_failures_are_logged_with_account_name(self, caplog):
        model = _model(["alice"])

        fetch = AsyncMock(side_effect=LedgerQueryError("unknown key", path="/v1/chain/get_account"))
        await SnapshotValidator(fetch, RunContext()).validate_all(model)

        assert any("Error with accountName: alice" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_mismatches_do_not_stop_the_pass(self):
        model = _model(["alice", "bob"])
        context = RunContext()

        async def fetch(name):
            if name == "alice":
                return make_live("alice", liquid="0.0000")
            return live_for(model[name])

        report = await SnapshotValidator(fetch, context).validate_all(model)

        assert {m.type for m in report.mismatches} == {
            MismatchType.LIQUID_MISMATCH, MismatchType.BALANCE_MISMATCH,
        }
        assert context.accounts_validated == 2
        assert context.balances_checked == 1

    @pytest.mark.asyncio
    async def test_stake_flag_passed_through(self):
        model = _model(["alice"])

        async def fetch(name):
            return make_live(name, liquid="10.0000", cpu="4.0000", net="6.0000")

        without = await SnapshotValidator(fetch, RunContext()).validate_all(model)
        with_stake = await SnapshotValidator(fetch, RunContext(), validate_stake=True).validate_all(model)

        assert without.mismatches == []
        assert {m.type for m in with_stake.mismatches} == {
            MismatchType.CPU_STAKE_MISMATCH, MismatchType.NET_STAKE_MISMATCH,
        }

    @pytest.mark.asyncio
    async def test_reports_identical_regardless_of_completion_order(self):
        names = [f"acct{i:02d}" for i in range(16)]
        model = _model(names)

        def fetcher(delays):
            async def fetch(name):
                await asyncio.sleep(delays[name])
                if name.endswith("3"):
                    raise LedgerConnectionError(f"down {name}", url="http://node")
                return make_live(name, liquid="1.0000")
            return fetch

        forward = {n: i * 0.001 for i, n in enumerate(names)}
        backward = {n: (len(names) - i) * 0.001 for i, n in enumerate(names)}

        first = await SnapshotValidator(fetcher(forward), RunContext()).validate_all(model)
        second = await SnapshotValidator(fetcher(backward), RunContext()).validate_all(model)

        first_dict, second_dict = first.to_dict(), second.to_dict()
        assert first_dict["mismatches"] == second_dict["mismatches"]
        assert first_dict["query_failures"] == second_dict["query_failures"]

    @pytest.mark.asyncio
    async def test_outstanding_queries_bounded(self):
        model = _model([f"acct{i:03d}" for i in range(50)])
        in_flight = 0
        peak = 0

        async def fetch(name):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1
            return live_for(model[name])

        validator = SnapshotValidator(fetch, RunContext())
        await validator.validate_all(model)

        assert peak <= 8
        assert peak == 8
        assert validator.throttle.get_metrics()["max_concurrent_reached"] == 8

    @pytest.mark.asyncio
    async def test_progress_reported_every_thousand_matched_balances(self):
        model = _model([f"a{i:05d}" for i in range(2500)])
        progress = []

        async def fetch(name):
            return live_for(model[name])

        await SnapshotValidator(
            fetch, RunContext(), on_progress=lambda checked, total, name: progress.append((checked, total)),
        ).validate_all(model)

        assert progress == [(1000, 2500), (2000, 2500)]

    @pytest.mark.asyncio
    async def test_failure_logged_before_later_accounts_finish(self):
        model = _model(["aaa", "bbb"])
        events = []

        async def fetch(name):
            if name == "aaa":
                events.append("aaa failed")
                raise LedgerConnectionError("node unreachable", url="http://node")
            await asyncio.sleep(0.05)
            events.append("bbb done")
            return live_for(model[name])

        class _Recorder(logging.Handler):
            def emit(self, record):
                if record.getMessage().startswith("Error with accountName"):
                    events.append("failure logged")

        handler = _Recorder()
        validator_logger = logging.getLogger("reconciliation.validator")
        validator_logger.addHandler(handler)
        try:
            context = RunContext()
            report = await SnapshotValidator(fetch, context, max_concurrent=1).validate_all(model)
        finally:
            validator_logger.removeHandler(handler)

        assert events == ["aaa failed", "failure logged", "bbb done"]
        assert [f.account_name for f in report.query_failures] == ["aaa"]
        assert context.query_failures == 1
