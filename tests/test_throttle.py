import asyncio

import pytest

from core.throttle import Throttle, ThrottleConfig


class TestThrottle:

    @pytest.mark.asyncio
    async def test_every_item_processed_once(self):
        seen = []

        async def worker(item):
            seen.append(item)

        result = await Throttle("test").run(range(25), worker)

        assert sorted(seen) == list(range(25))
        assert result.succeeded == 25
        assert not result.has_failures

    @pytest.mark.asyncio
    async def test_ceiling_respected(self):
        active = 0
        peak = 0

        async def worker(item):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.001)
            active -= 1

        throttle = Throttle("test", ThrottleConfig(max_concurrent=3))
        await throttle.run(range(20), worker)

        assert peak == 3
        assert throttle.metrics.max_concurrent_reached == 3
        assert throttle.metrics.current_concurrent == 0

    @pytest.mark.asyncio
    async def test_failures_recorded_per_item(self):
        async def worker(item):
            if item % 5 == 0:
                raise ValueError(f"bad {item}")

        throttle = Throttle("test")
        result = await throttle.run(range(12), worker)

        assert sorted(f.item for f in result.failures) == [0, 5, 10]
        assert result.succeeded == 9
        assert throttle.get_metrics()["failure_rate"] == pytest.approx(3 / 12)
        assert result.failures[0].to_dict()["error_type"] == "ValueError"

    @pytest.mark.asyncio
    async def test_empty_input(self):
        async def worker(item):
            raise AssertionError("never called")

        result = await Throttle("test").run([], worker)

        assert result.metrics.submitted == 0
        assert result.failures == []

    def test_zero_ceiling_rejected(self):
        with pytest.raises(ValueError):
            Throttle("test", ThrottleConfig(max_concurrent=0))

    @pytest.mark.asyncio
    async def test_on_failure_called_while_pool_still_running(self):
        order = []

        async def worker(item):
            if item == 0:
                raise ValueError("bad 0")
            await asyncio.sleep(0.01)
            order.append(f"done {item}")

        result = await Throttle("test", ThrottleConfig(max_concurrent=1)).run(
            range(3), worker, on_failure=lambda failure: order.append(f"failed {failure.item}"),
        )

        assert order == ["failed 0", "done 1", "done 2"]
        assert [f.item for f in result.failures] == [0]
