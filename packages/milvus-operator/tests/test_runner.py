"""Tests for the bounded-concurrency GroupRunner."""

import asyncio

import pytest

from milvus_operator.runner import GroupRunner, Result


async def value_after(value, delay: float = 0.0):
    await asyncio.sleep(delay)
    return value


async def fail_after(message: str, delay: float = 0.0):
    await asyncio.sleep(delay)
    raise RuntimeError(message)


class TestRun:
    """Tests for fail-fast run()."""

    @pytest.mark.asyncio
    async def test_submission_order(self):
        runner = GroupRunner()
        results = await runner.run(
            [value_after("slow", 0.05), value_after("fast", 0.0), value_after("mid", 0.02)]
        )
        assert results == ["slow", "fast", "mid"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await GroupRunner().run([]) == []

    @pytest.mark.asyncio
    async def test_first_error_cancels_pending(self):
        cancelled = asyncio.Event()

        async def long_running():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        runner = GroupRunner()
        with pytest.raises(RuntimeError, match="boom"):
            await runner.run([long_running(), fail_after("boom", 0.01)])

        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        running = 0
        peak = 0

        async def tracked():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        runner = GroupRunner(max_concurrency=2)
        await runner.run([tracked() for _ in range(6)])

        assert peak == 2

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            GroupRunner(max_concurrency=0)


class TestRunWithResult:
    """Tests for run_with_result() and run_diff_args()."""

    @pytest.mark.asyncio
    async def test_errors_captured_per_task(self):
        runner = GroupRunner()
        results = await runner.run_with_result(
            [value_after(1, 0.02), fail_after("bad"), value_after(3)]
        )

        assert [r.ok for r in results] == [True, False, True]
        assert results[0].data == 1
        assert results[2].data == 3
        assert str(results[1].error) == "bad"

    @pytest.mark.asyncio
    async def test_diff_args_in_argument_order(self):
        async def double(x: int) -> int:
            await asyncio.sleep(0.01 * (3 - x))
            return x * 2

        results = await GroupRunner().run_diff_args(double, [1, 2, 3])
        assert [r.data for r in results] == [2, 4, 6]

    @pytest.mark.asyncio
    async def test_diff_args_errors_follow_argument_order(self):
        async def check(name: str) -> str:
            if name.startswith("bad"):
                raise ValueError(name)
            return name

        results = await GroupRunner().run_diff_args(check, ["ok", "bad-1", "bad-2"])
        assert [str(r.error) for r in results if not r.ok] == ["bad-1", "bad-2"]
