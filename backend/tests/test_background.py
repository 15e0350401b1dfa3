"""Tests for the background task runner."""

import asyncio
import logging

import pytest

from hookcatch.core.background import BackgroundTaskRunner


class TestBackgroundTaskRunner:
    @pytest.mark.asyncio
    async def test_submit_runs_without_awaiting(self):
        runner = BackgroundTaskRunner()
        done = asyncio.Event()

        async def work():
            await asyncio.sleep(0.01)
            done.set()
            return "result"

        task = runner.submit(work(), "work")
        assert runner.pending == 1
        assert not done.is_set()

        assert await task == "result"
        assert done.is_set()

    @pytest.mark.asyncio
    async def test_failures_are_logged_not_raised(self, caplog):
        runner = BackgroundTaskRunner("jobs")

        async def boom():
            raise RuntimeError("kaput")

        with caplog.at_level(logging.ERROR, logger="hookcatch.core.background"):
            task = runner.submit(boom(), "exploding job")
            assert await task is None

        assert "[jobs] exploding job failed" in caplog.text
        assert "kaput" in caplog.text

    @pytest.mark.asyncio
    async def test_finished_tasks_are_released(self):
        runner = BackgroundTaskRunner()

        async def work():
            return 1

        await runner.submit(work(), "work")
        await asyncio.sleep(0)
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_all_tasks(self):
        runner = BackgroundTaskRunner()
        finished: list[int] = []

        async def work(n: int):
            await asyncio.sleep(0.01 * n)
            finished.append(n)

        for n in range(1, 4):
            runner.submit(work(n), f"work {n}")

        assert await runner.drain() == 0
        assert sorted(finished) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_drain_includes_tasks_submitted_while_draining(self):
        runner = BackgroundTaskRunner()
        finished: list[str] = []

        async def child():
            await asyncio.sleep(0.01)
            finished.append("child")

        async def parent():
            await asyncio.sleep(0.01)
            runner.submit(child(), "child")
            finished.append("parent")

        runner.submit(parent(), "parent")
        assert await runner.drain() == 0
        assert finished == ["parent", "child"]

    @pytest.mark.asyncio
    async def test_drain_timeout_reports_remaining(self, caplog):
        runner = BackgroundTaskRunner()
        release = asyncio.Event()

        async def stuck():
            await release.wait()

        runner.submit(stuck(), "stuck")
        with caplog.at_level(logging.WARNING, logger="hookcatch.core.background"):
            assert await runner.drain(timeout=0.05) == 1
        assert "still running" in caplog.text

        release.set()
        assert await runner.drain() == 0

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self):
        assert await BackgroundTaskRunner().drain(timeout=0.01) == 0
