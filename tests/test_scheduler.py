"""Tests for the collection scheduler."""

from __future__ import annotations

import asyncio
import logging

import pytest

from etcd_health.health.collector import CycleReport, CycleState, HealthCollector
from etcd_health.health.scheduler import CollectorScheduler
from etcd_health.sinks import CollectingSink


class FlakySink(CollectingSink):
    """Raises on every other emit."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def emit(self, measurement, fields, tags) -> None:
        self.calls += 1
        if self.calls % 2 == 0:
            raise RuntimeError("sink hiccup")
        super().emit(measurement, fields, tags)


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_success_calls_back(self, settings, sink, fake_etcd) -> None:
        reports: list[CycleReport] = []
        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport),
            on_report=reports.append,
        )
        report = await scheduler.run_once()
        assert report is not None
        assert reports == [report]
        assert scheduler.cycles == 1
        assert scheduler.failures == 0

    @pytest.mark.asyncio
    async def test_failure_logged_once(self, settings, sink, fake_etcd, caplog) -> None:
        fake_etcd.down.add("10.0.0.1")
        reports: list[CycleReport] = []
        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport),
            on_report=reports.append,
        )
        with caplog.at_level(logging.ERROR):
            assert await scheduler.run_once() is None

        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert "Collection cycle failed" in errors[0].getMessage()
        assert reports == []
        assert sink.metrics == []
        assert scheduler.failures == 1

    @pytest.mark.asyncio
    async def test_member_failures_are_not_logged_as_errors(self, settings, sink, fake_etcd, caplog) -> None:
        fake_etcd.failing.add("n1")
        fake_etcd.down.add("n2")
        scheduler = CollectorScheduler(HealthCollector(settings, sink, transport=fake_etcd.transport))
        with caplog.at_level(logging.DEBUG):
            await scheduler.run_once()
        assert [r for r in caplog.records if r.levelno >= logging.WARNING] == []
        assert len(sink.metrics) == 2

    @pytest.mark.asyncio
    async def test_callback_error_does_not_fail_cycle(self, settings, sink, fake_etcd) -> None:
        def boom(report: CycleReport) -> None:
            raise RuntimeError("sink down")

        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport), on_report=boom,
        )
        assert await scheduler.run_once() is not None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_stop(self, settings, sink, fake_etcd) -> None:
        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport), interval=0.01,
        )
        await scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.1)
        await scheduler.stop()
        assert not scheduler.is_running
        assert scheduler.cycles >= 2
        assert len(sink.metrics) >= 4
        assert len(sink.metrics) % 2 == 0

    @pytest.mark.asyncio
    async def test_loop_survives_failed_cycles(self, settings, sink, fake_etcd) -> None:
        fake_etcd.members_status = 500
        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport), interval=0.01,
        )
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        assert scheduler.failures >= 2
        assert sink.metrics == []

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, settings, sink, fake_etcd) -> None:
        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport), interval=10,
        )
        await scheduler.start()
        task = scheduler._task
        await scheduler.start()
        assert scheduler._task is task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_cycle(self, settings, sink, fake_etcd) -> None:
        fake_etcd.slow.update({"n1": 5.0, "n2": 5.0})
        scheduler = CollectorScheduler(
            HealthCollector(settings, sink, transport=fake_etcd.transport), interval=10,
        )
        await scheduler.start()
        await asyncio.sleep(0.05)
        await asyncio.wait_for(scheduler.stop(), timeout=1.0)
        assert sink.metrics == []

    @pytest.mark.asyncio
    async def test_loop_survives_sink_errors(self, settings, fake_etcd, caplog) -> None:
        sink = FlakySink()
        collector = HealthCollector(settings, sink, transport=fake_etcd.transport)
        scheduler = CollectorScheduler(collector, interval=0.01)
        with caplog.at_level(logging.ERROR):
            await scheduler.start()
            await asyncio.sleep(0.15)
            await scheduler.stop()

        assert scheduler.cycles >= 3
        assert scheduler.failures == 0
        assert collector.last_report is not None
        # every finished cycle offered both members to the sink
        assert sink.calls >= 4
        assert sink.calls % 2 == 0
        assert len(sink.metrics) == sink.calls // 2
        assert any("Sink emit error" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_loop_survives_unexpected_errors(self, settings, sink, caplog) -> None:
        def connect(endpoints):
            raise RuntimeError("connector bug")

        collector = HealthCollector(settings, sink, connect=connect)
        scheduler = CollectorScheduler(collector, interval=0.01)
        with caplog.at_level(logging.ERROR):
            await scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()

        assert scheduler.cycles >= 2
        assert scheduler.failures == scheduler.cycles
        assert not scheduler.is_running
        assert collector.state == CycleState.FAILED
        errors = [r for r in caplog.records if "Collection cycle error" in r.getMessage()]
        assert len(errors) == scheduler.cycles
        assert errors[0].exc_info is not None
