"""Collection scheduler. Runs collector cycles at a fixed interval.

One cycle runs to completion before the next is started. A failed cycle is
logged once and the loop carries on with the next interval.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from etcd_health.etcd_client.client import EtcdHealthError
from etcd_health.health.collector import CycleReport, HealthCollector

logger = logging.getLogger(__name__)


class CollectorScheduler:
    """Drives a HealthCollector on an asyncio loop.

    Lifecycle:
        scheduler = CollectorScheduler(collector, interval=60)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        collector: HealthCollector,
        interval: float = 60,
        on_report: Callable[[CycleReport], Any] | None = None,
    ) -> None:
        self.collector = collector
        self.interval = interval
        self.on_report = on_report
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.cycles = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the collection loop in the background."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="etcd-health-collector")
        logger.info("Collector scheduler started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        """Stop the loop, cancelling any in-flight cycle."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Collector scheduler stopped")

    async def run_once(self) -> CycleReport | None:
        """Run one cycle now. Returns None if the cycle failed."""
        self.cycles += 1
        try:
            report = await self.collector.gather()
        except EtcdHealthError as e:
            self.failures += 1
            logger.error("Collection cycle failed: %s", e)
            return None

        if self.on_report:
            try:
                self.on_report(report)
            except Exception:
                logger.exception("Report callback error")
        return report

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception:
                self.failures += 1
                logger.exception("Collection cycle error")

            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
