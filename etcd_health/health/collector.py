"""Health check collector. One discovery + probe cycle per call.

Cycle: IDLE → CONNECTING (seed) → DISCOVERING → PROBING → DONE.
Seed or discovery failures move to FAILED and abort the cycle with no
records emitted. Probe failures are data (``is_healthy = 0``), not errors.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx

from etcd_health.config import Settings
from etcd_health.etcd_client.client import (
    REQUEST_TIMEOUT,
    DiscoveryError,
    TransportError,
    connect_to,
)
from etcd_health.etcd_client.models import Member
from etcd_health.health.engine import (
    MEASUREMENT,
    Connector,
    HealthRecord,
    member_url,
    probe_member,
)
from etcd_health.sinks import MetricSink

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    DISCOVERING = "discovering"
    PROBING = "probing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CycleReport:
    """Summary of one completed cycle."""

    records: list[HealthRecord]
    started_at: str
    duration_ms: float

    @property
    def healthy(self) -> int:
        return sum(r.is_healthy for r in self.records)

    @property
    def unhealthy(self) -> int:
        return len(self.records) - self.healthy

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at,
            "duration_ms": round(self.duration_ms, 1),
            "members": len(self.records),
            "healthy": self.healthy,
            "unhealthy": self.unhealthy,
        }


class HealthCollector:
    """Discovers cluster members through the seed URLs and probes each one.

    Clients are built fresh for every cycle and closed before it ends.
    Cycles on one collector never overlap.
    """

    def __init__(
        self,
        settings: Settings,
        sink: MetricSink,
        transport: httpx.AsyncBaseTransport | None = None,
        connect: Connector | None = None,
        request_timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.settings = settings
        self.sink = sink
        self.request_timeout = request_timeout
        self._connect: Connector = connect or functools.partial(
            connect_to, tls=settings.tls, transport=transport,
        )
        self._lock = asyncio.Lock()
        self.state = CycleState.IDLE
        self.last_report: CycleReport | None = None

    async def gather(self) -> CycleReport:
        """Run one cycle and emit one record per discovered member.

        Raises DiscoveryError when the member list cannot be obtained; nothing
        is emitted in that case.
        """
        async with self._lock:
            started_at = datetime.now(timezone.utc).isoformat()
            t0 = time.perf_counter()
            try:
                members = await self._discover()
                self.state = CycleState.PROBING
                records = await self._probe_all(members)
            except asyncio.CancelledError:
                self.state = CycleState.IDLE
                raise
            except Exception:
                self.state = CycleState.FAILED
                raise

            for record in records:
                try:
                    self.sink.emit(MEASUREMENT, record.fields, record.tags)
                except Exception:
                    logger.exception("Sink emit error for member %s", record.name)

            report = CycleReport(
                records=records,
                started_at=started_at,
                duration_ms=(time.perf_counter() - t0) * 1000,
            )
            self.state = CycleState.DONE
            self.last_report = report
            logger.info(
                "Cycle done: %d members, %d unhealthy (%.0fms)",
                len(records), report.unhealthy, report.duration_ms,
            )
            return report

    async def _discover(self) -> list[Member]:
        self.state = CycleState.CONNECTING
        try:
            client = self._connect(self.settings.urls)
        except TransportError as e:
            raise DiscoveryError(f"Cannot build seed client: {e}") from e

        self.state = CycleState.DISCOVERING
        async with client:
            members = await client.list_members(timeout=self.request_timeout)
        logger.debug("Discovered %d members via %s", len(members), ", ".join(client.endpoints))
        return members

    async def _probe_all(self, members: list[Member]) -> list[HealthRecord]:
        """Probe every member concurrently; results keep discovery order."""
        semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrency))

        async def probe(member: Member) -> HealthRecord:
            endpoint = member_url(
                member,
                scheme=self.settings.member_scheme,
                port=self.settings.member_port,
                source=self.settings.address_source,
            )
            async with semaphore:
                return await probe_member(
                    member, endpoint, self.settings.cluster, self._connect,
                    timeout=self.request_timeout,
                )

        tasks = [asyncio.create_task(probe(m)) for m in members]
        try:
            return list(await asyncio.gather(*tasks))
        except (Exception, asyncio.CancelledError):
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
