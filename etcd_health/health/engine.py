"""Per-member health probe.

A probe opens a dedicated client to one member, writes a well-known key and
classifies the outcome. A write (not a read) is used so the member has to
commit through consensus to pass.

Member-level failures never raise: every outcome becomes a HealthRecord.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from etcd_health.etcd_client.client import (
    REQUEST_TIMEOUT,
    EtcdClient,
    ProbeError,
    TransportError,
)
from etcd_health.etcd_client.models import Member

logger = logging.getLogger(__name__)

MEASUREMENT = "etcd_health_checks"

# Written on every probe, never cleaned up. The value is constant so
# repeated writes are idempotent.
PROBE_KEY = "/telegrafetcd"
PROBE_VALUE = "telegrafetcd"

DEFAULT_MEMBER_SCHEME = "https"
DEFAULT_MEMBER_PORT = 2379

Connector = Callable[[Sequence[str]], EtcdClient]


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass
class HealthRecord:
    """One member's result for one collection cycle."""

    name: str
    member_id: str
    cluster: str
    response_time: float  # milliseconds
    is_healthy: int  # 1 = healthy, 0 = unhealthy
    endpoint: str = ""

    @property
    def fields(self) -> dict[str, Any]:
        return {"response_time": self.response_time, "is_healthy": self.is_healthy}

    @property
    def tags(self) -> dict[str, str]:
        return {
            "name": self.name,
            "hostname": self.name,
            "id": self.member_id,
            "cluster": self.cluster,
        }


# ── Probe ────────────────────────────────────────────────────────────────────


def member_url(
    member: Member,
    scheme: str = DEFAULT_MEMBER_SCHEME,
    port: int = DEFAULT_MEMBER_PORT,
    source: str = "name",
) -> str:
    """Address a member is probed at.

    ``source="name"`` builds ``scheme://<name>:port``. ``source="client_url"``
    uses the first advertised client URL and falls back to the name form
    when the member advertises none.
    """
    if source == "client_url" and member.clientURLs:
        return member.clientURLs[0]
    return f"{scheme}://{member.name}:{port}"


def _record(member: Member, cluster: str, endpoint: str, t0: float, healthy: bool) -> HealthRecord:
    return HealthRecord(
        name=member.name,
        member_id=member.id,
        cluster=cluster,
        response_time=(time.perf_counter() - t0) * 1000,
        is_healthy=1 if healthy else 0,
        endpoint=endpoint,
    )


async def probe_member(
    member: Member,
    endpoint: str,
    cluster: str,
    connect: Connector,
    timeout: float = REQUEST_TIMEOUT,
) -> HealthRecord:
    """Write the probe key to ``endpoint`` and time it.

    No retries: one failed attempt marks the member unhealthy for the cycle.
    """
    t0 = time.perf_counter()
    try:
        client = connect([endpoint])
    except TransportError as e:
        logger.debug("Member %s (%s): client build failed: %s", member.name, endpoint, e)
        return _record(member, cluster, endpoint, t0, healthy=False)

    async with client:
        try:
            await client.set_key(PROBE_KEY, PROBE_VALUE, timeout=timeout)
        except ProbeError as e:
            logger.debug("Member %s (%s): probe failed: %s", member.name, endpoint, e)
            return _record(member, cluster, endpoint, t0, healthy=False)
        return _record(member, cluster, endpoint, t0, healthy=True)
