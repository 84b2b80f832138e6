"""Metric sinks: where health records go after a cycle.

The collector only depends on the ``MetricSink`` protocol; the concrete
sinks below cover logging, console output and in-memory collection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from rich.console import Console

logger = logging.getLogger(__name__)


@runtime_checkable
class MetricSink(Protocol):
    """Anything that accepts ``emit(measurement, fields, tags)``."""

    def emit(self, measurement: str, fields: dict[str, Any], tags: dict[str, str]) -> None:
        ...


@dataclass
class EmittedMetric:
    measurement: str
    fields: dict[str, Any]
    tags: dict[str, str]


@dataclass
class CollectingSink:
    """Keeps every emitted metric in memory."""

    metrics: list[EmittedMetric] = field(default_factory=list)

    def emit(self, measurement: str, fields: dict[str, Any], tags: dict[str, str]) -> None:
        self.metrics.append(EmittedMetric(measurement, dict(fields), dict(tags)))


class LogSink:
    """Writes one log line per metric."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def emit(self, measurement: str, fields: dict[str, Any], tags: dict[str, str]) -> None:
        logger.log(
            self.level,
            "%s %s %s",
            measurement,
            ",".join(f"{k}={v}" for k, v in sorted(tags.items())),
            ",".join(f"{k}={v}" for k, v in sorted(fields.items())),
        )


class ConsoleSink:
    """Prints one colored line per metric with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def emit(self, measurement: str, fields: dict[str, Any], tags: dict[str, str]) -> None:
        healthy = fields.get("is_healthy") == 1
        style = "green" if healthy else "bold red"
        self.console.print(
            f"[dim]{measurement}[/dim] "
            f"[{style}]{'UP  ' if healthy else 'DOWN'}[/{style}] "
            f"{tags.get('name', '?')} ({tags.get('id', '?')}) "
            f"cluster={tags.get('cluster', '')} "
            f"{fields.get('response_time', 0.0):.1f}ms",
            highlight=False,
        )
