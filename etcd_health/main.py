"""Entry point for the etcd health collector."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from etcd_health.config import DESCRIPTION, SAMPLE_CONFIG, Settings, settings
from etcd_health.etcd_client.client import DiscoveryError
from etcd_health.health.collector import CycleReport, HealthCollector
from etcd_health.health.scheduler import CollectorScheduler
from etcd_health.sinks import CollectingSink, ConsoleSink, LogSink

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def _report_table(report: CycleReport, cluster: str) -> Table:
    table = Table(title=f"etcd health: cluster {cluster or '(unset)'}")
    table.add_column("Name")
    table.add_column("ID")
    table.add_column("Endpoint", style="dim")
    table.add_column("Healthy", justify="center")
    table.add_column("Response (ms)", justify="right")
    for r in report.records:
        table.add_row(
            r.name,
            r.member_id,
            r.endpoint,
            "[green]yes[/green]" if r.is_healthy else "[bold red]no[/bold red]",
            f"{r.response_time:.1f}",
        )
    return table


def run_once(cfg: Settings) -> int:
    """Run a single cycle and print the records as a table."""
    collector = HealthCollector(cfg, CollectingSink())
    try:
        with console.status("[bold green]Probing cluster members..."):
            report = asyncio.run(collector.gather())
    except DiscoveryError as e:
        console.print(f"[bold red]Discovery failed:[/bold red] {e}")
        return 1

    console.print(_report_table(report, cfg.cluster))
    console.print(
        f"[dim]{report.healthy} healthy / {report.unhealthy} unhealthy "
        f"in {report.duration_ms:.0f}ms[/dim]"
    )
    return 0


async def _run_forever(scheduler: CollectorScheduler) -> None:
    await scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()


def run_loop(cfg: Settings, quiet: bool = False) -> None:
    """Collect every ``interval_seconds`` until interrupted."""
    sink = LogSink() if quiet else ConsoleSink(console)
    scheduler = CollectorScheduler(HealthCollector(cfg, sink), interval=cfg.interval_seconds)
    console.print(Panel(
        f"Seeds: {', '.join(cfg.urls)}\nInterval: {cfg.interval_seconds}s",
        title="etcd-health", style="bold blue",
    ))
    try:
        asyncio.run(_run_forever(scheduler))
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


def main() -> None:
    parser = argparse.ArgumentParser(description=f"etcd-health: {DESCRIPTION}")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("once", help="Run one collection cycle and print the results")

    run_parser = sub.add_parser("run", help="Collect at the configured interval")
    run_parser.add_argument("--quiet", action="store_true", help="Log records instead of printing them")

    sub.add_parser("sample-config", help="Print a sample .env configuration")

    args = parser.parse_args()

    if args.command == "once":
        sys.exit(run_once(settings))
    elif args.command == "run":
        run_loop(settings, quiet=args.quiet)
    elif args.command == "sample-config":
        print(SAMPLE_CONFIG, end="")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
