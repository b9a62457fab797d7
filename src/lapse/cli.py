"""Command line entry point for reports over a vault."""
from __future__ import annotations

import argparse
import logging
import asyncio
import sys
from pathlib import Path

from lapse.app import Lapse
from lapse.config import get_settings
from lapse.logging_utils import setup_logging
from lapse.report import render_report
from lapse.time_utils import format_duration
from lapse.timer import live_duration


async def run_report(app: Lapse, query_source: str) -> str:
    await app.start()
    try:
        result = await app.run_query(query_source)
    finally:
        await app.shutdown()
    return render_report(result)


async def run_active(app: Lapse) -> str:
    await app.start()
    try:
        timers = await app.active_timers()
    finally:
        await app.shutdown()
    if not timers:
        return "No active timers."
    now = app.now()
    lines = []
    for timer in timers:
        project = f" [{timer.project}]" if timer.project else ""
        elapsed = format_duration(live_duration(timer.entry, now))
        lines.append(f"{elapsed}  {timer.entry.label}{project}  ({timer.document_id})")
    return "\n".join(lines)


def _read_query(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main() -> None:
    parser = argparse.ArgumentParser(description="Time tracking reports for a Markdown vault")
    parser.add_argument("--vault", type=Path, help="Override the vault directory")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    report_parser = subparsers.add_parser("report", help="Evaluate a query and print the report")
    report_parser.add_argument("query", help="File with 'key: value' query lines, or '-' for stdin")
    subparsers.add_parser("active", help="List running timers")

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    settings = get_settings()
    if args.vault is not None:
        settings = settings.model_copy(update={"vault_dir": args.vault})
    app = Lapse(settings)

    if args.command == "report":
        output = asyncio.run(run_report(app, _read_query(args.query)))
    else:
        output = asyncio.run(run_active(app))
    print(output)


if __name__ == "__main__":
    main()
