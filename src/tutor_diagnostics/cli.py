"""Command line entry points for the diagnostics subsystem."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigurationError, DiagnosticsSettings
from .lock_preflight import run_preflight
from .logging_config import setup_logging
from .service_runner import run_diagnostics_service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tutor_diagnostics", description="Diagnostics supervision for the tutoring app")
    subcommands = parser.add_subparsers(dest="command", required=True)

    run_parser = subcommands.add_parser("run", help="Supervise the backend worker until interrupted")
    run_parser.add_argument("--backend-entry", required=True, type=Path, help="Path to the backend worker entry script")

    subcommands.add_parser("preflight", help="Clear a stale backend lock and report contention")
    return parser


def _preflight(settings: DiagnosticsSettings) -> int:
    setup_logging(user_friendly=True)
    report = asyncio.run(run_preflight(settings))
    for line in report.summary_lines():
        print(line)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = DiagnosticsSettings.from_env()
    except ConfigurationError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    if args.command == "run":
        backend_entry = args.backend_entry
        run_diagnostics_service(settings, resolve_backend_entry=lambda: backend_entry)
        return 0
    return _preflight(settings)


__all__ = ["build_parser", "main"]
