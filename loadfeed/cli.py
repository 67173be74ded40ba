"""CLI entry point for loadfeed.

Runs a YAML scenario file with the reference driver and prints a summary:
- Uses uvloop for a faster event loop when installed
- GC disabled during the run for consistent latency
"""

from __future__ import annotations

import argparse
import asyncio
import gc
import sys
from typing import Any, Coroutine

_HAS_UVLOOP = False
try:
    import uvloop
    _HAS_UVLOOP = True
except ImportError:
    pass

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import load_config, validate_run_config
from .exceptions import LoadfeedError
from .logging_config import get_logger
from .models import RunConfig
from .runner import ScenarioSummary, run_test

logger = get_logger("cli")


def _run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run coroutine on uvloop when available; GC disabled for the duration."""
    gc_was_enabled = gc.isenabled()
    gc.disable()
    try:
        if _HAS_UVLOOP:
            return uvloop.run(coro)
        return asyncio.run(coro)
    finally:
        if gc_was_enabled:
            gc.enable()
        gc.collect()


def _build_config_with_overrides(config_path: str, args: argparse.Namespace) -> RunConfig | None:
    """Load run settings from file and apply CLI overrides. Returns None if no overrides were given."""
    override_keys = ("users", "duration", "iterations", "think_time_ms")
    if not any(getattr(args, k, None) is not None for k in override_keys):
        return None
    base, _ = load_config(config_path)
    merged = RunConfig(
        users=args.users if args.users is not None else base.users,
        duration_seconds=args.duration if args.duration is not None else base.duration_seconds,
        iterations=args.iterations if args.iterations is not None else base.iterations,
        think_time_ms=args.think_time_ms if args.think_time_ms is not None else base.think_time_ms,
    )
    validate_run_config(merged)
    return merged


def build_summary_table(summaries: list[ScenarioSummary]) -> Table:
    table = Table(title="loadfeed results", show_lines=False)
    table.add_column("Scenario", style="cyan")
    table.add_column("Step")
    table.add_column("Total", justify="right")
    table.add_column("OK", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Status codes")
    for s in summaries:
        codes = ", ".join(f"{code}: {count}" for code, count in sorted(s.status_counts.items()))
        table.add_row(s.name, s.step, str(s.total), str(s.ok), str(s.failed), codes or "-")
    return table


def handle_error(console: Console, e: BaseException) -> int:
    if isinstance(e, LoadfeedError):
        console.print(f"[red]Error:[/red] {e}")
        logger.debug("Run aborted", exc_info=e)
    else:
        console.print(f"[red]Unexpected error:[/red] {type(e).__name__}: {e}")
        logger.exception("Unexpected error")
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="loadfeed",
        description="Data-driven HTTP request templating engine. "
        "Runs YAML-defined request templates fed from CSV files or SQL queries.",
    )
    parser.add_argument("-f", "--config", required=True, help="Path to YAML scenario file")
    parser.add_argument("-u", "--users", type=int, default=None, help="Concurrent workers per scenario")
    parser.add_argument("-d", "--duration", type=float, default=None, help="Run duration in seconds")
    parser.add_argument(
        "-n", "--iterations", type=int, default=None, help="Invocations per worker (0 = run for duration)"
    )
    parser.add_argument("--think-time-ms", type=float, default=None, dest="think_time_ms")
    parser.add_argument("--no-http2", action="store_true", help="Use HTTP/1.1 only")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    console = Console(stderr=True)
    try:
        override = _build_config_with_overrides(args.config, args)
        summaries = _run_async(run_test(args.config, config_override=override, http2=not args.no_http2))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except Exception as e:  # noqa: BLE001
        return handle_error(console, e)

    Console().print(build_summary_table(summaries))
    return 0


if __name__ == "__main__":
    sys.exit(main())
