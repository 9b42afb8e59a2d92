from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv
from rich import print as console_print
from rich.markup import escape

from guiscript.config import RunnerConfig, parse_variable
from guiscript.runner.batch import collect_scripts, run_batch
from guiscript.runner.results import BatchResult, ScriptResult


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="guiscript",
        description="Run .goml GUI test scripts against a headless Chrome via DevTools MCP",
    )
    parser.add_argument("paths", nargs="+", help="Script files or directories of *.goml scripts")
    parser.add_argument(
        "--variable",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Value substituted for |NAME| in scripts (repeatable)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every command and MCP call")
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _report(result: ScriptResult) -> None:
    name = escape(result.name)
    if result.success:
        console_print(f"[green]✅ PASS[/green] {name} ({result.executed} commands, {result.elapsed_seconds:.2f}s)")
        return
    console_print(f"[red]❌ FAIL[/red] {name} ({result.executed}/{result.commands} commands ran)")
    for line in result.diagnostics():
        console_print(f"    {escape(line)}")


def _summary(batch: BatchResult) -> None:
    console_print("\n" + "=" * 60)
    total = len(batch.scripts)
    if batch.success:
        console_print(f"[green]All {total} script(s) passed[/green]")
    else:
        console_print(f"[red]{len(batch.failed)} of {total} script(s) failed[/red]")
    console_print("=" * 60)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    load_dotenv()
    config = RunnerConfig.from_env()

    try:
        overrides = dict(parse_variable(item) for item in args.variable)
    except ValueError as exc:
        console_print(f"[red]error:[/red] {escape(str(exc))}")
        return 2
    config = config.with_variables(overrides)
    config.verbose = config.verbose or args.verbose
    _configure_logging(config.verbose)

    if not collect_scripts(args.paths):
        console_print("[red]error:[/red] no scripts found")
        return 2

    batch = asyncio.run(run_batch(args.paths, config, on_result=_report))
    _summary(batch)
    return 0 if batch.success else 1


if __name__ == "__main__":
    sys.exit(main())
