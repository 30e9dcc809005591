import argparse
import asyncio
import json
import math
import os
import sys
import tomllib
from pathlib import Path
from typing import Any, Literal, Sequence

import uvicorn
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.live import Live
from rich.progress_bar import ProgressBar
from rich.table import Table

from bracketflow.config import get_settings
from bracketflow.core.allocation import BracketLine, allocate
from bracketflow.core.animation import AnimationDriver
from bracketflow.core.brackets import Bracket, normalize
from bracketflow.core.errors import InvalidInputError
from bracketflow.core.flow import FlowSnapshot, snapshot
from bracketflow.core.models import AllocationReport, BracketIn
from bracketflow.printout.text import format_currency, format_percent, format_range
from bracketflow.tax.presets import UnknownPresetError, describe_preset, get_preset, list_presets

ColorPreference = Literal["auto", "always", "never"]

_BRACKET_ROWS = TypeAdapter(list[BracketIn])


class BracketFileError(ValueError):
    pass


def _resolve_color_preference(pref: ColorPreference) -> ColorPreference:
    if pref == "auto" and os.getenv("NO_COLOR"):
        return "never"
    return pref


def _get_console(pref: ColorPreference) -> Console:
    resolved = _resolve_color_preference(pref)
    if resolved == "never":
        return Console(no_color=True, highlight=False)
    return Console(force_terminal=True if resolved == "always" else None)


def _read_bracket_file(path: Path) -> list[Bracket]:
    """Load rows from TOML (``[[brackets]]`` tables) or JSON (a list, or ``{"brackets": [...]}``)."""
    try:
        if path.suffix.lower() == ".toml":
            with path.open("rb") as handle:
                raw: Any = tomllib.load(handle)
        else:
            raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise BracketFileError(f"{path.name}: {exc}") from exc
    if isinstance(raw, dict):
        raw = raw.get("brackets", [])
    rows = _BRACKET_ROWS.validate_python(raw)
    return [row.to_bracket() for row in rows]


def _load_schedule(args: argparse.Namespace) -> tuple[tuple[Bracket, ...], str]:
    settings = get_settings()
    if args.brackets:
        path = Path(args.brackets)
        rows = _read_bracket_file(path)
        return normalize(rows, default_top_rate=settings.default_top_rate), path.stem
    name = args.preset or settings.default_preset
    return get_preset(name), name


def _build_report(args: argparse.Namespace, brackets: tuple[Bracket, ...]) -> AllocationReport:
    settings = get_settings()
    gross = settings.default_gross if args.gross is None else args.gross
    return AllocationReport.build(
        gross,
        args.deductions,
        brackets,
        args.progress,
        strict=settings.strict_inputs,
        settings=settings,
    )


def _print_brackets(brackets: Sequence[Bracket], label: str, console: Console) -> None:
    table = Table(title=f"Brackets: {label}", expand=False)
    for column in ("#", "Upper bound", "Rate"):
        table.add_column(column)
    for index, row in enumerate(brackets, start=1):
        upper = "∞ (top)" if row.is_top else format_currency(row.ceiling)
        table.add_row(str(index), upper, format_percent(row.rate))
    console.print(table)


def _print_metrics(report: AllocationReport, console: Console) -> None:
    table = Table(title="Summary", expand=False, show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Gross income", format_currency(report.gross))
    table.add_row("Deductions", format_currency(report.deductions))
    table.add_row("Taxable income", format_currency(report.taxable_income))
    table.add_row("Total tax (at full fill)", format_currency(report.total_tax))
    table.add_row("Average rate", format_percent(report.avg_rate))
    table.add_row("Marginal rate", format_percent(report.marginal_rate))
    if report.progress < 1.0:
        table.add_row("Progress", f"{report.progress * 100:.0f}%")
        table.add_row("Total tax so far", format_currency(report.realized_tax))
    console.print(table)


def _print_lines(report: AllocationReport, console: Console) -> None:
    table = Table(title="Bracket-by-bracket math", expand=False)
    for column in ("Bracket", "Range", "Rate", "Income in bracket", "Tax from bracket"):
        table.add_column(column)
    for line in report.lines:
        table.add_row(
            str(line.index + 1),
            format_range(line.lower, line.upper),
            f"{round(line.rate * 100)}%",
            format_currency(line.amount),
            format_currency(line.tax),
        )
    table.add_section()
    table.add_row("Totals", "", "", format_currency(report.total_amount), format_currency(report.total_tax))
    console.print(table)


def _frame_table(lines: Sequence[BracketLine], state: FlowSnapshot) -> Table:
    table = Table(title=f"How income fills the brackets ({state.progress * 100:.0f}%)", expand=False)
    for column in ("Bracket", "Rate", "Fill", "Taxed"):
        table.add_column(column)
    for index, line in enumerate(lines):
        bar = ProgressBar(total=1.0, completed=state.fill_ratios[index], width=30)
        table.add_row(
            str(index + 1),
            f"{round(line.rate * 100)}%",
            bar,
            format_currency(min(state.flowed[index], line.amount)),
        )
    table.add_section()
    table.add_row("", "", "Total tax so far", format_currency(state.realized_tax))
    return table


def _run_animation(report: AllocationReport, brackets: tuple[Bracket, ...], duration: float | None, console: Console) -> None:
    settings = get_settings()
    result = allocate(report.taxable_income, brackets, default_top_rate=settings.default_top_rate)
    driver = AnimationDriver(duration)

    with Live(_frame_table(result.lines, snapshot(0.0, result)), console=console, auto_refresh=False) as live:

        def _on_frame(progress: float) -> None:
            live.update(_frame_table(result.lines, snapshot(progress, result)), refresh=True)

        try:
            asyncio.run(driver.play(_on_frame))
        except KeyboardInterrupt:
            driver.cancel()
    realized = snapshot(driver.progress, result).realized_tax
    console.print(f"Stopped at {driver.progress * 100:.0f}%; total tax so far {format_currency(realized)}")


def _print_presets(console: Console) -> None:
    table = Table(title="Presets", expand=False)
    table.add_column("Name")
    table.add_column("Description")
    for name in list_presets():
        table.add_row(name, describe_preset(name))
    console.print(table)


def _finite_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from exc
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"must be a finite number: {text!r}")
    return value


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bracketflow",
        description="Show how taxable income fills a progressive bracket schedule.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="table",
        choices=["table", "normalize", "animate", "presets", "serve"],
        help="Action to perform.",
    )
    parser.add_argument("--gross", type=_finite_float, help="Gross income (default from settings).")
    parser.add_argument("--deductions", type=_finite_float, default=0.0, help="Standard plus itemized deductions.")
    parser.add_argument("--preset", help="Named bracket schedule to use.")
    parser.add_argument("--brackets", help="Path to a TOML or JSON file with bracket rows.")
    parser.add_argument("--progress", type=_finite_float, default=1.0, help="Flow progress between 0 and 1.")
    parser.add_argument("--duration", type=_finite_float, help="Animation length in seconds.")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for serve.")
    parser.add_argument("--port", type=int, default=8000, help="Port for serve.")
    parser.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Color output preference (default: auto).",
    )
    parser.add_argument(
        "--no-color",
        dest="color",
        action="store_const",
        const="never",
        help="Alias for --color never.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    console = _get_console(args.color)
    if args.command == "presets":
        _print_presets(console)
        return
    if args.command == "serve":
        uvicorn.run("bracketflow.api.http:app", host=args.host, port=args.port)
        return
    try:
        brackets, label = _load_schedule(args)
        report = _build_report(args, brackets)
    except ValidationError as exc:
        console.print("There was a problem with the bracket rows provided:")
        for error in exc.errors():
            location = " -> ".join(str(part) for part in error.get("loc", ("value",)))
            console.print(f"  - {location}: {error.get('msg')}")
        sys.exit(1)
    except (BracketFileError, InvalidInputError) as exc:
        console.print(f"ERROR: {exc}")
        sys.exit(1)
    except UnknownPresetError as exc:
        console.print(f"ERROR: {exc.args[0]}. Available: {', '.join(list_presets())}")
        sys.exit(1)

    if args.command == "normalize":
        _print_brackets(brackets, label, console)
        return
    if args.command == "animate":
        _run_animation(report, brackets, args.duration, console)
        return
    _print_metrics(report, console)
    _print_lines(report, console)


if __name__ == "__main__":
    main()
