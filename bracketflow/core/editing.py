"""Edits applied to a bracket schedule.

Each operation normalizes its input, edits the canonical rows by index (the
index a table of canonical rows would show) and normalizes the outcome again,
so callers never have to keep the finite rows and the top row apart.
"""
from __future__ import annotations

import math
from collections.abc import Iterable

from bracketflow.core.brackets import (
    DEFAULT_TOP_RATE,
    UNBOUNDED,
    Bracket,
    BracketLike,
    Finite,
    normalize,
)
from bracketflow.core.errors import BracketEditError

NEW_BRACKET_UPPER = 50_000.0
NEW_BRACKET_RATE = 0.10
BOUND_GROWTH = 1.3
RATE_STEP = 0.03
TOP_RATE_STEP = 0.05
MAX_NEW_RATE = 0.55
MAX_TOP_RATE = 0.60


def _canonical_rows(brackets: Iterable[BracketLike], default_top_rate: float) -> list[Bracket]:
    return list(normalize(brackets, default_top_rate=default_top_rate))


def _check_index(rows: list[Bracket], index: int, *, finite_only: bool) -> None:
    if index < 0 or index >= len(rows):
        raise BracketEditError(f"No bracket row at index {index}")
    if finite_only and rows[index].is_top:
        raise BracketEditError("The top bracket has no editable upper bound")


def _as_number(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def set_upper_bound(
    brackets: Iterable[BracketLike],
    index: int,
    value: object,
    *,
    default_top_rate: float = DEFAULT_TOP_RATE,
) -> tuple[Bracket, ...]:
    rows = _canonical_rows(brackets, default_top_rate)
    _check_index(rows, index, finite_only=True)
    rows[index] = Bracket(Finite(_as_number(value)), rows[index].rate)
    return normalize(rows, default_top_rate=default_top_rate)


def set_rate(
    brackets: Iterable[BracketLike],
    index: int,
    rate: object,
    *,
    default_top_rate: float = DEFAULT_TOP_RATE,
) -> tuple[Bracket, ...]:
    rows = _canonical_rows(brackets, default_top_rate)
    _check_index(rows, index, finite_only=False)
    rows[index] = Bracket(rows[index].upper, max(0.0, _as_number(rate)))
    return normalize(rows, default_top_rate=default_top_rate)


def add_bracket(
    brackets: Iterable[BracketLike],
    *,
    default_top_rate: float = DEFAULT_TOP_RATE,
) -> tuple[Bracket, ...]:
    """Insert a finite row above the highest finite bound and raise the top rate."""
    rows = _canonical_rows(brackets, default_top_rate)
    top = rows.pop()
    if rows:
        upper = float(math.floor(rows[-1].ceiling * BOUND_GROWTH + 0.5))
    else:
        upper = NEW_BRACKET_UPPER
    rate = min(MAX_NEW_RATE, top.rate + RATE_STEP)
    rows.append(Bracket(Finite(upper), rate))
    rows.append(Bracket(UNBOUNDED, min(MAX_TOP_RATE, rate + TOP_RATE_STEP)))
    return normalize(rows, default_top_rate=default_top_rate)


def remove_bracket(
    brackets: Iterable[BracketLike],
    index: int,
    *,
    default_top_rate: float = DEFAULT_TOP_RATE,
) -> tuple[Bracket, ...]:
    rows = _canonical_rows(brackets, default_top_rate)
    _check_index(rows, index, finite_only=True)
    del rows[index]
    return normalize(rows, default_top_rate=default_top_rate)


__all__ = [
    "add_bracket",
    "remove_bracket",
    "set_rate",
    "set_upper_bound",
]
