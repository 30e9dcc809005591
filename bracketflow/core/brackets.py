"""Bracket schedule types and canonicalization.

A schedule is an ordered list of :class:`Bracket` rows, each carrying the
upper edge of its income interval and the marginal rate applied inside it.
The upper edge is a tagged value: either :class:`Finite` or the
:data:`UNBOUNDED` sentinel that marks the open-ended top bracket.

:func:`normalize` repairs whatever an editing surface hands over (unsorted rows,
negative values, a missing top bracket) into the canonical form every other
module expects.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

logger = logging.getLogger("bracketflow.core.brackets")

DEFAULT_TOP_RATE = 0.37


@dataclass(frozen=True)
class Finite:
    value: float


class Unbounded(Enum):
    TOP = "top"

    def __repr__(self) -> str:
        return "UNBOUNDED"


UNBOUNDED = Unbounded.TOP

UpperBound = Union[Finite, Unbounded]


@dataclass(frozen=True)
class Bracket:
    upper: UpperBound
    rate: float

    @classmethod
    def of(cls, upper: float | None, rate: float) -> "Bracket":
        """Build a bracket from the wire form, where ``None`` means unbounded."""
        bound: UpperBound = UNBOUNDED if upper is None else Finite(float(upper))
        return cls(bound, float(rate))

    @property
    def is_top(self) -> bool:
        return self.upper is UNBOUNDED

    @property
    def ceiling(self) -> float:
        if isinstance(self.upper, Finite):
            return self.upper.value
        return math.inf

    @property
    def wire_upper(self) -> float | None:
        if isinstance(self.upper, Finite):
            return self.upper.value
        return None

    def to_wire(self) -> dict[str, float | None]:
        return {"upper": self.wire_upper, "rate": self.rate}


BracketLike = Union[Bracket, Mapping[str, Any], tuple]


def coerce_bracket(raw: BracketLike) -> Bracket:
    if isinstance(raw, Bracket):
        return raw
    if isinstance(raw, Mapping):
        return Bracket.of(raw.get("upper"), raw["rate"])
    upper, rate = raw
    return Bracket.of(upper, rate)


def coerce_brackets(rows: Iterable[BracketLike]) -> list[Bracket]:
    return [coerce_bracket(row) for row in rows]


def _is_valid(bracket: Bracket) -> bool:
    rate = bracket.rate
    if math.isnan(rate) or rate < 0:
        return False
    if isinstance(bracket.upper, Finite):
        value = bracket.upper.value
        if math.isnan(value) or math.isinf(value) or value < 0:
            return False
    return True


def _sort_key(bracket: Bracket) -> tuple[int, float]:
    if isinstance(bracket.upper, Finite):
        return (0, bracket.upper.value)
    return (1, 0.0)


def normalize(
    brackets: Iterable[BracketLike],
    *,
    default_top_rate: float = DEFAULT_TOP_RATE,
) -> tuple[Bracket, ...]:
    """Return the canonical ascending schedule ending in one unbounded bracket.

    Rows with a negative (or NaN) rate or an invalid finite bound are dropped.
    Survivors are sorted by upper bound with the unbounded rows last; when
    several unbounded rows remain only the last one (in input order) is kept.
    A missing top bracket is synthesized with the rate of the previous last
    row, or ``default_top_rate`` when nothing survived. Duplicate finite
    bounds are left in place; they allocate nothing.
    """
    rows = coerce_brackets(brackets)
    kept = [row for row in rows if _is_valid(row)]
    if len(kept) != len(rows):
        logger.debug("Discarded %s invalid bracket rows", len(rows) - len(kept))

    kept.sort(key=_sort_key)

    tops = [row for row in kept if row.is_top]
    if len(tops) > 1:
        logger.debug("Collapsed %s unbounded rows into the last one", len(tops))
        kept = [row for row in kept if not row.is_top] + [tops[-1]]

    if not kept or not kept[-1].is_top:
        rate = kept[-1].rate if kept else default_top_rate
        logger.debug("Synthesized top bracket at rate %s", rate)
        kept.append(Bracket(UNBOUNDED, rate))

    return tuple(kept)


def is_canonical(brackets: Iterable[Bracket]) -> bool:
    rows = list(brackets)
    if not rows or not rows[-1].is_top:
        return False
    if any(row.is_top for row in rows[:-1]):
        return False
    bounds = [row.ceiling for row in rows[:-1]]
    return all(a <= b for a, b in zip(bounds, bounds[1:])) and all(_is_valid(row) for row in rows)


def max_finite_bound(brackets: Iterable[BracketLike], default: float = 250_000.0) -> float:
    finite = [row.ceiling for row in normalize(brackets) if not row.is_top]
    return finite[-1] if finite else default


__all__ = [
    "DEFAULT_TOP_RATE",
    "UNBOUNDED",
    "Bracket",
    "BracketLike",
    "Finite",
    "Unbounded",
    "UpperBound",
    "coerce_bracket",
    "coerce_brackets",
    "is_canonical",
    "max_finite_bound",
    "normalize",
]
