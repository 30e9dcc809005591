"""Progress-to-allocation mapping used to animate bracket filling.

Progress is a unitless value in ``[0, 1]``. At a given progress the same share
of the total allocated income has "flowed" into the brackets, filling them
strictly left to right: a bracket starts receiving income only once every
lower bracket holds its full allocation.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from bracketflow.core.allocation import AllocationResult, BracketLine
from bracketflow.core.errors import InvalidInputError


def clamp_progress(progress: float, *, strict: bool = False) -> float:
    if math.isnan(progress) or progress < 0 or progress > 1:
        if strict:
            raise InvalidInputError("progress", progress, "must be within [0, 1]")
        if math.isnan(progress):
            return 0.0
    return max(0.0, min(1.0, progress))


def flow(progress: float, lines: Sequence[BracketLine], *, strict: bool = False) -> tuple[float, ...]:
    """Return the flowed amount for each line at ``progress``.

    ``flow(1, lines)`` reproduces every ``line.amount`` exactly and
    ``flow(0, lines)`` is all zeros.
    """
    p = clamp_progress(progress, strict=strict)
    capacities = [line.amount for line in lines]
    if p >= 1.0:
        return tuple(capacities)

    remaining = math.fsum(capacities) * p
    flowed: list[float] = []
    for capacity in capacities:
        take = max(0.0, min(capacity, remaining))
        flowed.append(take)
        remaining -= take
    return tuple(flowed)


def fill_ratio(line: BracketLine, flowed: float) -> float:
    """Visible fill of a bucket: flowed over span, or over capacity for the top bracket."""
    span = line.span
    if span is None:
        return min(1.0, flowed / (line.amount or 1.0))
    if span <= 0:
        return 0.0
    return min(1.0, flowed / span)


def realized_tax(line: BracketLine, flowed: float) -> float:
    if not line.amount:
        return 0.0
    return line.tax * min(1.0, flowed / line.amount)


@dataclass(frozen=True)
class FlowSnapshot:
    progress: float
    flowed: tuple[float, ...]
    fill_ratios: tuple[float, ...]
    line_taxes: tuple[float, ...]
    realized_tax: float
    tax_shares: tuple[float, ...]


def snapshot(progress: float, result: AllocationResult, *, strict: bool = False) -> FlowSnapshot:
    p = clamp_progress(progress, strict=strict)
    flowed = flow(p, result.lines)
    line_taxes = tuple(realized_tax(line, amount) for line, amount in zip(result.lines, flowed))
    total = result.total_tax
    shares = tuple((tax / total) if total > 0 else 0.0 for tax in line_taxes)
    return FlowSnapshot(
        progress=p,
        flowed=flowed,
        fill_ratios=tuple(fill_ratio(line, amount) for line, amount in zip(result.lines, flowed)),
        line_taxes=line_taxes,
        realized_tax=math.fsum(line_taxes),
        tax_shares=shares,
    )


__all__ = [
    "FlowSnapshot",
    "clamp_progress",
    "fill_ratio",
    "flow",
    "realized_tax",
    "snapshot",
]
