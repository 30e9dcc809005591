from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

from bracketflow.core.brackets import (
    DEFAULT_TOP_RATE,
    Bracket,
    BracketLike,
    UpperBound,
    normalize,
)
from bracketflow.core.errors import InvalidInputError

_DOLLAR = Decimal("1")


@dataclass(frozen=True)
class BracketLine:
    """Slice of taxable income that lands in one canonical bracket."""

    lower: float
    upper: UpperBound
    amount: float
    tax: float
    rate: float
    ceiling: float

    @property
    def is_open_ended(self) -> bool:
        return math.isinf(self.ceiling)

    @property
    def span(self) -> float | None:
        """Width of the bracket, ``None`` for the open-ended top bracket."""
        if self.is_open_ended:
            return None
        return self.ceiling - self.lower

    @property
    def wire_upper(self) -> float | None:
        return None if self.is_open_ended else self.ceiling


@dataclass(frozen=True)
class AllocationResult:
    income: float
    lines: tuple[BracketLine, ...]
    total_tax: float
    marginal_rate: float
    avg_rate: float

    @property
    def total_amount(self) -> float:
        return math.fsum(line.amount for line in self.lines)


def round_dollars(value: Decimal) -> Decimal:
    """Round a finite ``Decimal`` half-up to whole dollars at any magnitude."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 2)
        return value.quantize(_DOLLAR, rounding=ROUND_HALF_UP)


def _non_negative(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, value)


def taxable_income(gross: float, deductions: float) -> float:
    """Floor both inputs at zero and round the difference half-up to dollars.

    Non-finite inputs count as zero.
    """
    difference = Decimal(str(_non_negative(gross))) - Decimal(str(_non_negative(deductions)))
    return float(max(Decimal("0"), round_dollars(difference)))


def allocate(
    income: float,
    brackets: Iterable[BracketLike],
    *,
    strict: bool = False,
    default_top_rate: float = DEFAULT_TOP_RATE,
) -> AllocationResult:
    """Split ``income`` across the canonical form of ``brackets``.

    Lines are emitted from the lowest bracket up to and including the one that
    holds the top dollar of income; higher brackets produce no line. Income is
    expected to be floored at zero by the caller. A negative income yields a
    single zero line unless ``strict`` is set, in which case it is rejected.
    """
    if strict and (math.isnan(income) or income < 0):
        raise InvalidInputError("income", income, "must be a non-negative number")
    if math.isnan(income):
        income = 0.0

    canonical: tuple[Bracket, ...] = normalize(brackets, default_top_rate=default_top_rate)
    lines: list[BracketLine] = []
    last = 0.0
    for bracket in canonical:
        upper = bracket.ceiling
        amount = max(0.0, min(income, upper) - last)
        lines.append(
            BracketLine(
                lower=last,
                upper=bracket.upper,
                amount=amount,
                tax=amount * bracket.rate,
                rate=bracket.rate,
                ceiling=upper,
            )
        )
        last = upper
        if income <= upper:
            break

    total_tax = math.fsum(line.tax for line in lines)
    marginal_rate = lines[-1].rate if lines else 0.0
    avg_rate = total_tax / income if income > 0 else 0.0
    return AllocationResult(
        income=income,
        lines=tuple(lines),
        total_tax=total_tax,
        marginal_rate=marginal_rate,
        avg_rate=avg_rate,
    )


__all__ = ["AllocationResult", "BracketLine", "allocate", "round_dollars", "taxable_income"]
