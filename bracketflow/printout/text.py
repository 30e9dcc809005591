from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext

from bracketflow.core.allocation import round_dollars

_TENTH = Decimal("0.1")


def format_currency(value: Decimal | float | int | None) -> str:
    """Whole US dollars with thousands separators, e.g. ``$13,879``."""
    if value is None:
        return ""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value.is_nan():
        return ""
    if value.is_infinite():
        return f"{'-' if value < 0 else ''}$∞"
    quantized = round_dollars(value)
    sign = "-" if quantized < 0 else ""
    return f"{sign}${abs(quantized):,.0f}"


def format_percent(rate: float) -> str:
    """Rate as a percentage with one decimal, e.g. ``13.9%``."""
    value = Decimal(str(rate))
    if not value.is_finite():
        return f"{value}%"
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 6)
        pct = (value * 100).quantize(_TENTH, rounding=ROUND_HALF_UP)
    return f"{pct}%"


def format_range(lower: float, upper: float | None) -> str:
    if upper is None:
        return f"{format_currency(lower)}+"
    return f"{format_currency(lower)} – {format_currency(upper)}"


__all__ = ["format_currency", "format_percent", "format_range"]
