from __future__ import annotations

from bracketflow.core.allocation import AllocationResult, BracketLine, allocate, taxable_income
from bracketflow.core.brackets import (
    DEFAULT_TOP_RATE,
    UNBOUNDED,
    Bracket,
    Finite,
    Unbounded,
    max_finite_bound,
    normalize,
)
from bracketflow.core.editing import add_bracket, remove_bracket, set_rate, set_upper_bound
from bracketflow.core.errors import BracketEditError, InvalidInputError
from bracketflow.core.flow import FlowSnapshot, fill_ratio, flow, realized_tax, snapshot

__all__ = [
    "DEFAULT_TOP_RATE",
    "UNBOUNDED",
    "AllocationResult",
    "Bracket",
    "BracketEditError",
    "BracketLine",
    "Finite",
    "FlowSnapshot",
    "InvalidInputError",
    "Unbounded",
    "add_bracket",
    "allocate",
    "fill_ratio",
    "flow",
    "max_finite_bound",
    "normalize",
    "realized_tax",
    "remove_bracket",
    "set_rate",
    "set_upper_bound",
    "snapshot",
    "taxable_income",
]
