import math

import pytest

from bracketflow.core.allocation import allocate
from bracketflow.core.brackets import Bracket
from bracketflow.core.errors import InvalidInputError
from bracketflow.core.flow import clamp_progress, fill_ratio, flow, realized_tax, snapshot
from tests.fixtures.brackets import SCENARIO_BRACKETS


@pytest.fixture
def lines():
    return allocate(100000, SCENARIO_BRACKETS).lines


def test_half_progress_fills_lower_brackets_first(lines):
    assert flow(0.5, lines) == (19050, 30950, 0)


def test_zero_progress_is_empty(lines):
    assert flow(0, lines) == (0, 0, 0)


def test_full_progress_reconstructs_allocation(lines):
    assert flow(1, lines) == tuple(line.amount for line in lines)


def test_out_of_range_progress_is_clamped(lines):
    assert flow(-0.5, lines) == flow(0, lines)
    assert flow(3, lines) == flow(1, lines)
    assert flow(math.nan, lines) == flow(0, lines)


def test_strict_progress_is_rejected(lines):
    with pytest.raises(InvalidInputError, match="progress"):
        flow(1.5, lines, strict=True)
    with pytest.raises(InvalidInputError):
        clamp_progress(math.nan, strict=True)
    assert clamp_progress(0.25, strict=True) == 0.25


def test_flow_of_empty_lines():
    assert flow(0.7, ()) == ()


def test_fill_ratio_uses_span_for_bounded_brackets(lines):
    assert fill_ratio(lines[0], 19050) == 1.0
    assert fill_ratio(lines[1], 30950) == pytest.approx(30950 / 58350)
    # the partial third bracket can never look full: 22600 of an 87600 span
    assert fill_ratio(lines[2], 22600) == pytest.approx(22600 / 87600)


def test_fill_ratio_uses_amount_for_top_bracket():
    top_line = allocate(50000, [Bracket.of(None, 0.3)]).lines[0]
    assert fill_ratio(top_line, 25000) == 0.5
    assert fill_ratio(top_line, 50000) == 1.0
    empty_top = allocate(0, [Bracket.of(None, 0.3)]).lines[0]
    assert fill_ratio(empty_top, 0) == 0.0


def test_fill_ratio_of_zero_width_bracket_is_zero():
    line = allocate(5000, [Bracket.of(1000, 0.1), Bracket.of(1000, 0.5)]).lines[1]
    assert line.span == 0
    assert fill_ratio(line, 0) == 0.0


def test_realized_tax_scales_with_flowed_share(lines):
    assert realized_tax(lines[1], 58350 / 2) == pytest.approx(7002 / 2)
    zero_line = allocate(0, SCENARIO_BRACKETS).lines[0]
    assert realized_tax(zero_line, 0) == 0.0


def test_snapshot_bundles_presentation_math():
    result = allocate(100000, SCENARIO_BRACKETS)
    state = snapshot(0.5, result)
    assert state.progress == 0.5
    assert state.flowed == (19050, 30950, 0)
    assert state.line_taxes[0] == pytest.approx(1905)
    assert state.line_taxes[2] == 0
    assert state.realized_tax == pytest.approx(1905 + 30950 * 0.12)

    full = snapshot(1, result)
    assert full.realized_tax == pytest.approx(result.total_tax)
    assert sum(full.tax_shares) == pytest.approx(1.0)


def test_snapshot_with_no_tax_has_zero_shares():
    result = allocate(0, SCENARIO_BRACKETS)
    state = snapshot(1, result)
    assert state.tax_shares == (0.0,)
    assert state.realized_tax == 0.0
