import math

import pytest

from bracketflow.core.allocation import allocate, taxable_income
from bracketflow.core.brackets import Bracket
from bracketflow.core.errors import InvalidInputError
from tests.fixtures.brackets import SCENARIO_BRACKETS


def test_allocation_stops_at_bracket_holding_top_dollar():
    result = allocate(100000, SCENARIO_BRACKETS)

    assert len(result.lines) == 3
    first, second, third = result.lines
    assert (first.lower, first.ceiling, first.rate) == (0.0, 19050.0, 0.10)
    assert first.amount == pytest.approx(19050)
    assert first.tax == pytest.approx(1905)
    assert (second.lower, second.ceiling) == (19050.0, 77400.0)
    assert second.amount == pytest.approx(58350)
    assert second.tax == pytest.approx(7002)
    assert (third.lower, third.ceiling) == (77400.0, 165000.0)
    assert third.amount == pytest.approx(22600)
    assert third.tax == pytest.approx(4972)

    assert result.total_tax == pytest.approx(13879)
    assert result.marginal_rate == 0.22
    assert result.avg_rate == pytest.approx(0.13879)


def test_zero_income_yields_single_zero_line():
    result = allocate(0, SCENARIO_BRACKETS)
    assert len(result.lines) == 1
    assert result.lines[0].amount == 0
    assert result.lines[0].tax == 0
    assert result.avg_rate == 0
    assert result.marginal_rate == 0.10


def test_only_unbounded_bracket_takes_everything():
    result = allocate(42000, [Bracket.of(None, 0.2)])
    assert len(result.lines) == 1
    line = result.lines[0]
    assert line.amount == 42000
    assert line.tax == pytest.approx(8400)
    assert line.is_open_ended
    assert line.span is None
    assert line.wire_upper is None


def test_income_above_every_finite_bound_reaches_top_bracket():
    result = allocate(200000, SCENARIO_BRACKETS)
    assert len(result.lines) == 4
    assert result.lines[-1].amount == pytest.approx(35000)
    assert result.lines[-1].span is None
    assert result.marginal_rate == 0.24
    assert result.total_amount == pytest.approx(200000)


def test_income_on_a_boundary_stops_in_lower_bracket():
    result = allocate(19050, SCENARIO_BRACKETS)
    assert len(result.lines) == 1
    assert result.marginal_rate == 0.10


def test_zero_width_bracket_allocates_nothing():
    rows = [Bracket.of(1000, 0.1), Bracket.of(1000, 0.9), Bracket.of(None, 0.2)]
    result = allocate(5000, rows)
    assert [line.amount for line in result.lines] == [1000, 0, 4000]
    assert result.lines[1].span == 0
    assert result.total_tax == pytest.approx(100 + 800)


def test_unsorted_input_is_normalized_first():
    shuffled = list(reversed(SCENARIO_BRACKETS))
    assert allocate(100000, shuffled) == allocate(100000, SCENARIO_BRACKETS)


def test_negative_income_degrades_to_zero_allocation():
    result = allocate(-500, SCENARIO_BRACKETS)
    assert [line.amount for line in result.lines] == [0]
    assert result.total_tax == 0
    assert result.avg_rate == 0


def test_strict_mode_rejects_negative_income():
    with pytest.raises(InvalidInputError, match="income"):
        allocate(-1, SCENARIO_BRACKETS, strict=True)
    with pytest.raises(InvalidInputError):
        allocate(math.nan, SCENARIO_BRACKETS, strict=True)


def test_taxable_income_floors_and_rounds_half_up():
    assert taxable_income(200000, 0) == 200000
    assert taxable_income(50000, 60000) == 0
    assert taxable_income(1000.5, 0) == 1001
    assert taxable_income(1000.49, 0) == 1000
    assert taxable_income(-100, 0) == 0
    assert taxable_income(5000, -100) == 5000


def test_taxable_income_rounds_beyond_default_decimal_precision():
    assert taxable_income(1e30, 0) == 1e30
    assert taxable_income(1e28, 0.5) == 1e28
    result = allocate(taxable_income(1e30, 0), SCENARIO_BRACKETS)
    assert result.lines[-1].rate == 0.24
    assert math.isfinite(result.total_tax)


def test_taxable_income_treats_non_finite_inputs_as_zero():
    assert taxable_income(math.inf, 0) == 0
    assert taxable_income(math.nan, 0) == 0
    assert taxable_income(5000, math.inf) == 5000
