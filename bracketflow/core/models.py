from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from bracketflow.config import Settings, get_settings
from bracketflow.core.allocation import AllocationResult, allocate, taxable_income
from bracketflow.core.brackets import Bracket, normalize
from bracketflow.core.flow import FlowSnapshot, snapshot
from bracketflow.tax.presets import get_preset


class BracketIn(BaseModel):
    upper: float | None = Field(
        default=None,
        description="Upper bound of the bracket; null marks the open-ended top bracket",
        validation_alias=AliasChoices("upper", "upper_bound", "up_to"),
    )
    rate: float = Field(..., description="Marginal rate as a fraction, e.g. 0.22")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_bracket(self) -> Bracket:
        return Bracket.of(self.upper, self.rate)


class BracketOut(BaseModel):
    upper: float | None
    rate: float
    is_top: bool

    @classmethod
    def from_bracket(cls, bracket: Bracket) -> "BracketOut":
        return cls(upper=bracket.wire_upper, rate=bracket.rate, is_top=bracket.is_top)


class ScheduleRequest(BaseModel):
    brackets: list[BracketIn] | None = None
    preset: str | None = None

    model_config = ConfigDict(extra="forbid")

    def resolve(self, settings: Settings | None = None) -> tuple[Bracket, ...]:
        """Explicit rows win over a named preset; fall back to the configured default."""
        settings = settings or get_settings()
        if self.brackets is not None:
            return normalize(
                (row.to_bracket() for row in self.brackets),
                default_top_rate=settings.default_top_rate,
            )
        return get_preset(self.preset or settings.default_preset)


class EditRequest(ScheduleRequest):
    op: Literal["set_upper_bound", "set_rate", "add", "remove"]
    index: int | None = None
    value: float | None = None


class IncomeRequest(ScheduleRequest):
    gross: float | None = Field(
        default=None, ge=0, allow_inf_nan=False, description="Gross income; defaults from settings"
    )
    deductions: float = Field(
        default=0.0, ge=0, allow_inf_nan=False, description="Standard plus itemized deductions"
    )


class AllocationRequest(IncomeRequest):
    progress: float = Field(default=1.0, allow_inf_nan=False, description="Flow progress in [0, 1]")
    strict: bool | None = None


class AnimationRequest(IncomeRequest):
    duration_ms: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    frame_ms: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class LineOut(BaseModel):
    index: int
    lower: float
    upper: float | None
    span: float | None
    amount: float
    tax: float
    rate: float
    flowed: float
    fill_ratio: float
    realized_tax: float
    tax_share: float


class AllocationReport(BaseModel):
    gross: float
    deductions: float
    taxable_income: float
    brackets: list[BracketOut]
    lines: list[LineOut]
    total_amount: float
    total_tax: float
    marginal_rate: float
    avg_rate: float
    progress: float
    realized_tax: float

    @classmethod
    def build(
        cls,
        gross: float,
        deductions: float,
        brackets: tuple[Bracket, ...],
        progress: float = 1.0,
        *,
        strict: bool = False,
        settings: Settings | None = None,
    ) -> "AllocationReport":
        settings = settings or get_settings()
        income = taxable_income(gross, deductions)
        result = allocate(income, brackets, strict=strict, default_top_rate=settings.default_top_rate)
        flow_state = snapshot(progress, result, strict=strict)
        return cls.from_parts(gross, deductions, brackets, result, flow_state)

    @classmethod
    def from_parts(
        cls,
        gross: float,
        deductions: float,
        brackets: tuple[Bracket, ...],
        result: AllocationResult,
        flow_state: FlowSnapshot,
    ) -> "AllocationReport":
        lines = [
            LineOut(
                index=index,
                lower=line.lower,
                upper=line.wire_upper,
                span=line.span,
                amount=line.amount,
                tax=line.tax,
                rate=line.rate,
                flowed=flow_state.flowed[index],
                fill_ratio=flow_state.fill_ratios[index],
                realized_tax=flow_state.line_taxes[index],
                tax_share=flow_state.tax_shares[index],
            )
            for index, line in enumerate(result.lines)
        ]
        return cls(
            gross=gross,
            deductions=deductions,
            taxable_income=result.income,
            brackets=[BracketOut.from_bracket(row) for row in brackets],
            lines=lines,
            total_amount=result.total_amount,
            total_tax=result.total_tax,
            marginal_rate=result.marginal_rate,
            avg_rate=result.avg_rate,
            progress=flow_state.progress,
            realized_tax=flow_state.realized_tax,
        )


class FrameOut(BaseModel):
    frame: int
    progress: float
    flowed: list[float]
    fill_ratios: list[float]
    realized_tax: float


__all__ = [
    "AllocationReport",
    "AllocationRequest",
    "AnimationRequest",
    "BracketIn",
    "BracketOut",
    "EditRequest",
    "FrameOut",
    "IncomeRequest",
    "LineOut",
    "ScheduleRequest",
]
