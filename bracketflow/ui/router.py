from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from bracketflow.config import Settings, get_settings
from bracketflow.core.brackets import max_finite_bound
from bracketflow.core.errors import InvalidInputError
from bracketflow.core.models import AllocationReport
from bracketflow.printout.text import format_currency, format_percent, format_range
from bracketflow.tax.presets import UnknownPresetError, get_preset, list_presets

router = APIRouter(prefix="/ui", tags=["ui"])

UI_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(UI_ROOT / "templates"))
TEMPLATES.env.filters["currency"] = format_currency
TEMPLATES.env.filters["percent"] = format_percent

BUCKET_HEIGHT_PX = 220
BUCKET_COLORS = (
    "#7dd3fc",
    "#93c5fd",
    "#a5b4fc",
    "#c4b5fd",
    "#f0abfc",
    "#f9a8d4",
    "#fda4af",
)


def _resolve_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


def _bucket_rows(report: AllocationReport) -> list[dict[str, Any]]:
    rows = []
    for line in report.lines:
        rows.append(
            {
                "number": line.index + 1,
                "label": format_range(line.lower, line.upper),
                "rate_label": f"{round(line.rate * 100)}%",
                "color": BUCKET_COLORS[line.index % len(BUCKET_COLORS)],
                "filled_px": round(min(BUCKET_HEIGHT_PX, line.fill_ratio * BUCKET_HEIGHT_PX), 1),
                "taxed": min(line.flowed, line.amount),
                "share_pct": round(line.tax_share * 100, 3),
                "line": line,
            }
        )
    return rows


@router.get("", response_class=HTMLResponse)
@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(
    request: Request,
    preset: str | None = None,
    gross: float | None = Query(default=None, ge=0, allow_inf_nan=False),
    deductions: float = Query(default=0.0, ge=0, allow_inf_nan=False),
    progress: float = Query(default=1.0, allow_inf_nan=False),
):
    settings = _resolve_settings(request)
    preset_name = (preset or settings.default_preset).lower()
    try:
        brackets = get_preset(preset_name)
    except UnknownPresetError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0]) from exc

    gross_income = settings.default_gross if gross is None else gross
    try:
        report = AllocationReport.build(
            gross_income,
            deductions,
            brackets,
            progress,
            strict=settings.strict_inputs,
            settings=settings,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    context = {
        "request": request,
        "report": report,
        "preset": preset_name,
        "presets": list_presets(),
        "buckets": _bucket_rows(report),
        "bucket_height": BUCKET_HEIGHT_PX,
        "slider_max": max(100_000.0, max_finite_bound(brackets) * 1.5),
        "progress_pct": round(report.progress * 100),
    }
    return TEMPLATES.TemplateResponse(request, "index.html", context)
