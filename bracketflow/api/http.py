import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse

from bracketflow import __version__
from bracketflow.config import Settings, get_settings
from bracketflow.core.allocation import allocate, taxable_income
from bracketflow.core.animation import AnimationDriver
from bracketflow.core.brackets import Bracket
from bracketflow.core.editing import add_bracket, remove_bracket, set_rate, set_upper_bound
from bracketflow.core.errors import BracketEditError, InvalidInputError
from bracketflow.core.flow import snapshot
from bracketflow.core.models import (
    AllocationReport,
    AllocationRequest,
    AnimationRequest,
    BracketOut,
    EditRequest,
    FrameOut,
    ScheduleRequest,
)
from bracketflow.lifespan import build_application_lifespan
from bracketflow.printout.bracket_render import render_bracket_pdf
from bracketflow.tax.presets import UnknownPresetError, describe_preset, get_preset, list_presets
from bracketflow.ui import router as ui_router

logger = logging.getLogger("bracketflow")


async def _announce_defaults(app: FastAPI) -> None:
    settings = app.state.settings
    logger.info(
        "bracketflow startup complete; default_preset=%s animation_ms=%s frame_ms=%s",
        settings.default_preset,
        settings.animation_ms,
        settings.frame_ms,
    )


app = FastAPI(
    title="Bracket Flow",
    version=__version__,
    description="Allocate taxable income across progressive brackets and animate the fill.",
    lifespan=build_application_lifespan("api", startup_hook=_announce_defaults),
)
app.include_router(ui_router.router)
router = APIRouter()


class PrintRequest(AllocationRequest):
    out_path: str = "."


def _settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


def _resolve_schedule(req: ScheduleRequest, settings: Settings) -> tuple[Bracket, ...]:
    try:
        return req.resolve(settings)
    except UnknownPresetError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0]) from exc


def _strict(req: AllocationRequest, settings: Settings) -> bool:
    return settings.strict_inputs if req.strict is None else req.strict


def _build_report(req: AllocationRequest, settings: Settings) -> AllocationReport:
    brackets = _resolve_schedule(req, settings)
    gross = settings.default_gross if req.gross is None else req.gross
    try:
        return AllocationReport.build(
            gross,
            req.deductions,
            brackets,
            req.progress,
            strict=_strict(req, settings),
            settings=settings,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/health")
def health(request: Request):
    settings = _settings(request)
    return {
        "status": "ok",
        "build": {
            "version": settings.build_version,
            "sha": settings.build_sha,
        },
        "defaults": {
            "preset": settings.default_preset,
            "top_rate": settings.default_top_rate,
            "animation_ms": settings.animation_ms,
            "strict_inputs": settings.strict_inputs,
        },
    }


@router.get("/presets")
def presets():
    return {"presets": [{"name": name, "description": describe_preset(name)} for name in list_presets()]}


@router.get("/presets/{name}", response_model=list[BracketOut])
def preset_detail(name: str):
    try:
        rows = get_preset(name)
    except UnknownPresetError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0]) from exc
    return [BracketOut.from_bracket(row) for row in rows]


@router.post("/brackets/normalize", response_model=list[BracketOut])
def normalize_brackets(req: ScheduleRequest, request: Request):
    rows = _resolve_schedule(req, _settings(request))
    return [BracketOut.from_bracket(row) for row in rows]


@router.post("/brackets/edit", response_model=list[BracketOut])
def edit_brackets(req: EditRequest, request: Request):
    settings = _settings(request)
    rows = _resolve_schedule(req, settings)
    top_rate = settings.default_top_rate
    try:
        if req.op == "add":
            edited = add_bracket(rows, default_top_rate=top_rate)
        else:
            if req.index is None:
                raise BracketEditError(f"Edit '{req.op}' requires an index")
            if req.op == "remove":
                edited = remove_bracket(rows, req.index, default_top_rate=top_rate)
            elif req.op == "set_rate":
                edited = set_rate(rows, req.index, req.value, default_top_rate=top_rate)
            else:
                edited = set_upper_bound(rows, req.index, req.value, default_top_rate=top_rate)
    except BracketEditError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info("Applied bracket edit", extra={"op": req.op, "index": req.index, "rows": len(edited)})
    return [BracketOut.from_bracket(row) for row in edited]


@router.post("/allocate", response_model=AllocationReport)
def allocate_income(req: AllocationRequest, request: Request):
    return _build_report(req, _settings(request))


@router.post("/animate")
async def animate(req: AnimationRequest, request: Request):
    """Stream one NDJSON frame per animation tick until the flow is complete."""
    settings = _settings(request)
    brackets = _resolve_schedule(req, settings)
    gross = settings.default_gross if req.gross is None else req.gross
    result = allocate(taxable_income(gross, req.deductions), brackets, default_top_rate=settings.default_top_rate)
    driver = AnimationDriver(
        settings.animation_seconds if req.duration_ms is None else req.duration_ms / 1000.0,
        frame_interval=settings.frame_seconds if req.frame_ms is None else req.frame_ms / 1000.0,
    )

    async def _frames():
        request.app.state.active_animations = getattr(request.app.state, "active_animations", 0) + 1
        try:
            frame = 0
            async for progress in driver.play_frames():
                state = snapshot(progress, result)
                payload = FrameOut(
                    frame=frame,
                    progress=state.progress,
                    flowed=list(state.flowed),
                    fill_ratios=list(state.fill_ratios),
                    realized_tax=state.realized_tax,
                )
                frame += 1
                yield payload.model_dump_json() + "\n"
        finally:
            driver.cancel()
            logger.info("Animation stream closed at progress=%.3f", driver.progress)
            request.app.state.active_animations = max(0, getattr(request.app.state, "active_animations", 1) - 1)

    return StreamingResponse(_frames(), media_type="application/x-ndjson")


@router.post("/printout")
def printout(req: PrintRequest, request: Request):
    settings = _settings(request)
    report = _build_report(req, settings)
    label = req.preset or ("custom" if req.brackets is not None else settings.default_preset)
    path = render_bracket_pdf(req.out_path, report, label)
    logger.info("Rendered bracket printout", extra={"path": path})
    return {"pdf": path}


app.include_router(router)
