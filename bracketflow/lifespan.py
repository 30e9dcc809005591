from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager

from fastapi import FastAPI

from bracketflow.config import Settings, get_settings
from bracketflow.tax.presets import get_preset, list_presets

Hook = Callable[[FastAPI], Awaitable[None] | None]

_STATE_ATTRS = (
    "settings",
    "default_brackets",
    "preset_names",
    "artifact_root",
    "telemetry_handler",
    "active_animations",
    "app_label",
)


def _open_telemetry_sink(logger: logging.Logger, app_label: str, settings: Settings) -> logging.Handler | None:
    logs_dir = Path(settings.log_dir)
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Unable to create logs directory %s: %s", logs_dir, exc)
        return None
    handler = logging.FileHandler(logs_dir / f"{app_label}.log", encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)
    return handler


async def _invoke_hook(hook: Hook | None, app: FastAPI) -> None:
    if hook is None:
        return
    try:
        result = hook(app)
        if inspect.isawaitable(result):
            await result  # type: ignore[func-returns-value]
    except Exception:  # pragma: no cover - hooks are user provided
        logging.getLogger("bracketflow").exception("Application lifecycle hook failed")


def build_application_lifespan(
    app_label: str,
    *,
    startup_hook: Hook | None = None,
    shutdown_hook: Hook | None = None,
) -> Callable[[FastAPI], AsyncContextManager[None]]:
    base_logger = logging.getLogger("bracketflow")

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        logger = base_logger.getChild(app_label)
        telemetry_handler = _open_telemetry_sink(base_logger, app_label, settings)

        app.state.settings = settings
        app.state.default_brackets = get_preset(settings.default_preset)
        app.state.preset_names = list_presets()
        app.state.artifact_root = settings.artifact_root
        app.state.telemetry_handler = telemetry_handler
        app.state.active_animations = 0
        app.state.app_label = app_label

        logger.info(
            "Startup complete: default_preset=%s presets=%s strict_inputs=%s",
            settings.default_preset,
            len(app.state.preset_names),
            settings.strict_inputs,
        )

        try:
            await _invoke_hook(startup_hook, app)
            yield
        finally:
            await _invoke_hook(shutdown_hook, app)
            logger.info("Shutdown complete")
            if telemetry_handler is not None:
                base_logger.removeHandler(telemetry_handler)
                telemetry_handler.close()
            for attr in _STATE_ATTRS:
                if hasattr(app.state, attr):
                    delattr(app.state, attr)

    return _lifespan
