import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from bracketflow import lifespan


def test_lifespan_populates_and_clears_state(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "custom-logs"))
    calls: list[str] = []

    async def _startup(app: FastAPI) -> None:
        calls.append("startup")

    def _shutdown(app: FastAPI) -> None:
        calls.append("shutdown")

    app = FastAPI(
        lifespan=lifespan.build_application_lifespan(
            "test-app", startup_hook=_startup, shutdown_hook=_shutdown
        )
    )

    with TestClient(app):
        assert app.state.settings.default_preset == "mfj-2018"
        assert app.state.default_brackets[-1].is_top
        assert "mfj-2018" in app.state.preset_names
        assert app.state.active_animations == 0
        assert app.state.app_label == "test-app"
        handler = app.state.telemetry_handler
        assert handler in logging.getLogger("bracketflow").handlers

    assert calls == ["startup", "shutdown"]
    assert not hasattr(app.state, "settings")
    assert handler not in logging.getLogger("bracketflow").handlers
    log_text = (tmp_path / "custom-logs" / "test-app.log").read_text(encoding="utf-8")
    assert "Startup complete" in log_text
    assert "Shutdown complete" in log_text
