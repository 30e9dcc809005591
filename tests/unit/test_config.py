import pytest
from pydantic import ValidationError

from bracketflow.config import Settings, get_settings


def test_defaults():
    settings = Settings()
    assert settings.default_top_rate == 0.37
    assert settings.animation_seconds == pytest.approx(4.2)
    assert settings.frame_seconds == pytest.approx(0.016)
    assert settings.strict_inputs is False
    assert settings.default_preset == "mfj-2018"
    assert settings.default_gross == 200000


def test_env_parsing(monkeypatch):
    monkeypatch.setenv("BRACKETFLOW_STRICT_INPUTS", "yes")
    monkeypatch.setenv("BRACKETFLOW_DEFAULT_PRESET", "Single-2024")
    monkeypatch.setenv("BRACKETFLOW_DEFAULT_TOP_RATE", "-0.5")
    monkeypatch.setenv("BRACKETFLOW_ANIMATION_MS", "-10")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.strict_inputs is True
    assert settings.default_preset == "single-2024"
    assert settings.default_top_rate == 0.0
    assert settings.animation_ms == 0.0


def test_unknown_default_preset_is_rejected(monkeypatch):
    monkeypatch.setenv("BRACKETFLOW_DEFAULT_PRESET", "atlantis")
    with pytest.raises(ValidationError, match="unknown preset"):
        Settings()


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.default_top_rate = 0.5
