from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic import ConfigDict, field_validator

ENV_BOOL_TRUE = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ENV_BOOL_TRUE


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return float(value)


class Settings(BaseModel):
    default_top_rate: float = Field(default_factory=lambda: _env_float("BRACKETFLOW_DEFAULT_TOP_RATE", 0.37))
    animation_ms: float = Field(default_factory=lambda: _env_float("BRACKETFLOW_ANIMATION_MS", 4200.0))
    frame_ms: float = Field(default_factory=lambda: _env_float("BRACKETFLOW_FRAME_MS", 16.0))
    strict_inputs: bool = Field(default_factory=lambda: _env_bool("BRACKETFLOW_STRICT_INPUTS", False))
    default_preset: str = Field(default_factory=lambda: os.getenv("BRACKETFLOW_DEFAULT_PRESET", "mfj-2018"))
    default_gross: float = Field(default_factory=lambda: _env_float("BRACKETFLOW_DEFAULT_GROSS", 200000.0))
    artifact_root: str = Field(default_factory=lambda: os.getenv("ARTIFACT_ROOT", "artifacts"))
    log_dir: str = Field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))
    build_version: str = Field(default_factory=lambda: os.getenv("BUILD_VERSION", "dev"))
    build_sha: str = Field(default_factory=lambda: os.getenv("BUILD_SHA", "local"))

    model_config = ConfigDict(frozen=True)

    @field_validator("default_top_rate", "default_gross")
    @classmethod
    def _floor_at_zero(cls, value: float) -> float:
        return max(0.0, value)

    @field_validator("animation_ms", "frame_ms")
    @classmethod
    def _validate_duration(cls, value: float) -> float:
        if value != value:
            raise ValueError("Animation timings must be numbers")
        return max(0.0, value)

    @field_validator("default_preset")
    @classmethod
    def _validate_preset(cls, value: str) -> str:
        from bracketflow.tax.presets import has_preset

        slug = (value or "").strip().lower()
        if not has_preset(slug):
            raise ValueError(f"BRACKETFLOW_DEFAULT_PRESET names an unknown preset: {value!r}")
        return slug

    @property
    def animation_seconds(self) -> float:
        return self.animation_ms / 1000.0

    @property
    def frame_seconds(self) -> float:
        return self.frame_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
