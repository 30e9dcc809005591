from __future__ import annotations

from typing import Dict, List

from bracketflow.core.brackets import Bracket, normalize

# 2018 married-filing-jointly schedule, the visualizer's default example
MFJ_2018 = (
    Bracket.of(19050, 0.10),
    Bracket.of(77400, 0.12),
    Bracket.of(165000, 0.22),
    Bracket.of(315000, 0.24),
    Bracket.of(400000, 0.32),
    Bracket.of(600000, 0.35),
    Bracket.of(None, 0.37),
)

SINGLE_2024 = (
    Bracket.of(11600, 0.10),
    Bracket.of(47150, 0.12),
    Bracket.of(100525, 0.22),
    Bracket.of(191950, 0.24),
    Bracket.of(243725, 0.32),
    Bracket.of(609350, 0.35),
    Bracket.of(None, 0.37),
)

MFJ_2024 = (
    Bracket.of(23200, 0.10),
    Bracket.of(94300, 0.12),
    Bracket.of(201050, 0.22),
    Bracket.of(383900, 0.24),
    Bracket.of(487450, 0.32),
    Bracket.of(731200, 0.35),
    Bracket.of(None, 0.37),
)

_REGISTRY: Dict[str, tuple[Bracket, ...]] = {}
_DESCRIPTIONS: Dict[str, str] = {}


class UnknownPresetError(KeyError):
    pass


def register_preset(name: str, brackets, description: str = "") -> None:
    slug = name.strip().lower()
    _REGISTRY[slug] = normalize(brackets)
    _DESCRIPTIONS[slug] = description


register_preset("mfj-2018", MFJ_2018, "US federal 2018, married filing jointly")
register_preset("single-2024", SINGLE_2024, "US federal 2024, single")
register_preset("mfj-2024", MFJ_2024, "US federal 2024, married filing jointly")

DEFAULT_PRESET = "mfj-2018"


def has_preset(name: str) -> bool:
    return name.strip().lower() in _REGISTRY


def get_preset(name: str) -> tuple[Bracket, ...]:
    slug = name.strip().lower()
    try:
        return _REGISTRY[slug]
    except KeyError as exc:
        raise UnknownPresetError(f"No bracket preset registered as {slug!r}") from exc


def describe_preset(name: str) -> str:
    get_preset(name)
    return _DESCRIPTIONS[name.strip().lower()]


def list_presets() -> List[str]:
    return sorted(_REGISTRY)


__all__ = [
    "DEFAULT_PRESET",
    "MFJ_2018",
    "MFJ_2024",
    "SINGLE_2024",
    "UnknownPresetError",
    "describe_preset",
    "get_preset",
    "has_preset",
    "list_presets",
    "register_preset",
]
