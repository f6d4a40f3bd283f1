"""
Per-track mixer settings.
Every continuous parameter is normalized to 0..1; the effects chain maps them
to physical units when it is built.
"""
from __future__ import annotations
from dataclasses import dataclass, fields, replace, asdict
from typing import Any, Mapping

from .errors import InvalidSettingsError


@dataclass(frozen=True, slots=True)
class MixerSettings:
    """Flat, immutable parameter set for one track's effects chain."""
    input_gain: float = 0.8

    # De-esser: stored and persisted, not wired to any DSP stage yet
    de_esser_on: bool = False
    de_esser_threshold: float = 0.5
    de_esser_ratio: float = 0.5

    eq_on: bool = False
    eq_low: float = 0.5
    eq_mid: float = 0.5
    eq_high: float = 0.5

    peak_compressor_on: bool = False
    peak_threshold: float = 0.5
    peak_ratio: float = 0.5
    peak_attack: float = 0.1
    peak_release: float = 0.2

    glue_compressor_on: bool = False
    glue_threshold: float = 0.5
    glue_ratio: float = 0.5
    glue_attack: float = 0.1
    glue_release: float = 0.2

    saturation_on: bool = False
    saturation_value: float = 0.1

    output_volume: float = 0.8
    normalize_on_export: bool = True
    is_muted: bool = False
    is_soloed: bool = False

    def merged(self, patch: Mapping[str, Any]) -> "MixerSettings":
        """Return a copy with the fields in `patch` replaced.

        Keys may be snake_case field names or the camelCase names used by the
        persistence payload.
        """
        if not patch:
            return self
        return replace(self, **_validate_patch(patch))

    def to_dict(self) -> dict[str, Any]:
        """camelCase mapping used by the project JSON payload."""
        return {_SNAKE_TO_CAMEL[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MixerSettings":
        known = {k: v for k, v in data.items() if _normalize_key(k) is not None}
        return DEFAULT_MIXER_SETTINGS.merged(known)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_FIELD_TYPES = {f.name: f.type for f in fields(MixerSettings)}
_SNAKE_TO_CAMEL = {name: _camel(name) for name in _FIELD_TYPES}
_CAMEL_TO_SNAKE = {camel: snake for snake, camel in _SNAKE_TO_CAMEL.items()}


def _normalize_key(key: str) -> str | None:
    if key in _FIELD_TYPES:
        return key
    return _CAMEL_TO_SNAKE.get(key)


def _validate_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
    clean: dict[str, Any] = {}
    for key, value in patch.items():
        name = _normalize_key(key)
        if name is None:
            raise InvalidSettingsError(f"Unknown mixer setting: {key!r}")
        if _FIELD_TYPES[name] in (bool, "bool"):
            if not isinstance(value, bool):
                raise InvalidSettingsError(f"{key} must be a boolean, got {value!r}")
            clean[name] = value
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidSettingsError(f"{key} must be a number, got {value!r}")
        if not 0.0 <= value <= 1.0:
            raise InvalidSettingsError(f"{key} must be within 0..1, got {value!r}")
        clean[name] = float(value)
    return clean


DEFAULT_MIXER_SETTINGS = MixerSettings()
