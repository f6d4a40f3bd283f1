"""
Effects chain construction.

A track's MixerSettings become an ordered tuple of typed stage descriptors.
Nothing here touches audio: the descriptors are turned into processors by
`graph.realize_chain`, once per playback or render pass.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from .config import EFFECTS_CONFIG
from .mixer import MixerSettings


@dataclass(frozen=True, slots=True)
class GainStage:
    gain: float


@dataclass(frozen=True, slots=True)
class FilterStage:
    kind: str            # "lowshelf" | "peaking" | "highshelf"
    frequency: float
    gain_db: float
    q: float


@dataclass(frozen=True, slots=True)
class CompressorStage:
    threshold_db: float
    ratio: float
    attack: float        # seconds
    release: float       # seconds


@dataclass(frozen=True, slots=True)
class WaveshaperStage:
    amount: float        # drive k
    curve_size: int = EFFECTS_CONFIG.saturation_curve_size
    oversample: int = EFFECTS_CONFIG.oversample_factor


Stage = Union[GainStage, FilterStage, CompressorStage, WaveshaperStage]


@dataclass(frozen=True, slots=True)
class EffectsChain:
    """Ordered stages; the first is the input gain and the last the output gain."""
    stages: tuple[Stage, ...]

    @property
    def input(self) -> GainStage:
        return self.stages[0]

    @property
    def output(self) -> GainStage:
        return self.stages[-1]

    def __len__(self) -> int:
        return len(self.stages)


# --- Parameter mappings (normalized 0..1 -> physical units) ---

def gain_from_level(level: float) -> float:
    """0.8 normalized is unity gain."""
    return level / EFFECTS_CONFIG.unity_level


def eq_gain_db(value: float) -> float:
    """+-12 dB centred on 0.5."""
    return (value - 0.5) * EFFECTS_CONFIG.eq_range_db


def threshold_db(value: float) -> float:
    """-100..0 dB."""
    return (value - 1) * EFFECTS_CONFIG.threshold_range_db


def compression_ratio(value: float) -> float:
    """1:1..20:1."""
    return 1 + value * (EFFECTS_CONFIG.max_ratio - 1)


def saturation_drive(value: float) -> float:
    return value * EFFECTS_CONFIG.saturation_drive


def eq_stages(settings: MixerSettings) -> tuple[FilterStage, ...]:
    cfg = EFFECTS_CONFIG
    return (
        FilterStage("lowshelf", cfg.eq_low_hz, eq_gain_db(settings.eq_low), cfg.eq_shelf_q),
        FilterStage("peaking", cfg.eq_mid_hz, eq_gain_db(settings.eq_mid), cfg.eq_mid_q),
        FilterStage("highshelf", cfg.eq_high_hz, eq_gain_db(settings.eq_high), cfg.eq_shelf_q),
    )


def peak_compressor_stage(settings: MixerSettings) -> CompressorStage:
    return CompressorStage(
        threshold_db=threshold_db(settings.peak_threshold),
        ratio=compression_ratio(settings.peak_ratio),
        attack=settings.peak_attack * EFFECTS_CONFIG.peak_attack_s,
        release=settings.peak_release * EFFECTS_CONFIG.peak_release_s,
    )


def glue_compressor_stage(settings: MixerSettings) -> CompressorStage:
    # Slower time constants than the peak stage, for bus "glue"
    cfg = EFFECTS_CONFIG
    return CompressorStage(
        threshold_db=threshold_db(settings.glue_threshold),
        ratio=compression_ratio(settings.glue_ratio),
        attack=settings.glue_attack * cfg.glue_attack_s + cfg.glue_attack_floor_s,
        release=settings.glue_release * cfg.glue_release_s + cfg.glue_release_floor_s,
    )


def build_chain(settings: MixerSettings) -> EffectsChain:
    """
    Map mixer settings to the ordered stage list:
    input gain, EQ, peak compressor, glue compressor, saturation, output gain.
    Optional stages are present only when their switch is on.

    The de-esser fields are not mapped to a stage yet.
    """
    stages: list[Stage] = [GainStage(gain_from_level(settings.input_gain))]

    if settings.eq_on:
        stages.extend(eq_stages(settings))
    if settings.peak_compressor_on:
        stages.append(peak_compressor_stage(settings))
    if settings.glue_compressor_on:
        stages.append(glue_compressor_stage(settings))
    if settings.saturation_on:
        stages.append(WaveshaperStage(saturation_drive(settings.saturation_value)))

    stages.append(GainStage(gain_from_level(settings.output_volume)))
    return EffectsChain(tuple(stages))
