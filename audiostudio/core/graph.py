"""
Graph realizer: turns stage descriptors into fresh, stateful numpy/scipy
processors. Feeding a signal in consecutive blocks gives the same result as
feeding it at once, so the live engine and the offline renderer share them.
"""
from __future__ import annotations
import logging
from functools import lru_cache
from typing import Optional

import numpy as np

from . import effects_basic as fx
from .effects import (
    CompressorStage, EffectsChain, FilterStage, GainStage, Stage, WaveshaperStage
)
from .types import AudioArray, BlockProcessor

logger = logging.getLogger("PyAudioStudio")


class GainProcessor:
    __slots__ = ("gain",)

    def __init__(self, stage: GainStage) -> None:
        self.gain = stage.gain

    def process(self, block: AudioArray) -> AudioArray:
        if self.gain == 1.0:
            return block
        return fx.apply_gain(block, self.gain)


class BiquadProcessor:
    __slots__ = ("b", "a", "_zi")

    def __init__(self, stage: FilterStage, sample_rate: int) -> None:
        design = fx.BIQUAD_DESIGNS[stage.kind]
        self.b, self.a = design(sample_rate, stage.frequency, stage.gain_db, stage.q)
        self._zi: Optional[np.ndarray] = None

    def process(self, block: AudioArray) -> AudioArray:
        out, self._zi = fx.apply_biquad(block, self.b, self.a, self._zi)
        return out


class CompressorProcessor:
    __slots__ = ("stage", "sample_rate", "_envelope")

    def __init__(self, stage: CompressorStage, sample_rate: int) -> None:
        self.stage = stage
        self.sample_rate = sample_rate
        self._envelope = 0.0

    def process(self, block: AudioArray) -> AudioArray:
        s = self.stage
        out, self._envelope = fx.apply_compressor(
            block, self.sample_rate, s.threshold_db, s.ratio, s.attack, s.release, self._envelope
        )
        return out


@lru_cache(maxsize=16)
def _cached_curve(amount: float, size: int) -> np.ndarray:
    curve = fx.saturation_curve(amount, size)
    curve.flags.writeable = False
    return curve


class WaveshaperProcessor:
    __slots__ = ("curve", "factor", "fir", "_state")

    def __init__(self, stage: WaveshaperStage) -> None:
        self.curve = _cached_curve(stage.amount, stage.curve_size)
        self.factor = stage.oversample
        self.fir = fx.oversampling_filter(self.factor) if self.factor > 1 else None
        self._state = None

    def process(self, block: AudioArray) -> AudioArray:
        if self.factor <= 1:
            return fx.apply_curve(block, self.curve)
        out, self._state = fx.apply_oversampled_curve(block, self.curve, self.fir, self.factor, self._state)
        return out


def realize_stage(stage: Stage, sample_rate: int) -> BlockProcessor:
    if isinstance(stage, GainStage):
        return GainProcessor(stage)
    if isinstance(stage, FilterStage):
        return BiquadProcessor(stage, sample_rate)
    if isinstance(stage, CompressorStage):
        return CompressorProcessor(stage, sample_rate)
    if isinstance(stage, WaveshaperStage):
        return WaveshaperProcessor(stage)
    raise TypeError(f"Unknown stage type: {type(stage).__name__}")


class ChainProcessor:
    """A realized effects chain: input stage first, output stage last."""
    __slots__ = ("chain", "processors")

    def __init__(self, chain: EffectsChain, processors: list[BlockProcessor]) -> None:
        self.chain = chain
        self.processors = processors

    def process(self, block: AudioArray) -> AudioArray:
        for processor in self.processors:
            block = processor.process(block)
        return block


def realize_chain(chain: EffectsChain, sample_rate: int) -> ChainProcessor:
    """Build fresh processors for one pass; never share them between passes."""
    processors = [realize_stage(stage, sample_rate) for stage in chain.stages]
    logger.debug("Realized chain with %d stages @ %d Hz", len(processors), sample_rate)
    return ChainProcessor(chain, processors)
