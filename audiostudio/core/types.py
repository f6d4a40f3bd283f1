"""
Type definitions for the PyAudioStudio core module.
Provides type aliases and protocols for type safety and better IDE support.
"""
from typing import Callable, Protocol
import numpy as np
from numpy.typing import NDArray

from .config import PlaybackState

# Audio data types
AudioArray = NDArray[np.float32]  # Shape: (frames, channels)
StereoArray = NDArray[np.float32] # Shape: (frames, 2)

# Callback types
PositionCallback = Callable[[float], None]          # seconds
StateCallback = Callable[[PlaybackState], None]


class BlockProcessor(Protocol):
    """Stateful DSP stage: consumes consecutive blocks of (frames, channels)."""
    def process(self, block: AudioArray) -> AudioArray: ...
