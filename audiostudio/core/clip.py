from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field, replace
from typing import Any, Optional

import numpy as np

from .errors import DecodeError
from .types import AudioArray


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Decoded audio owned by a single clip.
    Samples are float32 in [-1, 1], shaped (frames, channels), and read-only.
    """
    data: AudioArray
    samplerate: int

    def __post_init__(self) -> None:
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim == 1:
            data = data[:, np.newaxis]
        data = np.ascontiguousarray(data)
        data.flags.writeable = False
        object.__setattr__(self, "data", data)

    @property
    def frames(self) -> int:
        return self.data.shape[0]

    @property
    def channels(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / self.samplerate if self.samplerate > 0 else 0.0

    def channel(self, index: int = 0) -> AudioArray:
        return self.data[:, index]


@dataclass(frozen=True)
class ClipPayload:
    """Encoded audio handed over by a content generator."""
    audio_base64: str
    mime_type: str = "audio/pcm"

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ClipPayload":
        try:
            return cls(str(payload["audioBase64"]), str(payload.get("mimeType") or "audio/pcm"))
        except KeyError as e:
            raise DecodeError(f"Clip payload is missing {e}") from e

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str = "audio/pcm") -> "ClipPayload":
        return cls(base64.b64encode(raw).decode("ascii"), mime_type)

    def decode_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.audio_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Invalid base64 audio payload: {e}") from e


@dataclass(frozen=True)
class Clip:
    """
    A timeline-positioned window onto decoded audio.
    `duration` is the playback window and may differ from the decoded length
    once the clip is resized.
    """
    id: str
    track_id: int
    name: str
    start: float
    duration: float
    audio_base64: str
    mime_type: str
    waveform: tuple[float, ...] = ()
    buffer: Optional[SampleBuffer] = field(default=None, compare=False, repr=False)

    @property
    def end(self) -> float:
        return self.start + self.duration

    @property
    def is_decoded(self) -> bool:
        return self.buffer is not None

    @property
    def payload(self) -> ClipPayload:
        return ClipPayload(self.audio_base64, self.mime_type)

    def moved(self, start: float) -> "Clip":
        return replace(self, start=max(0.0, float(start)))

    def resized(self, duration: float) -> "Clip":
        if duration <= 0:
            raise ValueError(f"Clip duration must be positive, got {duration}")
        return replace(self, duration=float(duration))

    def with_buffer(self, buffer: Optional[SampleBuffer]) -> "Clip":
        return replace(self, buffer=buffer)
