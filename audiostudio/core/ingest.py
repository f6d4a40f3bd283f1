"""
Clip ingestion: turn an encoded payload into a SampleBuffer plus a coarse
peak profile for drawing.
"""
from __future__ import annotations
import io
import logging

import numpy as np
import soundfile as sf

from .clip import Clip, ClipPayload, SampleBuffer
from .config import AUDIO_CONFIG, WAVEFORM_CONFIG
from .errors import DecodeError
from .project import new_clip_id
from .types import AudioArray

logger = logging.getLogger("PyAudioStudio")

RIFF_SIGNATURE = b"RIFF"
WAVE_SIGNATURE = b"WAVE"
CONTAINER_TAGS = ("wav", "wave", "flac", "ogg")


def is_riff_wave(payload: bytes) -> bool:
    """Check for a RIFF/WAVE header."""
    return len(payload) >= 12 and payload[:4] == RIFF_SIGNATURE and payload[8:12] == WAVE_SIGNATURE


def _wants_container(payload: bytes, format_tag: str) -> bool:
    tag = (format_tag or "").lower()
    return is_riff_wave(payload) or any(t in tag for t in CONTAINER_TAGS)


def decode_container(payload: bytes) -> SampleBuffer:
    """Decode a self-describing container (WAV, FLAC, OGG) with soundfile."""
    data, samplerate = sf.read(io.BytesIO(payload), dtype="float32", always_2d=True)
    if data.shape[0] == 0:
        raise DecodeError("Container holds no audio frames")
    return SampleBuffer(data, int(samplerate))


def decode_raw_pcm(payload: bytes, samplerate: int = AUDIO_CONFIG.raw_pcm_samplerate) -> SampleBuffer:
    """
    Interpret bytes as little-endian signed 16-bit mono PCM.
    A trailing odd byte is dropped.
    """
    frames = len(payload) // 2
    if frames == 0:
        raise DecodeError(f"Payload of {len(payload)} bytes is shorter than one frame")
    ints = np.frombuffer(payload[:frames * 2], dtype="<i2")
    return SampleBuffer((ints.astype(np.float32) / 32768.0)[:, np.newaxis], samplerate)


def decode_audio(payload: bytes, format_tag: str = "audio/pcm") -> SampleBuffer:
    """
    Decode an encoded payload into a SampleBuffer.

    Containers go through soundfile; anything else, or a container that fails
    to decode, is treated as raw 24 kHz PCM.

    Raises:
        DecodeError: payload is empty or shorter than one frame
    """
    if not payload:
        raise DecodeError("Empty audio payload")

    if _wants_container(payload, format_tag):
        try:
            return decode_container(payload)
        except (RuntimeError, TypeError, ValueError, DecodeError) as e:
            logger.warning("Container decode failed (%s), trying raw PCM: %s", format_tag, e)

    return decode_raw_pcm(payload)


def waveform_summary(data: AudioArray, points: int = WAVEFORM_CONFIG.points) -> tuple[float, ...]:
    """
    Peak-amplitude profile of the first channel in exactly `points` buckets.

    Buckets are `len // points` samples wide (at least one); samples past the
    last bucket are not summarized and buckets past the end of short inputs
    are 0.
    """
    channel = data[:, 0] if data.ndim > 1 else data
    total = len(channel)
    step = max(1, total // points)
    usable = min(total, step * points)

    peaks = np.zeros(points, dtype=np.float32)
    if usable:
        head = np.abs(channel[:usable])
        full = usable // step
        peaks[:full] = head[:full * step].reshape(full, step).max(axis=1)
    return tuple(float(v) for v in np.minimum(peaks, 1.0))


def ingest(payload: bytes, format_tag: str = "audio/pcm") -> tuple[SampleBuffer, float, tuple[float, ...]]:
    """Decode a payload; return (buffer, duration seconds, waveform summary)."""
    buffer = decode_audio(payload, format_tag)
    waveform = waveform_summary(buffer.data)
    logger.debug("Ingested %d frames @ %d Hz (%s)", buffer.frames, buffer.samplerate, format_tag)
    return buffer, buffer.duration, waveform


def generate_clip(track_id: int, name: str, payload: ClipPayload, clip_id: str | None = None) -> Clip:
    """Build a Clip (start 0) from a generator payload."""
    buffer, duration, waveform = ingest(payload.decode_bytes(), payload.mime_type)
    logger.info("Generated clip %r on track %d (%.2fs)", name, track_id, duration)
    return Clip(
        id=clip_id or new_clip_id(),
        track_id=track_id,
        name=name,
        start=0.0,
        duration=duration,
        audio_base64=payload.audio_base64,
        mime_type=payload.mime_type,
        waveform=waveform,
        buffer=buffer,
    )


def reingest(clip: Clip) -> Clip:
    """Restore a clip's decoded buffer from its stored payload."""
    buffer = decode_audio(clip.payload.decode_bytes(), clip.mime_type)
    return clip.with_buffer(buffer)
