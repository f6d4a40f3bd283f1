"""
Offline render / export for PyAudioStudio.

Mixes every playable track through its own freshly realized effects chain,
from time 0, into one stereo buffer; optionally peak-normalizes it and
encodes it as 16-bit PCM WAV. Rendering is all-or-nothing.
"""
from __future__ import annotations
import io
import logging
import math
import os
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile as sf

from .audio_engine import conform_buffer
from .config import AUDIO_CONFIG, EXPORT_CONFIG
from .effects import build_chain
from .effects_basic import apply_normalize
from .errors import RenderError
from .graph import realize_chain
from .project import Project, playable_tracks
from .track import Track
from .types import StereoArray

logger = logging.getLogger("PyAudioStudio")


def normalize_peak(buffer: StereoArray, target: float = EXPORT_CONFIG.normalize_target) -> StereoArray:
    """Whole-buffer peak normalization; silent or already-loud buffers are returned as is."""
    return apply_normalize(buffer, target_peak=target)


def to_pcm16(buffer: StereoArray) -> np.ndarray:
    """Clamp to [-1, 1]; negatives scale by 32768, positives by 32767."""
    clipped = np.clip(buffer.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.round(scaled).astype(np.int16)


def encode_wav(buffer: StereoArray, sample_rate: int) -> bytes:
    """Encode (frames, channels) float samples as a PCM-16 RIFF/WAVE file."""
    if buffer.ndim == 1:
        buffer = buffer[:, np.newaxis]
    out = io.BytesIO()
    sf.write(out, to_pcm16(buffer), sample_rate, format="WAV", subtype="PCM_16")
    return out.getvalue()


def export_filename(project: Project) -> str:
    return f"{project.name}.wav"


class Renderer:
    """Offline mixer at a fixed sample rate, independent of the live transport."""

    def __init__(self, sample_rate: int = AUDIO_CONFIG.render_samplerate, channels: int = 2) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._executor: Optional[ThreadPoolExecutor] = None

    def frame_count(self, project: Project) -> int:
        return int(math.ceil(project.export_duration * self.sample_rate))

    def _render_track(self, track: Track, frames: int) -> StereoArray:
        sr = self.sample_rate
        bus = np.zeros((frames, self.channels), dtype=np.float32)
        for clip in track.clips:
            samples = conform_buffer(clip.buffer, sr, self.channels)
            start = int(round(clip.start * sr))
            # Window shorter than the audio truncates it; longer leaves silence
            length = min(len(samples), int(round(clip.duration * sr)), frames - start)
            if length <= 0:
                continue
            bus[start:start + length] += samples[:length]
        processor = realize_chain(build_chain(track.mixer), sr)
        return processor.process(bus)

    def mix(self, project: Project) -> StereoArray:
        """
        Render the project to a (frames, channels) float32 buffer.

        Raises:
            RenderError: a playable clip has no decoded audio, mixing failed, or
                the mix holds NaN or infinite samples
        """
        tracks = playable_tracks(project.tracks)
        missing = [c.name or c.id for t in tracks for c in t.clips if not c.is_decoded]
        if missing:
            raise RenderError(f"Clips without decoded audio: {', '.join(missing)}")

        frames = self.frame_count(project)
        logger.info("Rendering %r: %d tracks, %.2fs @ %d Hz", project.name, len(tracks),
                    frames / self.sample_rate, self.sample_rate)
        try:
            mix = np.zeros((frames, self.channels), dtype=np.float32)
            for track in tracks:
                mix += self._render_track(track, frames)
        except Exception as e:
            logger.error("Offline mix failed: %s", e, exc_info=True)
            raise RenderError(f"Offline mix failed: {e}") from e

        if not np.isfinite(mix).all():
            logger.error("Offline mix of %r produced non-finite samples", project.name)
            raise RenderError("Offline mix produced non-finite samples")

        if any(t.mixer.normalize_on_export and not t.is_muted for t in tracks):
            mix = normalize_peak(mix)
        return mix

    def render(self, project: Project) -> bytes:
        """Render and encode the whole project as WAV bytes."""
        data = encode_wav(self.mix(project), self.sample_rate)
        logger.info("Rendered %r (%d bytes)", project.name, len(data))
        return data

    def export(self, project: Project, directory: str | os.PathLike = ".") -> Path:
        """
        Write `{project name}.wav` into `directory`. The file only appears
        once it is complete.
        """
        data = self.render(project)
        target = Path(directory) / export_filename(project)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, suffix=".wav.part")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise RenderError(f"Could not write {target}: {e}") from e
        logger.info("Exported to %s", target)
        return target

    def submit(self, project: Project) -> "Future[bytes]":
        """Render on a background worker; the returned future holds the WAV bytes."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="render")
        return self._executor.submit(self.render, project)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
