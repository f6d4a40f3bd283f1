"""
Audio engine context for PyAudioStudio.

Owns the output device stream and the audio clock. Track buses (a realized
effects chain plus the clip voices feeding it) are connected for one playback
pass and torn down together. The clock advances only as frames are rendered,
so voices start on exact frames whether the device or a test drives it.
"""
from __future__ import annotations
import threading
from typing import Iterable

import numpy as np

from .clip import Clip, SampleBuffer
from .config import AUDIO_CONFIG
from .graph import ChainProcessor
from .types import StereoArray
from ..utils.logger import logger


def conform_buffer(buffer: SampleBuffer, sample_rate: int, channels: int = 2) -> StereoArray:
    """
    Resample a decoded buffer to `sample_rate` and fit it to `channels`
    (mono is copied to every channel, extra channels are dropped).
    """
    data = buffer.data
    if buffer.samplerate != sample_rate:
        import librosa
        data = librosa.resample(
            np.ascontiguousarray(data.T), orig_sr=buffer.samplerate, target_sr=sample_rate, axis=-1
        ).T
    if data.shape[1] == 1 and channels > 1:
        data = np.repeat(data, channels, axis=1)
    elif data.shape[1] > channels:
        data = data[:, :channels]
    return np.ascontiguousarray(data, dtype=np.float32)


class Voice:
    """One scheduled clip: plays `length` frames from `offset` starting at `start_frame`."""
    __slots__ = ("clip_id", "samples", "start_frame", "offset", "length")

    def __init__(self, clip_id: str, samples: StereoArray, start_frame: int, offset: int, length: int) -> None:
        self.clip_id = clip_id
        self.samples = samples
        self.start_frame = start_frame
        self.offset = offset
        # Resizing past the decoded audio leaves the tail silent
        self.length = max(0, min(length, len(samples) - offset))

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.length

    def mix_into(self, out: np.ndarray, block_start: int) -> None:
        block_end = block_start + len(out)
        lo = max(block_start, self.start_frame)
        hi = min(block_end, self.end_frame)
        if hi <= lo:
            return
        src = self.offset + (lo - self.start_frame)
        out[lo - block_start:hi - block_start] += self.samples[src:src + (hi - lo)]


class TrackBus:
    """Voices of one track summed and run through that track's chain."""
    __slots__ = ("track_id", "processor", "voices")

    def __init__(self, track_id: int, processor: ChainProcessor) -> None:
        self.track_id = track_id
        self.processor = processor
        self.voices: list[Voice] = []

    def render(self, block_start: int, frames: int, channels: int) -> np.ndarray:
        bus = np.zeros((frames, channels), dtype=np.float32)
        for voice in self.voices:
            voice.mix_into(bus, block_start)
        self.voices = [v for v in self.voices if v.end_frame > block_start + frames]
        return self.processor.process(bus)


class AudioEngine:
    """
    Explicitly owned audio context: created once at start-up and closed at
    shutdown. Exposes the audio clock (`current_time`) and `sample_rate`.
    """

    def __init__(
        self,
        sample_rate: int = AUDIO_CONFIG.device_samplerate,
        channels: int = AUDIO_CONFIG.playback_channels,
        blocksize: int = AUDIO_CONFIG.playback_blocksize,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.blocksize = blocksize
        self._frames_rendered = 0
        self._buses: list[TrackBus] = []
        self._lock = threading.Lock()
        self._stream = None
        # Keyed by id(buffer); the entry holds the buffer so its id stays unique
        self._conformed: dict[int, tuple[SampleBuffer, StereoArray]] = {}
        logger.info("AudioEngine initialized (%d Hz, %d ch)", sample_rate, channels)

    # --- Lifecycle ---

    @property
    def current_time(self) -> float:
        """Audio clock in seconds."""
        return self._frames_rendered / self.sample_rate

    @property
    def current_frame(self) -> int:
        return self._frames_rendered

    @property
    def is_running(self) -> bool:
        return self._stream is not None

    def start(self) -> bool:
        """Open and start the output device stream."""
        if self._stream is not None:
            return True
        try:
            import sounddevice as sd

            def callback(outdata: np.ndarray, frames: int, time: object, status: "sd.CallbackFlags") -> None:
                try:
                    if status and status.output_underflow:
                        logger.debug("Output underflow")
                    outdata[:] = self.render_block(frames)
                except Exception as e:
                    logger.error("Playback callback error: %s", e, exc_info=True)
                    raise sd.CallbackStop()

            self._stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                blocksize=self.blocksize,
                dtype="float32",
                callback=callback,
            )
            self._stream.start()
            logger.info("Output stream started")
            return True
        except Exception as e:
            logger.error("Failed to start output stream: %s", e, exc_info=True)
            self._stream = None
            return False

    def close(self) -> None:
        """Silence everything and release the device."""
        self.disconnect_all()
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.warning("Error stopping stream: %s", e)
            self._stream = None
        self._conformed.clear()
        logger.info("AudioEngine closed")

    def __enter__(self) -> "AudioEngine":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- Graph ---

    def connect_track(self, track_id: int, processor: ChainProcessor) -> TrackBus:
        """Attach a realized chain to the master output."""
        bus = TrackBus(track_id, processor)
        with self._lock:
            self._buses.append(bus)
        return bus

    def schedule(self, bus: TrackBus, clip: Clip, when: float, offset: float, length: float) -> Voice:
        """
        Queue `clip` on `bus`: start at engine time `when`, `offset` seconds
        into the clip, for `length` seconds.
        """
        if clip.buffer is None:
            raise ValueError(f"Clip {clip.id} has no decoded audio")
        samples = self._samples_for(clip)
        sr = self.sample_rate
        voice = Voice(clip.id, samples, int(round(when * sr)), int(round(offset * sr)), int(round(length * sr)))
        with self._lock:
            bus.voices.append(voice)
        return voice

    def disconnect_all(self) -> None:
        """Drop every bus and voice. Nothing scheduled before this call is heard after it."""
        with self._lock:
            count = sum(len(b.voices) for b in self._buses)
            self._buses = []
        if count:
            logger.debug("Disconnected %d active voices", count)

    @property
    def active_voice_count(self) -> int:
        with self._lock:
            return sum(len(b.voices) for b in self._buses)

    @property
    def bus_count(self) -> int:
        with self._lock:
            return len(self._buses)

    # --- Rendering ---

    def render_block(self, frames: int) -> np.ndarray:
        """Mix the next `frames` frames of every bus and advance the clock."""
        out = np.zeros((frames, self.channels), dtype=np.float32)
        with self._lock:
            block_start = self._frames_rendered
            for bus in self._buses:
                out += bus.render(block_start, frames, self.channels)
            self._frames_rendered += frames
        np.clip(out, -1.0, 1.0, out=out)
        return out

    def _samples_for(self, clip: Clip) -> StereoArray:
        key = id(clip.buffer)
        cached = self._conformed.get(key)
        if cached is not None:
            return cached[1]
        samples = conform_buffer(clip.buffer, self.sample_rate, self.channels)
        self._conformed[key] = (clip.buffer, samples)
        return samples

    def release_unused(self, buffers: Iterable[SampleBuffer]) -> int:
        """Forget conformed samples for every buffer not in `buffers`. Returns how many were dropped."""
        keep = {id(b) for b in buffers}
        stale = [key for key in self._conformed if key not in keep]
        for key in stale:
            del self._conformed[key]
        if stale:
            logger.debug("Released %d cached sample buffers", len(stale))
        return len(stale)

    @property
    def cached_buffer_count(self) -> int:
        return len(self._conformed)
