"""
Pytest configuration and fixtures for PyAudioStudio tests.
"""
import io
import itertools

import numpy as np
import pytest
import soundfile as sf

from audiostudio.core.audio_engine import AudioEngine
from audiostudio.core.clip import Clip, SampleBuffer
from audiostudio.core.project import Project
from audiostudio.core.render import Renderer
from audiostudio.core.track import Track

# Low rate keeps the per-sample compressor loop and the mixes fast
TEST_SR = 8000


@pytest.fixture
def sample_mono_audio() -> np.ndarray:
    """Generate 1 second of mono sine wave audio at the test rate."""
    t = np.arange(TEST_SR, dtype=np.float32) / TEST_SR
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def sample_stereo_audio() -> np.ndarray:
    """Generate 1 second of stereo sine wave audio at the test rate."""
    t = np.arange(TEST_SR, dtype=np.float32) / TEST_SR
    left = 0.5 * np.sin(2 * np.pi * 440 * t)
    right = 0.5 * np.sin(2 * np.pi * 880 * t)
    return np.column_stack((left, right)).astype(np.float32)


@pytest.fixture
def pcm_payload() -> bytes:
    """Half a second of raw little-endian int16 PCM (24 kHz mono)."""
    t = np.arange(12000) / 24000
    ints = (np.sin(2 * np.pi * 220 * t) * 16000).astype("<i2")
    return ints.tobytes()


@pytest.fixture
def wav_payload(sample_stereo_audio) -> bytes:
    """One second of stereo 16-bit WAV."""
    buf = io.BytesIO()
    sf.write(buf, sample_stereo_audio, TEST_SR, format="WAV", subtype="PCM_16")
    return buf.getvalue()


@pytest.fixture
def make_clip():
    """Factory for decoded clips whose audio is already at the test rate."""
    counter = itertools.count(1)

    def factory(samples=None, start=0.0, duration=None, track_id=1, name=None, decoded=True, sr=TEST_SR):
        if samples is None:
            samples = np.full(sr, 0.25, dtype=np.float32)
        buffer = SampleBuffer(samples, sr)
        n = next(counter)
        return Clip(
            id=f"clip-{n}",
            track_id=track_id,
            name=name or f"Clip {n}",
            start=start,
            duration=buffer.duration if duration is None else duration,
            audio_base64="",
            mime_type="audio/pcm",
            waveform=(0.0,) * 100,
            buffer=buffer if decoded else None,
        )

    return factory


@pytest.fixture
def make_project():
    """Factory: build a Project from (track_id, clips, mixer patch) tuples."""
    def factory(*specs, name="Test Project"):
        project = Project(name=name)
        for track_id, clips, patch in specs:
            track = Track(id=track_id, name=f"Track {track_id}").with_clips(tuple(clips))
            if patch:
                track = track.with_settings(patch)
            project = Project(name=project.name, tracks=project.tracks + (track,))
        return project

    return factory


@pytest.fixture
def engine() -> AudioEngine:
    """Headless engine: the test drives the clock with render_block()."""
    eng = AudioEngine(sample_rate=TEST_SR)
    yield eng
    eng.close()


@pytest.fixture
def renderer() -> Renderer:
    r = Renderer(sample_rate=TEST_SR)
    yield r
    r.close()
