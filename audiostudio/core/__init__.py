"""
PyAudioStudio Core Module

This module contains the core audio processing logic:
- ingest: Decode clip payloads and summarize waveforms
- effects / graph: Build and realize per-track effects chains
- AudioEngine: Audio context (device stream, clock, track buses)
- PlaybackController: Live transport and clip scheduling
- Renderer: Offline mixdown and WAV export
- Project / Track / Clip / MixerSettings: Immutable project model
- Studio: Editing session orchestration
"""
from .audio_engine import AudioEngine
from .clip import Clip, ClipPayload, SampleBuffer
from .config import (
    AUDIO_CONFIG,
    EFFECTS_CONFIG,
    EXPORT_CONFIG,
    TIMELINE_CONFIG,
    TRACK_PRESETS,
    WAVEFORM_CONFIG,
    PlaybackState
)
from .effects import EffectsChain, build_chain
from .errors import (
    AudioStudioError,
    ClipNotFoundError,
    DecodeError,
    InvalidSettingsError,
    RenderError,
    TrackNotFoundError
)
from .graph import realize_chain
from .ingest import generate_clip, ingest, reingest
from .mixer import DEFAULT_MIXER_SETTINGS, MixerSettings
from .playback import PlaybackController, TickDriver, TransportState
from .project import Project, playable_tracks
from .render import Renderer
from .session import Studio
from .track import Track

__all__ = [
    # Main classes
    'AudioEngine',
    'PlaybackController',
    'TickDriver',
    'TransportState',
    'Renderer',
    'Studio',
    # Model
    'Project',
    'Track',
    'Clip',
    'ClipPayload',
    'SampleBuffer',
    'MixerSettings',
    'DEFAULT_MIXER_SETTINGS',
    'EffectsChain',
    # Functions
    'ingest',
    'generate_clip',
    'reingest',
    'build_chain',
    'realize_chain',
    'playable_tracks',
    # Errors
    'AudioStudioError',
    'DecodeError',
    'RenderError',
    'TrackNotFoundError',
    'ClipNotFoundError',
    'InvalidSettingsError',
    # Config
    'AUDIO_CONFIG',
    'EFFECTS_CONFIG',
    'EXPORT_CONFIG',
    'TIMELINE_CONFIG',
    'TRACK_PRESETS',
    'WAVEFORM_CONFIG',
    'PlaybackState',
]
