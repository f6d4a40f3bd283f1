"""
Centralized configuration for PyAudioStudio.
All magic numbers and default settings in one place.
"""
import math
from dataclasses import dataclass, field
from enum import Enum, auto


class PlaybackState(Enum):
    """Transport state enumeration. Pause is a stop that keeps the playhead."""
    STOPPED = auto()
    PLAYING = auto()


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Audio engine configuration."""
    device_samplerate: int = 48000
    render_samplerate: int = 48000
    raw_pcm_samplerate: int = 24000  # Contract of the upstream TTS service
    playback_channels: int = 2
    playback_blocksize: int = 1024


@dataclass(frozen=True, slots=True)
class WaveformConfig:
    """Waveform summary settings."""
    points: int = 100


@dataclass(frozen=True, slots=True)
class EffectsConfig:
    """Mapping constants for the per-track effects chain."""
    unity_level: float = 0.8  # Normalized gain/volume that maps to 1.0

    # EQ
    eq_low_hz: float = 300.0
    eq_mid_hz: float = 1500.0
    eq_high_hz: float = 5000.0
    eq_mid_q: float = 1.0
    eq_shelf_q: float = 1.0 / math.sqrt(2.0)
    eq_range_db: float = 24.0

    # Compressors
    threshold_range_db: float = 100.0
    max_ratio: float = 20.0
    peak_attack_s: float = 0.1
    peak_release_s: float = 0.5
    glue_attack_s: float = 0.2
    glue_attack_floor_s: float = 0.01
    glue_release_s: float = 0.8
    glue_release_floor_s: float = 0.1

    # Saturation
    saturation_drive: float = 100.0
    saturation_curve_size: int = 44100
    oversample_factor: int = 4
    oversample_taps: int = 63


@dataclass(frozen=True, slots=True)
class ExportConfig:
    """Offline render / export settings."""
    normalize_target: float = 0.99
    min_duration_s: float = 1.0


@dataclass(frozen=True, slots=True)
class TimelineConfig:
    """Timeline and transport tick settings."""
    min_duration_s: float = 60.0
    round_to_s: float = 60.0
    pixels_per_second: float = 100.0
    scroll_margin_fraction: float = 1.0 / 3.0
    tick_interval_s: float = 1.0 / 60.0


@dataclass(frozen=True, slots=True)
class TrackPresets:
    """Display colours for the kinds of track a user can add."""
    colors: dict[str, str] = field(default_factory=lambda: {
        "Voice": "#3b82f6",
        "Music": "#22c55e",
        "SFX": "#eab308",
    })
    initial_kinds: tuple[str, ...] = ("Voice", "Music", "SFX")
    default_project_name: str = "Untitled_Project"


# Global config instances (immutable singletons)
AUDIO_CONFIG = AudioConfig()
WAVEFORM_CONFIG = WaveformConfig()
EFFECTS_CONFIG = EffectsConfig()
EXPORT_CONFIG = ExportConfig()
TIMELINE_CONFIG = TimelineConfig()
TRACK_PRESETS = TrackPresets()
