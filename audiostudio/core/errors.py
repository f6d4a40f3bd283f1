"""
Exception hierarchy for PyAudioStudio.
"""


class AudioStudioError(Exception):
    """Base class for all PyAudioStudio errors."""


class DecodeError(AudioStudioError):
    """Payload is empty, malformed or shorter than one frame."""


class RenderError(AudioStudioError):
    """Offline render could not produce a complete file."""


class TrackNotFoundError(AudioStudioError, KeyError):
    """No track with the requested id."""


class ClipNotFoundError(AudioStudioError, KeyError):
    """No clip with the requested id."""


class InvalidSettingsError(AudioStudioError, ValueError):
    """Mixer patch names an unknown field or an out-of-range value."""
