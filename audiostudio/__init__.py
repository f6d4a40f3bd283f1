"""
PyAudioStudio: multi-track clip editor core.

- core: clips, tracks, effects chains, live playback and offline export
- utils: logging setup
"""
__version__ = "0.1.0"
