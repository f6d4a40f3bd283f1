"""
PyAudioStudio Utilities Module

- logger: the shared "PyAudioStudio" logger and its setup
"""
from .logger import logger, setup_logger

__all__ = ['logger', 'setup_logger']
