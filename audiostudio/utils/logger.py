"""
Logging setup for PyAudioStudio.
All modules log to the "PyAudioStudio" logger; handlers are attached here once.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = "PyAudioStudio"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again only adjusts the console level and adds the file
    handler if one is not attached yet.

    Args:
        level: Console verbosity
        log_file: Optional path that receives DEBUG and above
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT)

    # Console goes to stderr so CLI output on stdout stays clean
    console = next((h for h in logger.handlers if h.get_name() == "console"), None)
    if console is None:
        console = logging.StreamHandler(sys.stderr)
        console.set_name("console")
        console.setFormatter(formatter)
        logger.addHandler(console)
    console.setLevel(level)

    if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


logger = setup_logger()
