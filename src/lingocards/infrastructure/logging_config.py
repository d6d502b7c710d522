"""
Logging setup for the lingocards package logger.

Writes a rotating log file under the configured log directory and mirrors
warnings (or more, when asked) to stderr.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

LOGGER_NAME = "lingocards"
LOG_FILE_NAME = "lingocards.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def level_for(verbose: int) -> int:
    """0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def log_file_path(log_dir: Path) -> Path:
    return log_dir / LOG_FILE_NAME


def setup_logging(
    log_dir: Path,
    verbose: int = 1,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_dir: Directory for lingocards.log; created if missing.
        verbose: File verbosity (see level_for).
        console_level: Threshold for the stderr handler.

    Returns:
        The configured "lingocards" logger. Calling again replaces its handlers.
    """
    level = level_for(verbose)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(min(level, console_level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path(log_dir),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning(f"File logging disabled, cannot write to {log_dir}: {e}")
        return logger

    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.debug(f"Logging initialized: level={logging.getLevelName(level)}, dir={log_dir}")
    return logger
