"""Logging for the dendroclim analysis

All module loggers live under the 'dendroclim' package logger, so handlers
are attached once and every analysis step writes to the same console and
run log.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union


PACKAGE_LOGGER = 'dendroclim'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
BANNER_WIDTH = 60


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Attach console and file handlers to the package logger

    The file handler records DEBUG messages (per-series AR orders, skipped
    curve fits) whatever the console level is.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Run log path (optional, parent directories are created)
        log_to_console: Whether to log to stdout

    Returns:
        The package logger
    """
    level = getattr(logging, log_level.upper())
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Repeated CLI invocations in one process must not stack handlers
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def configure_logging(config, log_to_console: Optional[bool] = None) -> logging.Logger:
    """
    Set up logging from the 'logging' section of a study configuration

    Args:
        config: ConfigLoader with optional logging.level, logging.file
            and logging.console keys
        log_to_console: Overrides logging.console when given

    Returns:
        The package logger
    """
    if log_to_console is None:
        log_to_console = config.get('logging.console', False)

    return setup_logging(
        log_level=config.get('logging.level', 'INFO'),
        log_file=config.get_path('logging.file') if config.get('logging.file') else None,
        log_to_console=log_to_console
    )


def log_section(logger: logging.Logger, title: str, *details: str):
    """Write a banner that opens an analysis step in the run log"""
    logger.info("=" * BANNER_WIDTH)
    logger.info(title)
    for line in details:
        logger.info(line)
    logger.info("=" * BANNER_WIDTH)


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Logger for a dendroclim module (pass __name__)"""
    return logging.getLogger(name)
