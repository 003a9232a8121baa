"""Utility functions and classes"""

from .config import ConfigLoader
from .logging_config import configure_logging, get_logger, log_section, setup_logging

__all__ = ['ConfigLoader', 'configure_logging', 'get_logger', 'log_section', 'setup_logging']
