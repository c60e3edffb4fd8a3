"""
Utility functions for the podcast worker.
"""

from .logging_utils import safe_log_text
from .duration import parse_duration, format_duration
from .timeouts import with_timeout, Ok, TimedOut

__all__ = ["safe_log_text", "parse_duration", "format_duration", "with_timeout", "Ok", "TimedOut"]
