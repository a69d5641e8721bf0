"""
vfio-bind Common Utilities

Shared error handling and logging for vfio-bind.
"""

from .exceptions import (
    RebindError, InvalidArgumentCountError, DeviceNotFoundError,
    DriverOperationFailedError,
)
from .decorators import handle_errors, timed
from .logging_config import setup_logging, get_logger, LogContext

__all__ = [
    # Exceptions
    "RebindError", "InvalidArgumentCountError", "DeviceNotFoundError",
    "DriverOperationFailedError",
    # Decorators
    "handle_errors", "timed",
    # Logging
    "setup_logging", "get_logger", "LogContext",
]
