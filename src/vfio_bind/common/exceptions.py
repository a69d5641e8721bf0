"""
vfio-bind Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, operator feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any, Sequence


class RebindError(Exception):
    """
    Base exception for all vfio-bind errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s


class InvalidArgumentCountError(RebindError):
    """Caller did not supply exactly one device identifier."""
    def __init__(self, arguments: Sequence[str]):
        super().__init__(
            f"Please specify exactly one device BDF (got {len(arguments)})",
            code="INVALID_ARGUMENT_COUNT",
            details={"arguments": list(arguments)},
        )


class DeviceNotFoundError(RebindError):
    """Identifier does not correspond to a known device."""
    def __init__(self, bdf: str, reason: str = "no such device",
                 cause: Optional[Exception] = None):
        super().__init__(
            f"Device {bdf} not found: {reason}",
            code="DEVICE_NOT_FOUND",
            details={"bdf": bdf, "reason": reason},
            cause=cause,
        )


class DriverOperationFailedError(RebindError):
    """Unbind, override or probe rejected by the kernel."""
    def __init__(self, bdf: str, operation: str, reason: str,
                 cause: Optional[Exception] = None):
        super().__init__(
            f"Failed to {operation} {bdf}: {reason}",
            code="DRIVER_OPERATION_FAILED",
            details={"bdf": bdf, "operation": operation, "reason": reason},
            cause=cause,
        )
