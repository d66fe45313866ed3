"""
Exception hierarchy for STV Direct exports.

Every error carries a machine-readable code and a details dict so that a
front-end can surface it without parsing the message.
"""

from typing import Any, Dict, Optional


class StvDirectError(Exception):
    """Base exception for all STV Direct export errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(StvDirectError, LookupError):
    """No record matches the requested Test_ID."""

    def __init__(self, test_id: Any, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"STV Direct record not found for Test_ID {test_id}",
            code="NOT_FOUND",
            details={"test_id": str(test_id), **(details or {})}
        )
        self.test_id = test_id


class InvalidArgumentError(StvDirectError, ValueError):
    """A caller-supplied argument has the wrong shape."""

    def __init__(
        self,
        message: str,
        argument: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INVALID_ARGUMENT",
            details={"argument": argument, **(details or {})}
        )
        self.argument = argument


class ReportGenerationError(StvDirectError):
    """The HTML or PDF backend failed to produce a report."""

    def __init__(
        self,
        message: str,
        stage: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="REPORT_ERROR",
            details={"stage": stage, **(details or {})}
        )
        self.stage = stage
