"""Custom exceptions for citool.

Process failures are reported as ``Failure`` results, never raised. These
exceptions cover configuration and programming errors only.
"""

from typing import Any


class CitoolException(Exception):
    """Base exception for all citool errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ActionNotFoundError(CitoolException):
    """Action type not found in registry."""

    def __init__(self, action_type: str) -> None:
        super().__init__(
            f"Action type not found: {action_type}",
            details={"action_type": action_type},
        )
        self.action_type = action_type


class ActionValidationError(CitoolException):
    """Action arguments validation failed."""

    def __init__(self, action_type: str, errors: list[str], **kwargs: Any) -> None:
        super().__init__(
            f"Action validation failed for {action_type}",
            details={"action_type": action_type, "validation_errors": errors},
            **kwargs,
        )
        self.action_type = action_type
        self.validation_errors = errors


class ParameterResolutionError(CitoolException):
    """Error resolving parameter templates."""

    def __init__(self, message: str, template: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.template = template
        if template:
            self.details["template"] = template


class TaskParseError(CitoolException):
    """Error parsing a task document."""

    pass
