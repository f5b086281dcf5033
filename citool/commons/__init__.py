"""Commons module - shared config, exceptions and logging setup."""

from citool.commons.config import settings
from citool.commons.exceptions import (
    ActionNotFoundError,
    ActionValidationError,
    CitoolException,
    ParameterResolutionError,
    TaskParseError,
)

__all__ = [
    "settings",
    "CitoolException",
    "ActionNotFoundError",
    "ActionValidationError",
    "ParameterResolutionError",
    "TaskParseError",
]
