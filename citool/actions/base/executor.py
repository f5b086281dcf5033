"""Base action executor definition.

This module defines the abstract base class that all action executors
must inherit from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .context import ActionContext
from .result import Result


class BaseActionExecutor(ABC):
    """Base class for action execution logic.

    All action executors must inherit from this class and implement
    the execute() method.

    Example:
        class MyExecutor(BaseActionExecutor):
            def execute(self, context: ActionContext) -> Result:
                return context.invoker.run("make test")
    """

    @abstractmethod
    def execute(self, context: ActionContext) -> Result:
        """Execute the action.

        Process calls run one after another and the first Failure is
        returned unchanged. Malformed arguments raise ActionValidationError.

        Args:
            context: Execution context with arguments, options and invoker

        Returns:
            Success with the action outputs, or the first Failure
        """
        pass

    def validate_params(self, params: Any) -> list[str]:
        """Validate parameters without running anything.

        Override this method to report argument problems up front.

        Args:
            params: The raw action arguments

        Returns:
            List of validation error messages. Empty if valid.
        """
        return []
