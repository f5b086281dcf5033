"""Action execution result definitions.

Every action and every single process call returns one of two variants:

    Success(data)           - the step completed, ``data`` carries its outputs
    Failure(code, message)  - the step failed with an exit code and diagnostic

Process failures are never raised as exceptions. Multi-step actions compose
their calls with ``chain()`` (or ``Result.and_then``) so the first Failure
becomes the action's own result, unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union


@dataclass(frozen=True)
class Success:
    """Successful outcome carrying action-specific data (e.g. ``{"pid": 42}``)."""

    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze a private copy of the data mapping."""
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @property
    def success(self) -> bool:
        return True

    def and_then(self, fn: Callable[[Success], Result]) -> Result:
        """Run the next step with this result."""
        return fn(self)


@dataclass(frozen=True)
class Failure:
    """Failed outcome with the underlying exit code and message."""

    code: int
    message: str

    @property
    def success(self) -> bool:
        return False

    def and_then(self, fn: Callable[[Success], Result]) -> Result:
        """Short-circuit: the next step is never run."""
        return self


Result = Union[Success, Failure]


def chain(*steps: Callable[[], Result]) -> Result:
    """Run steps in order and stop at the first Failure.

    Args:
        *steps: Zero-argument callables, each returning a Result

    Returns:
        The first Failure verbatim, otherwise the last step's Result
        (an empty Success when there are no steps)
    """
    result: Result = Success()
    for step in steps:
        result = step()
        if not result.success:
            return result
    return result
