"""Action execution context definitions.

This module defines the context object passed to action executors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from citool.shared.process import ProcessInvoker


class ProcessHandle(Protocol):
    """A background process started by an action and owned by its caller."""

    pid: int

    def terminate(self) -> bool: ...


def _default_invoker() -> ProcessInvoker:
    from citool.shared.process import ProcessInvoker

    return ProcessInvoker()


@dataclass
class ActionContext:
    """Context passed to action execute() method.

    Contains the raw action arguments, the caller's options (e.g. ``ssh_dir``
    and ``vars``) and the process invoker every process call goes through.
    Background processes started during execution are appended to
    ``processes`` so the caller can stop them, even after a Failure.
    """

    params: Any
    options: dict[str, Any] = field(default_factory=dict)
    invoker: ProcessInvoker = field(default_factory=_default_invoker)
    step_id: str = ""
    processes: list[ProcessHandle] = field(default_factory=list)

    @property
    def vars(self) -> dict[str, Any]:
        """Pipeline variables used to render templated arguments."""
        return self.options.get("vars") or {}

    def get_option(self, name: str, default: Any = None) -> Any:
        """Get a caller option, falling back to ``default`` when absent or None."""
        value = self.options.get(name)
        return default if value is None else value
