"""Action registry for plugin discovery and management.

This module provides the central registry for all CI actions.
Actions are discovered via Python entry points, enabling plugin-style
extensibility without modifying core code.
"""

from __future__ import annotations

import importlib.metadata
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog

from citool.commons.exceptions import ActionNotFoundError

from .context import ActionContext
from .executor import BaseActionExecutor
from .meta import ActionMeta
from .result import Result

if TYPE_CHECKING:
    from citool.shared.process import ProcessInvoker

logger = structlog.get_logger()

ENTRY_POINT_GROUP = "citool.actions"


@runtime_checkable
class ActionClassProtocol(Protocol):
    """Protocol for action classes with meta and executor_class attributes."""

    meta: ActionMeta
    executor_class: type[BaseActionExecutor]


class ActionRegistry:
    """Central registry for all CI actions.

    Usage:
        from citool.actions import action_registry

        action_registry.discover_actions()
        meta = action_registry.get_meta("git_clone")
        executor = action_registry.get_executor("git_clone")
    """

    _instance: ActionRegistry | None = None
    _lock: threading.Lock = threading.Lock()

    # Instance attributes - declared here for mypy
    _actions: dict[str, dict[str, Any]]
    _loaded: bool
    _executor_lock: threading.Lock

    def __new__(cls) -> ActionRegistry:
        """Thread-safe singleton pattern."""
        if cls._instance is None:
            with cls._lock:
                # Double-check locking pattern
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._actions = {}
                    cls._instance._loaded = False
                    cls._instance._executor_lock = threading.Lock()
        return cls._instance

    def discover_actions(self) -> None:
        """Discover and load all actions from the "citool.actions" entry point group."""
        if self._loaded:
            return

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            try:
                action_class = ep.load()
                self._register_action_class(ep.name, action_class)
                logger.info("action_registered", action_type=ep.name)
            except (ImportError, AttributeError, ValueError) as e:
                logger.error(
                    "action_registration_failed",
                    action_type=ep.name,
                    error=str(e),
                )

        self._loaded = True
        logger.info("action_discovery_complete", count=len(self._actions))

    def _register_action_class(
        self, action_type: str, action_class: type[ActionClassProtocol] | Any
    ) -> None:
        """Register an action class.

        Args:
            action_type: The action type identifier
            action_class: The action class with meta and executor_class attributes

        Raises:
            ValueError: If action class is invalid or has invalid metadata
        """
        if not hasattr(action_class, "meta"):
            raise ValueError(f"Action {action_type} missing 'meta' attribute")
        if not hasattr(action_class, "executor_class"):
            raise ValueError(f"Action {action_type} missing 'executor_class' attribute")

        meta: ActionMeta = action_class.meta  # type: ignore[union-attr]

        errors = meta.validate()
        if errors:
            raise ValueError(f"Invalid action metadata for {action_type}: {errors}")

        executor_class: type[BaseActionExecutor] = (
            action_class.executor_class  # type: ignore[union-attr]
        )
        if not isinstance(executor_class, type) or not issubclass(
            executor_class, BaseActionExecutor
        ):
            raise ValueError(
                f"executor_class for {action_type} must inherit from BaseActionExecutor"
            )

        self._actions[action_type] = {
            "meta": meta,
            "executor_class": executor_class,
            "executor_instance": None,  # Lazy instantiation
        }

    def register(self, action_class: type[ActionClassProtocol] | Any) -> type:
        """Decorator for manual action registration.

        Usage:
            @action_registry.register
            class MyAction:
                meta = ActionMeta(...)
                executor_class = MyExecutor
        """
        meta: ActionMeta = action_class.meta  # type: ignore[union-attr]
        self._register_action_class(meta.type, action_class)
        return action_class

    def get_meta(self, action_type: str) -> ActionMeta | None:
        """Get action metadata by type, None if not registered."""
        action = self._actions.get(action_type)
        return action["meta"] if action else None

    def get_executor(self, action_type: str) -> BaseActionExecutor:
        """Get action executor instance (lazy singleton, thread-safe).

        Raises:
            ActionNotFoundError: If action type not found
        """
        action = self._actions.get(action_type)
        if not action:
            raise ActionNotFoundError(action_type)

        if action["executor_instance"] is None:
            with self._executor_lock:
                # Double-check after acquiring lock
                if action["executor_instance"] is None:
                    action["executor_instance"] = action["executor_class"]()

        return action["executor_instance"]

    def has(self, action_type: str) -> bool:
        """Check if action type is registered."""
        return action_type in self._actions

    def list_actions(self) -> list[str]:
        """List all registered action types."""
        return list(self._actions.keys())

    def get_all_meta(self) -> list[ActionMeta]:
        """Get metadata for all registered actions."""
        return [a["meta"] for a in self._actions.values()]

    def get_by_category(self) -> dict[str, list[ActionMeta]]:
        """Get actions grouped by category."""
        by_category: dict[str, list[ActionMeta]] = {}
        for action in self._actions.values():
            meta = action["meta"]
            by_category.setdefault(meta.category, []).append(meta)
        return by_category

    def invoke(
        self,
        action_type: str,
        args: Any,
        options: Mapping[str, Any] | None = None,
        invoker: ProcessInvoker | None = None,
        context: ActionContext | None = None,
    ) -> Result:
        """Run a registered action.

        Args:
            action_type: The action type identifier
            args: Raw action arguments
            options: Caller options (``ssh_dir``, ``vars``, ...)
            invoker: Process invoker, a fresh one when omitted
            context: Prebuilt context; ``args``/``options``/``invoker`` are ignored if given

        Returns:
            The action's Result

        Raises:
            ActionNotFoundError: If action type not found
            ActionValidationError: If the arguments are malformed
        """
        executor = self.get_executor(action_type)
        if context is None:
            context = ActionContext(params=args, options=dict(options or {}), step_id=action_type)
            if invoker is not None:
                context.invoker = invoker
        return executor.execute(context)

    def reset(self) -> None:
        """Reset the registry (for testing)."""
        with self._executor_lock:
            self._actions.clear()
            self._loaded = False


# Global registry instance
action_registry = ActionRegistry()


def register_action(meta: ActionMeta) -> Callable[[type], type]:
    """Decorator to attach metadata to an action class.

    Usage:
        @register_action(ActionMeta(type="my_action", ...))
        class MyAction:
            executor_class = MyExecutor
    """

    def decorator(cls: type) -> type:
        cls.meta = meta  # type: ignore[attr-defined]
        # Registration happens when entry point is loaded
        return cls

    return decorator


def invoke_action(
    action_type: str,
    args: Any,
    options: Mapping[str, Any] | None = None,
    invoker: ProcessInvoker | None = None,
) -> Result:
    """Discover actions if needed and run one through the global registry."""
    action_registry.discover_actions()
    return action_registry.invoke(action_type, args, options=options, invoker=invoker)
