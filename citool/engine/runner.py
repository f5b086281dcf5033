"""Task Runner - runs the tasks of a document one after another.

The first Failure stops the run and is returned unchanged. There are no
retries and nothing runs in parallel.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from citool.actions.base import (
    ActionContext,
    ActionRegistry,
    ProcessHandle,
    Result,
    Success,
    action_registry,
)
from citool.commons.exceptions import ActionNotFoundError
from citool.commons.observability import configure_structlog, get_logger
from citool.engine.task_parser import TaskDocument, TaskParser
from citool.shared.process import ProcessInvoker

logger = get_logger(__name__)


class TaskRunner:
    """Runs task documents through the action registry.

    Background processes started by any task (such as an ssh-agent) are
    collected on ``processes``; ``shutdown()`` stops them.
    """

    def __init__(
        self,
        registry: ActionRegistry | None = None,
        invoker: ProcessInvoker | None = None,
    ) -> None:
        self.registry = registry or action_registry
        self.invoker = invoker or ProcessInvoker()
        self.processes: list[ProcessHandle] = []

    def run(self, document: TaskDocument, options: dict[str, Any] | None = None) -> Result:
        """Run every task of a document in order.

        Args:
            document: Parsed task document
            options: Caller options; ``vars`` given here override the document's

        Returns:
            The first Failure, otherwise the last task's Result

        Raises:
            ActionNotFoundError: If any task names an unknown action
        """
        self.registry.discover_actions()
        for task in document.tasks:
            if not self.registry.has(task.action):
                raise ActionNotFoundError(task.action)

        run_options = dict(options or {})
        run_options["vars"] = {**document.vars, **(run_options.get("vars") or {})}

        result: Result = Success()
        for index, task in enumerate(document.tasks, start=1):
            step_id = f"{index}:{task.action}"
            context = ActionContext(
                params=task.args,
                options=run_options,
                invoker=self.invoker,
                step_id=step_id,
            )
            logger.info("task_started", step_id=step_id, action=task.action)
            try:
                result = self.registry.invoke(task.action, task.args, context=context)
            finally:
                self.processes.extend(context.processes)

            if not result.success:
                logger.error(
                    "task_failed",
                    step_id=step_id,
                    action=task.action,
                    code=result.code,
                    message=result.message,
                )
                return result
            logger.info("task_completed", step_id=step_id, action=task.action)

        return result

    def run_file(self, path: str | Path, options: dict[str, Any] | None = None) -> Result:
        """Load a task file and run its documents in order, stopping at the first Failure."""
        configure_structlog()
        result: Result = Success()
        for document in TaskParser.load_file(path):
            result = self.run(document, options)
            if not result.success:
                return result
        return result

    def shutdown(self) -> None:
        """Stop every background process started by the tasks, newest first."""
        while self.processes:
            handle = self.processes.pop()
            logger.info("task_process_stopping", pid=handle.pid)
            handle.terminate()
