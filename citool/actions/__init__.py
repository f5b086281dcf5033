"""CI actions module.

Actions are self-contained steps of a build pipeline. Each one narrows its
arguments, runs one or more external processes and returns a Result.

Usage:
    from citool.actions import invoke_action

    result = invoke_action(
        "git_clone",
        {"repo": "https://github.com/org/repo.git", "dest": "repo", "sha": "abc123"},
    )
    if not result.success:
        print(result.code, result.message)
"""

from .base import (
    ActionContext,
    ActionExample,
    ActionMeta,
    ActionRegistry,
    BaseActionExecutor,
    Failure,
    OutputDefinition,
    ParamDefinition,
    ParamType,
    ProcessHandle,
    Result,
    Success,
    action_registry,
    chain,
    extract_keys,
    invoke_action,
    parse_params,
    register_action,
)

__all__ = [
    # Registry
    "action_registry",
    "ActionRegistry",
    "invoke_action",
    "register_action",
    # Metadata
    "ActionMeta",
    "ParamDefinition",
    "OutputDefinition",
    "ParamType",
    "ActionExample",
    # Context
    "ActionContext",
    "ProcessHandle",
    # Results
    "Result",
    "Success",
    "Failure",
    "chain",
    # Arguments
    "extract_keys",
    "parse_params",
    # Executor
    "BaseActionExecutor",
]
