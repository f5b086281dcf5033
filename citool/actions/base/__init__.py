"""Base classes and interfaces for CI actions.

This module exports all the core classes needed to define actions:
- ActionMeta: Declarative metadata for actions
- ParamDefinition, OutputDefinition: Parameter and output schemas
- ActionContext: Execution context
- Success, Failure, chain: Execution results and short-circuit chaining
- extract_keys, parse_params: Argument extraction
- BaseActionExecutor: Base class for executors
- ActionRegistry, action_registry: Central registry
"""

from .arguments import extract_keys, parse_params
from .context import ActionContext, ProcessHandle
from .executor import BaseActionExecutor
from .meta import (
    ActionExample,
    ActionMeta,
    OutputDefinition,
    ParamDefinition,
    ParamType,
)
from .registry import (
    ActionRegistry,
    action_registry,
    invoke_action,
    register_action,
)
from .result import Failure, Result, Success, chain

__all__ = [
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
    # Registry
    "ActionRegistry",
    "action_registry",
    "invoke_action",
    "register_action",
]
