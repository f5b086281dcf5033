"""Action metadata definitions.

This module defines the declarative metadata structures for CI actions.
ActionMeta documents what an action reads and what it returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ParamType(str, Enum):
    """Parameter types supported by actions."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"
    TEMPLATE = "template"  # Jinja2 template string rendered against pipeline vars


@dataclass
class ParamDefinition:
    """Parameter definition."""

    name: str
    label: str
    type: ParamType
    required: bool = False
    default: Any = None
    description: str | None = None


@dataclass
class OutputDefinition:
    """Output field definition."""

    name: str
    type: str  # string, number, boolean, object, array
    description: str | None = None


@dataclass
class ActionExample:
    """Usage example for an action."""

    title: str
    params: Any
    description: str | None = None


@dataclass
class ActionMeta:
    """Complete action metadata.

    Identity, parameters, outputs and documentation of a CI action.
    """

    # === Identity ===
    type: str  # Unique identifier (e.g., "git_clone")
    name: str  # Human-readable name
    category: str  # Grouping (Source, Credentials, ...)
    description: str  # What this action does

    # === Version ===
    version: str = "1.0.0"

    # === Parameters ===
    params: list[ParamDefinition] = field(default_factory=list)

    # === Outputs ===
    outputs: list[OutputDefinition] = field(default_factory=list)

    # === Behavior ===
    idempotent: bool = True
    required_binaries: list[str] = field(default_factory=list)

    # === Documentation ===
    examples: list[ActionExample] = field(default_factory=list)

    def validate(self) -> list[str]:
        """Validate the action metadata.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        if not self.type:
            errors.append("type is required")
        if not self.name:
            errors.append("name is required")
        if not self.category:
            errors.append("category is required")
        if not self.description:
            errors.append("description is required")

        # Validate type format (lowercase, alphanumeric with underscores)
        if self.type and not self.type.replace("_", "").isalnum():
            errors.append("type must be alphanumeric with underscores only")

        param_names = set()
        for i, param in enumerate(self.params):
            if not param.name:
                errors.append(f"param[{i}].name is required")
            elif param.name in param_names:
                errors.append(f"duplicate param name: {param.name}")
            else:
                param_names.add(param.name)

            if not param.label:
                errors.append(f"param[{i}].label is required")

        output_names = set()
        for i, output in enumerate(self.outputs):
            if not output.name:
                errors.append(f"output[{i}].name is required")
            elif output.name in output_names:
                errors.append(f"duplicate output name: {output.name}")
            else:
                output_names.add(output.name)

        return errors

    def get_param_names(self) -> list[str]:
        """Get parameter names in declaration order."""
        return [p.name for p in self.params]

    def get_required_params(self) -> list[ParamDefinition]:
        """Get list of required parameters."""
        return [p for p in self.params if p.required]

    def get_param(self, name: str) -> ParamDefinition | None:
        """Get a parameter definition by name."""
        for param in self.params:
            if param.name == name:
                return param
        return None

    def get_output(self, name: str) -> OutputDefinition | None:
        """Get an output definition by name."""
        for output in self.outputs:
            if output.name == name:
                return output
        return None
