"""Argument extraction for actions.

Every action starts by narrowing its open-ended argument mapping down to the
keys it declares, then validating them into a typed parameter model. Keys an
action does not declare are never read.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from citool.commons.exceptions import ActionValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_keys(args: Mapping[str, Any] | None, keys: Iterable[str]) -> dict[str, Any]:
    """Return a new dict holding exactly ``keys``, in order.

    Missing keys map to None. ``None`` input is treated as an empty mapping.

    Raises:
        ActionValidationError: If ``args`` is not a mapping
    """
    if args is None:
        args = {}
    if not isinstance(args, Mapping):
        raise ActionValidationError(
            "arguments",
            [f"arguments must be a mapping, got {type(args).__name__}"],
        )
    return {key: args.get(key) for key in keys}


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into readable messages."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"]
        messages.append(f"{location}: {message}" if location else message)
    return messages


def parse_params(action_type: str, args: Mapping[str, Any] | None, model: type[ModelT]) -> ModelT:
    """Extract the model's fields from ``args`` and validate them.

    Args:
        action_type: Action name used in error reports
        args: Raw action arguments
        model: Pydantic model describing the action's parameters

    Returns:
        The validated parameter model

    Raises:
        ActionValidationError: If a required key is missing or a value is malformed
    """
    extracted = extract_keys(args, model.model_fields)
    # Drop unset keys so model defaults apply and required ones are reported as missing
    present = {key: value for key, value in extracted.items() if value is not None}
    try:
        return model.model_validate(present)
    except ValidationError as e:
        raise ActionValidationError(action_type, format_validation_errors(e)) from e
