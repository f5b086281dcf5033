"""Parameter Resolver - renders Jinja2 templates in action arguments.

Templates see the pipeline ``vars`` mapping as top-level names, so an
argument like ``"{{ deploy_key }}"`` is replaced by ``vars["deploy_key"]``.
"""

import re
from typing import Any

from jinja2 import (
    BaseLoader,
    Environment,
    StrictUndefined,
    TemplateError,
    Undefined,
)

from citool.commons.exceptions import ParameterResolutionError


class ParamResolver:
    """Resolves Jinja2 templates in strings, dicts and lists."""

    # Pattern to detect templates
    _TEMPLATE_PATTERN = re.compile(r"\{\{.*?\}\}|\{%.*?%\}", re.DOTALL)

    @classmethod
    def _get_environment(cls, strict: bool = True) -> Environment:
        """Get Jinja2 environment.

        Args:
            strict: If True, raise on undefined variables
        """
        return Environment(
            loader=BaseLoader(),
            undefined=StrictUndefined if strict else Undefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    @classmethod
    def has_template(cls, value: Any) -> bool:
        """Check whether a string contains template markup."""
        return isinstance(value, str) and bool(cls._TEMPLATE_PATTERN.search(value))

    @classmethod
    def resolve(cls, value: Any, variables: dict[str, Any], strict: bool = True) -> Any:
        """Resolve templates in a value.

        Args:
            value: The value containing templates (string, dict, list, or primitive)
            variables: Names available to templates
            strict: If True, raise on undefined variables

        Returns:
            Resolved value with templates replaced

        Raises:
            ParameterResolutionError: If template resolution fails
        """
        if isinstance(value, str):
            return cls._resolve_string(value, variables, strict)
        if isinstance(value, dict):
            return {key: cls.resolve(item, variables, strict) for key, item in value.items()}
        if isinstance(value, list):
            return [cls.resolve(item, variables, strict) for item in value]
        # Primitive types (None, int, float, bool) pass through unchanged
        return value

    @classmethod
    def _resolve_string(cls, value: str, variables: dict[str, Any], strict: bool) -> str:
        if not cls.has_template(value):
            return value

        env = cls._get_environment(strict=strict)
        try:
            return env.from_string(value).render(**variables)
        except TemplateError as e:
            # Never echo the template body, it may already hold secret material
            raise ParameterResolutionError(f"Failed to resolve template: {e.message or e}") from e
