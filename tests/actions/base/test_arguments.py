"""Tests for argument extraction."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from citool.actions.base.arguments import extract_keys, parse_params
from citool.commons.exceptions import ActionValidationError


class SampleParams(BaseModel):
    """Parameters used by the tests below."""

    name: str
    count: int = 1
    label: str | None = None


class TestExtractKeys:
    """Tests for extract_keys."""

    def test_keeps_only_declared_keys(self) -> None:
        """Undeclared keys are dropped."""
        args = {"repo": "r", "dest": "d", "extra": "ignored"}
        assert extract_keys(args, ["repo", "dest"]) == {"repo": "r", "dest": "d"}

    def test_missing_keys_map_to_none(self) -> None:
        """Missing keys are present with a None value."""
        assert extract_keys({"repo": "r"}, ["repo", "pr"]) == {"repo": "r", "pr": None}

    def test_preserves_key_order(self) -> None:
        """Keys come back in the declared order."""
        result = extract_keys({"b": 2, "a": 1}, ["a", "b", "c"])
        assert list(result) == ["a", "b", "c"]

    def test_none_input_is_empty(self) -> None:
        """None is treated as an empty mapping."""
        assert extract_keys(None, ["repo"]) == {"repo": None}

    def test_returns_new_dict(self) -> None:
        """The input mapping is never modified."""
        args = {"repo": "r"}
        result = extract_keys(args, ["repo", "dest"])
        result["repo"] = "changed"
        assert args == {"repo": "r"}

    def test_idempotent(self) -> None:
        """Extracting twice, or from an extracted mapping, yields the same result."""
        args = {"repo": "r", "dest": "d", "sha": None, "unused": [1, 2]}
        keys = ["repo", "dest", "sha", "branch", "pr"]

        first = extract_keys(args, keys)
        assert extract_keys(args, keys) == first
        assert extract_keys(first, keys) == first

    def test_rejects_non_mapping(self) -> None:
        """A non-mapping input is a configuration error."""
        with pytest.raises(ActionValidationError) as exc_info:
            extract_keys(["repo"], ["repo"])  # type: ignore[arg-type]
        assert "must be a mapping" in exc_info.value.validation_errors[0]


class TestParseParams:
    """Tests for parse_params."""

    def test_parses_declared_fields(self) -> None:
        """Declared fields are validated, others ignored."""
        params = parse_params("sample", {"name": "x", "count": "3", "other": 1}, SampleParams)
        assert params.name == "x"
        assert params.count == 3
        assert params.label is None

    def test_none_values_use_defaults(self) -> None:
        """Keys present with a None value fall back to the model default."""
        params = parse_params("sample", {"name": "x", "count": None}, SampleParams)
        assert params.count == 1

    def test_missing_required_key(self) -> None:
        """A missing required key raises ActionValidationError naming the key."""
        with pytest.raises(ActionValidationError) as exc_info:
            parse_params("sample", {"count": 2}, SampleParams)

        error = exc_info.value
        assert error.action_type == "sample"
        assert any(e.startswith("name:") for e in error.validation_errors)

    def test_malformed_value(self) -> None:
        """A value of the wrong type raises ActionValidationError."""
        with pytest.raises(ActionValidationError) as exc_info:
            parse_params("sample", {"name": "x", "count": "many"}, SampleParams)
        assert any(e.startswith("count:") for e in exc_info.value.validation_errors)
