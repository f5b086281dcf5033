"""Pytest configuration and fixtures for citool tests."""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from citool.actions.base import ActionContext, Failure, Result, Success
from citool.shared.process import InvocationOptions

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ============ Fake Process Invoker ============


@dataclass
class RecordedCall:
    """One call made through the fake invoker."""

    kind: str  # "run" or "spawn"
    command: str
    options: InvocationOptions


@dataclass
class FakeInvoker:
    """Scripted stand-in for ProcessInvoker.

    ``responder`` decides the Result of every call from the command string;
    by default every run succeeds with empty output and every spawn returns
    pid 4242.
    """

    responder: Callable[[str, str], Result] | None = None
    calls: list[RecordedCall] = field(default_factory=list)

    def run(self, command: str, options: InvocationOptions | None = None) -> Result:
        self.calls.append(RecordedCall("run", command, options or InvocationOptions()))
        if self.responder:
            return self.responder("run", command)
        return Success({"output": ""})

    def spawn(self, command: str, options: InvocationOptions | None = None) -> Result:
        self.calls.append(RecordedCall("spawn", command, options or InvocationOptions()))
        if self.responder:
            return self.responder("spawn", command)
        return Success({"pid": 4242})

    @property
    def commands(self) -> list[str]:
        return [call.command for call in self.calls]


@pytest.fixture
def fake_invoker() -> FakeInvoker:
    """Fake invoker where every call succeeds."""
    return FakeInvoker()


@pytest.fixture
def make_invoker() -> Callable[..., FakeInvoker]:
    """Factory for fake invokers that fail on commands containing a marker.

    Usage:
        invoker = make_invoker(fail_on={"git fetch": Failure(128, "no such ref")})
    """

    def _make_invoker(fail_on: dict[str, Failure] | None = None) -> FakeInvoker:
        failures = fail_on or {}

        def responder(kind: str, command: str) -> Result:
            for marker, failure in failures.items():
                if marker in command:
                    return failure
            if kind == "spawn":
                return Success({"pid": 4242})
            return Success({"output": ""})

        return FakeInvoker(responder=responder)

    return _make_invoker


@pytest.fixture
def make_context() -> Callable[..., ActionContext]:
    """Factory for action contexts bound to a given invoker."""

    def _make_context(
        params: Any, invoker: Any, options: dict[str, Any] | None = None
    ) -> ActionContext:
        return ActionContext(
            params=params,
            options=options or {},
            invoker=invoker,
            step_id="test_step",
        )

    return _make_context


# ============ Real Binaries ============


@pytest.fixture
def generate_private_key(tmp_path: Path) -> Callable[[str], str]:
    """Generate an unencrypted ed25519 private key without a comment."""

    def _generate(name: str) -> str:
        key_dir = tmp_path / "generated"
        key_dir.mkdir(exist_ok=True)
        path = key_dir / name
        subprocess.run(
            ["ssh-keygen", "-q", "-t", "ed25519", "-N", "", "-C", "", "-f", str(path)],
            check=True,
            stdin=subprocess.DEVNULL,
        )
        return path.read_text()

    return _generate


@pytest.fixture
def fixtures_dir() -> Path:
    """Directory holding task document fixtures."""
    return FIXTURES_DIR
