"""Tests for the process invoker, against real processes."""

from __future__ import annotations

import shlex
import signal
import sys
import time
from pathlib import Path

import pytest

from citool.actions.base import Failure, Success
from citool.shared.process import (
    EXIT_COMMAND_NOT_FOUND,
    EXIT_TIMEOUT,
    InvocationOptions,
    ProcessInvoker,
    ProcessOutcome,
    is_process_running,
    split_command,
    terminate_process,
)

PYTHON = shlex.quote(sys.executable)


def py(code: str) -> str:
    """Command line running a Python snippet."""
    return f"{PYTHON} -c {shlex.quote(code)}"


@pytest.fixture
def invoker() -> ProcessInvoker:
    return ProcessInvoker()


class TestProcessOutcome:
    """Tests for converting outcomes into results."""

    def test_success_carries_stdout(self) -> None:
        assert ProcessOutcome(0, "done\n", "").to_result() == Success({"output": "done\n"})

    def test_failure_prefers_stderr(self) -> None:
        """stderr is the diagnostic, stdout the fallback."""
        assert ProcessOutcome(2, "out", "err\n").to_result() == Failure(2, "err")
        assert ProcessOutcome(2, "out\n", "").to_result() == Failure(2, "out")

    def test_failure_without_output(self) -> None:
        assert ProcessOutcome(3, "", "").to_result() == Failure(
            3, "Command failed with exit code 3"
        )


class TestSplitCommand:
    """Tests for command splitting and the chdir token."""

    def test_plain_command(self) -> None:
        assert split_command("git checkout -qf abc") == (["git", "checkout", "-qf", "abc"], None)

    def test_trailing_chdir_token(self) -> None:
        """A trailing chdir= token becomes the working directory."""
        argv, cwd = split_command("git checkout -q FETCH_HEAD chdir=service")
        assert argv == ["git", "checkout", "-q", "FETCH_HEAD"]
        assert cwd == "service"

    def test_explicit_chdir_wins(self) -> None:
        assert split_command("ls chdir=a", chdir="b") == (["ls"], "b")

    def test_quoted_arguments(self) -> None:
        assert split_command("rm -rf 'my dir'") == (["rm", "-rf", "my dir"], None)


class TestRun:
    """Tests for ProcessInvoker.run."""

    def test_success_output(self, invoker: ProcessInvoker) -> None:
        """Captured stdout is returned as output."""
        assert invoker.run(py("print('hello')")) == Success({"output": "hello\n"})

    def test_exit_code_and_message(self, invoker: ProcessInvoker) -> None:
        """A non-zero exit keeps its code and stderr."""
        code = "import sys; sys.stderr.write('fatal: bad ref\\n'); sys.exit(128)"
        assert invoker.run(py(code)) == Failure(128, "fatal: bad ref")

    def test_undecodable_output(self, invoker: ProcessInvoker) -> None:
        """Bytes that are not UTF-8 are replaced instead of raising."""
        code = "import sys; sys.stderr.buffer.write(b'fatal: \\xff\\xfe bad'); sys.exit(128)"
        result = invoker.run(py(code))

        assert isinstance(result, Failure)
        assert result.code == 128
        assert result.message.startswith("fatal: ")
        assert "\ufffd" in result.message

    def test_chdir_option(self, invoker: ProcessInvoker, tmp_path: Path) -> None:
        """The command runs in the given directory; ours is untouched."""
        before = Path.cwd()
        options = InvocationOptions(chdir=str(tmp_path))
        result = invoker.run(py("import os; print(os.getcwd())"), options)

        assert Path(result.data["output"].strip()).resolve() == tmp_path.resolve()
        assert Path.cwd() == before

    def test_chdir_token(self, invoker: ProcessInvoker, tmp_path: Path) -> None:
        """A trailing chdir= token is honored."""
        command = f"{py('import os; print(os.getcwd())')} chdir={shlex.quote(str(tmp_path))}"
        result = invoker.run(command)
        assert Path(result.data["output"].strip()).resolve() == tmp_path.resolve()

    def test_missing_chdir(self, invoker: ProcessInvoker, tmp_path: Path) -> None:
        """A working directory that does not exist is a Failure, not an exception."""
        result = invoker.run(py("pass"), InvocationOptions(chdir=str(tmp_path / "missing")))
        assert isinstance(result, Failure)
        assert "working directory not found" in result.message

    def test_extra_env(self, invoker: ProcessInvoker) -> None:
        """Extra variables are merged over the current environment."""
        code = "import os; print(os.environ['SSH_AUTH_SOCK'], 'PATH' in os.environ)"
        result = invoker.run(py(code), InvocationOptions(env={"SSH_AUTH_SOCK": "/tmp/s"}))
        assert result.data["output"] == "/tmp/s True\n"

    def test_command_not_found(self, invoker: ProcessInvoker) -> None:
        result = invoker.run("definitely-not-a-command-xyz --version")
        assert result == Failure(
            EXIT_COMMAND_NOT_FOUND, "command not found: definitely-not-a-command-xyz"
        )

    def test_empty_command(self, invoker: ProcessInvoker) -> None:
        assert invoker.run("   ") == Failure(1, "empty command")

    def test_timeout(self, invoker: ProcessInvoker) -> None:
        """A command over its timeout is killed and reported with exit code 124."""
        result = invoker.run(py("import time; time.sleep(10)"), InvocationOptions(timeout=0.2))
        assert isinstance(result, Failure)
        assert result.code == EXIT_TIMEOUT

    def test_configured_timeout_applies(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an explicit timeout the configured one is used."""
        from citool.commons.config import app_settings

        monkeypatch.setattr(app_settings, "process_timeout", 12.5)
        assert InvocationOptions().resolved_timeout() == 12.5
        assert InvocationOptions(timeout=None).resolved_timeout() is None


class TestSpawn:
    """Tests for background processes."""

    def test_spawn_and_terminate(self, invoker: ProcessInvoker) -> None:
        """A spawned process keeps running until terminated by pid."""
        result = invoker.spawn(py("import time; time.sleep(30)"))

        assert result.success
        pid = result.data["pid"]
        assert is_process_running(pid)

        assert terminate_process(pid) is True
        assert not is_process_running(pid)

    def test_terminate_exited_process(self, invoker: ProcessInvoker) -> None:
        """Terminating a process that already exited reports False."""
        pid = invoker.spawn(py("pass")).data["pid"]
        deadline = time.monotonic() + 5
        while is_process_running(pid) and time.monotonic() < deadline:
            time.sleep(0.05)

        assert terminate_process(pid) is False

    def test_terminate_wait_is_bounded(self, invoker: ProcessInvoker) -> None:
        """A process ignoring SIGTERM does not block the caller past the wait timeout."""
        code = (
            "import signal, time; "
            "signal.signal(signal.SIGTERM, signal.SIG_IGN); time.sleep(30)"
        )
        pid = invoker.spawn(py(code)).data["pid"]
        time.sleep(0.5)

        started = time.monotonic()
        try:
            assert terminate_process(pid, wait_timeout=0.3) is True
            assert time.monotonic() - started < 5
            assert is_process_running(pid)
        finally:
            terminate_process(pid, signal.SIGKILL)
        assert not is_process_running(pid)

    def test_spawn_not_found(self, invoker: ProcessInvoker) -> None:
        result = invoker.spawn("definitely-not-a-command-xyz")
        assert isinstance(result, Failure)
        assert result.code == EXIT_COMMAND_NOT_FOUND
