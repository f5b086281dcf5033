"""Process invocation for actions.

Runs external commands and reports them as ``Success``/``Failure`` results.
Commands are plain strings split with ``shlex``; no shell is involved. The
working directory is passed to the child process, the caller's own working
directory is never changed.
"""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import time
from collections.abc import Mapping
from dataclasses import dataclass

from citool.actions.base.result import Failure, Result, Success
from citool.commons.config import app_settings
from citool.commons.observability import get_logger

logger = get_logger(__name__)

CHDIR_TOKEN = "chdir="

EXIT_COMMAND_NOT_FOUND = 127
EXIT_TIMEOUT = 124

_REAP_INTERVAL_SECONDS = 0.05

_NO_TIMEOUT = object()


@dataclass(frozen=True)
class InvocationOptions:
    """Per-call options.

    Attributes:
        silent: Do not log captured output
        hidden: Do not log the command line
        chdir: Working directory for the command
        env: Extra environment variables merged over the current environment
        timeout: Seconds before the command is killed, ``None`` waits forever.
            When not given, the configured process timeout applies.
    """

    silent: bool = False
    hidden: bool = False
    chdir: str | None = None
    env: Mapping[str, str] | None = None
    timeout: float | None | object = _NO_TIMEOUT

    def resolved_timeout(self) -> float | None:
        if self.timeout is _NO_TIMEOUT:
            return app_settings.process_timeout
        return self.timeout  # type: ignore[return-value]


@dataclass(frozen=True)
class ProcessOutcome:
    """Raw outcome of a finished process."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def to_result(self) -> Result:
        """Convert to a Result, keeping the exit code and diagnostic unchanged."""
        if self.success:
            return Success({"output": self.stdout})
        message = self.stderr.strip() or self.stdout.strip()
        if not message:
            message = f"Command failed with exit code {self.returncode}"
        return Failure(self.returncode, message)


def split_command(command: str, chdir: str | None = None) -> tuple[list[str], str | None]:
    """Split a command string into argv and working directory.

    A trailing ``chdir=<path>`` token scopes the command to ``<path>``.
    An explicit ``chdir`` argument takes precedence over the token.
    """
    argv = shlex.split(command)
    if argv and argv[-1].startswith(CHDIR_TOKEN):
        token_dir = argv.pop()[len(CHDIR_TOKEN) :]
        if chdir is None and token_dir:
            chdir = token_dir
    return argv, chdir


class ProcessInvoker:
    """Runs commands on behalf of actions."""

    def run(self, command: str, options: InvocationOptions | None = None) -> Result:
        """Run a command to completion.

        Args:
            command: Command line, optionally ending with ``chdir=<path>``
            options: Visibility, working directory, environment and timeout

        Returns:
            Success with ``{"output": stdout}``, or Failure with the exit code
            and captured error output
        """
        options = options or InvocationOptions()
        argv, cwd = split_command(command, options.chdir)
        if not argv:
            return Failure(1, "empty command")

        timeout = options.resolved_timeout()
        self._log_start(argv, cwd, options)

        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=self._build_env(options.env),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            message = self._not_found_message(argv, cwd, e)
            return self._fail(argv, options, EXIT_COMMAND_NOT_FOUND, message)
        except NotADirectoryError as e:
            return self._fail(argv, options, 1, str(e))
        except subprocess.TimeoutExpired:
            message = f"command timed out after {timeout} seconds"
            return self._fail(argv, options, EXIT_TIMEOUT, message)

        outcome = ProcessOutcome(
            completed.returncode, completed.stdout or "", completed.stderr or ""
        )
        if not options.silent:
            logger.debug(
                "process_output",
                stdout=outcome.stdout,
                stderr=outcome.stderr,
            )

        result = outcome.to_result()
        if not result.success:
            return self._fail(argv, options, result.code, result.message)

        logger.debug("process_completed", command=self._display(argv, options))
        return result

    def spawn(self, command: str, options: InvocationOptions | None = None) -> Result:
        """Start a command in the background and return immediately.

        The process runs in its own session with its output discarded. Its
        lifetime is not bound to the caller; stop it with ``terminate_process``.

        Returns:
            Success with ``{"pid": pid}``, or Failure when it cannot be started
        """
        options = options or InvocationOptions()
        argv, cwd = split_command(command, options.chdir)
        if not argv:
            return Failure(1, "empty command")

        self._log_start(argv, cwd, options)

        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                env=self._build_env(options.env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            message = self._not_found_message(argv, cwd, e)
            return self._fail(argv, options, EXIT_COMMAND_NOT_FOUND, message)
        except NotADirectoryError as e:
            return self._fail(argv, options, 1, str(e))

        logger.info("process_spawned", command=self._display(argv, options), pid=process.pid)
        return Success({"pid": process.pid})

    @staticmethod
    def _build_env(extra: Mapping[str, str] | None) -> dict[str, str] | None:
        if not extra:
            return None
        env = dict(os.environ)
        env.update({key: str(value) for key, value in extra.items()})
        return env

    @staticmethod
    def _display(argv: list[str], options: InvocationOptions) -> str:
        return "<hidden>" if options.hidden else shlex.join(argv)

    @staticmethod
    def _not_found_message(argv: list[str], cwd: str | None, error: OSError) -> str:
        # Popen reports a missing cwd as FileNotFoundError too
        if cwd and error.filename == cwd:
            return f"working directory not found: {cwd}"
        return f"command not found: {argv[0]}"

    def _log_start(self, argv: list[str], cwd: str | None, options: InvocationOptions) -> None:
        if options.hidden:
            return
        logger.info("process_started", command=shlex.join(argv), chdir=cwd)

    def _fail(
        self, argv: list[str], options: InvocationOptions, code: int, message: str
    ) -> Failure:
        logger.warning(
            "process_failed",
            command=self._display(argv, options),
            code=code,
            message=None if options.silent else message,
        )
        return Failure(code, message)


def terminate_process(pid: int, sig: int = signal.SIGTERM, wait_timeout: float = 5.0) -> bool:
    """Signal a background process and reap it when it is our child.

    The wait for the child to exit is bounded by ``wait_timeout``; a process
    that ignores the signal is left running and logged.

    Args:
        pid: Process id
        sig: Signal to send (SIGTERM by default)
        wait_timeout: Seconds to wait for the child to exit

    Returns:
        True if the signal was delivered, False if no such process exists
    """
    try:
        os.kill(pid, sig)
    except ProcessLookupError:
        logger.info("process_already_exited", pid=pid)
        return False

    deadline = time.monotonic() + wait_timeout
    while True:
        try:
            reaped, _ = os.waitpid(pid, os.WNOHANG)
        except ChildProcessError:
            # Not our child, or already reaped elsewhere
            break
        if reaped:
            break
        if time.monotonic() >= deadline:
            logger.warning("process_still_running", pid=pid, signal=int(sig))
            return True
        time.sleep(_REAP_INTERVAL_SECONDS)

    logger.info("process_terminated", pid=pid, signal=int(sig))
    return True


def is_process_running(pid: int) -> bool:
    """Check whether a process with this pid exists and is not a zombie child."""
    try:
        reaped_pid, _ = os.waitpid(pid, os.WNOHANG)
    except ChildProcessError:
        reaped_pid = 0
    if reaped_pid == pid:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True
