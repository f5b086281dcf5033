"""SSH agent action - starts an agent and registers deploy keys with it.

The task entry is a single key, a list of keys, or a mapping with a ``keys``
entry holding either form. Each key is private key material and may be a
Jinja2 template rendered against the pipeline ``vars``:

    - ssh_agent: "{{ deploy_key }}"
    - ssh_agent:
        - "{{ app_key }}"
        - "{{ lib_key }}"

Keys are written to ``<ssh_dir>/id_rsa<N>`` (1-based, declaration order) with
their public half next to them as ``id_rsa<N>.pub``. The agent keeps running
after the action returns; the caller stops it by the pid in the result data.
"""

from __future__ import annotations

import os
import shlex
import signal
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from citool.actions.base import (
    ActionContext,
    ActionExample,
    ActionMeta,
    BaseActionExecutor,
    Failure,
    OutputDefinition,
    ParamDefinition,
    ParamType,
    Result,
    Success,
    chain,
    parse_params,
    register_action,
)
from citool.commons.config import app_settings
from citool.commons.exceptions import ActionValidationError, ParameterResolutionError
from citool.engine.param_resolver import ParamResolver
from citool.shared.process import InvocationOptions, is_process_running, terminate_process

logger = structlog.get_logger(__name__)

# ssh-add -l exits 1 when the agent has no identities yet, 2 when it is unreachable
_AGENT_UNREACHABLE = 2
_PROBE_INTERVAL_SECONDS = 0.1
_AGENT_EMPTY = 1
_NO_IDENTITIES = "no identities"


def _is_empty_agent(result: Result) -> bool:
    """A reachable agent that simply holds no keys yet."""
    return (
        isinstance(result, Failure)
        and result.code == _AGENT_EMPTY
        and _NO_IDENTITIES in result.message.lower()
    )


@dataclass(frozen=True)
class SshAgentHandle:
    """A running ssh-agent owned by the caller."""

    pid: int
    auth_sock: str

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> SshAgentHandle:
        """Build a handle from the data of a successful ssh_agent result."""
        return cls(pid=int(data["pid"]), auth_sock=str(data["auth_sock"]))

    @property
    def env(self) -> dict[str, str]:
        """Environment variables that point ssh clients at this agent."""
        return {"SSH_AUTH_SOCK": self.auth_sock, "SSH_AGENT_PID": str(self.pid)}

    def is_running(self) -> bool:
        return is_process_running(self.pid)

    def terminate(self, sig: int = signal.SIGTERM) -> bool:
        """Stop the agent. Returns False if it had already exited."""
        return terminate_process(self.pid, sig)


def terminate_ssh_agent(pid: int, sig: int = signal.SIGTERM) -> bool:
    """Stop an agent started by ssh_agent, identified by its pid."""
    return terminate_process(pid, sig)


class SshAgentParams(BaseModel):
    """Arguments read by ssh_agent."""

    model_config = ConfigDict(frozen=True)

    keys: list[str] = Field(min_length=1)

    @field_validator("keys", mode="before")
    @classmethod
    def _single_key_to_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("keys")
    @classmethod
    def _keys_not_blank(cls, value: list[str]) -> list[str]:
        for i, key in enumerate(value):
            if not key.strip():
                raise ValueError(f"key {i + 1} is blank")
        return value


def parse_ssh_agent_params(args: Any) -> SshAgentParams:
    """Accept a key string, a list of keys, or a mapping with ``keys``."""
    if isinstance(args, (str, list)):
        args = {"keys": args}
    return parse_params("ssh_agent", args, SshAgentParams)


def key_name(index: int) -> str:
    """File name of the key at a 1-based index."""
    return f"{app_settings.ssh_key_prefix}{index}"


def _write_file(path: str, content: str, mode: int) -> Result:
    if not content.endswith("\n"):
        content += "\n"
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w") as fp:
            fp.write(content)
        # O_CREAT leaves the mode of an existing file untouched
        os.chmod(path, mode)
    except OSError as e:
        return Failure(1, str(e))
    return Success({"path": path})


class SshAgentExecutor(BaseActionExecutor):
    """Executor that starts ssh-agent and adds the configured keys to it."""

    def execute(self, context: ActionContext) -> Result:
        """Execute the ssh agent action."""
        params = parse_ssh_agent_params(context.params)
        keys = self._render_keys(params.keys, context.vars)

        ssh_dir = context.get_option("ssh_dir")
        if not ssh_dir:
            raise ActionValidationError("ssh_agent", ["ssh_dir option is required"])
        ssh_dir = os.path.abspath(os.path.expanduser(str(ssh_dir)))
        auth_sock = os.path.join(ssh_dir, app_settings.ssh_agent_socket_name)

        logger.info(
            "ssh_agent_starting",
            step_id=context.step_id,
            ssh_dir=ssh_dir,
            key_count=len(keys),
        )

        try:
            os.makedirs(ssh_dir, mode=0o700, exist_ok=True)
            if os.path.lexists(auth_sock):
                os.unlink(auth_sock)
        except OSError as e:
            return Failure(1, str(e))

        started = context.invoker.spawn(
            shlex.join([app_settings.ssh_agent_binary, "-D", "-a", auth_sock])
        )
        if not started.success:
            return started

        handle = SshAgentHandle(pid=int(started.data["pid"]), auth_sock=auth_sock)
        context.processes.append(handle)

        ready = self._wait_for_agent(context, handle)
        if not ready.success:
            return ready

        key_paths = []
        for index, material in enumerate(keys, start=1):
            path = os.path.join(ssh_dir, key_name(index))
            result = self._install_key(context, handle, path, material)
            if not result.success:
                logger.warning(
                    "ssh_agent_key_failed",
                    step_id=context.step_id,
                    key=key_name(index),
                    code=result.code,
                )
                return result
            key_paths.append(path)

        logger.info(
            "ssh_agent_ready",
            step_id=context.step_id,
            pid=handle.pid,
            keys=[os.path.basename(p) for p in key_paths],
        )
        return Success({"pid": handle.pid, "auth_sock": auth_sock, "keys": key_paths})

    def _render_keys(self, keys: list[str], variables: dict[str, Any]) -> list[str]:
        rendered = []
        for index, key in enumerate(keys, start=1):
            try:
                value = ParamResolver.resolve(key, variables, strict=True)
            except ParameterResolutionError as e:
                raise ActionValidationError("ssh_agent", [f"key {index}: {e.message}"]) from e
            if not value.strip():
                raise ActionValidationError("ssh_agent", [f"key {index} renders to nothing"])
            rendered.append(value)
        return rendered

    def _wait_for_agent(self, context: ActionContext, handle: SshAgentHandle) -> Result:
        """Poll the agent socket until it accepts connections."""
        probe = shlex.join([app_settings.ssh_add_binary, "-l"])
        options = InvocationOptions(
            silent=True, hidden=True, env={"SSH_AUTH_SOCK": handle.auth_sock}
        )
        deadline = time.monotonic() + app_settings.ssh_agent_start_timeout

        while True:
            result = context.invoker.run(probe, options)
            if result.success or _is_empty_agent(result):
                return Success({"pid": handle.pid})
            if result.code != _AGENT_UNREACHABLE or time.monotonic() >= deadline:
                return result
            time.sleep(_PROBE_INTERVAL_SECONDS)

    def _install_key(
        self, context: ActionContext, handle: SshAgentHandle, path: str, material: str
    ) -> Result:
        """Write one key pair to disk and add the private key to the agent."""
        invoker = context.invoker
        derive_public = shlex.join([app_settings.ssh_keygen_binary, "-y", "-f", path])
        add_key = shlex.join([app_settings.ssh_add_binary, path])

        quiet = InvocationOptions(silent=True, hidden=True)
        with_agent = InvocationOptions(silent=True, env={"SSH_AUTH_SOCK": handle.auth_sock})

        return chain(
            lambda: _write_file(path, material, 0o600),
            lambda: invoker.run(derive_public, quiet).and_then(
                lambda derived: _write_file(f"{path}.pub", derived.data["output"], 0o644)
            ),
            lambda: invoker.run(add_key, with_agent),
        )

    def validate_params(self, params: Any) -> list[str]:
        """Validate ssh agent arguments."""
        try:
            parse_ssh_agent_params(params)
        except ActionValidationError as e:
            return e.validation_errors
        return []


def invoke_ssh_agent(args: Any, options: dict[str, Any] | None = None) -> Result:
    """Run ssh_agent directly, without going through the registry.

    ``options`` must hold ``ssh_dir`` and may hold ``vars``.
    """
    return SshAgentExecutor().execute(ActionContext(params=args, options=dict(options or {})))


META = ActionMeta(
    type="ssh_agent",
    name="SSH Agent",
    category="Credentials",
    description=(
        "Starts a background ssh-agent, writes the given key pairs to the key directory "
        "and adds them to the agent. Returns the agent pid so the caller can stop it."
    ),
    params=[
        ParamDefinition(
            name="keys",
            label="Private Keys",
            type=ParamType.TEMPLATE,
            required=True,
            description=(
                "One private key or a list of private keys. Templates are rendered "
                "against the pipeline vars."
            ),
        ),
    ],
    outputs=[
        OutputDefinition(
            name="pid",
            type="number",
            description="Process id of the running agent",
        ),
        OutputDefinition(
            name="auth_sock",
            type="string",
            description="Agent socket path, for SSH_AUTH_SOCK",
        ),
        OutputDefinition(
            name="keys",
            type="array",
            description="Paths of the private key files, in key order",
        ),
    ],
    idempotent=False,
    required_binaries=["ssh-agent", "ssh-add", "ssh-keygen"],
    examples=[
        ActionExample(
            title="Single deploy key",
            params="{{ deploy_key }}",
        ),
        ActionExample(
            title="Several keys",
            params=["{{ app_key }}", "{{ lib_key }}"],
            description="Written as id_rsa1 and id_rsa2",
        ),
    ],
)


@register_action(META)
class SshAgentAction:
    """SSH agent action class for entry point registration."""

    meta = META
    executor_class = SshAgentExecutor
