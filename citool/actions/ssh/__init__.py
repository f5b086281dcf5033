"""Credential actions.

Actions are registered via entry points in pyproject.toml.
Imports here are for documentation and testing purposes.
"""

from citool.actions.ssh.agent import (
    SshAgentAction,
    SshAgentExecutor,
    SshAgentHandle,
    SshAgentParams,
    invoke_ssh_agent,
    terminate_ssh_agent,
)

__all__ = [
    "SshAgentAction",
    "SshAgentExecutor",
    "SshAgentHandle",
    "SshAgentParams",
    "invoke_ssh_agent",
    "terminate_ssh_agent",
]
