"""Configuration settings for citool.

Values are read from the environment (and a local ``.env`` file) through
pydantic-settings. Every field is aliased to its upper-case environment
variable name.
"""

from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from citool.__about__ import __version__

load_dotenv()


class AppConfig(BaseSettings):
    """Application configuration for citool actions."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # App Info
    name: str = __version__.split("@")[0]
    version: str = __version__.split("@")[-1]
    description: str = "CI actions executed as steps of a build pipeline"

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG", description="Console logs instead of JSON")

    # Process Invocation
    process_timeout: float | None = Field(
        default=None,
        alias="PROCESS_TIMEOUT",
        description="Timeout in seconds for a single process call, unset to wait forever",
    )

    # Git Clone
    git_clone_depth: int = Field(
        default=50,
        alias="GIT_CLONE_DEPTH",
        description="History depth for shallow clones",
    )
    git_clone_cleanup: Literal["if_exists", "if_blank"] = Field(
        default="if_exists",
        alias="GIT_CLONE_CLEANUP",
        description=(
            "When to remove the destination before cloning: 'if_exists' removes an existing "
            "non-blank destination, 'if_blank' only runs the removal for a blank destination"
        ),
    )

    # SSH Agent
    ssh_agent_binary: str = Field(default="ssh-agent", alias="SSH_AGENT_BINARY")
    ssh_add_binary: str = Field(default="ssh-add", alias="SSH_ADD_BINARY")
    ssh_keygen_binary: str = Field(default="ssh-keygen", alias="SSH_KEYGEN_BINARY")
    ssh_agent_socket_name: str = Field(
        default="agent.sock",
        alias="SSH_AGENT_SOCKET_NAME",
        description="File name of the agent socket inside the key directory",
    )
    ssh_agent_start_timeout: float = Field(
        default=5.0,
        alias="SSH_AGENT_START_TIMEOUT",
        description="Seconds to wait for the agent socket to appear",
    )
    ssh_key_prefix: str = Field(
        default="id_rsa",
        alias="SSH_KEY_PREFIX",
        description="Key file name prefix, suffixed with the 1-based key index",
    )


# Global settings instance
app_settings = AppConfig()

# Backward compatibility alias
settings = app_settings
