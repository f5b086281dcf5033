"""Source checkout actions.

Actions are registered via entry points in pyproject.toml.
Imports here are for documentation and testing purposes.
"""

from citool.actions.git.clone import (
    GitCloneAction,
    GitCloneExecutor,
    GitCloneParams,
    invoke_git_clone,
)

__all__ = [
    "GitCloneAction",
    "GitCloneExecutor",
    "GitCloneParams",
    "invoke_git_clone",
]
