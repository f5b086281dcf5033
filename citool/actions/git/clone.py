"""Git clone action - shallow clone checked out at a commit, PR head or branch tip.

Runs, in order, stopping at the first failure:

    git clone --depth=50 [--branch <branch>] <repo> <dest>
    git fetch origin +refs/pull/<pr>/head      (chdir=dest, pull requests only)
    git checkout -q FETCH_HEAD                 (chdir=dest, pull requests only)
    git checkout -qf <sha>                     (chdir=dest, otherwise)
"""

from __future__ import annotations

import os
import shlex
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from citool.actions.base import (
    ActionContext,
    ActionExample,
    ActionMeta,
    BaseActionExecutor,
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
from citool.commons.exceptions import ActionValidationError
from citool.shared.process import InvocationOptions

logger = structlog.get_logger(__name__)


class GitCloneParams(BaseModel):
    """Arguments read by git_clone, in extraction order."""

    model_config = ConfigDict(frozen=True)

    repo: str
    dest: str
    sha: str | None = None
    branch: str | None = None
    pr: int | None = None

    @field_validator("sha", "branch", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("pr", mode="before")
    @classmethod
    def _falsy_pr_to_none(cls, value: Any) -> Any:
        if value is False or (isinstance(value, str) and not value.strip()):
            return None
        return value

    @field_validator("repo")
    @classmethod
    def _repo_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("repo must not be blank")
        return value

    @model_validator(mode="after")
    def _sha_or_pr(self) -> GitCloneParams:
        if self.pr is None and self.sha is None:
            raise ValueError("sha is required unless pr is set")
        return self

    @property
    def is_pull_request(self) -> bool:
        return self.pr is not None

    @property
    def has_dest(self) -> bool:
        return bool(self.dest.strip())


def build_clone_command(params: GitCloneParams, depth: int) -> str:
    """Build the shallow clone command line."""
    argv = ["git", "clone", f"--depth={depth}"]
    if params.branch and not params.is_pull_request:
        argv += ["--branch", params.branch]
    argv.append(params.repo)
    if params.has_dest:
        argv.append(params.dest)
    return shlex.join(argv)


def should_clean_destination(params: GitCloneParams, mode: str) -> bool:
    """Decide whether the destination is removed before cloning.

    ``if_exists`` removes a non-blank destination that is already on disk.
    ``if_blank`` runs the removal only when the destination is blank.
    """
    if mode == "if_blank":
        return not params.has_dest
    return params.has_dest and os.path.lexists(params.dest)


class GitCloneExecutor(BaseActionExecutor):
    """Executor that clones a repository and checks out the requested revision."""

    def execute(self, context: ActionContext) -> Result:
        """Execute the git clone action."""
        params = parse_params("git_clone", context.params, GitCloneParams)
        invoker = context.invoker

        logger.info(
            "git_clone_starting",
            step_id=context.step_id,
            repo=params.repo,
            dest=params.dest,
            sha=params.sha,
            branch=params.branch,
            pr=params.pr,
        )

        if should_clean_destination(params, app_settings.git_clone_cleanup):
            cleanup = invoker.run(
                shlex.join(["rm", "-rf", params.dest]),
                InvocationOptions(silent=True, hidden=True),
            )
            if not cleanup.success:
                logger.warning(
                    "git_clone_cleanup_failed",
                    step_id=context.step_id,
                    dest=params.dest,
                    code=cleanup.code,
                )

        clone_command = build_clone_command(params, app_settings.git_clone_depth)
        in_dest = InvocationOptions(chdir=params.dest if params.has_dest else None)

        if params.is_pull_request:
            ref = f"+refs/pull/{params.pr}/head"
            result = chain(
                lambda: invoker.run(clone_command),
                lambda: invoker.run(shlex.join(["git", "fetch", "origin", ref]), in_dest),
                lambda: invoker.run("git checkout -q FETCH_HEAD", in_dest),
            )
            checked_out = f"pull/{params.pr}/head"
        else:
            sha = params.sha or ""
            result = chain(
                lambda: invoker.run(clone_command),
                lambda: invoker.run(shlex.join(["git", "checkout", "-qf", sha]), in_dest),
            )
            checked_out = sha

        if not result.success:
            logger.warning(
                "git_clone_failed",
                step_id=context.step_id,
                repo=params.repo,
                code=result.code,
            )
            return result

        logger.info(
            "git_clone_complete",
            step_id=context.step_id,
            dest=params.dest,
            ref=checked_out,
        )
        return Success({**result.data, "dest": params.dest, "ref": checked_out})

    def validate_params(self, params: Any) -> list[str]:
        """Validate git clone arguments."""
        try:
            parse_params("git_clone", params, GitCloneParams)
        except ActionValidationError as e:
            return e.validation_errors
        return []


def invoke_git_clone(args: Any, options: dict[str, Any] | None = None) -> Result:
    """Run git_clone directly, without going through the registry."""
    return GitCloneExecutor().execute(ActionContext(params=args, options=dict(options or {})))


META = ActionMeta(
    type="git_clone",
    name="Git Clone",
    category="Source",
    description=(
        "Shallow-clones a repository and checks out a commit, or the head of a pull request "
        "when a pull request number is given."
    ),
    params=[
        ParamDefinition(
            name="repo",
            label="Repository URL",
            type=ParamType.STRING,
            required=True,
            description="URL of the repository to clone.",
        ),
        ParamDefinition(
            name="dest",
            label="Destination",
            type=ParamType.STRING,
            required=True,
            description="Directory to clone into.",
        ),
        ParamDefinition(
            name="sha",
            label="Commit SHA",
            type=ParamType.STRING,
            required=False,
            description="Commit to check out. Required unless pr is set.",
        ),
        ParamDefinition(
            name="branch",
            label="Branch",
            type=ParamType.STRING,
            required=False,
            description="Branch to clone. Ignored for pull requests.",
        ),
        ParamDefinition(
            name="pr",
            label="Pull Request",
            type=ParamType.NUMBER,
            required=False,
            description="Pull request number whose head is fetched and checked out.",
        ),
    ],
    outputs=[
        OutputDefinition(
            name="dest",
            type="string",
            description="The clone destination",
        ),
        OutputDefinition(
            name="ref",
            type="string",
            description="The checked out commit or pull request ref",
        ),
    ],
    idempotent=True,
    required_binaries=["git"],
    examples=[
        ActionExample(
            title="Commit checkout",
            params={
                "repo": "https://github.com/org/service.git",
                "dest": "service",
                "branch": "main",
                "sha": "8f3c2a1",
            },
        ),
        ActionExample(
            title="Pull request checkout",
            params={
                "repo": "https://github.com/org/service.git",
                "dest": "service",
                "pr": 42,
            },
            description="Fetches refs/pull/42/head and checks out FETCH_HEAD",
        ),
    ],
)


@register_action(META)
class GitCloneAction:
    """Git clone action class for entry point registration."""

    meta = META
    executor_class = GitCloneExecutor
