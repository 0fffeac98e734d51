"""Clone or update local working copies so branch tips match the remote.

Credentials never enter the remote URL or ``.git/config``: each clone, fetch
and pull gets an ``http.extraHeader`` through git's ``GIT_CONFIG_*``
environment variables (git >= 2.31), which only lives as long as the command.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from pathlib import Path

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from feature_gap.core.config import REMOTE_NAME
from feature_gap.core.errors import SyncError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Credentials:
    username: str
    password: str | None = field(default=None, repr=False)


def credential_env(credentials: Credentials | None) -> dict[str, str]:
    """Environment for one git command that sends HTTP basic auth as an extra header."""
    if credentials is None or not credentials.password:
        return {}
    token = base64.b64encode(f"{credentials.username}:{credentials.password}".encode()).decode("ascii")
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": "http.extraHeader",
        "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
        "GIT_TERMINAL_PROMPT": "0",
    }


def _update(repo: Repo, repo_name: str, branch_name: str, env: dict[str, str]) -> Repo:
    remote = repo.remote(REMOTE_NAME)
    with repo.git.custom_environment(**env):
        remote.fetch(prune=True)
    tracked = next((ref for ref in remote.refs if ref.remote_head == branch_name), None)
    if tracked is None:
        raise SyncError(f"Could not find remote branch '{branch_name}' in repository {repo_name}.")

    local = next((head for head in repo.heads if head.name == branch_name), None)
    if local is None:
        local = repo.create_head(branch_name, tracked.commit)
    if repo.head.is_detached or repo.active_branch != local:
        logger.info("Checking out branch '%s' in repository %s...", branch_name, repo_name)
        local.checkout()
    if local.tracking_branch() is None:
        local.set_tracking_branch(tracked)

    logger.info("Pulling latest commits for branch '%s' in repository '%s'...", branch_name, repo_name)
    with repo.git.custom_environment(**env):
        remote.pull(branch_name)
    logger.info("Latest commits for branch '%s' pulled in repository '%s'.", branch_name, repo_name)
    return repo


def _clone(repo_name: str, branch_name: str, local_path: Path, remote_url: str, env: dict[str, str]) -> Repo:
    local_path.mkdir(parents=True, exist_ok=True)
    logger.info("Cloning repository '%s'...", repo_name)
    repo = Repo.clone_from(remote_url, local_path, env=env or None, branch=branch_name)
    logger.info("Clone of repository '%s' done, checked out branch '%s'.", repo_name, branch_name)
    return repo


def sync_branch(
    repo_name: str,
    branch_name: str,
    local_path: str | Path,
    remote_url: str,
    credentials: Credentials | None = None,
) -> Repo:
    """Return a repository whose local ``branch_name`` matches ``origin/branch_name``.

    Raises :class:`SyncError` for a missing remote branch, a merge conflict on
    pull, or any other git failure.
    """
    path = Path(local_path)
    env = credential_env(credentials)
    try:
        if path.exists():
            return _update(Repo(path), repo_name, branch_name, env)
        return _clone(repo_name, branch_name, path, remote_url, env)
    except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError, ValueError) as exc:
        raise SyncError(f"Could not synchronize branch '{branch_name}' of repository '{repo_name}': {exc}") from exc
