from __future__ import annotations

import logging

from github import Auth, Github, GithubException, UnknownObjectException
from github.Repository import Repository

from .config import DEFAULT_ENDPOINT, RepoPath
from .exceptions import ConfigurationError, MigrationError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


def get_client(token: str | None = None, base_url: str = DEFAULT_ENDPOINT) -> Github:
    """Get a GitHub client for github.com or a GitHub Enterprise API URL."""
    auth = Auth.Token(token) if token else None
    return Github(auth=auth, base_url=base_url.rstrip("/"))


def get_repo(client: Github, repo_path: RepoPath) -> Repository:
    """Get the destination repository, which must already exist."""
    try:
        return client.get_repo(str(repo_path))
    except UnknownObjectException as e:
        msg = f"Destination repository {repo_path} not found or not accessible"
        raise ConfigurationError(msg) from e
    except GithubException as e:
        msg = f"Error checking repository {repo_path}: {e}"
        raise MigrationError(msg) from e
