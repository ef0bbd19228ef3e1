"""
Run configuration for the GitHub issue transfer tool.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Literal

from . import utils
from .exceptions import ConfigurationError
from .import_driver import BackoffPolicy

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT: Final[str] = "https://api.github.com"
DEFAULT_REPLACE_FILE: Final[str] = "replace.yml"
SOURCE_TOKEN_ENV_VAR: Final[str] = "SRC_TOKEN"  # noqa: S105
DESTINATION_TOKEN_ENV_VAR: Final[str] = "DST_TOKEN"  # noqa: S105


@dataclass(frozen=True)
class RepoPath:
    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repo_path(repo_path: str) -> RepoPath:
    """Parse and validate an 'owner/repository' path."""
    repo_path = repo_path.strip()
    parts = repo_path.split("/")
    if len(parts) != 2:  # noqa: PLR2004
        msg = f"Invalid repository path '{repo_path}'. Expected format: 'owner/repository'"
        raise ConfigurationError(msg)
    owner, name = parts
    if not owner or not name:
        msg = f"Invalid repository path '{repo_path}'. Both owner and repository name must be non-empty"
        raise ConfigurationError(msg)
    return RepoPath(owner=owner, name=name)


def get_token(env_var: str, pass_path: str | None = None) -> str | None:
    """Get a token from a pass path if given, otherwise from the environment variable."""
    if pass_path:
        try:
            return utils.get_pass_value(pass_path)
        except (ValueError, utils.PassError) as e:
            msg = f"Cannot read token from pass path '{pass_path}': {e}"
            raise ConfigurationError(msg) from e

    token: str | None = os.environ.get(env_var)
    if token:
        return token

    logger.warning(f"No token specified nor found in {env_var}")
    return None


@dataclass(frozen=True)
class TransferConfig:
    """Immutable settings for one transfer run."""

    source_repo: RepoPath
    destination_repo: RepoPath
    source_endpoint: str = DEFAULT_ENDPOINT
    destination_endpoint: str = DEFAULT_ENDPOINT
    strategy: Literal["import", "create"] = "import"
    skip_labels: bool = False
    skip_milestones: bool = False
    skip_avatars: bool = False
    synchronous: bool = True
    dry_run: bool = False
    replace_file: Path = field(default_factory=lambda: Path(DEFAULT_REPLACE_FILE))
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    @property
    def fill_gaps(self) -> bool:
        """Placeholders are only safe when each import is confirmed before the next one."""
        return self.strategy == "create" or self.synchronous

    @property
    def source_graphql_url(self) -> str:
        return f"{self.source_endpoint.rstrip('/')}/graphql"
