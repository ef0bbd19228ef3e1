"""Read labels, milestones, issues and pull requests from a GitHub repository.

Uses the GraphQL API so that each issue arrives with its labels, assignees
and comments in one round-trip. Pagination cursors stay inside this module;
callers get plain lists in creation order.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any, Final

import requests

from .exceptions import MigrationError
from .models import Author, Comment, Label, Milestone, Record

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .config import RepoPath

logger: logging.Logger = logging.getLogger(__name__)

PULL_REQUEST_TITLE_PREFIX: Final[str] = "[PR] "
GHOST_LOGIN: Final[str] = "ghost"
PAGE_SIZE: Final[int] = 50
NESTED_PAGE_SIZE: Final[int] = 100
REQUEST_TIMEOUT: Final[int] = 90

LABELS_QUERY = """
query($owner: String!, $repo: String!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    connection: labels(first: 100, after: $cursor) {
      nodes { name color description }
      pageInfo { endCursor hasNextPage }
    }
  }
}
"""

MILESTONES_QUERY = """
query($owner: String!, $repo: String!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    connection: milestones(first: 100, after: $cursor, orderBy: {field: NUMBER, direction: ASC}) {
      nodes { number title description state dueOn }
      pageInfo { endCursor hasNextPage }
    }
  }
}
"""

_RECORD_FIELDS = f"""
        number title body createdAt updatedAt closedAt closed
        milestone {{ number }}
        author {{ login avatarUrl(size: 100) }}
        assignees(first: {NESTED_PAGE_SIZE}) {{ totalCount nodes {{ login }} }}
        labels(first: {NESTED_PAGE_SIZE}) {{ totalCount nodes {{ name }} }}
        comments(first: {NESTED_PAGE_SIZE}) {{
          totalCount
          nodes {{ author {{ login avatarUrl(size: 100) }} body createdAt }}
        }}
"""

ISSUES_QUERY = f"""
query($owner: String!, $repo: String!, $cursor: String) {{
  repository(owner: $owner, name: $repo) {{
    connection: issues(first: {PAGE_SIZE}, after: $cursor, orderBy: {{field: CREATED_AT, direction: ASC}}) {{
      nodes {{ {_RECORD_FIELDS} }}
      pageInfo {{ endCursor hasNextPage }}
    }}
  }}
}}
"""

PULL_REQUESTS_QUERY = f"""
query($owner: String!, $repo: String!, $cursor: String) {{
  repository(owner: $owner, name: $repo) {{
    connection: pullRequests(first: {PAGE_SIZE}, after: $cursor, orderBy: {{field: CREATED_AT, direction: ASC}}) {{
      nodes {{ {_RECORD_FIELDS} }}
      pageInfo {{ endCursor hasNextPage }}
    }}
  }}
}}
"""


def parse_datetime(value: str | None) -> dt.datetime | None:
    if not value:
        return None
    return dt.datetime.fromisoformat(value)


def _author(raw: dict[str, Any] | None) -> Author:
    # Deleted accounts come back as null
    if not raw:
        return Author(login=GHOST_LOGIN)
    return Author(login=raw.get("login") or GHOST_LOGIN, avatar_url=raw.get("avatarUrl") or "")


def _nodes(node: dict[str, Any], key: str, context: str) -> list[dict[str, Any]]:
    connection = node.get(key) or {}
    nodes: list[dict[str, Any]] = connection.get("nodes") or []
    total = connection.get("totalCount")
    if total is not None and total > len(nodes):
        logger.warning(f"{context} has {total} {key}, only the first {len(nodes)} are migrated")
    return nodes


def parse_record(node: dict[str, Any], origin: str) -> Record:
    """Convert an issue or pull request node into a Record."""
    number = int(node["number"])
    context = f"{origin.capitalize()} #{number}"

    comments = tuple(
        Comment(
            author=_author(c.get("author")),
            body=c.get("body") or "",
            created_at=parse_datetime(c["createdAt"]),
        )
        for c in _nodes(node, "comments", context)
    )
    assignees = _nodes(node, "assignees", context)
    milestone = node.get("milestone") or {}
    title = node.get("title") or ""
    if origin == "pull":
        title = PULL_REQUEST_TITLE_PREFIX + title

    return Record(
        number=number,
        title=title,
        body=node.get("body") or "",
        created_at=parse_datetime(node["createdAt"]),
        updated_at=parse_datetime(node["updatedAt"]),
        author=_author(node.get("author")),
        origin=origin,
        closed=bool(node.get("closed")),
        closed_at=parse_datetime(node.get("closedAt")),
        labels=tuple(label["name"] for label in _nodes(node, "labels", context)),
        milestone_number=milestone.get("number"),
        assignee_login=assignees[0]["login"] if assignees else None,
        comments=comments,
    )


class GitHubGraphQLSource:
    """Record source reading one repository through the GitHub GraphQL API."""

    def __init__(
        self,
        repo: RepoPath,
        *,
        token: str | None,
        graphql_url: str = "https://api.github.com/graphql",
        session: requests.Session | None = None,
    ) -> None:
        self.repo: RepoPath = repo
        self.graphql_url: str = graphql_url
        self.session: requests.Session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.post(
                self.graphql_url,
                json={"query": query, "variables": variables},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            payload: dict[str, Any] = response.json()
        except (requests.RequestException, ValueError) as e:
            msg = f"GraphQL request to {self.graphql_url} failed: {e}"
            raise MigrationError(msg) from e

        if payload.get("errors"):
            msg = f"GraphQL errors: {payload['errors']}"
            raise MigrationError(msg)

        repository = (payload.get("data") or {}).get("repository")
        if repository is None:
            msg = f"Source repository {self.repo} not found"
            raise MigrationError(msg)
        return repository["connection"]

    def _paginate(self, query: str) -> Iterator[dict[str, Any]]:
        variables: dict[str, Any] = {"owner": self.repo.owner, "repo": self.repo.name, "cursor": None}
        while True:
            connection = self._query(query, variables)
            yield from connection.get("nodes") or []
            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            variables["cursor"] = page_info["endCursor"]

    def _collect(self, query: str, parse: Callable[[dict[str, Any]], Any], kind: str) -> list[Any]:
        items = [parse(node) for node in self._paginate(query)]
        logger.info(f"Fetched {len(items)} {kind} from {self.repo}")
        return items

    def get_labels(self) -> list[Label]:
        return self._collect(
            LABELS_QUERY,
            lambda n: Label(name=n["name"], color=n["color"], description=n.get("description") or ""),
            "labels",
        )

    def get_milestones(self) -> list[Milestone]:
        return self._collect(
            MILESTONES_QUERY,
            lambda n: Milestone(
                number=int(n["number"]),
                title=n["title"],
                description=n.get("description") or "",
                state=n.get("state") or "OPEN",
                due_on=parse_datetime(n.get("dueOn")),
            ),
            "milestones",
        )

    def get_issues(self) -> list[Record]:
        return self._collect(ISSUES_QUERY, lambda n: parse_record(n, "issue"), "issues")

    def get_pulls(self) -> list[Record]:
        return self._collect(PULL_REQUESTS_QUERY, lambda n: parse_record(n, "pull"), "pull requests")
