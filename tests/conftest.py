"""
Pytest configuration and fixtures.

FakeDestination records every call made to it, in order, so tests can
assert on what the transfer sent without any network access.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from typing import Any

import pytest

from github_issue_transfer.models import Author, Comment, ImportResponse, Record

BASE_TIME = dt.datetime(2024, 1, 15, 10, 30, 45, tzinfo=dt.UTC)


def make_record(number: int, origin: str = "issue", **overrides: Any) -> Record:
    """Create a Record with sensible defaults."""
    title = f"Issue {number}" if origin == "issue" else f"[PR] Pull {number}"
    values: dict[str, Any] = {
        "number": number,
        "title": title,
        "body": f"Body of {number}",
        "created_at": BASE_TIME + dt.timedelta(hours=number),
        "updated_at": BASE_TIME + dt.timedelta(hours=number, minutes=5),
        "author": Author(login="octocat", avatar_url="https://avatars.example.com/octocat"),
        "origin": origin,
    }
    values.update(overrides)
    return Record(**values)


def make_comment(body: str = "A comment", login: str = "hubot") -> Comment:
    author = Author(login=login, avatar_url=f"https://avatars.example.com/{login}")
    return Comment(author=author, body=body, created_at=BASE_TIME)


class FakeDestination:
    """In-memory DestinationAPI.

    Args:
        import_statuses: Status sequence per submission, e.g. ["pending", "imported"].
            The first entry answers import_create, the rest answer import_status.
            Defaults to an immediate "imported".
        existing_users: Logins for which user_exists() returns True
    """

    def __init__(
        self,
        import_statuses: list[list[str]] | None = None,
        existing_users: set[str] | None = None,
    ) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.import_statuses: list[list[str]] = import_statuses or []
        self.existing_users: set[str] = existing_users if existing_users is not None else set()
        self.comment_errors: list[Exception] = []
        self.label_results: dict[str, bool] = {}
        self._pending: dict[str, list[str]] = {}
        self._issue_counter = 0
        self.on_import_create: Callable[[Any], None] | None = None

    def _names(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]

    @property
    def imported(self) -> list[Any]:
        return self._names("import_create")

    def create_label(self, label: Any) -> bool:
        self.calls.append(("create_label", label))
        return self.label_results.get(label.name, True)

    def create_milestone(self, milestone: Any) -> int:
        self.calls.append(("create_milestone", milestone))
        return milestone.number

    def import_create(self, payload: Any) -> ImportResponse:
        self.calls.append(("import_create", payload))
        if self.on_import_create is not None:
            self.on_import_create(payload)
        self._issue_counter += 1
        ref = str(self._issue_counter)
        statuses = list(self.import_statuses.pop(0)) if self.import_statuses else ["imported"]
        self._pending[ref] = statuses[1:]
        return ImportResponse(status=statuses[0], location_ref=ref)

    def import_status(self, location_ref: str) -> ImportResponse:
        self.calls.append(("import_status", location_ref))
        remaining = self._pending[location_ref]
        status = remaining.pop(0) if remaining else "pending"
        return ImportResponse(status=status, location_ref=location_ref)

    def create_issue(self, payload: Any) -> int:
        self.calls.append(("create_issue", payload))
        self._issue_counter += 1
        return self._issue_counter

    def create_comment(self, issue_number: int, body: str) -> None:
        self.calls.append(("create_comment", (issue_number, body)))
        if self.comment_errors:
            raise self.comment_errors.pop(0)

    def edit_issue_state(self, issue_number: int, state: str) -> None:
        self.calls.append(("edit_issue_state", (issue_number, state)))

    def user_exists(self, login: str) -> bool:
        self.calls.append(("user_exists", login))
        return login in self.existing_users


class FakeSource:
    """In-memory RecordSource."""

    def __init__(
        self,
        issues: list[Record] | None = None,
        pulls: list[Record] | None = None,
        labels: list[Any] | None = None,
        milestones: list[Any] | None = None,
    ) -> None:
        self.issues = issues or []
        self.pulls = pulls or []
        self.labels = labels or []
        self.milestones = milestones or []

    def get_labels(self) -> list[Any]:
        return self.labels

    def get_milestones(self) -> list[Any]:
        return self.milestones

    def get_issues(self) -> list[Record]:
        return self.issues

    def get_pulls(self) -> list[Record]:
        return self.pulls


@pytest.fixture
def destination() -> FakeDestination:
    return FakeDestination()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the delays passed to an injected sleep function."""
    return []
