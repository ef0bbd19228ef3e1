"""Destination creation API: the calls that write labels, milestones and issues.

``GitHubDestination`` talks to GitHub (or GitHub Enterprise) through PyGithub.
The issue import endpoint has no PyGithub wrapper, so it goes through the
client's requester to keep authentication and rate limiting consistent.

``DryRunDestination`` has the same interface but turns every mutating call
into a logged no-op. Read-only lookups are forwarded to a real destination
when one is available.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final

import requests
from github import GithubException, UnknownObjectException

from .exceptions import FatalSubmissionError, TransientRequestError
from .models import ImportErrorDetail, ImportResponse

if TYPE_CHECKING:
    from datetime import datetime

    from github import Github
    from github.Issue import Issue as GithubIssue
    from github.Repository import Repository

    from .models import CreationPayload, Label, Milestone

logger: logging.Logger = logging.getLogger(__name__)

IMPORT_MEDIA_TYPE: Final[str] = "application/vnd.github.golden-comet-preview+json"


def _is_already_exists_error(exc: GithubException) -> bool:
    """Check if a GithubException is a 422 'already_exists' validation error."""
    if not isinstance(exc.data, dict):
        return False
    errors: object = exc.data.get("errors")
    if not isinstance(errors, list):
        return False
    return any(isinstance(e, dict) and e.get("code") == "already_exists" for e in errors)


def _error_message(exc: GithubException) -> str:
    if isinstance(exc.data, dict):
        return str(exc.data.get("message") or exc.data)
    return str(exc.data)


def _wrap_error(exc: Exception, action: str) -> Exception:
    """Translate a client exception into the transfer error taxonomy."""
    if isinstance(exc, GithubException):
        message = _error_message(exc)
        if exc.status >= 500:  # noqa: PLR2004
            return TransientRequestError(f"{action} failed ({exc.status}): {message}")
        return FatalSubmissionError(f"{action} rejected ({exc.status}): {message}", status=exc.status, detail=message)
    return TransientRequestError(f"{action} failed: {exc}")


def format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def build_import_request(payload: CreationPayload) -> dict[str, Any]:
    """Render a payload as the JSON body of the issue import endpoint."""
    issue: dict[str, Any] = {
        "title": payload.title,
        "body": payload.body,
        "created_at": format_datetime(payload.created_at),
        "updated_at": format_datetime(payload.updated_at),
        "closed": payload.closed,
    }
    if payload.closed and payload.closed_at is not None:
        issue["closed_at"] = format_datetime(payload.closed_at)
    if payload.labels:
        issue["labels"] = list(payload.labels)
    if payload.assignee:
        issue["assignee"] = payload.assignee
    if payload.milestone:
        issue["milestone"] = payload.milestone

    request: dict[str, Any] = {"issue": issue}
    if payload.comments:
        request["comments"] = [
            {"body": comment.body, "created_at": format_datetime(comment.created_at)}
            if comment.created_at is not None
            else {"body": comment.body}
            for comment in payload.comments
        ]
    return request


def parse_import_response(data: dict[str, Any]) -> ImportResponse:
    """Parse an import endpoint response into an ImportResponse.

    Raises:
        FatalSubmissionError: The response carries neither an ``id`` nor a ``url`` to poll
    """
    location_ref = data.get("id")
    if location_ref is None and data.get("url"):
        location_ref = str(data["url"]).rstrip("/").rsplit("/", 1)[-1] or None
    if location_ref is None:
        msg = f"Import response has no id or url to check its status: {data}"
        raise FatalSubmissionError(msg, detail=str(data))
    errors = tuple(
        ImportErrorDetail(
            location=error.get("location"),
            resource=error.get("resource"),
            field=error.get("field"),
            value=None if error.get("value") is None else str(error.get("value")),
            code=error.get("code"),
        )
        for error in data.get("errors") or []
        if isinstance(error, dict)
    )
    return ImportResponse(status=str(data.get("status", "")), location_ref=str(location_ref), errors=errors)


class GitHubDestination:
    """DestinationAPI implementation backed by PyGithub."""

    def __init__(self, client: Github, repo: Repository) -> None:
        self._client: Github = client
        self._repo: Repository = repo
        self._issues: dict[int, GithubIssue] = {}
        self._known_users: dict[str, bool] = {}

    @property
    def _import_path(self) -> str:
        return f"/repos/{self._repo.full_name}/import/issues"

    def create_label(self, label: Label) -> bool:
        try:
            self._repo.create_label(name=label.name, color=label.color, description=label.description)
        except GithubException as e:
            if e.status == 422 and _is_already_exists_error(e):  # noqa: PLR2004
                logger.info(f"Label already exists: {label.name}")
                return False
            raise _wrap_error(e, f"Creating label '{label.name}'") from e
        except requests.RequestException as e:
            raise _wrap_error(e, f"Creating label '{label.name}'") from e
        return True

    def create_milestone(self, milestone: Milestone) -> int:
        params: dict[str, Any] = {
            "title": milestone.title,
            "state": milestone.state.lower(),
            "description": milestone.description,
        }
        if milestone.due_on is not None:
            params["due_on"] = milestone.due_on
        try:
            created = self._repo.create_milestone(**params)
        except (GithubException, requests.RequestException) as e:
            raise _wrap_error(e, f"Creating milestone '{milestone.title}'") from e
        return created.number

    def import_create(self, payload: CreationPayload) -> ImportResponse:
        try:
            _, data = self._client.requester.requestJsonAndCheck(
                "POST",
                self._import_path,
                input=build_import_request(payload),
                headers={"Accept": IMPORT_MEDIA_TYPE},
            )
        except (GithubException, requests.RequestException) as e:
            raise _wrap_error(e, f"Importing #{payload.slot_number} '{payload.title}'") from e
        return parse_import_response(data)

    def import_status(self, location_ref: str) -> ImportResponse:
        try:
            _, data = self._client.requester.requestJsonAndCheck(
                "GET",
                f"{self._import_path}/{location_ref}",
                headers={"Accept": IMPORT_MEDIA_TYPE},
            )
        except (GithubException, requests.RequestException) as e:
            raise _wrap_error(e, f"Checking import {location_ref}") from e
        return parse_import_response(data)

    def create_issue(self, payload: CreationPayload) -> int:
        params: dict[str, Any] = {"title": payload.title, "body": payload.body}
        if payload.labels:
            params["labels"] = list(payload.labels)
        if payload.assignee:
            params["assignee"] = payload.assignee
        try:
            if payload.milestone:
                params["milestone"] = self._repo.get_milestone(payload.milestone)
            issue = self._repo.create_issue(**params)
        except (GithubException, requests.RequestException) as e:
            raise _wrap_error(e, f"Creating issue #{payload.slot_number} '{payload.title}'") from e
        self._issues[issue.number] = issue
        return issue.number

    def _get_issue(self, issue_number: int) -> GithubIssue:
        issue = self._issues.get(issue_number)
        if issue is None:
            issue = self._repo.get_issue(issue_number)
            self._issues[issue_number] = issue
        return issue

    def create_comment(self, issue_number: int, body: str) -> None:
        try:
            self._get_issue(issue_number).create_comment(body)
        except (GithubException, requests.RequestException) as e:
            raise _wrap_error(e, f"Creating comment on #{issue_number}") from e

    def edit_issue_state(self, issue_number: int, state: str) -> None:
        try:
            self._get_issue(issue_number).edit(state=state)
        except (GithubException, requests.RequestException) as e:
            raise _wrap_error(e, f"Setting #{issue_number} to {state}") from e

    def user_exists(self, login: str) -> bool:
        if login not in self._known_users:
            try:
                self._client.get_user(login)
                exists = True
            except UnknownObjectException:
                exists = False
            except (GithubException, requests.RequestException) as e:
                logger.warning(f"Could not look up user {login}: {e}")
                exists = False
            self._known_users[login] = exists
        return self._known_users[login]


class DryRunDestination:
    """DestinationAPI that logs mutating calls instead of making them."""

    def __init__(self, reader: GitHubDestination | None = None) -> None:
        self._reader: GitHubDestination | None = reader
        self._issue_counter = 0

    def create_label(self, label: Label) -> bool:
        logger.info(f"[DRY RUN] Would create label: {label.name}")
        return True

    def create_milestone(self, milestone: Milestone) -> int:
        logger.info(f"[DRY RUN] Would create milestone #{milestone.number}: {milestone.title}")
        return milestone.number

    def import_create(self, payload: CreationPayload) -> ImportResponse:
        self._issue_counter += 1
        logger.info(f"[DRY RUN] Would import #{payload.slot_number}: {payload.title}")
        return ImportResponse(status="imported", location_ref=f"dry-run-{self._issue_counter}")

    def import_status(self, location_ref: str) -> ImportResponse:
        return ImportResponse(status="imported", location_ref=location_ref)

    def create_issue(self, payload: CreationPayload) -> int:
        self._issue_counter += 1
        logger.info(f"[DRY RUN] Would create issue #{self._issue_counter}: {payload.title}")
        return self._issue_counter

    def create_comment(self, issue_number: int, body: str) -> None:
        logger.debug(f"[DRY RUN] Would comment on #{issue_number} ({len(body)} chars)")

    def edit_issue_state(self, issue_number: int, state: str) -> None:
        logger.info(f"[DRY RUN] Would set #{issue_number} to {state}")

    def user_exists(self, login: str) -> bool:
        if self._reader is None:
            return True
        return self._reader.user_exists(login)
