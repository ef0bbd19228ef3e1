"""Protocols defining the contracts for the record source and the destination.

The transfer separates concerns into three parts:

1. RecordSource: reads labels, milestones, issues and pull requests
2. DestinationAPI: creates labels, milestones and issues on the target
3. IssueTransfer: sequences records into slots and drives the creation

This keeps network and pagination details out of the sequencing and import
logic, and lets tests replace either side with an in-memory fake.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import CreationPayload, ImportResponse, Label, Milestone, Record


class RecordSource(Protocol):
    """Protocol for reading from the source repository.

    Issues and pull requests are returned in creation order, each with a
    stable number. Pull request titles already carry their origin prefix.
    """

    def get_labels(self) -> list[Label]: ...

    def get_milestones(self) -> list[Milestone]: ...

    def get_issues(self) -> list[Record]: ...

    def get_pulls(self) -> list[Record]: ...


class DestinationAPI(Protocol):
    """Protocol for writing to the destination repository.

    Mutating calls raise FatalSubmissionError when the destination rejects
    the request and TransientRequestError when it may succeed on retry.

    The import-API strategy uses import_create() and import_status(); the
    direct-create strategy uses create_issue(), create_comment() and
    edit_issue_state(). Both use user_exists() to validate assignees.
    """

    def create_label(self, label: Label) -> bool:
        """Create a label. Returns False if it already existed."""
        ...

    def create_milestone(self, milestone: Milestone) -> int:
        """Create a milestone and return its number."""
        ...

    def import_create(self, payload: CreationPayload) -> ImportResponse:
        """Submit an issue with its comments to the import endpoint."""
        ...

    def import_status(self, location_ref: str) -> ImportResponse:
        """Fetch the current status of a submitted import."""
        ...

    def create_issue(self, payload: CreationPayload) -> int:
        """Create an open issue without comments and return its number."""
        ...

    def create_comment(self, issue_number: int, body: str) -> None: ...

    def edit_issue_state(self, issue_number: int, state: str) -> None: ...

    def user_exists(self, login: str) -> bool: ...
