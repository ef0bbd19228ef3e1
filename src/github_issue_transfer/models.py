"""Data models exchanged between the record source, the sequencer and the destination.

Records are read once from the source and never mutated. A slot in the
destination numbering is filled by exactly one ``Record`` or one
``Placeholder``; both are consumed uniformly by the request builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal


@dataclass(frozen=True)
class Label:
    """A label to recreate on the destination."""

    name: str
    color: str  # Hex color without '#' prefix (e.g., "ff0000")
    description: str = ""


@dataclass(frozen=True)
class Milestone:
    """A milestone to recreate on the destination."""

    number: int
    title: str
    description: str = ""
    state: str = "OPEN"  # Source casing; lower-cased on submission
    due_on: datetime | None = None


@dataclass(frozen=True)
class Author:
    login: str
    avatar_url: str = ""


@dataclass(frozen=True)
class Comment:
    author: Author
    body: str
    created_at: datetime


@dataclass(frozen=True)
class Record:
    """An issue or pull request read from the source.

    Pull requests carry their origin prefix in ``title`` already; the
    ``origin`` field is kept for logging and collision reports.
    """

    number: int
    title: str
    body: str
    created_at: datetime
    updated_at: datetime
    author: Author
    origin: Literal["issue", "pull"] = "issue"
    closed: bool = False
    closed_at: datetime | None = None
    labels: tuple[str, ...] = ()
    milestone_number: int | None = None
    assignee_login: str | None = None
    comments: tuple[Comment, ...] = ()


@dataclass(frozen=True)
class Placeholder:
    """Synthetic record consuming a slot that has no source record."""

    number: int


# A position in the destination numbering is always one of these two.
Slot = Record | Placeholder


@dataclass(frozen=True)
class CommentPayload:
    body: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class CreationPayload:
    """Destination-agnostic description of one issue to create."""

    slot_number: int
    title: str
    body: str
    created_at: datetime
    updated_at: datetime
    closed: bool
    closed_at: datetime | None = None
    labels: tuple[str, ...] = ()
    assignee: str | None = None
    milestone: int | None = None
    comments: tuple[CommentPayload, ...] = ()
    placeholder: bool = False


@dataclass(frozen=True)
class ImportErrorDetail:
    """One entry of the structured error list returned by the import status endpoint."""

    location: str | None = None
    resource: str | None = None
    field: str | None = None
    value: str | None = None
    code: str | None = None

    def __str__(self) -> str:
        """Render as ``resource.field [code] at location: value``, leaving out missing parts."""
        text = ".".join(part for part in (self.resource, self.field) if part) or "error"
        if self.code:
            text += f" [{self.code}]"
        if self.location:
            text += f" at {self.location}"
        if self.value is not None:
            text += f": {self.value}"
        return text


@dataclass(frozen=True)
class ImportResponse:
    """Status returned by the destination for a submitted issue import."""

    status: str
    location_ref: str
    errors: tuple[ImportErrorDetail, ...] = field(default=())
