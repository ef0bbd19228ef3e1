"""Build destination creation payloads from source records and placeholders."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

from .models import CommentPayload, CreationPayload, Placeholder

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import Author, Record, Slot
    from .replacements import TextNormalizer

PLACEHOLDER_TITLE = "Dummy"
PLACEHOLDER_BODY = "This is a dummy to align the issue numbers for move."


def format_timestamp(timestamp: dt.datetime | None) -> str:
    """Format a datetime to a human-readable string.

    Returns:
        Formatted timestamp (e.g., "2024-01-15 10:30:45Z"), or "" for None.
    """
    if timestamp is None:
        return ""
    formatted = timestamp.isoformat(sep=" ", timespec="seconds")
    return formatted.replace("+00:00", "Z")


def author_header(author: Author, created_at: dt.datetime | None = None, *, skip_avatars: bool = False) -> str:
    """Render the attribution line placed above a migrated body."""
    avatar = "" if skip_avatars or not author.avatar_url else f'<img src="{author.avatar_url}" width="25"> '
    when = f" ({format_timestamp(created_at)})" if created_at is not None else ""
    return f"{avatar}<b>{author.login}</b> commented{when}:\n\n"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class RequestBuilder:
    """Converts slots into CreationPayload objects.

    Args:
        normalizer: Applies body and login replacement rules
        user_exists: Destination lookup used to validate assignees
        skip_avatars: Leave avatar images out of author headers
        include_timestamps: Put the original creation time in author headers.
            Used when the destination cannot store the original timestamps.
        clock: Source of "now" for placeholder timestamps
    """

    def __init__(
        self,
        normalizer: TextNormalizer,
        user_exists: Callable[[str], bool],
        *,
        skip_avatars: bool = False,
        include_timestamps: bool = False,
        clock: Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        self.normalizer: TextNormalizer = normalizer
        self.user_exists: Callable[[str], bool] = user_exists
        self.skip_avatars: bool = skip_avatars
        self.include_timestamps: bool = include_timestamps
        self.clock: Callable[[], dt.datetime] = clock

    def build(self, slot: Slot) -> CreationPayload:
        if isinstance(slot, Placeholder):
            return self.build_placeholder(slot)
        return self.build_record(slot)

    def build_placeholder(self, placeholder: Placeholder) -> CreationPayload:
        now = self.clock()
        return CreationPayload(
            slot_number=placeholder.number,
            title=PLACEHOLDER_TITLE,
            body=PLACEHOLDER_BODY,
            created_at=now,
            updated_at=now,
            closed_at=now,
            closed=True,
            placeholder=True,
        )

    def _render(self, author: Author, created_at: dt.datetime, body: str) -> str:
        header = author_header(
            author,
            created_at if self.include_timestamps else None,
            skip_avatars=self.skip_avatars,
        )
        return header + self.normalizer.normalize_body(body)

    def build_record(self, record: Record) -> CreationPayload:
        comments = tuple(
            CommentPayload(
                body=self._render(comment.author, comment.created_at, comment.body),
                created_at=comment.created_at,
            )
            for comment in record.comments
        )

        milestone = record.milestone_number if record.milestone_number and record.milestone_number > 0 else None

        return CreationPayload(
            slot_number=record.number,
            title=record.title,
            body=self._render(record.author, record.created_at, record.body),
            created_at=record.created_at,
            updated_at=record.updated_at,
            closed_at=record.closed_at,
            closed=record.closed,
            labels=record.labels,
            assignee=self.normalizer.resolve_assignee(record.assignee_login, self.user_exists),
            milestone=milestone,
            comments=comments,
        )
