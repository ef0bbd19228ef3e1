"""Submit creation payloads to the destination and drive them to a terminal state.

Two creation strategies exist, selected once per run:

Import-API strategy
    The issue, its comments, labels, assignee, milestone and closed state are
    sent in one request to the issue import endpoint. The endpoint answers
    with a status and a reference to poll. In synchronous mode each import
    is polled until it is ``imported`` before the caller moves on, which is
    what keeps destination numbers aligned with slot numbers::

        submitted ──► pending ──(sleep, poll)──► pending ... ──► imported
                         │                                    └─► failed
                         └── still pending after max_retries ──► RetryExhaustedError

    The delay starts at ``initial_delay`` and is multiplied by ``factor``
    after every sleep. It never carries over from one slot to the next.

    In fire-and-forget mode the import is considered done as soon as it is
    accepted. Numbering is then not guaranteed, so placeholders must not be
    used with it.

Direct-create strategy
    The issue is created first, comments are appended one by one, and the
    issue is closed with a follow-up edit when needed. For destinations
    without the import endpoint.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from .exceptions import (
    FatalSubmissionError,
    ImportRejectedError,
    NumberVerificationError,
    RetryExhaustedError,
    TransientRequestError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .models import CreationPayload, ImportResponse
    from .protocols import DestinationAPI

logger: logging.Logger = logging.getLogger(__name__)


class ImportStatus(StrEnum):
    SUBMITTED = "submitted"
    PENDING = "pending"
    IMPORTED = "imported"
    FAILED = "failed"

    @classmethod
    def classify(cls, raw_status: str) -> ImportStatus:
        """Map a destination status string; anything unknown counts as failed."""
        if raw_status == cls.IMPORTED:
            return cls.IMPORTED
        if raw_status == cls.PENDING:
            return cls.PENDING
        return cls.FAILED


@dataclass(frozen=True)
class BackoffPolicy:
    """Delays between import status polls."""

    initial_delay: float = 1.0  # seconds
    factor: float = 1.6
    max_retries: int = 10

    def delays(self) -> Iterator[float]:
        """Yield the sleep before each poll, at most max_retries of them."""
        delay = self.initial_delay
        for _ in range(self.max_retries):
            yield delay
            delay *= self.factor


@dataclass
class ImportAttempt:
    """Polling state for one submitted payload. Lives for a single slot."""

    slot_number: int
    location_ref: str
    current_delay: float
    status: ImportStatus = ImportStatus.SUBMITTED
    attempt_count: int = 0
    last_raw_status: str = ""

    def observe(self, response: ImportResponse) -> ImportStatus:
        self.last_raw_status = response.status
        self.status = ImportStatus.classify(response.status)
        return self.status


@dataclass(frozen=True)
class SubmissionOutcome:
    slot_number: int
    status: ImportStatus
    issue_number: int | None = None
    comments_created: int = 0
    comments_dropped: int = 0


class CreationStrategy(Protocol):
    """Capability to turn one payload into a destination issue."""

    name: str
    preserves_timestamps: bool
    """True if the destination stores the original timestamps itself."""

    def submit(self, payload: CreationPayload) -> SubmissionOutcome: ...


class ImportApiStrategy:
    """Creates issues through the issue import endpoint."""

    name = "import"
    preserves_timestamps = True

    def __init__(
        self,
        destination: DestinationAPI,
        *,
        synchronous: bool = True,
        backoff: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.destination: DestinationAPI = destination
        self.synchronous: bool = synchronous
        self.backoff: BackoffPolicy = backoff or BackoffPolicy()
        self.sleep: Callable[[float], None] = sleep

    def submit(self, payload: CreationPayload) -> SubmissionOutcome:
        response = self.destination.import_create(payload)
        attempt = ImportAttempt(
            slot_number=payload.slot_number,
            location_ref=response.location_ref,
            current_delay=self.backoff.initial_delay,
        )
        logger.debug(f"Requested import {attempt.location_ref} for #{payload.slot_number}: {payload.title}")

        if not self.synchronous:
            attempt.status = ImportStatus.IMPORTED
            logger.info(f"Requested import of #{payload.slot_number} (not waiting): {payload.title}")
        else:
            self.wait_for_import(attempt, response)
            logger.info(f"Imported #{payload.slot_number}: {payload.title}")

        return SubmissionOutcome(
            slot_number=payload.slot_number,
            status=attempt.status,
            comments_created=len(payload.comments),
        )

    def wait_for_import(self, attempt: ImportAttempt, response: ImportResponse) -> None:
        """Poll until the import is imported or fails.

        Raises:
            ImportRejectedError: The destination reported a terminal status other than 'imported'
            RetryExhaustedError: Still pending after backoff.max_retries polls
        """
        delays = self.backoff.delays()
        while True:
            status = attempt.observe(response)
            if status is ImportStatus.IMPORTED:
                return
            if status is ImportStatus.FAILED:
                raise ImportRejectedError(response.status, attempt.location_ref, response.errors)

            delay = next(delays, None)
            if delay is None:
                raise RetryExhaustedError(attempt.location_ref, attempt.last_raw_status, attempt.attempt_count + 1)
            attempt.current_delay = delay

            logger.debug(
                f"Import {attempt.location_ref} for #{attempt.slot_number} is {response.status}, "
                f"checking again in {delay:.2f}s"
            )
            self.sleep(delay)
            response = self.destination.import_status(attempt.location_ref)
            attempt.attempt_count += 1


class DirectCreateStrategy:
    """Creates the issue, then its comments, then closes it if needed."""

    name = "create"
    preserves_timestamps = False

    def __init__(self, destination: DestinationAPI, *, verify_numbers: bool = True) -> None:
        self.destination: DestinationAPI = destination
        self.verify_numbers: bool = verify_numbers

    def submit(self, payload: CreationPayload) -> SubmissionOutcome:
        issue_number = self.destination.create_issue(payload)
        logger.info(f"Created issue #{issue_number}: {payload.title}")

        if self.verify_numbers and issue_number != payload.slot_number:
            msg = f"Issue number mismatch: expected {payload.slot_number}, got {issue_number}"
            raise NumberVerificationError(msg)

        created = 0
        dropped = 0
        for index, comment in enumerate(payload.comments, start=1):
            if self._create_comment(issue_number, comment.body, index):
                created += 1
            else:
                dropped += 1

        if payload.closed:
            self.destination.edit_issue_state(issue_number, "closed")
            logger.info(f"Closed issue #{issue_number}")

        return SubmissionOutcome(
            slot_number=payload.slot_number,
            status=ImportStatus.IMPORTED,
            issue_number=issue_number,
            comments_created=created,
            comments_dropped=dropped,
        )

    def _create_comment(self, issue_number: int, body: str, index: int) -> bool:
        """Create one comment, retrying once on a transient error. Never raises for the comment itself."""
        try:
            self.destination.create_comment(issue_number, body)
        except FatalSubmissionError:
            logger.exception(f"Comment {index} on #{issue_number} rejected, skipping it")
            return False
        except TransientRequestError as e:
            logger.warning(f"Comment {index} on #{issue_number} failed, retrying: {e}")
        else:
            return True

        try:
            self.destination.create_comment(issue_number, body)
        except (FatalSubmissionError, TransientRequestError):
            logger.exception(f"Comment {index} on #{issue_number} failed again, skipping it")
            return False
        return True


def select_strategy(
    strategy: str,
    destination: DestinationAPI,
    *,
    synchronous: bool = True,
    backoff: BackoffPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CreationStrategy:
    """Build the creation strategy for a run."""
    if strategy == "import":
        return ImportApiStrategy(destination, synchronous=synchronous, backoff=backoff, sleep=sleep)
    if strategy == "create":
        return DirectCreateStrategy(destination)
    msg = f"Unknown creation strategy: {strategy}"
    raise ValueError(msg)
