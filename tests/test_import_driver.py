"""Tests for the creation strategies and import polling."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterator

import pytest
from conftest import BASE_TIME, FakeDestination

from github_issue_transfer.exceptions import (
    FatalSubmissionError,
    ImportRejectedError,
    NumberVerificationError,
    RetryExhaustedError,
    TransientRequestError,
)
from github_issue_transfer.import_driver import (
    BackoffPolicy,
    DirectCreateStrategy,
    ImportApiStrategy,
    ImportStatus,
    select_strategy,
)
from github_issue_transfer.models import CommentPayload, CreationPayload, ImportErrorDetail, ImportResponse

EXPECTED_DELAYS = [1.0 * 1.6**n for n in range(10)]


def make_payload(slot_number: int = 1, *, closed: bool = False, comments: int = 0) -> CreationPayload:
    return CreationPayload(
        slot_number=slot_number,
        title=f"Issue {slot_number}",
        body="Body",
        created_at=BASE_TIME,
        updated_at=BASE_TIME + dt.timedelta(minutes=1),
        closed=closed,
        closed_at=BASE_TIME if closed else None,
        comments=tuple(CommentPayload(body=f"Comment {i}", created_at=BASE_TIME) for i in range(1, comments + 1)),
    )


@pytest.mark.unit
class TestImportStatus:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("imported", ImportStatus.IMPORTED),
            ("pending", ImportStatus.PENDING),
            ("failed", ImportStatus.FAILED),
            ("error", ImportStatus.FAILED),
            ("", ImportStatus.FAILED),
        ],
    )
    def test_classify(self, raw: str, expected: ImportStatus) -> None:
        assert ImportStatus.classify(raw) is expected


@pytest.mark.unit
class TestBackoffPolicy:
    def test_default_delays(self) -> None:
        assert list(BackoffPolicy().delays()) == pytest.approx(EXPECTED_DELAYS)

    def test_custom_policy(self) -> None:
        assert list(BackoffPolicy(initial_delay=2.0, factor=2.0, max_retries=3).delays()) == [2.0, 4.0, 8.0]


@pytest.mark.unit
class TestImportApiStrategy:
    def test_immediately_imported_does_not_sleep(self, destination: FakeDestination, sleeps: list[float]) -> None:
        strategy = ImportApiStrategy(destination, sleep=sleeps.append)

        outcome = strategy.submit(make_payload(1, comments=2))

        assert outcome.status is ImportStatus.IMPORTED
        assert outcome.comments_created == 2
        assert sleeps == []
        assert [name for name, _ in destination.calls] == ["import_create"]

    def test_polls_with_growing_delay_until_imported(self, sleeps: list[float]) -> None:
        destination = FakeDestination(import_statuses=[["pending", "pending", "pending", "imported"]])
        strategy = ImportApiStrategy(destination, sleep=sleeps.append)

        outcome = strategy.submit(make_payload(1))

        assert outcome.status is ImportStatus.IMPORTED
        assert sleeps == pytest.approx([1.0, 1.6, 2.56])
        assert [name for name, _ in destination.calls] == ["import_create"] + ["import_status"] * 3

    def test_delay_resets_for_each_submission(self, sleeps: list[float]) -> None:
        destination = FakeDestination(import_statuses=[["pending", "imported"], ["pending", "pending", "imported"]])
        strategy = ImportApiStrategy(destination, sleep=sleeps.append)

        strategy.submit(make_payload(1))
        strategy.submit(make_payload(2))

        assert sleeps == pytest.approx([1.0, 1.0, 1.6])

    def test_retry_exhausted_after_ten_sleeps(self, destination: FakeDestination, sleeps: list[float]) -> None:
        # The fake answers "pending" forever once its queue is empty
        destination.import_statuses = [["pending"]]
        strategy = ImportApiStrategy(destination, sleep=sleeps.append)

        with pytest.raises(RetryExhaustedError) as exc_info:
            strategy.submit(make_payload(1))

        assert sleeps == pytest.approx(EXPECTED_DELAYS)
        assert exc_info.value.attempts == 11
        assert exc_info.value.last_status == "pending"
        assert exc_info.value.location_ref == "1"
        assert len([name for name, _ in destination.calls if name == "import_status"]) == 10

    def test_custom_retry_limit(self, destination: FakeDestination, sleeps: list[float]) -> None:
        destination.import_statuses = [["pending"]]
        strategy = ImportApiStrategy(
            destination, backoff=BackoffPolicy(initial_delay=0.5, factor=2.0, max_retries=2), sleep=sleeps.append
        )

        with pytest.raises(RetryExhaustedError):
            strategy.submit(make_payload(1))

        assert sleeps == [0.5, 1.0]

    def test_sleeps_follow_the_policy_schedule(self, destination: FakeDestination, sleeps: list[float]) -> None:
        class FixedSchedule(BackoffPolicy):
            def delays(self) -> Iterator[float]:
                yield from (0.25, 3.0)

        destination.import_statuses = [["pending"]]
        strategy = ImportApiStrategy(destination, backoff=FixedSchedule(), sleep=sleeps.append)

        with pytest.raises(RetryExhaustedError) as exc_info:
            strategy.submit(make_payload(1))

        assert sleeps == [0.25, 3.0]
        assert exc_info.value.attempts == 3

    def test_failed_status_raises_with_error_details(self, sleeps: list[float]) -> None:
        errors = (ImportErrorDetail(resource="Issue", field="assignee", value="nobody", code="invalid"),)

        class RejectingDestination(FakeDestination):
            def import_status(self, location_ref: str) -> ImportResponse:
                self.calls.append(("import_status", location_ref))
                return ImportResponse(status="failed", location_ref=location_ref, errors=errors)

        destination = RejectingDestination(import_statuses=[["pending"]])
        strategy = ImportApiStrategy(destination, sleep=sleeps.append)

        with pytest.raises(ImportRejectedError) as exc_info:
            strategy.submit(make_payload(3))

        assert exc_info.value.errors == errors
        assert "assignee [invalid]: nobody" in str(exc_info.value)
        assert sleeps == [1.0]

    def test_unknown_status_is_terminal(self, sleeps: list[float]) -> None:
        destination = FakeDestination(import_statuses=[["exploded"]])
        strategy = ImportApiStrategy(destination, sleep=sleeps.append)

        with pytest.raises(ImportRejectedError, match="exploded"):
            strategy.submit(make_payload(1))
        assert sleeps == []

    def test_fire_and_forget_never_polls(self, sleeps: list[float]) -> None:
        destination = FakeDestination(import_statuses=[["pending"]])
        strategy = ImportApiStrategy(destination, synchronous=False, sleep=sleeps.append)

        outcome = strategy.submit(make_payload(1))

        assert outcome.status is ImportStatus.IMPORTED
        assert sleeps == []
        assert [name for name, _ in destination.calls] == ["import_create"]


@pytest.mark.unit
class TestDirectCreateStrategy:
    def test_creates_issue_and_comments_then_closes(self, destination: FakeDestination) -> None:
        strategy = DirectCreateStrategy(destination)

        outcome = strategy.submit(make_payload(1, closed=True, comments=2))

        assert outcome.issue_number == 1
        assert outcome.comments_created == 2
        assert outcome.comments_dropped == 0
        assert destination.calls[1:] == [
            ("create_comment", (1, "Comment 1")),
            ("create_comment", (1, "Comment 2")),
            ("edit_issue_state", (1, "closed")),
        ]

    def test_open_issue_is_not_edited(self, destination: FakeDestination) -> None:
        DirectCreateStrategy(destination).submit(make_payload(1))
        assert [name for name, _ in destination.calls] == ["create_issue"]

    def test_transient_comment_error_is_retried_once(self, destination: FakeDestination) -> None:
        destination.comment_errors = [TransientRequestError("502 Bad Gateway")]

        outcome = DirectCreateStrategy(destination).submit(make_payload(1, comments=1))

        assert outcome.comments_created == 1
        assert destination.calls.count(("create_comment", (1, "Comment 1"))) == 2

    def test_repeated_transient_error_drops_comment(self, destination: FakeDestination) -> None:
        destination.comment_errors = [TransientRequestError("timeout"), TransientRequestError("timeout")]

        outcome = DirectCreateStrategy(destination).submit(make_payload(1, closed=True, comments=2))

        assert outcome.comments_created == 1
        assert outcome.comments_dropped == 1
        assert destination.calls[-1] == ("edit_issue_state", (1, "closed"))

    def test_rejected_comment_is_skipped_without_retry(self, destination: FakeDestination) -> None:
        destination.comment_errors = [FatalSubmissionError("Body too long", status=422)]

        outcome = DirectCreateStrategy(destination).submit(make_payload(1, comments=2))

        assert outcome.comments_created == 1
        assert outcome.comments_dropped == 1
        assert [args for name, args in destination.calls if name == "create_comment"] == [
            (1, "Comment 1"),
            (1, "Comment 2"),
        ]

    def test_number_mismatch_raises(self, destination: FakeDestination) -> None:
        with pytest.raises(NumberVerificationError, match="expected 5, got 1"):
            DirectCreateStrategy(destination).submit(make_payload(5))

    def test_number_check_can_be_disabled(self, destination: FakeDestination) -> None:
        outcome = DirectCreateStrategy(destination, verify_numbers=False).submit(make_payload(5))
        assert outcome.issue_number == 1


@pytest.mark.unit
class TestSelectStrategy:
    def test_import(self, destination: FakeDestination) -> None:
        strategy = select_strategy("import", destination, synchronous=False)
        assert isinstance(strategy, ImportApiStrategy)
        assert strategy.synchronous is False
        assert strategy.preserves_timestamps is True

    def test_create(self, destination: FakeDestination) -> None:
        strategy = select_strategy("create", destination)
        assert isinstance(strategy, DirectCreateStrategy)
        assert strategy.preserves_timestamps is False

    def test_unknown(self, destination: FakeDestination) -> None:
        with pytest.raises(ValueError, match="Unknown creation strategy"):
            select_strategy("magic", destination)
