"""
Merge issues and pull requests into the destination numbering sequence.

GitHub allocates issue and pull request numbers from one shared counter, with
no gaps and no way to choose a number. To keep the source numbers, every slot
from 1 to the highest source number must be filled in order: with the record
carrying that number, or with a placeholder when the source has none.
"""

from __future__ import annotations

import logging
from itertools import chain
from typing import TYPE_CHECKING

from .exceptions import MigrationError, NumberCollisionError
from .models import Placeholder

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from .models import Record, Slot

logger: logging.Logger = logging.getLogger(__name__)


def _merge_by_number(issues: Iterable[Record], pulls: Iterable[Record], *, strict: bool) -> list[Record]:
    """Sort both collections by number, issues before pulls on equal numbers."""
    # sorted() is stable, so chaining issues first gives them precedence on ties
    merged = sorted(chain(issues, pulls), key=lambda r: r.number)

    unique: list[Record] = []
    for record in merged:
        if unique and unique[-1].number == record.number:
            kept = unique[-1]
            msg = (
                f"Number #{record.number} is used by both {kept.origin} '{kept.title}' "
                f"and {record.origin} '{record.title}'"
            )
            if strict:
                raise NumberCollisionError(msg)
            logger.warning(f"{msg}; keeping the {kept.origin}")
            continue
        if record.number < 1:
            msg = f"Invalid {record.origin} number #{record.number}"
            raise MigrationError(msg)
        unique.append(record)
    return unique


def sequence_slots(
    issues: Iterable[Record],
    pulls: Iterable[Record],
    *,
    fill_gaps: bool = True,
    strict: bool = True,
) -> Iterator[Slot]:
    """Yield one slot per destination number, in strictly increasing order.

    Args:
        issues: Issue records from the source
        pulls: Pull request records from the source
        fill_gaps: Yield a Placeholder for every number without a record.
            When False only real records are yielded (fire-and-forget imports).
        strict: Raise NumberCollisionError when two records share a number.
            When False the issue wins and the duplicate is logged and dropped.

    Raises:
        NumberCollisionError: On a shared number. Checked on the first
            ``next()``, before any slot is yielded. MigrationError on a
            non-positive number.
    """
    records = _merge_by_number(issues, pulls, strict=strict)

    expected = 1
    for record in records:
        if fill_gaps:
            while expected < record.number:
                logger.debug(f"No source record for #{expected}, using placeholder")
                yield Placeholder(number=expected)
                expected += 1
        yield record
        expected = record.number + 1
