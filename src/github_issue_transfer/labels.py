"""
Label and milestone creation on the destination.

Both run before any issue is created, because issue payloads refer to labels
by name and to milestones by number.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Label, Milestone
    from .protocols import DestinationAPI

logger: logging.Logger = logging.getLogger(__name__)


def migrate_labels(labels: Iterable[Label], destination: DestinationAPI) -> int:
    """Create labels one at a time, in source order.

    A label that already exists on the destination is kept as is. Any other
    rejection propagates and aborts the run.

    Returns:
        Number of labels created
    """
    created = 0
    for label in labels:
        logger.debug(f"Creating label: {label.name}")
        if destination.create_label(label):
            created += 1
            logger.info(f"Created label: {label.name}")
    logger.info(f"Migrated {created} labels")
    return created


def migrate_milestones(milestones: Iterable[Milestone], destination: DestinationAPI) -> int:
    """Create milestones one at a time, in source order.

    Returns:
        Number of milestones created
    """
    created = 0
    for milestone in milestones:
        logger.debug(f"Creating milestone: {milestone.title}")
        number = destination.create_milestone(milestone)
        created += 1
        if number != milestone.number:
            logger.warning(
                f"Milestone '{milestone.title}' is #{number} on the destination but #{milestone.number} "
                "on the source; issues referring to it by number may point elsewhere"
            )
        logger.info(f"Created milestone: {milestone.title}")
    logger.info(f"Migrated {created} milestones")
    return created
