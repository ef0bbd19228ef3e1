"""
Main transfer class: moves labels, milestones, issues and pull requests.

The run proceeds in phases, each completing before the next starts:

1. Fetch labels, milestones, issues and pull requests from the source
2. Create labels on the destination
3. Create milestones on the destination
4. Walk the slots 1..N in order; build a payload for each slot and submit
   it through the creation strategy selected for the run

Any error other than a single failed comment stops the run. What was
created before the failure stays on the destination.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import github_utils as ghu
from .config import DESTINATION_TOKEN_ENV_VAR, SOURCE_TOKEN_ENV_VAR
from .destination import DryRunDestination, GitHubDestination
from .exceptions import ConfigurationError
from .import_driver import select_strategy
from .issue_builder import RequestBuilder
from .labels import migrate_labels, migrate_milestones
from .models import Placeholder
from .replacements import TextNormalizer, load_replacement_rules
from .sequencer import sequence_slots
from .source import GitHubGraphQLSource

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import TransferConfig
    from .import_driver import CreationStrategy
    from .models import Label, Milestone, Record
    from .protocols import DestinationAPI, RecordSource

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class TransferStats:
    """Statistics collected during a transfer run."""

    labels_created: int = 0
    milestones_created: int = 0
    records_migrated: int = 0
    placeholders_created: int = 0
    comments_created: int = 0
    comments_dropped: int = 0


class IssueTransfer:
    """Transfers one repository's issues and pull requests to another repository."""

    def __init__(
        self,
        config: TransferConfig,
        source: RecordSource,
        destination: DestinationAPI,
        *,
        normalizer: TextNormalizer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config: TransferConfig = config
        self.source: RecordSource = source
        self.destination: DestinationAPI = destination
        self.normalizer: TextNormalizer = normalizer or TextNormalizer()

        self.strategy: CreationStrategy = select_strategy(
            config.strategy,
            destination,
            synchronous=config.synchronous,
            backoff=config.backoff,
            sleep=sleep,
        )
        self.builder: RequestBuilder = RequestBuilder(
            self.normalizer,
            destination.user_exists,
            skip_avatars=config.skip_avatars,
            include_timestamps=not self.strategy.preserves_timestamps,
        )

        self.labels: list[Label] = []
        self.milestones: list[Milestone] = []
        self.issues: list[Record] = []
        self.pulls: list[Record] = []

        logger.info(
            f"Initialized transfer {config.source_repo} -> {config.destination_repo} "
            f"(strategy: {self.strategy.name}, dry run: {config.dry_run})"
        )

    @classmethod
    def from_config(
        cls,
        config: TransferConfig,
        *,
        source_token: str | None,
        destination_token: str | None,
    ) -> IssueTransfer:
        """Build the source, destination and rules for a run.

        Raises:
            ConfigurationError: Missing tokens, missing destination repository or bad rule file
        """
        if not source_token:
            msg = f"A source token is required (set {SOURCE_TOKEN_ENV_VAR} or use --src-pass-token)"
            raise ConfigurationError(msg)
        if not destination_token and not config.dry_run:
            msg = f"A destination token is required (set {DESTINATION_TOKEN_ENV_VAR} or use --dst-pass-token)"
            raise ConfigurationError(msg)

        normalizer = TextNormalizer(load_replacement_rules(config.replace_file))
        source = GitHubGraphQLSource(config.source_repo, token=source_token, graphql_url=config.source_graphql_url)

        destination: DestinationAPI
        if destination_token:
            client = ghu.get_client(destination_token, config.destination_endpoint)
            github_destination = GitHubDestination(client, ghu.get_repo(client, config.destination_repo))
            destination = DryRunDestination(github_destination) if config.dry_run else github_destination
        else:
            logger.warning("Dry run without a destination token: every assignee is assumed to exist")
            destination = DryRunDestination()

        return cls(config, source, destination, normalizer=normalizer)

    def fetch(self) -> None:
        """Read everything needed for the run from the source."""
        if not self.config.skip_labels:
            self.labels = self.source.get_labels()
        if not self.config.skip_milestones:
            self.milestones = self.source.get_milestones()
        self.issues = self.source.get_issues()
        self.pulls = self.source.get_pulls()

    def migrate_records(self, stats: TransferStats) -> None:
        """Create one destination issue per slot, strictly in slot order."""
        fill_gaps = self.config.fill_gaps
        if not fill_gaps:
            logger.warning(
                "Not waiting for imports: destination numbers may differ from source numbers "
                "and gaps in the source numbering are not filled"
            )

        for slot in sequence_slots(self.issues, self.pulls, fill_gaps=fill_gaps):
            payload = self.builder.build(slot)
            outcome = self.strategy.submit(payload)

            if isinstance(slot, Placeholder):
                stats.placeholders_created += 1
            else:
                stats.records_migrated += 1
            stats.comments_created += outcome.comments_created
            stats.comments_dropped += outcome.comments_dropped

        logger.info(
            f"Migrated {stats.records_migrated} issues and pull requests "
            f"with {stats.placeholders_created} placeholders"
        )

    def migrate(self) -> TransferStats:
        """Execute the complete transfer."""
        stats = TransferStats()
        logger.info(f"Starting transfer {self.config.source_repo} -> {self.config.destination_repo}")

        self.fetch()

        if not self.config.skip_labels:
            stats.labels_created = migrate_labels(self.labels, self.destination)
        if not self.config.skip_milestones:
            stats.milestones_created = migrate_milestones(self.milestones, self.destination)

        self.migrate_records(stats)

        logger.info("Transfer completed successfully")
        return stats

    def show_assignees(self) -> list[tuple[int, str]]:
        """List (number, destination login) for every record whose assignee exists on the destination."""
        self.issues = self.source.get_issues()
        self.pulls = self.source.get_pulls()

        assignees: list[tuple[int, str]] = []
        for record in [*self.issues, *self.pulls]:
            login = self.normalizer.resolve_assignee(record.assignee_login, self.destination.user_exists)
            if login:
                assignees.append((record.number, login))
        return assignees
