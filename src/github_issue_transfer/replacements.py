"""
Find/replace rules applied to bodies and assignee logins before submission.

The rule file is YAML with two ordered lists::

    user:
      - wrong: old-login
        right: new-login
    body:
      - wrong: https://old.example.com/
        right: https://new.example.com/
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplacementRule:
    wrong: str
    right: str


@dataclass(frozen=True)
class ReplacementRules:
    """Two disjoint, ordered rule sets."""

    user: tuple[ReplacementRule, ...] = ()
    body: tuple[ReplacementRule, ...] = ()


def _parse_rules(raw: Any, section: str, path: Path) -> tuple[ReplacementRule, ...]:  # noqa: ANN401 - raw YAML
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"Invalid replacement file {path}: '{section}' must be a list"
        raise ConfigurationError(msg)

    rules: list[ReplacementRule] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict) or "wrong" not in entry or "right" not in entry:
            msg = f"Invalid replacement file {path}: {section}[{index}] needs 'wrong' and 'right'"
            raise ConfigurationError(msg)
        wrong = entry["wrong"]
        if not isinstance(wrong, str):
            msg = f"Invalid replacement file {path}: {section}[{index}] 'wrong' must be a string, got {wrong!r}"
            raise ConfigurationError(msg)
        if not wrong:
            msg = f"Invalid replacement file {path}: {section}[{index}] has an empty 'wrong' value"
            raise ConfigurationError(msg)
        # A null 'right' deletes the match; other scalars keep their string form
        right = "" if entry["right"] is None else str(entry["right"])
        rules.append(ReplacementRule(wrong=wrong, right=right))
    return tuple(rules)


def load_replacement_rules(path: Path | str) -> ReplacementRules:
    """Load replacement rules from a YAML file.

    A missing file means "no rules". An unreadable or malformed file raises
    ConfigurationError.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No replacement file at {path}, text is migrated unchanged")
        return ReplacementRules()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read replacement file {path}: {e}"
        raise ConfigurationError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in replacement file {path}: {e}"
        raise ConfigurationError(msg) from e

    if not isinstance(raw, dict):
        msg = f"Invalid replacement file {path}: expected a mapping with 'user' and 'body'"
        raise ConfigurationError(msg)

    rules = ReplacementRules(
        user=_parse_rules(raw.get("user"), "user", path),
        body=_parse_rules(raw.get("body"), "body", path),
    )
    logger.info(f"Loaded {len(rules.user)} user and {len(rules.body)} body replacement rules from {path}")
    return rules


class TextNormalizer:
    """Applies replacement rules to body text and assignee logins."""

    def __init__(self, rules: ReplacementRules | None = None) -> None:
        self.rules: ReplacementRules = rules or ReplacementRules()

    def normalize_body(self, text: str) -> str:
        """Apply every body rule in order, replacing all occurrences."""
        for rule in self.rules.body:
            text = text.replace(rule.wrong, rule.right)
        return text

    def replace_user(self, login: str) -> str:
        """Return the replacement for an exact login match, or the login unchanged."""
        for rule in self.rules.user:
            if rule.wrong == login:
                return rule.right
        return login

    def resolve_assignee(self, login: str | None, user_exists: Callable[[str], bool]) -> str | None:
        """Map a source login to a destination login, or None if the destination has no such user."""
        if not login:
            return None
        resolved = self.replace_user(login)
        if not user_exists(resolved):
            logger.debug(f"Assignee {resolved} (source: {login}) not found on destination, omitting")
            return None
        return resolved
