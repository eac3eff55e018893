"""Custom sender rules for deterministic email handling.

Rules are matched in declaration order by case-insensitive substring
containment against the sender address; the first match wins and the LM
is never consulted. The engine is immutable after construction, so one
instance can be shared by concurrent decisions.
"""

import json
import logging
from collections.abc import Iterable
from email.utils import parseaddr
from pathlib import Path

from mailbot.executors.response_mapper import map_entries
from mailbot.schemas.actions import (
    ActionDecision,
    ActionKind,
    FlagAction,
    FlagColor,
    PlainAction,
)
from mailbot.schemas.custom_rules import CustomRule, CustomRulesFile

logger = logging.getLogger(__name__)


class CustomRulesError(Exception):
    """A rule in the custom rules file names an invalid action or parameter."""


DEFAULT_RULES: tuple[CustomRule, ...] = (
    CustomRule(
        sender_contains="restaurant.com",
        description="Restaurant receipts: flag red and archive.",
        decision=ActionDecision(
            actions=[
                FlagAction(color=FlagColor.RED),
                PlainAction(kind=ActionKind.MOVE_TO_ARCHIVE),
            ]
        ),
    ),
)


def _normalize_sender(address: str | None) -> str | None:
    """Extract the bare, lower-cased address, or None if there is none."""
    if not address or not address.strip():
        return None
    _, addr = parseaddr(address)
    addr = addr.strip().lower()
    return addr or None


class CustomRuleEngine:
    """Ordered, read-only list of sender rules.

    Usage::

        engine = CustomRuleEngine.load("data/custom_rules.json")
        decision = engine.match("billing@restaurant.com")
        if decision is not None:
            ...  # apply without asking the LM
    """

    def __init__(self, rules: Iterable[CustomRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    @classmethod
    def load(cls, path: str | Path) -> "CustomRuleEngine":
        """Load rules from a JSON file.

        If the file does not exist, returns an engine with the default rules.
        Each rule's actions go through the same all-or-nothing validation
        as an LM response.

        Raises:
            json.JSONDecodeError: If the file is not JSON.
            pydantic.ValidationError: If the file does not have the rules
                shape (missing fields, empty matcher).
            CustomRulesError: If a rule names an unknown action or a
                missing/invalid parameter.
        """
        path = Path(path)
        if not path.exists():
            logger.info("Custom rules file not found at %s, using default rules", path)
            return cls(DEFAULT_RULES)

        raw = json.loads(path.read_text())
        data = CustomRulesFile.model_validate(raw)

        rules: list[CustomRule] = []
        for i, entry in enumerate(data.rules):
            result = map_entries(entry.actions)
            if result.decision is None:
                raise CustomRulesError(
                    f"Rule {i} ('{entry.sender_contains}') in {path}: {result.rejection.detail}"
                )
            rules.append(
                CustomRule(
                    sender_contains=entry.sender_contains,
                    description=entry.description,
                    decision=result.decision,
                )
            )

        logger.info("Loaded %d custom rule(s) from %s", len(rules), path)
        return cls(rules)

    @property
    def rules(self) -> tuple[CustomRule, ...]:
        return self._rules

    def match_rule(self, from_address: str | None) -> CustomRule | None:
        """Return the first rule whose substring occurs in the sender address."""
        sender = _normalize_sender(from_address)
        if sender is None:
            return None
        for rule in self._rules:
            if rule.sender_contains.lower() in sender:
                return rule
        return None

    def match(self, from_address: str | None) -> ActionDecision | None:
        """Return the first matching rule's decision, or None."""
        rule = self.match_rule(from_address)
        if rule is None:
            return None
        logger.debug("Sender %s matched custom rule '%s'", from_address, rule.sender_contains)
        return rule.decision
