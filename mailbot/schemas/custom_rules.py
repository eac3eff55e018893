"""Schemas for user-defined sender rules.

A custom rule short-circuits LM classification: when the sender address
contains ``sender_contains`` (case-insensitive), its fixed decision is
returned as-is.

Rule files spell actions in the same wire format the LM answers with,
so one vocabulary and one validator cover both.
"""

from pydantic import BaseModel, ConfigDict, Field

from mailbot.schemas.actions import ActionDecision
from mailbot.schemas.lm import LMActionEntry


class CustomRule(BaseModel):
    """A sender-substring matcher paired with a fixed decision."""

    model_config = ConfigDict(frozen=True)

    sender_contains: str = Field(min_length=1)
    decision: ActionDecision
    description: str = ""


class CustomRuleEntry(BaseModel):
    """One rule as written in custom_rules.json (actions not yet validated)."""

    sender_contains: str = Field(min_length=1)
    description: str = ""
    actions: list[LMActionEntry] = Field(default_factory=list)


class CustomRulesFile(BaseModel):
    """Top-level schema for the custom_rules.json file."""

    rules: list[CustomRuleEntry] = Field(default_factory=list)
