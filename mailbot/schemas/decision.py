"""Schemas for the result of one decision request."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from mailbot.schemas.actions import ActionDecision
from mailbot.schemas.custom_rules import CustomRule
from mailbot.schemas.lm import Rejection


class DecisionState(StrEnum):
    """Terminal state of a decision request."""

    DECIDED = "decided"
    FAILED = "failed"  # classifier call raised
    NEEDS_BODY = "needs_body"  # host should ask again once the body is available


class DecisionSource(StrEnum):
    """Which stage produced the decision."""

    CUSTOM_RULE = "custom_rule"
    CLASSIFIER = "classifier"
    NONE = "none"


class DecisionOutcome(BaseModel):
    """What the orchestrator hands back to the mail host.

    ``decision`` is ``None`` for "no decision". When ``state`` is FAILED,
    ``error`` holds the exception raised by the classifier so the host can
    apply its own retry policy.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: DecisionState
    source: DecisionSource = DecisionSource.NONE
    decision: ActionDecision | None = None
    rule: CustomRule | None = None
    rejection: Rejection | None = None
    error: Exception | None = Field(default=None, exclude=True)
