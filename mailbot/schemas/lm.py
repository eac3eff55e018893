"""Schemas for the untrusted LM payload and the outcome of mapping it."""

from enum import StrEnum

from pydantic import BaseModel

from mailbot.schemas.actions import ActionDecision

# --- LM Output Schema (untrusted) ---


class LMActionEntry(BaseModel):
    """One element of the LM's JSON actions array."""

    action: str
    parameters: dict[str, str] | None = None


class LMDecisionResponse(BaseModel):
    """Object form of the payload: ``{"actions": [...]}``."""

    actions: list[LMActionEntry]


# --- Mapping result ---


class RejectionReason(StrEnum):
    """Why an LM payload produced no decision."""

    PARSE_ERROR = "parse_error"
    UNKNOWN_ACTION = "unknown_action"
    MISSING_PARAMETER = "missing_parameter"
    INVALID_PARAMETER = "invalid_parameter"


class Rejection(BaseModel):
    """Structured reason a payload was discarded, for logging.

    ``index`` is the position of the offending entry, or None for a
    parse error.
    """

    reason: RejectionReason
    index: int | None = None
    action: str | None = None
    parameter: str | None = None
    value: str | None = None
    detail: str = ""


class MappingResult(BaseModel):
    """Either a fully validated decision or a rejection, never both."""

    decision: ActionDecision | None = None
    rejection: Rejection | None = None
