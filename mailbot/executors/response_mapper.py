"""Response mapper executor — validates the LM's answer into an ActionDecision.

The LM payload is untrusted. Mapping is all-or-nothing: one unknown
action or bad parameter anywhere in the array discards the whole batch,
and the result is "no decision" rather than a partial one. Nothing here
raises on malformed input; every failure becomes a Rejection.
"""

import json
import logging
import re

from pydantic import TypeAdapter, ValidationError

from mailbot import vocabulary
from mailbot.schemas.actions import ActionDecision
from mailbot.schemas.lm import (
    LMActionEntry,
    LMDecisionResponse,
    MappingResult,
    Rejection,
    RejectionReason,
)

logger = logging.getLogger(__name__)

_ENTRIES = TypeAdapter(list[LMActionEntry])

# LMs often wrap JSON in a Markdown fence even when told not to.
_FENCE_RE = re.compile(r"^```[A-Za-z]*\s*\n(.*?)\n?```$", re.DOTALL)


def _strip_fence(text: str) -> str:
    text = text.strip()
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def parse_payload(raw_text: str) -> list[LMActionEntry]:
    """Parse raw LM text into action entries.

    Accepts either a bare JSON array of entries or ``{"actions": [...]}``.

    Raises:
        ValueError: If the text is not JSON or does not have that shape
            (``json.JSONDecodeError`` and ``pydantic.ValidationError`` are
            both ValueError subclasses).
    """
    if not isinstance(raw_text, str):
        raise ValueError(f"Expected text, got {type(raw_text).__name__}")
    data = json.loads(_strip_fence(raw_text))
    if isinstance(data, list):
        return _ENTRIES.validate_python(data)
    if isinstance(data, dict):
        return LMDecisionResponse.model_validate(data).actions
    raise ValueError(f"Expected a JSON array or object, got {type(data).__name__}")


def _reject(rejection: Rejection) -> MappingResult:
    logger.warning(
        "Rejected actions (%s) at entry %s, action=%r parameter=%r value=%r: %s",
        rejection.reason.value,
        rejection.index,
        rejection.action,
        rejection.parameter,
        rejection.value,
        rejection.detail,
    )
    return MappingResult(rejection=rejection)


def map_entries(entries: list[LMActionEntry]) -> MappingResult:
    """Validate parsed entries in order; any invalid entry rejects them all."""
    actions = []
    for index, entry in enumerate(entries):
        kind = vocabulary.lookup(entry.action)
        if kind is None:
            return _reject(
                Rejection(
                    reason=RejectionReason.UNKNOWN_ACTION,
                    index=index,
                    action=entry.action,
                    detail=f"'{entry.action}' is not a permitted action",
                )
            )

        parameters = entry.parameters or {}
        for name in vocabulary.required_parameters(kind):
            value = parameters.get(name)
            if value is None:
                return _reject(
                    Rejection(
                        reason=RejectionReason.MISSING_PARAMETER,
                        index=index,
                        action=entry.action,
                        parameter=name,
                        detail=f"'{entry.action}' requires parameter '{name}'",
                    )
                )
            allowed = vocabulary.allowed_values(kind, name)
            if value not in allowed:
                return _reject(
                    Rejection(
                        reason=RejectionReason.INVALID_PARAMETER,
                        index=index,
                        action=entry.action,
                        parameter=name,
                        value=value,
                        detail=f"'{name}' for '{entry.action}' must be one of {list(allowed)}",
                    )
                )

        actions.append(vocabulary.build_action(kind, parameters))

    return MappingResult(decision=ActionDecision(actions=actions))


def map_response(raw_text: str) -> MappingResult:
    """Map raw LM text to a validated decision or a rejection.

    An empty array maps to an empty (but valid) decision, which is
    distinct from "no decision".
    """
    try:
        entries = parse_payload(raw_text)
    except (ValueError, RecursionError) as exc:
        return _reject(
            Rejection(
                reason=RejectionReason.PARSE_ERROR,
                detail=str(exc).splitlines()[0] if str(exc) else type(exc).__name__,
            )
        )

    result = map_entries(entries)
    if result.decision is not None:
        logger.debug("Mapped LM response to %d action(s)", len(result.decision.actions))
    return result
