"""Decision orchestrator — the single entry point the mail host calls.

Custom rules are consulted first and short-circuit the LM. Otherwise the
prompt is built, the injected classifier is awaited once, and its answer
is mapped. The orchestrator holds no state between calls.

The classifier is the only suspension point. No retry, timeout or
cancellation handling happens here; wrap ``classify`` for that and let it
raise on failure.
"""

import logging
from collections.abc import Awaitable, Callable

from mailbot.custom_rules import CustomRuleEngine
from mailbot.executors.prompt_builder import build_prompt
from mailbot.executors.response_mapper import map_response
from mailbot.schemas.decision import DecisionOutcome, DecisionSource, DecisionState
from mailbot.schemas.message import MessageSnapshot

logger = logging.getLogger(__name__)

Classifier = Callable[[str], Awaitable[str]]


async def decide(
    snapshot: MessageSnapshot,
    classify: Classifier,
    *,
    rules: CustomRuleEngine | None = None,
) -> DecisionOutcome:
    """Decide which actions to apply to a message.

    Args:
        snapshot: The message to decide on.
        classify: Async callable taking the prompt and returning the raw
            LM text. Any exception it raises is treated as a transport or
            provider failure.
        rules: Custom sender rules. Defaults to the built-in rule set.

    Returns:
        DecisionOutcome. ``decision`` is None for "no decision"; in the
        FAILED state ``error`` carries the classifier's exception.
    """
    engine = rules if rules is not None else CustomRuleEngine()

    rule = engine.match_rule(snapshot.from_address)
    if rule is not None:
        logger.info(
            "Custom rule '%s' matched sender %s: %d action(s)",
            rule.sender_contains,
            snapshot.from_address,
            len(rule.decision.actions),
        )
        return DecisionOutcome(
            state=DecisionState.DECIDED,
            source=DecisionSource.CUSTOM_RULE,
            decision=rule.decision,
            rule=rule,
        )

    if snapshot.raw_body is None:
        logger.info("Body not available for '%s', asking host to retry with body", snapshot.subject)
        return DecisionOutcome(state=DecisionState.NEEDS_BODY)

    prompt = build_prompt(snapshot)
    logger.info("Classifying email: %s from %s", snapshot.subject, snapshot.from_address)

    try:
        raw_text = await classify(prompt)
    except Exception as exc:
        logger.error("LM classification failed for '%s': %s", snapshot.subject, exc)
        return DecisionOutcome(
            state=DecisionState.FAILED,
            source=DecisionSource.CLASSIFIER,
            error=exc,
        )

    result = map_response(raw_text)
    if result.decision is not None:
        logger.info(
            "Email '%s': %d action(s) from classifier",
            snapshot.subject,
            len(result.decision.actions),
        )
    return DecisionOutcome(
        state=DecisionState.DECIDED,
        source=DecisionSource.CLASSIFIER,
        decision=result.decision,
        rejection=result.rejection,
    )
