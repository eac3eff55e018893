"""The closed action vocabulary shared by the prompt and the response mapper.

Both the description shown to the LM and the validation of its answer are
derived from the enums in ``mailbot.schemas.actions``, so the strings the
LM is told to use are exactly the strings the mapper accepts.
"""

from enum import StrEnum

from mailbot.schemas.actions import (
    ActionDecision,
    ActionKind,
    BackgroundColor,
    BackgroundColorAction,
    FlagAction,
    FlagColor,
    MessageAction,
    PlainAction,
)

# Required parameters per action, each with its own allowed-value enum.
ACTION_PARAMETERS: dict[ActionKind, dict[str, type[StrEnum]]] = {
    ActionKind.FLAG: {"color": FlagColor},
    ActionKind.SET_BACKGROUND_COLOR: {"color": BackgroundColor},
}

_PARAMETERIZED_MODELS = {
    ActionKind.FLAG: FlagAction,
    ActionKind.SET_BACKGROUND_COLOR: BackgroundColorAction,
}


def lookup(name: str) -> ActionKind | None:
    """Exact, case-sensitive lookup of an action name."""
    try:
        return ActionKind(name)
    except ValueError:
        return None


def required_parameters(kind: ActionKind) -> tuple[str, ...]:
    return tuple(ACTION_PARAMETERS.get(kind, {}))


def allowed_values(kind: ActionKind, parameter: str) -> tuple[str, ...]:
    """Allowed values of ``parameter`` for this specific action."""
    enum_cls = ACTION_PARAMETERS.get(kind, {}).get(parameter)
    if enum_cls is None:
        return ()
    return tuple(member.value for member in enum_cls)


def build_action(kind: ActionKind, parameters: dict[str, str] | None = None) -> MessageAction:
    """Construct the typed action for an already-validated kind and parameters.

    Raises:
        pydantic.ValidationError: If a required parameter is missing or
            outside the action's enumeration.
    """
    model = _PARAMETERIZED_MODELS.get(kind)
    if model is None:
        return PlainAction(kind=kind)
    params = parameters or {}
    return model(**{name: params.get(name) for name in ACTION_PARAMETERS[kind]})


def encode(decision: ActionDecision) -> list[dict]:
    """Render a decision in the LM wire format.

    Feeding ``json.dumps(encode(decision))`` back through the response
    mapper yields an equal decision.
    """
    payload: list[dict] = []
    for action in decision.actions:
        entry: dict = {"action": action.kind.value}
        params = {
            name: getattr(action, name).value
            for name in required_parameters(action.kind)
        }
        if params:
            entry["parameters"] = params
        payload.append(entry)
    return payload


def describe() -> str:
    """Human-readable vocabulary, embedded verbatim in the LM prompt."""
    lines = ["The permitted actions are:"]
    for kind in ActionKind:
        params = ACTION_PARAMETERS.get(kind)
        if not params:
            lines.append(f"- {kind.value}")
            continue
        requirements = "; ".join(
            f'requires a parameter "{name}" which can be one of '
            f"[{', '.join(allowed_values(kind, name))}]"
            for name in params
        )
        lines.append(f"- {kind.value}: {requirements}")
    return "\n".join(lines)


ACTIONS_DESCRIPTION = describe()
