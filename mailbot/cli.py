"""CLI entry point for MailBot.

Commands:
    mailbot decide       — run the full decision pipeline on an .eml file
    mailbot prompt       — print the LM prompt for an .eml file (no LM call)
    mailbot map          — validate a raw LM response
    mailbot actions      — print the permitted action vocabulary
    mailbot rules list   — show the custom sender rules
    mailbot rules check  — show which rule (if any) matches a sender
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from mailbot import vocabulary
from mailbot.config import (
    CUSTOM_RULES_PATH,
    MAX_BODY_CHARS,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENAI_MODEL,
    OPENAI_TIMEOUT,
)
from mailbot.custom_rules import CustomRuleEngine, CustomRulesError
from mailbot.executors.prompt_builder import build_prompt
from mailbot.executors.response_mapper import map_response
from mailbot.integrations.eml import snapshot_from_eml
from mailbot.integrations.openai import OpenAIClient
from mailbot.orchestrator.decision import decide as decide_message
from mailbot.schemas.actions import ActionDecision
from mailbot.schemas.decision import DecisionOutcome, DecisionState

logger = logging.getLogger("mailbot")


def _validate_config() -> None:
    """Fail loudly if required config is missing."""
    if not OPENAI_API_KEY:
        click.echo("Error: Missing required config: OPENAI_API_KEY", err=True)
        click.echo("Set it in secrets/internal.env, via SOPS, or in the environment.", err=True)
        sys.exit(1)


def _format_decision(decision: ActionDecision | None) -> str:
    if decision is None:
        return "no decision"
    if not decision.actions:
        return "(no actions)"
    parts = []
    for entry in vocabulary.encode(decision):
        params = entry.get("parameters")
        if params:
            parts.append(f"{entry['action']}({', '.join(params.values())})")
        else:
            parts.append(entry["action"])
    return ", ".join(parts)


def _outcome_to_json(outcome: DecisionOutcome) -> dict:
    return {
        "state": outcome.state.value,
        "source": outcome.source.value,
        "decision": (
            vocabulary.encode(outcome.decision) if outcome.decision is not None else None
        ),
        "rule": outcome.rule.sender_contains if outcome.rule else None,
        "rejection": (
            outcome.rejection.model_dump(mode="json", exclude_none=True)
            if outcome.rejection
            else None
        ),
        "error": str(outcome.error) if outcome.error else None,
    }


def _load_snapshot(eml_file: str):
    return snapshot_from_eml(Path(eml_file).read_bytes(), max_body_chars=MAX_BODY_CHARS)


def _load_rules(rules_path: str) -> CustomRuleEngine:
    """Load custom rules, exiting with a one-line error if the file is invalid."""
    try:
        return CustomRuleEngine.load(rules_path)
    except (CustomRulesError, ValueError) as exc:
        # JSONDecodeError and ValidationError are both ValueError subclasses.
        first = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        click.echo(f"Error: invalid custom rules file {rules_path}: {first}", err=True)
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """MailBot — rule and LM driven actions for incoming email."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ------------------------------------------------------------------
# mailbot decide
# ------------------------------------------------------------------


@cli.command()
@click.argument("eml_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--model", "-m", default=None, help=f"LM model name (default: {OPENAI_MODEL}).")
@click.option(
    "--rules",
    "rules_path",
    default=CUSTOM_RULES_PATH,
    show_default=True,
    help="Path to the custom rules JSON file.",
)
def decide(eml_file: str, model: str | None, rules_path: str) -> None:
    """Decide which actions to apply to an .eml message."""
    rules = _load_rules(rules_path)
    snapshot = _load_snapshot(eml_file)

    # A custom rule needs no LM, so only require the API key otherwise.
    if rules.match_rule(snapshot.from_address) is None:
        _validate_config()

    outcome = asyncio.run(_decide_async(snapshot, rules, model or OPENAI_MODEL))
    click.echo(json.dumps(_outcome_to_json(outcome), indent=2))
    if outcome.state == DecisionState.FAILED:
        click.echo(f"Error: LM classification failed: {outcome.error}", err=True)
        sys.exit(1)


async def _decide_async(snapshot, rules: CustomRuleEngine, model: str) -> DecisionOutcome:
    async with OpenAIClient(
        OPENAI_API_KEY,
        base_url=OPENAI_BASE_URL,
        model=model,
        timeout=OPENAI_TIMEOUT,
    ) as client:
        return await decide_message(snapshot, client.classify, rules=rules)


# ------------------------------------------------------------------
# mailbot prompt / map / actions
# ------------------------------------------------------------------


@cli.command()
@click.argument("eml_file", type=click.Path(exists=True, dir_okay=False))
def prompt(eml_file: str) -> None:
    """Print the prompt that would be sent to the LM."""
    click.echo(build_prompt(_load_snapshot(eml_file)))


@cli.command("map")
@click.argument("text", default="-")
def map_command(text: str) -> None:
    """Validate a raw LM response (use - to read stdin)."""
    raw = click.get_text_stream("stdin").read() if text == "-" else text
    result = map_response(raw)
    if result.decision is None:
        rejection = result.rejection
        click.echo(f"No decision ({rejection.reason.value}): {rejection.detail}")
        return
    click.echo(_format_decision(result.decision))
    click.echo(json.dumps(vocabulary.encode(result.decision)))


@cli.command()
def actions() -> None:
    """Print the permitted actions as shown to the LM."""
    click.echo(vocabulary.ACTIONS_DESCRIPTION)


# ------------------------------------------------------------------
# mailbot rules
# ------------------------------------------------------------------


@cli.group()
def rules() -> None:
    """Inspect custom sender rules."""


@rules.command("list")
@click.option("--rules", "rules_path", default=CUSTOM_RULES_PATH, show_default=True)
def rules_list(rules_path: str) -> None:
    """List custom rules in evaluation order."""
    engine = _load_rules(rules_path)
    if not engine.rules:
        click.echo("No custom rules configured.")
        return
    for i, rule in enumerate(engine.rules, 1):
        click.echo(f"{i}. *{rule.sender_contains}* -> {_format_decision(rule.decision)}")
        if rule.description:
            click.echo(f"   {rule.description}")


@rules.command("check")
@click.argument("address")
@click.option("--rules", "rules_path", default=CUSTOM_RULES_PATH, show_default=True)
def rules_check(address: str, rules_path: str) -> None:
    """Show which custom rule matches ADDRESS."""
    engine = _load_rules(rules_path)
    rule = engine.match_rule(address)
    if rule is None:
        click.echo(f"No custom rule matches {address}; the LM would be asked.")
        return
    click.echo(f"Matched '{rule.sender_contains}': {_format_decision(rule.decision)}")
