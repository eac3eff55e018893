"""Tests for the MailBot CLI.

Uses Click's CliRunner so no real LM connections are required.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from click.testing import CliRunner

from mailbot.cli import cli

EML = b"""\
From: Friend <friend@example.com>
To: me@example.com
Subject: Weekend plans

Want to go hiking?
"""

RESTAURANT_EML = b"""\
From: billing@restaurant.com
To: me@example.com
Subject: Receipt

Thanks!
"""


# --- Fixtures ---


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def eml_path(tmp_path):
    path = tmp_path / "message.eml"
    path.write_bytes(EML)
    return str(path)


@pytest.fixture
def restaurant_eml_path(tmp_path):
    path = tmp_path / "restaurant.eml"
    path.write_bytes(RESTAURANT_EML)
    return str(path)


@pytest.fixture
def missing_rules(tmp_path):
    """A rules path that does not exist, so the default rules apply."""
    return str(tmp_path / "no_rules.json")


@pytest.fixture
def rules_path(tmp_path):
    data = {
        "rules": [
            {
                "sender_contains": "friend@",
                "description": "Friends get a green background.",
                "actions": [{"action": "setBackgroundColor", "parameters": {"color": "green"}}],
            }
        ]
    }
    path = tmp_path / "custom_rules.json"
    path.write_text(json.dumps(data))
    return str(path)


# --- mailbot actions ---


class TestActions:
    def test_prints_vocabulary(self, runner):
        result = runner.invoke(cli, ["actions"])
        assert result.exit_code == 0
        assert "The permitted actions are:" in result.output
        assert "setBackgroundColor" in result.output


# --- mailbot prompt ---


class TestPrompt:
    def test_prints_prompt(self, runner, eml_path):
        result = runner.invoke(cli, ["prompt", eml_path])
        assert result.exit_code == 0
        assert "Subject: Weekend plans" in result.output
        assert "Want to go hiking?" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["prompt", str(tmp_path / "nope.eml")])
        assert result.exit_code != 0


# --- mailbot map ---


class TestMap:
    def test_valid(self, runner):
        result = runner.invoke(cli, ["map", '[{"action":"flag","parameters":{"color":"red"}}]'])
        assert result.exit_code == 0
        assert "flag(red)" in result.output

    def test_rejected(self, runner):
        result = runner.invoke(cli, ["map", "not json"])
        assert result.exit_code == 0
        assert "No decision (parse_error)" in result.output

    def test_empty(self, runner):
        result = runner.invoke(cli, ["map", "[]"])
        assert result.exit_code == 0
        assert "(no actions)" in result.output

    def test_stdin(self, runner):
        result = runner.invoke(cli, ["map"], input='[{"action":"moveToArchive"}]')
        assert result.exit_code == 0
        assert "moveToArchive" in result.output


# --- mailbot rules ---


class TestRules:
    def test_list_defaults(self, runner, missing_rules):
        result = runner.invoke(cli, ["rules", "list", "--rules", missing_rules])
        assert result.exit_code == 0
        assert "restaurant.com" in result.output
        assert "flag(red), moveToArchive" in result.output

    def test_list_from_file(self, runner, rules_path):
        result = runner.invoke(cli, ["rules", "list", "--rules", rules_path])
        assert result.exit_code == 0
        assert "friend@" in result.output
        assert "setBackgroundColor(green)" in result.output
        assert "Friends get a green background." in result.output

    def test_check_match(self, runner, missing_rules):
        result = runner.invoke(
            cli, ["rules", "check", "Billing@Restaurant.com", "--rules", missing_rules]
        )
        assert result.exit_code == 0
        assert "Matched 'restaurant.com'" in result.output

    def test_check_no_match(self, runner, missing_rules):
        result = runner.invoke(cli, ["rules", "check", "a@b.com", "--rules", missing_rules])
        assert result.exit_code == 0
        assert "No custom rule matches" in result.output


# --- mailbot decide ---


class TestDecide:
    def test_rule_match_needs_no_api_key(self, runner, restaurant_eml_path, missing_rules, monkeypatch):
        monkeypatch.setattr("mailbot.cli.OPENAI_API_KEY", "")
        with patch(
            "mailbot.cli.OpenAIClient.classify", new_callable=AsyncMock
        ) as mock_classify:
            result = runner.invoke(cli, ["decide", restaurant_eml_path, "--rules", missing_rules])

        assert result.exit_code == 0
        assert '"source": "custom_rule"' in result.output
        assert '"action": "moveToArchive"' in result.output
        mock_classify.assert_not_awaited()

    def test_missing_api_key(self, runner, eml_path, missing_rules, monkeypatch):
        monkeypatch.setattr("mailbot.cli.OPENAI_API_KEY", "")
        result = runner.invoke(cli, ["decide", eml_path, "--rules", missing_rules])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output

    def test_classifier_decision(self, runner, eml_path, missing_rules, monkeypatch):
        monkeypatch.setattr("mailbot.cli.OPENAI_API_KEY", "sk-test")
        with patch(
            "mailbot.cli.OpenAIClient.classify",
            new_callable=AsyncMock,
            return_value='[{"action":"markAsRead"}]',
        ):
            result = runner.invoke(cli, ["decide", eml_path, "--rules", missing_rules])

        assert result.exit_code == 0
        assert '"state": "decided"' in result.output
        assert '"source": "classifier"' in result.output
        assert '"action": "markAsRead"' in result.output

    def test_classifier_failure_exits_nonzero(self, runner, eml_path, missing_rules, monkeypatch):
        monkeypatch.setattr("mailbot.cli.OPENAI_API_KEY", "sk-test")
        with patch(
            "mailbot.cli.OpenAIClient.classify",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("unreachable"),
        ):
            result = runner.invoke(cli, ["decide", eml_path, "--rules", missing_rules])

        assert result.exit_code == 1
        assert '"state": "failed"' in result.output
        assert "LM classification failed" in result.output

    def test_custom_rules_file(self, runner, eml_path, rules_path, monkeypatch):
        monkeypatch.setattr("mailbot.cli.OPENAI_API_KEY", "")
        result = runner.invoke(cli, ["decide", eml_path, "--rules", rules_path])
        assert result.exit_code == 0
        assert '"color": "green"' in result.output


# --- invalid rules files ---


class TestInvalidRulesFile:
    @pytest.fixture
    def bad_color_rules(self, tmp_path):
        path = tmp_path / "custom_rules.json"
        path.write_text(json.dumps({
            "rules": [{
                "sender_contains": "x.com",
                "actions": [{"action": "flag", "parameters": {"color": "none"}}],
            }]
        }))
        return str(path)

    @pytest.fixture
    def malformed_rules(self, tmp_path):
        path = tmp_path / "custom_rules.json"
        path.write_text("{not json")
        return str(path)

    def test_list_malformed_json(self, runner, malformed_rules):
        result = runner.invoke(cli, ["rules", "list", "--rules", malformed_rules])
        assert result.exit_code == 1
        assert "invalid custom rules file" in result.output

    def test_check_invalid_color(self, runner, bad_color_rules):
        result = runner.invoke(cli, ["rules", "check", "a@x.com", "--rules", bad_color_rules])
        assert result.exit_code == 1
        assert "invalid custom rules file" in result.output
        assert "x.com" in result.output

    def test_decide_invalid_rules(self, runner, eml_path, bad_color_rules, monkeypatch):
        monkeypatch.setattr("mailbot.cli.OPENAI_API_KEY", "sk-test")
        with patch(
            "mailbot.cli.OpenAIClient.classify", new_callable=AsyncMock
        ) as mock_classify:
            result = runner.invoke(cli, ["decide", eml_path, "--rules", bad_color_rules])

        assert result.exit_code == 1
        assert "invalid custom rules file" in result.output
        mock_classify.assert_not_awaited()
