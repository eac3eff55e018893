"""Single source of truth for all configuration and secrets.

All modules import from here — never from os.environ directly.

Values come from secrets/internal.env (or secrets/internal.env.enc when
MAILBOT_USE_SOPS=true); process environment variables override them.
"""

import os
from pathlib import Path

from mailbot.secrets import overlay_environ, read_env_file

PROJECT_ROOT = Path(__file__).resolve().parent.parent

USE_SOPS = os.environ.get("MAILBOT_USE_SOPS", "false").lower() == "true"

_KEYS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "OPENAI_TIMEOUT",
    "CUSTOM_RULES_PATH",
    "MAX_BODY_CHARS",
)


def _load(scope: str) -> dict[str, str | None]:
    """Load settings for a scope, file first, environment on top."""
    if USE_SOPS:
        values = read_env_file(PROJECT_ROOT / f"secrets/{scope}.env.enc", encrypted=True)
    else:
        values = read_env_file(PROJECT_ROOT / f"secrets/{scope}.env")
    return overlay_environ(values, _KEYS)


_internal = _load("internal")

# --- LM provider ---
OPENAI_API_KEY: str = _internal.get("OPENAI_API_KEY") or ""
OPENAI_BASE_URL: str = _internal.get("OPENAI_BASE_URL") or "https://api.openai.com/v1"
OPENAI_MODEL: str = _internal.get("OPENAI_MODEL") or "gpt-4o"
OPENAI_TIMEOUT: float = float(_internal.get("OPENAI_TIMEOUT") or "60")

# --- Decision pipeline ---
CUSTOM_RULES_PATH: str = _internal.get("CUSTOM_RULES_PATH") or str(
    PROJECT_ROOT / "data" / "custom_rules.json"
)
# Body cap applied by the .eml adapter (0 = no limit).
MAX_BODY_CHARS: int = int(_internal.get("MAX_BODY_CHARS") or "0")
