"""Prompt builder executor — renders a message snapshot into the LM prompt.

Stateless and deterministic: the same snapshot always yields the same
prompt. The body is passed through untouched; callers that need to cap
prompt size should truncate before building the snapshot.
"""

import json

from mailbot.schemas.message import MessageSnapshot
from mailbot.vocabulary import ACTIONS_DESCRIPTION

SYSTEM_PROMPT = (
    "You are an email automation assistant. "
    "Only select from the allowed actions provided."
)

USER_PROMPT = """\
{actions}

Analyze the following email and decide which of the above actions to perform. \
Respond ONLY in JSON format as follows:

[{{
  "action": "<action>",
  "parameters": {{ "key": "value", ... }}
}}, ...]

Omit "parameters" for actions that do not require any. \
Respond with [] if no action should be taken. \
Make sure you match the casing and spelling of the actions and parameters \
exactly as shown above.

Email State: {state}
Encryption State: {encryption_state}
Subject: {subject}
From: {from_address}
To: {to}
CC: {cc}
BCC: {bcc}
Reply-To: {reply_to}
All Recipients: {all_recipients}
Headers:
{headers}

Email Content:
{body}
"""


def _render_addresses(addresses: tuple[str, ...]) -> str:
    return json.dumps(list(addresses), ensure_ascii=False)


def _render_headers(headers: dict[str, tuple[str, ...]]) -> str:
    return "\n".join(f"{name}: {', '.join(values)}" for name, values in headers.items())


def build_prompt(snapshot: MessageSnapshot) -> str:
    """Build the user prompt for one message."""
    return USER_PROMPT.format(
        actions=ACTIONS_DESCRIPTION,
        state=snapshot.state.value,
        encryption_state=snapshot.encryption_state.value,
        subject=snapshot.subject,
        from_address=snapshot.from_address,
        to=_render_addresses(snapshot.to),
        cc=_render_addresses(snapshot.cc),
        bcc=_render_addresses(snapshot.bcc),
        reply_to=_render_addresses(snapshot.reply_to),
        all_recipients=_render_addresses(snapshot.all_recipients),
        headers=_render_headers(snapshot.headers),
        body=snapshot.raw_body or "",
    )
