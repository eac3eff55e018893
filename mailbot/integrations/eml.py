"""Build MessageSnapshots from raw RFC 822 messages (.eml files).

This is the host-side adapter used by the CLI. It is also where prompt
size is capped: the decision pipeline itself never truncates the body.
"""

import logging
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import formataddr, getaddresses

from mailbot.schemas.message import EncryptionState, MessageSnapshot, MessageState

logger = logging.getLogger(__name__)

_ENCRYPTED_CONTENT_TYPES = {"multipart/encrypted", "application/pkcs7-mime"}


def _addresses(msg: EmailMessage, header: str) -> tuple[str, ...]:
    values = [str(v) for v in msg.get_all(header, [])]
    return tuple(formataddr(pair) for pair in getaddresses(values) if pair[1])


def _headers(msg: EmailMessage) -> dict[str, tuple[str, ...]]:
    grouped: dict[str, list[str]] = {}
    for name, value in msg.items():
        grouped.setdefault(name, []).append(str(value))
    return {name: tuple(values) for name, values in grouped.items()}


def _encryption_state(msg: EmailMessage) -> EncryptionState:
    if msg.get_content_type() in _ENCRYPTED_CONTENT_TYPES:
        return EncryptionState.ENCRYPTED
    return EncryptionState.NOT_ENCRYPTED


def _decode_raw(data: bytes) -> str:
    """Raw message source as text, or "" if it is not valid UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Message source is not valid UTF-8, sending empty body")
        return ""


def snapshot_from_eml(
    data: bytes,
    *,
    state: MessageState = MessageState.RECEIVED,
    max_body_chars: int | None = None,
) -> MessageSnapshot:
    """Parse raw message bytes into a MessageSnapshot.

    Args:
        data: The full RFC 822 message source.
        state: Lifecycle state reported by the host.
        max_body_chars: If set (and > 0), cap the body at this many
            characters before it reaches the prompt.
    """
    msg = BytesParser(policy=policy.default).parsebytes(data)

    to = _addresses(msg, "To")
    cc = _addresses(msg, "Cc")
    bcc = _addresses(msg, "Bcc")

    body = _decode_raw(data)
    if max_body_chars and len(body) > max_body_chars:
        body = body[:max_body_chars] + "\n\n[... content truncated ...]"

    return MessageSnapshot(
        state=state,
        encryption_state=_encryption_state(msg),
        subject=str(msg.get("Subject", "")),
        from_address=str(msg.get("From", "")),
        to=to,
        cc=cc,
        bcc=bcc,
        reply_to=_addresses(msg, "Reply-To"),
        all_recipients=to + cc + bcc,
        headers=_headers(msg),
        raw_body=body,
    )
