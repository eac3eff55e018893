"""Normalized, immutable view of an inbound message."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class MessageState(StrEnum):
    """Where the message is in its lifecycle."""

    RECEIVED = "received"
    DRAFT = "draft"
    SENDING = "sending"
    UNKNOWN = "unknown"


class EncryptionState(StrEnum):
    """Whether the message arrived encrypted."""

    ENCRYPTED = "encrypted"
    NOT_ENCRYPTED = "notEncrypted"
    UNKNOWN = "unknown"


class MessageSnapshot(BaseModel):
    """Everything the decision pipeline may look at for one message.

    ``raw_body`` is an empty string when the body could not be decoded,
    and ``None`` when the host has not downloaded the body yet.
    """

    model_config = ConfigDict(frozen=True)

    state: MessageState = MessageState.RECEIVED
    encryption_state: EncryptionState = EncryptionState.UNKNOWN
    subject: str = ""
    from_address: str = ""
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()
    reply_to: tuple[str, ...] = ()
    all_recipients: tuple[str, ...] = ()
    headers: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    raw_body: str | None = ""
