"""Schemas for the mail actions MailBot can decide on.

Action names and color values are the exact strings the LM must emit.
The two color-bearing actions use distinct color enumerations: ``none``
is only a background color and ``defaultColor`` is only a flag color.
"""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class ActionKind(StrEnum):
    """Closed set of actions that can be applied to a message."""

    MOVE_TO_TRASH = "moveToTrash"
    MOVE_TO_ARCHIVE = "moveToArchive"
    MOVE_TO_JUNK = "moveToJunk"
    MARK_AS_READ = "markAsRead"
    MARK_AS_UNREAD = "markAsUnread"
    FLAG = "flag"
    SET_BACKGROUND_COLOR = "setBackgroundColor"


class FlagColor(StrEnum):
    """Colors accepted by the ``flag`` action."""

    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    GRAY = "gray"
    DEFAULT = "defaultColor"


class BackgroundColor(StrEnum):
    """Colors accepted by the ``setBackgroundColor`` action."""

    NONE = "none"
    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"
    PURPLE = "purple"
    BLUE = "blue"
    GRAY = "gray"


# --- Action variants ---


class PlainAction(BaseModel):
    """An action that takes no parameters."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[
        ActionKind.MOVE_TO_TRASH,
        ActionKind.MOVE_TO_ARCHIVE,
        ActionKind.MOVE_TO_JUNK,
        ActionKind.MARK_AS_READ,
        ActionKind.MARK_AS_UNREAD,
    ]


class FlagAction(BaseModel):
    """Flag the message with a flag color."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.FLAG] = ActionKind.FLAG
    color: FlagColor


class BackgroundColorAction(BaseModel):
    """Set the message's background color in the message list."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.SET_BACKGROUND_COLOR] = ActionKind.SET_BACKGROUND_COLOR
    color: BackgroundColor


MessageAction = Annotated[
    PlainAction | FlagAction | BackgroundColorAction,
    Field(discriminator="kind"),
]


class ActionDecision(BaseModel):
    """Ordered actions to apply to one message.

    Order is application order. Duplicates are kept. An empty list is a
    valid decision to do nothing; "no decision" is represented by ``None``
    wherever an ActionDecision is expected.
    """

    model_config = ConfigDict(frozen=True)

    actions: list[MessageAction] = Field(default_factory=list)
