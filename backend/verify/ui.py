"""
Verification Engine - UI model

Platform-neutral description of what the engine wants shown. The chat
adapter renders these into real components; the engine never touches the
chat API for replies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple


class ButtonStyle(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"
    LINK = "link"


class ReplyMode(str, Enum):
    SEND = "send"  # new message
    UPDATE = "update"  # edit the message the button belongs to


@dataclass(frozen=True)
class Button:
    label: Optional[str] = None
    token: Optional[str] = None
    emoji: Optional[str] = None
    style: ButtonStyle = ButtonStyle.SECONDARY
    url: Optional[str] = None

    def __post_init__(self):
        if (self.url is None) == (self.token is None):
            raise ValueError("A button needs exactly one of token or url")


def back_button(token: str) -> Button:
    return Button(token=token, emoji="🔙", style=ButtonStyle.DANGER)


@dataclass(frozen=True)
class TextField:
    key: str
    label: str
    placeholder: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    paragraph: bool = False


@dataclass(frozen=True)
class Modal:
    title: str
    token: str
    fields: Tuple[TextField, ...]


@dataclass(frozen=True)
class Card:
    """Embed-style summary posted to the committee channels"""
    title: str
    description: Optional[str] = None
    fields: Tuple[Tuple[str, str], ...] = ()
    thumbnail: Optional[str] = None
    image: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Reply:
    content: Optional[str] = None
    buttons: List[Button] = field(default_factory=list)
    card: Optional[Card] = None
    mode: ReplyMode = ReplyMode.SEND
    ephemeral: bool = True

    @classmethod
    def notice(cls, content: str) -> "Reply":
        """Ephemeral one-off message that leaves the current step in place."""
        return cls(content=content)

    @classmethod
    def update(cls, content: Optional[str], buttons: Optional[List[Button]] = None,
               card: Optional[Card] = None) -> "Reply":
        """Replace the current message; no buttons clears them."""
        return cls(content=content, buttons=buttons or [], card=card, mode=ReplyMode.UPDATE)
