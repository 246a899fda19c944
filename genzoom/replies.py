from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class DeliveryTarget:
    """Where a reply goes on the chat platform."""

    to_jid: str
    account_id: str
    user_jid: Optional[str] = None


@dataclass(frozen=True)
class TextReply:
    text: str

    @property
    def history_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class ImageReply:
    image_url: str
    prompt_text: str
    subject: str = ""

    @property
    def history_text(self) -> str:
        return f'[Generated image based on: "{self.subject or self.prompt_text}"]'


@dataclass(frozen=True)
class HybridReply:
    text: str
    image_url: str
    prompt_text: str

    @property
    def history_text(self) -> str:
        return f"{self.text} [Generated an accompanying image]"


ReplyPayload = Union[TextReply, ImageReply, HybridReply]


def has_image(reply: ReplyPayload) -> bool:
    return isinstance(reply, (ImageReply, HybridReply))
