"""Messaging gateway types.

Inbound messages arrive from the chat bridge; replies go back through a
MessagingGateway. The engine never talks to the transport directly.
"""
from enum import Enum
from typing import List

from pydantic import BaseModel


class MessageKind(str, Enum):
    TEXT = 'text'
    PICTURE = 'picture'
    TRANSFER = 'transfer'


class InboundMessage(BaseModel):
    """A message received from the chat client."""
    message_id: str
    kind: MessageKind = MessageKind.TEXT
    content: str = ""
    chat_id: str
    is_group: bool = False
    sender_id: str
    sender_nickname: str = ""


class Identity(BaseModel):
    user_id: str
    nickname: str


class GroupRef(BaseModel):
    id: str
    name: str = ""


class ContactRef(BaseModel):
    id: str
    nickname: str = ""


class MessagingGateway:
    """Outbound side of the chat transport."""

    async def send_text(self, target_id: str, text: str) -> None:
        raise NotImplementedError

    async def send_image(self, target_id: str, data: bytes) -> None:
        raise NotImplementedError

    async def current_sender_identity(self, message: InboundMessage) -> Identity:
        """Resolve the identity of the user who sent the message."""
        raise NotImplementedError

    async def list_groups(self) -> List[GroupRef]:
        """List the groups the bot account administers."""
        raise NotImplementedError

    async def list_contacts(self) -> List[ContactRef]:
        raise NotImplementedError

    async def fetch_picture(self, message: InboundMessage) -> bytes:
        """Download the picture attached to a picture message."""
        raise NotImplementedError


__all__ = [
    'MessageKind', 'InboundMessage', 'Identity', 'GroupRef', 'ContactRef',
    'MessagingGateway'
]
