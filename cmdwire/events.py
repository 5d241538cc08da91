"""Pydantic models for gateway events and reply payloads.

The dispatcher only needs to know one event shape, MessageCreateEvent,
which carries the text commands are parsed from. Every other model is
routed by exact type to event handlers. Transports are free to define
their own event classes; anything with a declared ``channel_id`` field
somewhere in it can be replied to.

Event models:
    Message, MessageCreateEvent, MessageUpdateEvent, MessageDeleteEvent,
    TypingStartEvent, ReadyEvent

Reply payloads:
    Embed, EmbedField, EmbedFooter, SendMessageData
"""

from datetime import datetime
from typing import List, NewType, Optional

from pydantic import BaseModel, Field

Snowflake = NewType("Snowflake", int)


class User(BaseModel):
    """A chat user."""

    id: Snowflake = Field(..., description="User ID")
    username: str = Field(default="", description="Display username")
    bot: bool = Field(default=False, description="True for bot accounts")


class Member(BaseModel):
    """Guild-specific data of a message author."""

    user: Optional[User] = None
    nick: str = ""
    roles: List[Snowflake] = Field(default_factory=list)


class Message(BaseModel):
    """A chat message."""

    id: Snowflake = Field(default=Snowflake(0), description="Message ID")
    channel_id: Snowflake = Field(default=Snowflake(0), description="Channel the message was sent in")
    guild_id: Snowflake = Field(default=Snowflake(0), description="Guild ID, 0 for direct messages")
    author: User = Field(default_factory=lambda: User(id=Snowflake(0)))
    content: str = ""
    timestamp: Optional[datetime] = None


class MessageCreateEvent(Message):
    """A message was sent. The only event commands are parsed from."""

    member: Optional[Member] = None

    def reply_channel_id(self) -> Snowflake:
        return self.channel_id


class MessageUpdateEvent(Message):
    """A message was edited."""

    member: Optional[Member] = None


class MessageDeleteEvent(BaseModel):
    """A message was deleted."""

    id: Snowflake
    channel_id: Snowflake
    guild_id: Snowflake = Snowflake(0)


class TypingStartEvent(BaseModel):
    """A user started typing."""

    channel_id: Snowflake = Snowflake(0)
    user_id: Snowflake = Snowflake(0)
    guild_id: Snowflake = Snowflake(0)
    timestamp: Optional[datetime] = None


class ReadyEvent(BaseModel):
    """The transport finished connecting."""

    user: Optional[User] = None
    session_id: str = ""


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class EmbedFooter(BaseModel):
    text: str
    icon_url: str = ""


class Embed(BaseModel):
    """Rich reply content."""

    title: str = ""
    description: str = ""
    url: str = ""
    color: int = 0
    fields: List[EmbedField] = Field(default_factory=list)
    footer: Optional[EmbedFooter] = None


class SendMessageData(BaseModel):
    """Structured reply handed to the send collaborator."""

    content: str = ""
    embed: Optional[Embed] = None
    tts: bool = False
