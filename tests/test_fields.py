"""Tests for structural identifier lookup."""

from dataclasses import dataclass
from typing import Optional

import pytest

from cmdwire.events import Message, MessageCreateEvent, TypingStartEvent
from cmdwire.exceptions import AmbiguousFieldError
from cmdwire.fields import resolve_channel_id, resolve_guild_id, resolve_id


@dataclass
class HasID:
    channel_id: int


@dataclass
class Level4:
    inner: HasID


@dataclass
class Level3:
    inner: Level4


@dataclass
class Level2:
    inner: Level3


@dataclass
class Level1:
    inner: Level2


@dataclass
class Channel:
    id: int
    name: str = ""


@dataclass
class ChannelHolder:
    channel: Channel


@dataclass
class TwoChannels:
    first: HasID
    second: HasID


@dataclass
class Nothing:
    name: str = ""
    count: int = 3


class Cycle:
    def __init__(self):
        self.other: Optional["Cycle"] = None


class TestResolveID:

    def test_direct_field(self):
        assert resolve_channel_id(HasID(channel_id=69420)) == 69420

    def test_deeply_nested(self):
        nested = Level1(Level2(Level3(Level4(HasID(channel_id=69420)))))
        assert resolve_channel_id(nested) == 69420

    def test_id_on_type_named_after_thing(self):
        assert resolve_channel_id(ChannelHolder(Channel(id=7))) == 7

    def test_id_on_other_types_ignored(self):
        # Message.id is a message ID, not a channel ID
        assert resolve_channel_id(Message(id=5)) == 0

    def test_absent_is_zero(self):
        assert resolve_channel_id(Nothing()) == 0
        assert resolve_channel_id("not an event") == 0

    def test_pydantic_models(self):
        assert resolve_channel_id(TypingStartEvent(channel_id=3, user_id=4)) == 3
        assert resolve_guild_id(TypingStartEvent(guild_id=9)) == 9

    def test_capability_wins(self):
        event = MessageCreateEvent(channel_id=11, content="hi")
        assert resolve_channel_id(event) == 11

    def test_capability_returning_zero_falls_through(self):
        class Odd:
            def __init__(self):
                self.channel_id = 4

            def reply_channel_id(self):
                return 0

        assert resolve_channel_id(Odd()) == 4

    def test_cycles_terminate(self):
        a, b = Cycle(), Cycle()
        a.other, b.other = b, a
        assert resolve_channel_id(a) == 0

    def test_first_match_in_declaration_order(self):
        assert resolve_channel_id(TwoChannels(HasID(1), HasID(2))) == 1

    def test_strict_ambiguity_raises(self):
        with pytest.raises(AmbiguousFieldError) as exc:
            resolve_channel_id(TwoChannels(HasID(1), HasID(2)), strict=True)
        assert exc.value.candidates == [1, 2]

    def test_strict_same_id_is_fine(self):
        assert resolve_channel_id(TwoChannels(HasID(1), HasID(1)), strict=True) == 1

    def test_other_things(self):
        @dataclass
        class Ban:
            user_id: int

        assert resolve_id(Ban(user_id=8), "user") == 8


@dataclass
class HasChannelInName:
    id: int


def test_id_on_type_with_channel_inside_name():
    assert resolve_channel_id(HasChannelInName(id=69420)) == 69420


class SlottedMessage:
    __slots__ = "channel_id"

    def __init__(self, channel_id):
        self.channel_id = channel_id


class SlottedHolder:
    __slots__ = ("message",)

    def __init__(self, message):
        self.message = message


def test_string_slots():
    assert resolve_channel_id(SlottedMessage(7)) == 7
    assert resolve_channel_id(SlottedHolder(SlottedMessage(8))) == 8
