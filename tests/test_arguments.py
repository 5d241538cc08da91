"""Tests for argument resolution, token streams and binding."""

import inspect
from typing import List, Optional

import pytest

from cmdwire.arguments import (
    ArgumentKind,
    RawArguments,
    Tokens,
    bind_arguments,
    get_parser,
    new_argument,
    register_parser,
    usage_line,
)
from cmdwire.events import Snowflake
from cmdwire.exceptions import ArgumentTypeError, InvalidUsageError


def _param(name, kind=inspect.Parameter.POSITIONAL_OR_KEYWORD, default=inspect.Parameter.empty):
    return inspect.Parameter(name, kind, default=default)


class Words:
    """Custom argument: collects tokens until ``stop``."""

    usage = "words"

    def __init__(self, word):
        self.word = word

    @classmethod
    def parse_token(cls, token):
        if token == "stop":
            return None
        return cls(token)


class Reversed:
    """Manual argument: gets the whole remainder."""

    def __init__(self, text):
        self.text = text

    @classmethod
    def parse_content(cls, content):
        if not content:
            raise ValueError("nothing to reverse")
        return cls(content[::-1])


class Color:
    def __init__(self, name):
        self.name = name


class Unparseable:
    pass


class TestNewArgument:

    def test_unannotated_is_string(self):
        arg = new_argument(_param("text"), inspect.Parameter.empty)
        assert arg.kind is ArgumentKind.PLAIN
        assert arg.type is str
        assert arg.usage == "text"
        assert not arg.trailing

    def test_optional_is_unwrapped(self):
        arg = new_argument(_param("n", default=None), Optional[int])
        assert arg.type is int
        assert arg.has_default

    def test_list_is_variadic(self):
        arg = new_argument(_param("ns"), List[int])
        assert arg.variadic
        assert arg.trailing
        assert arg.type is int

    def test_star_args_are_splat(self):
        arg = new_argument(_param("words", inspect.Parameter.VAR_POSITIONAL), str)
        assert arg.splat
        assert arg.variadic

    def test_kinds(self):
        assert new_argument(_param("w"), Words).kind is ArgumentKind.CUSTOM
        assert new_argument(_param("r"), Reversed).kind is ArgumentKind.MANUAL
        assert new_argument(_param("raw"), RawArguments).kind is ArgumentKind.RAW

    def test_usage_attribute_overrides_name(self):
        assert new_argument(_param("w"), Words).usage == "words"

    def test_newtype_uses_base_parser(self):
        assert get_parser(Snowflake) is int
        arg = new_argument(_param("id"), Snowflake)
        assert arg.parse("42") == 42

    def test_unknown_type_raises(self):
        with pytest.raises(ArgumentTypeError) as exc:
            new_argument(_param("thing"), Unparseable)
        assert exc.value.parameter == "thing"
        assert exc.value.type_name == "Unparseable"

    def test_register_parser_as_decorator(self):
        @register_parser(Color)
        def parse_color(token):
            return Color(token.lower())

        arg = new_argument(_param("c"), Color)
        assert arg.parse("RED").name == "red"


class TestTokens:

    def test_peek_next_len(self):
        tokens = Tokens("  a  b c ")
        assert len(tokens) == 3
        assert tokens.peek() == "a"
        assert tokens.next() == "a"
        assert len(tokens) == 2

    def test_rest_is_verbatim(self):
        tokens = Tokens("say  hello   world ")
        tokens.next()
        assert tokens.rest() == "hello   world "
        assert tokens.next() is None
        assert tokens.rest() == ""


class TestBindArguments:

    def _args(self, *pairs):
        return [new_argument(p, ann) for p, ann in pairs]

    def test_plain_conversion(self):
        args = self._args((_param("n"), int), (_param("ok"), bool))
        assert bind_arguments(args, Tokens("3 yes")) == [3, True]

    def test_missing_token_uses_default(self):
        args = self._args((_param("n"), int), (_param("m", default=7), int))
        assert bind_arguments(args, Tokens("1")) == [1, 7]

    def test_missing_token_without_default(self):
        args = self._args((_param("a"), str), (_param("b"), str))
        with pytest.raises(InvalidUsageError) as exc:
            bind_arguments(args, Tokens("x"), "pair")
        assert exc.value.index == 1
        assert "not enough arguments" in exc.value.message
        assert exc.value.usage == "pair a b"

    def test_parse_error_becomes_usage_error(self):
        args = self._args((_param("n"), int),)
        with pytest.raises(InvalidUsageError, match="Invalid usage at argument 1"):
            bind_arguments(args, Tokens("three"))

    def test_extra_tokens_ignored(self):
        args = self._args((_param("a"), str),)
        assert bind_arguments(args, Tokens("x y z")) == ["x"]

    def test_splat_extends_values(self):
        args = self._args((_param("w", inspect.Parameter.VAR_POSITIONAL), str),)
        assert bind_arguments(args, Tokens("hacka doll no. 3")) == ["hacka", "doll", "no.", "3"]

    def test_list_appends_one_value(self):
        args = self._args((_param("ns"), List[int]),)
        assert bind_arguments(args, Tokens("1 2 3")) == [[1, 2, 3]]

    def test_custom_stops_on_none(self):
        args = self._args((_param("w"), Words),)
        tokens = Tokens("a b stop c")
        values = bind_arguments(args, tokens)
        assert [w.word for w in values[0]] == ["a", "b"]
        assert tokens.peek() == "stop"

    def test_custom_with_no_tokens_is_empty(self):
        args = self._args((_param("w"), Words),)
        assert bind_arguments(args, Tokens("")) == [[]]

    def test_manual_gets_remainder(self):
        args = self._args((_param("first"), str), (_param("r"), Reversed))
        values = bind_arguments(args, Tokens("x abc  d"))
        assert values[0] == "x"
        assert values[1].text == "d  cba"

    def test_manual_value_error(self):
        args = self._args((_param("r"), Reversed),)
        with pytest.raises(InvalidUsageError, match="nothing to reverse"):
            bind_arguments(args, Tokens(""))

    def test_raw_is_verbatim(self):
        args = self._args((_param("raw"), RawArguments),)
        values = bind_arguments(args, Tokens("just  things"))
        assert values == ["just  things"]
        assert isinstance(values[0], RawArguments)


def test_usage_line_marks_trailing():
    args = [
        new_argument(_param("a"), str),
        new_argument(_param("rest", inspect.Parameter.VAR_POSITIONAL), str),
    ]
    assert usage_line("say", args) == "say a rest..."
    assert usage_line("say", args, lambda w: "<" + w + ">") == "say <a> <rest>..."
