"""Argument resolution and binding for command parameters.

Every command parameter after the event is resolved once, at
registration, into an :class:`Argument` descriptor. At dispatch time
:func:`bind_arguments` consumes a call-local :class:`Tokens` stream to
produce the positional values the member is invoked with.

Argument kinds:
    plain   one whitespace-delimited token, converted by a registered parser
    custom  the type's ``parse_token(token)`` classmethod is fed one token
            at a time until it returns None or the tokens run out
    manual  the type's ``parse_content(remainder)`` classmethod receives the
            whole unconsumed remainder once
    raw     the unconsumed remainder, verbatim, as :class:`RawArguments`

Custom, manual and raw arguments are trailing: nothing may follow them.
"""

import collections.abc
import enum
import inspect
import re
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import ArgumentTypeError, InvalidUsageError

_TOKEN = re.compile(r"\S+")

_TRUE_WORDS = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "f", "false", "n", "no", "off"})


class RawArguments(str):
    """The unparsed remainder of a command line."""


class ArgumentKind(str, enum.Enum):
    PLAIN = "plain"
    CUSTOM = "custom"
    MANUAL = "manual"
    RAW = "raw"


def _parse_bool(token: str) -> bool:
    word = token.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"{token!r} is not a boolean")


# Single-token parsers, keyed by declared type.
_PARSERS: Dict[type, Callable[[str], Any]] = {
    str: str,
    int: int,
    float: float,
    bool: _parse_bool,
}


def register_parser(tp: type, parser: Optional[Callable[[str], Any]] = None):
    """Register a single-token parser for ``tp``.

    The parser takes one token and returns the converted value, raising
    ValueError on bad input. Usable as a decorator::

        @register_parser(Color)
        def parse_color(token): ...
    """
    if parser is not None:
        _PARSERS[tp] = parser
        return parser

    def decorator(fn: Callable[[str], Any]) -> Callable[[str], Any]:
        _PARSERS[tp] = fn
        return fn
    return decorator


def get_parser(tp: Any) -> Optional[Callable[[str], Any]]:
    # NewType aliases (e.g. Snowflake) parse like their base type.
    while hasattr(tp, "__supertype__"):
        tp = tp.__supertype__
    return _PARSERS.get(tp)


@dataclass(frozen=True)
class Argument:
    """A resolved command parameter.

    Attributes:
        name: Parameter name.
        kind: How the parameter consumes the command line.
        type: Declared type after unwrapping Optional/list.
        usage: Display string for help text.
        parse: Single-token converter (plain kinds only).
        default: Python default, or ``inspect.Parameter.empty``.
        variadic: True when the argument collects every remaining token.
        splat: True when bound to a ``*args`` parameter.
    """
    name: str
    kind: ArgumentKind
    type: Any
    usage: str
    parse: Optional[Callable[[str], Any]] = None
    default: Any = inspect.Parameter.empty
    variadic: bool = False
    splat: bool = False

    @property
    def trailing(self) -> bool:
        """Whether no parameter may follow this one."""
        return self.kind is not ArgumentKind.PLAIN or self.variadic

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


def _unwrap_optional(tp: Any) -> Any:
    if typing.get_origin(tp) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _unwrap_list(tp: Any) -> Tuple[Any, bool]:
    if tp is list or typing.get_origin(tp) in (list, collections.abc.Sequence):
        args = typing.get_args(tp)
        return (args[0] if args else str), True
    return tp, False


def _has_classmethod(tp: Any, name: str) -> bool:
    return isinstance(tp, type) and callable(getattr(tp, name, None))


def new_argument(parameter: inspect.Parameter, annotation: Any) -> Argument:
    """Resolve one command parameter into an Argument.

    Raises:
        ArgumentTypeError: no parser is known for the declared type.
    """
    splat = parameter.kind is inspect.Parameter.VAR_POSITIONAL
    if annotation is inspect.Parameter.empty or annotation is Any:
        annotation = str

    tp = _unwrap_optional(annotation)
    tp, collection = _unwrap_list(tp)
    collection = collection or splat
    usage = getattr(tp, "usage", None)
    if not isinstance(usage, str):
        usage = parameter.name

    common = dict(
        name=parameter.name,
        type=tp,
        usage=usage,
        default=parameter.default,
        splat=splat,
    )

    if _has_classmethod(tp, "parse_content"):
        return Argument(kind=ArgumentKind.MANUAL, **common)
    if _has_classmethod(tp, "parse_token"):
        return Argument(kind=ArgumentKind.CUSTOM, variadic=True, **common)
    if isinstance(tp, type) and issubclass(tp, RawArguments):
        return Argument(kind=ArgumentKind.RAW, **common)

    parser = get_parser(tp)
    if parser is None:
        type_name = getattr(tp, "__name__", repr(tp))
        raise ArgumentTypeError(
            f"no parser for argument type {type_name!r} of parameter {parameter.name!r}",
            parameter=parameter.name,
            type_name=type_name,
        )
    return Argument(
        kind=ArgumentKind.PLAIN, parse=parser, variadic=collection, **common
    )


class Tokens:
    """A call-local stream of whitespace-delimited tokens.

    Keeps the original text so the unconsumed remainder can be returned
    verbatim, inner whitespace included.
    """

    def __init__(self, text: str):
        self._text = text
        self._matches = list(_TOKEN.finditer(text))
        self._pos = 0

    def __len__(self) -> int:
        return len(self._matches) - self._pos

    def peek(self) -> Optional[str]:
        if self._pos >= len(self._matches):
            return None
        return self._matches[self._pos].group()

    def next(self) -> Optional[str]:
        token = self.peek()
        if token is not None:
            self._pos += 1
        return token

    def rest(self) -> str:
        """Consume and return the remainder of the text."""
        if self._pos >= len(self._matches):
            return ""
        start = self._matches[self._pos].start()
        self._pos = len(self._matches)
        return self._text[start:]


def usage_line(command: str, arguments: List[Argument], underline=None) -> str:
    """Render ``command arg1 arg2...`` for help and usage errors."""
    parts = [command] if command else []
    for arg in arguments:
        parts.append(underline(arg.usage) if underline else arg.usage)
    line = " ".join(parts)
    if arguments and arguments[-1].trailing:
        line += "..."
    return line


def bind_arguments(
    arguments: List[Argument], tokens: Tokens, command: str = ""
) -> List[Any]:
    """Consume ``tokens`` into positional values for ``arguments``.

    Raises:
        InvalidUsageError: too few tokens, or a parser rejected a token.
    """
    values: List[Any] = []

    def fail(index: int, reason: str, cause: Optional[Exception] = None):
        err = InvalidUsageError(
            reason,
            command=command,
            index=index,
            usage=usage_line(command, arguments),
        )
        if cause is not None:
            raise err from cause
        raise err

    def collect(arg: Argument, items: List[Any]) -> None:
        if arg.splat:
            values.extend(items)
        else:
            values.append(items)

    for index, arg in enumerate(arguments):
        if arg.kind is ArgumentKind.MANUAL:
            try:
                values.append(arg.type.parse_content(tokens.rest()))
            except ValueError as e:
                fail(index, str(e), e)
            break

        if arg.kind is ArgumentKind.RAW:
            values.append(arg.type(tokens.rest()))
            break

        if arg.kind is ArgumentKind.CUSTOM:
            items = []
            while True:
                token = tokens.peek()
                if token is None:
                    break
                try:
                    item = arg.type.parse_token(token)
                except ValueError as e:
                    fail(index, str(e), e)
                if item is None:
                    break
                tokens.next()
                items.append(item)
            collect(arg, items)
            break

        if arg.variadic:
            items = []
            while True:
                token = tokens.next()
                if token is None:
                    break
                try:
                    items.append(arg.parse(token))
                except ValueError as e:
                    fail(index, f"{token!r}: {e}", e)
            collect(arg, items)
            break

        token = tokens.next()
        if token is None:
            if arg.has_default:
                values.append(arg.default)
                continue
            fail(index, "not enough arguments")
        try:
            values.append(arg.parse(token))
        except ValueError as e:
            fail(index, f"{token!r}: {e}", e)

    return values
