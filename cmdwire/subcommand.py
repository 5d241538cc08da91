"""Subcommands: handler objects turned into command tables.

A handler is any plain object. Its public methods are scanned once, in
declaration order, and each is classified by its signature:

    def ping(self, event: MessageCreateEvent) -> str              # command
    def echo(self, event: MessageCreateEvent, *words: str) -> str # command
    def on_typing(self, event: TypingStartEvent) -> None          # event handler
    @middleware
    def check(self, event: MessageCreateEvent) -> None            # middleware

Return annotations decide eligibility. A member may return nothing,
reply content (``str``, ``Embed`` or ``SendMessageData``), an exception
to report, or a ``tuple[Content, Optional[Exception]]`` pair.

The handler must declare exactly one field annotated with
:class:`~cmdwire.context.Context`; it is filled in at registration. An
optional ``setup(self, sub)`` hook may then rename or describe the
subcommand.
"""

from __future__ import annotations

import inspect
import types
import typing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog

from .arguments import Argument, ArgumentKind, new_argument, usage_line
from .decorators import get_meta
from .events import Embed, MessageCreateEvent, SendMessageData
from .exceptions import ArgumentTypeError, SetupError
from .nameflag import FLAG_SEPARATOR, NameFlag, parse_flag

if TYPE_CHECKING:
    from .context import Context

logger = structlog.get_logger("cmdwire.setup")

SETUP_HOOK = "setup"
CONTENT_TYPES = (str, Embed, SendMessageData)

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def underline(word: str) -> str:
    """Format an argument name like a manpage placeholder."""
    return "__" + word + "__"


@dataclass(eq=False)
class CommandContext:
    """One registered member of a handler object.

    Attributes:
        attribute: Declared attribute name, flags included.
        method_name: Declared name with the flag letters stripped.
        command: Display name matched against input; empty for plumb.
        value: The bound callable.
        event: Declared event type; ``object`` accepts any event.
        flag: Own flags united with the subcommand's.
        description: Help text.
        variadic: True when the last argument consumes the remainder.
        arguments: Resolved arguments after the event parameter.
    """
    attribute: str
    method_name: str
    command: str
    value: Callable
    event: Any = object
    flag: NameFlag = NameFlag.NONE
    description: str = ""
    variadic: bool = False
    arguments: List[Argument] = field(default_factory=list)

    @property
    def hidden(self) -> bool:
        return self.flag.is_set(NameFlag.HIDDEN)

    def usage(self) -> List[str]:
        return [arg.usage for arg in self.arguments]

    def accepts(self, event: Any) -> bool:
        """Whether this member handles events of ``event``'s type."""
        return self.event is object or type(event) is self.event


# ---------------------------------------------------------------------------
# Annotation helpers
# ---------------------------------------------------------------------------

def _strip_none(tp: Any) -> Any:
    if typing.get_origin(tp) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _union_members(tp: Any) -> List[Any]:
    tp = _strip_none(tp)
    if typing.get_origin(tp) in (typing.Union, types.UnionType):
        return [a for a in typing.get_args(tp) if a is not type(None)]
    return [tp]


def _is_exception_type(tp: Any) -> bool:
    return all(
        isinstance(t, type) and issubclass(t, BaseException)
        for t in _union_members(tp)
    )


def _is_content_type(tp: Any) -> bool:
    return all(
        isinstance(t, type) and issubclass(t, CONTENT_TYPES)
        for t in _union_members(tp)
    )


def _is_open(tp: Any) -> bool:
    return tp in (inspect.Signature.empty, Any, object, None, type(None))


def _type_hints(obj: Any, owner: str, member: Optional[str] = None) -> Dict[str, Any]:
    target = inspect.unwrap(getattr(obj, "__func__", obj))
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError) as e:
        raise SetupError(
            f"cannot resolve annotations: {e}", handler=owner, member=member
        ) from e


# ---------------------------------------------------------------------------
# Subcommand
# ---------------------------------------------------------------------------

class Subcommand:
    """A handler object and the tables derived from it.

    Built by :meth:`Context.register_subcommand` (or by Context itself
    for the root). The tables are read-only once registration finished.

    Args:
        handler: The handler object (an instance, not a class).

    Raises:
        SetupError: the handler's members are malformed.
    """

    def __init__(self, handler: Any):
        if handler is None or isinstance(handler, type):
            raise SetupError("handler must be an object instance", handler=repr(handler))

        self.handler = handler
        self.description = ""
        # Raw class name, flags included (only set for actual subcommands)
        self.struct_name = ""
        self.command = ""
        self.flag = NameFlag.NONE

        # Applied to reply text; falls back to the Context's sanitizer.
        self.sanitize_message: Optional[Callable[[str], str]] = None
        # Suppresses UnknownCommandError here and in every child.
        self.quiet_unknown_command = False

        self.commands: List[CommandContext] = []
        self.events: List[CommandContext] = []
        self.middlewares: List[CommandContext] = []
        self.subcommands: List[Subcommand] = []
        self.parent: Optional[Subcommand] = None

        # Plumb nameflag, use commands[0] if true.
        self.plumb = False

        self._parse_commands()

    def __repr__(self) -> str:
        return (
            f"Subcommand({self.command or type(self.handler).__name__!r}, "
            f"commands={len(self.commands)}, events={len(self.events)}, "
            f"middlewares={len(self.middlewares)})"
        )

    @property
    def _owner(self) -> str:
        return type(self.handler).__name__

    # --- naming ---

    def needs_name(self) -> None:
        """Derive the display name and flags from the handler's class."""
        cls = type(self.handler)
        self.struct_name = cls.__name__
        flag, name = parse_flag(self.struct_name)
        meta = get_meta(cls)
        self.command = meta.name or name
        self.flag = flag | meta.flags
        if meta.description:
            self.description = meta.description

    def path(self) -> List[str]:
        """Display names from below the root down to this subcommand."""
        names = []
        node: Optional[Subcommand] = self
        while node is not None and node.parent is not None:
            names.append(node.command)
            node = node.parent
        return list(reversed(names))

    # --- lookups ---

    def find_command(self, method_name: str) -> Optional[CommandContext]:
        """Find a command or event handler by its declared method name."""
        for cmd in self.commands + self.events:
            if method_name in (cmd.method_name, cmd.attribute):
                return cmd
        return None

    def find_by_command(self, name: str) -> Optional[CommandContext]:
        """Find a command by the name typed by users."""
        for cmd in self.commands:
            if cmd.command == name:
                return cmd
        return None

    def find_subcommand(self, name: str) -> Optional[Subcommand]:
        for sub in self.subcommands:
            if sub.command == name:
                return sub
        return None

    def change_command_info(self, method_name: str, command: str = "", description: str = "") -> bool:
        """Change a command's display name and/or description.

        Empty values leave the field unchanged. Returns True when the
        method was found.
        """
        cmd = self.find_command(method_name)
        if cmd is None or cmd not in self.commands:
            return False
        if command:
            cmd.command = command
        if description:
            cmd.description = description
        return True

    def walk(self):
        """Yield this subcommand and all descendants, depth first."""
        yield self
        for sub in self.subcommands:
            yield from sub.walk()

    def add_subcommand(self, sub: Subcommand) -> None:
        if not sub.command:
            raise SetupError("subcommand has no name", handler=sub._owner)
        if self.find_subcommand(sub.command) or self.find_by_command(sub.command):
            raise SetupError(
                f"duplicate name {sub.command!r} under {self.command or 'root'!r}",
                handler=sub._owner,
            )
        sub.parent = self
        self.subcommands.append(sub)

    # --- help ---

    def help_lines(self, indent: str = "      ", hide_admin: bool = False, underlined: bool = True) -> List[str]:
        """One usage line per visible command."""
        if self.flag.is_set(NameFlag.ADMIN_ONLY) and hide_admin:
            return []

        name = " ".join(self.path())
        fmt = underline if underlined else None
        lines = []
        for cmd in self.commands:
            if cmd.flag.is_set(NameFlag.ADMIN_ONLY) and hide_admin:
                continue
            words = " ".join(w for w in (name, cmd.command) if w)
            line = indent + usage_line(words, cmd.arguments, fmt)
            if cmd.description:
                line += ": " + cmd.description
            lines.append(line)
        return lines

    def help(self, indent: str = "      ", hide_admin: bool = False, underlined: bool = True) -> str:
        """Render a header and this subcommand's usage lines.

        Returns an empty string when nothing is visible.
        """
        lines = self.help_lines(indent, hide_admin, underlined)
        if not lines:
            return ""

        header = " ".join(self.path())
        header = f"**{header}**" if header else ""
        if self.description:
            header += (": " if header else "") + self.description
        return header + "\n" + "\n".join(lines)

    # --- registration ---

    def init_commands(self, ctx: "Context") -> None:
        """Bind the handler to ``ctx``, run its setup hook, inherit flags.

        Raises:
            SetupError: no Context field, or the setup hook failed.
        """
        self._fill_struct(ctx)

        hook = getattr(self.handler, SETUP_HOOK, None)
        if callable(hook):
            tables = (list(self.commands), list(self.events), list(self.middlewares))
            try:
                hook(self)
            except Exception as e:
                raise SetupError(
                    f"setup hook failed: {e}", handler=self._owner, member=SETUP_HOOK
                ) from e
            if tables != (self.commands, self.events, self.middlewares):
                raise SetupError(
                    "setup hook must not change the command tables",
                    handler=self._owner, member=SETUP_HOOK,
                )

        for cmd in self.commands + self.events + self.middlewares:
            cmd.flag |= self.flag

    def _fill_struct(self, ctx: "Context") -> None:
        from .context import Context

        cls = type(self.handler)
        try:
            hints = typing.get_type_hints(cls)
        except (NameError, TypeError):
            # Forward references the handler's module cannot resolve.
            hints = {}
            for klass in reversed(cls.__mro__):
                hints.update(getattr(klass, "__annotations__", {}))

        def is_context(ann: Any) -> bool:
            if isinstance(ann, str):
                ann = ann.strip("'\"")
                if ann.startswith("Optional[") and ann.endswith("]"):
                    ann = ann[len("Optional["):-1]
                return ann.rsplit(".", 1)[-1] == "Context"
            ann = _strip_none(ann)
            return isinstance(ann, type) and issubclass(ann, Context)

        names = [name for name, ann in hints.items() if is_context(ann)]
        if not names:
            raise SetupError("no field annotated with Context found", handler=self._owner)
        if len(names) > 1:
            raise SetupError(
                f"more than one Context field: {', '.join(names)}", handler=self._owner
            )
        setattr(self.handler, names[0], ctx)

    def _member_names(self) -> List[str]:
        names: List[str] = []
        for cls in reversed(type(self.handler).__mro__):
            if cls is object:
                continue
            for name in vars(cls):
                if not name.startswith("_") and name not in names:
                    names.append(name)
        return names

    def _check_returns(self, name: str, annotation: Any) -> bool:
        """Validate a member's return annotation.

        Returns False when the member is ineligible but harmless.

        Raises:
            SetupError: the return shape can never be interpreted.
        """
        if _is_open(annotation):
            return True

        if typing.get_origin(annotation) is tuple:
            values = [a for a in typing.get_args(annotation) if a is not Ellipsis]
            if len(values) > 2:
                raise SetupError(
                    "returns more than two values", handler=self._owner, member=name
                )
            if values and not _is_exception_type(values[-1]):
                raise SetupError(
                    "last return value must be an exception type",
                    handler=self._owner, member=name,
                )
            if len(values) == 2 and not _is_content_type(values[0]):
                logger.debug(
                    "member_ineligible", handler=self._owner, member=name,
                    reason="first return value is not reply content",
                )
                return False
            return True

        if _is_exception_type(annotation) or _is_content_type(annotation):
            return True
        raise SetupError(
            f"return type {annotation!r} is neither reply content nor an exception",
            handler=self._owner, member=name,
        )

    def _require_event_only(self, name: str, params: List[inspect.Parameter], what: str) -> None:
        for p in params:
            if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            if p.default is inspect.Parameter.empty:
                raise SetupError(
                    f"{what} must only take the event, got parameter {p.name!r}",
                    handler=self._owner, member=name,
                )

    def _resolve_arguments(self, name: str, params: List[inspect.Parameter], hints: Dict[str, Any]):
        arguments: List[Argument] = []
        trailing: Optional[Argument] = None

        for p in params:
            if p.kind is inspect.Parameter.VAR_KEYWORD:
                continue
            if p.kind is inspect.Parameter.KEYWORD_ONLY:
                if p.default is inspect.Parameter.empty:
                    raise SetupError(
                        f"keyword-only parameter {p.name!r} needs a default",
                        handler=self._owner, member=name,
                    )
                continue
            if trailing is not None:
                if p.kind is inspect.Parameter.VAR_POSITIONAL or p.default is inspect.Parameter.empty:
                    raise SetupError(
                        f"parameter {p.name!r} follows trailing argument {trailing.name!r}",
                        handler=self._owner, member=name,
                    )
                continue

            try:
                arg = new_argument(p, hints.get(p.name, inspect.Parameter.empty))
            except ArgumentTypeError as e:
                e.handler, e.member = self._owner, name
                raise
            if arg.splat and arg.kind in (ArgumentKind.MANUAL, ArgumentKind.RAW):
                raise SetupError(
                    f"*{p.name} cannot take a {arg.kind.value} argument",
                    handler=self._owner, member=name,
                )

            arguments.append(arg)
            if arg.trailing:
                trailing = arg

        return arguments, trailing is not None

    def _parse_commands(self) -> None:
        for attr in self._member_names():
            raw = inspect.getattr_static(self.handler, attr)
            if not inspect.isfunction(raw) or attr == SETUP_HOOK:
                continue

            member = getattr(self.handler, attr)
            params = list(inspect.signature(member).parameters.values())
            if not params or params[0].kind not in _POSITIONAL:
                # Doesn't take an event.
                continue

            hints = _type_hints(member, self._owner, attr)
            if not self._check_returns(attr, hints.get("return", inspect.Signature.empty)):
                continue

            meta = get_meta(member)
            flag, name = parse_flag(attr)
            flag |= meta.flags

            event = _strip_none(hints.get(params[0].name, object))
            if event is Any:
                event = object
            if typing.get_origin(event) in (typing.Union, types.UnionType):
                raise SetupError(
                    "event parameter must name a single event type",
                    handler=self._owner, member=attr,
                )

            description = meta.description
            if description is None:
                doc = inspect.getdoc(member) or ""
                description = doc.splitlines()[0] if doc else ""

            cmd = CommandContext(
                attribute=attr,
                method_name=attr.partition(FLAG_SEPARATOR)[2] or attr,
                command=meta.name or name,
                value=member,
                event=event,
                flag=flag,
                description=description,
            )

            if flag.is_set(NameFlag.MIDDLEWARE):
                self._require_event_only(attr, params[1:], "middleware")
                self.middlewares.append(cmd)
                continue

            if event is not MessageCreateEvent or flag.is_set(NameFlag.HIDDEN):
                self._require_event_only(attr, params[1:], "event handler")
                self.events.append(cmd)
                continue

            if self.plumb and not flag.is_set(NameFlag.PLUMB):
                logger.debug("command_ignored_after_plumb", handler=self._owner, member=attr)
                continue

            cmd.arguments, cmd.variadic = self._resolve_arguments(attr, params[1:], hints)

            if flag.is_set(NameFlag.PLUMB):
                if self.plumb:
                    raise SetupError("duplicate plumb command", handler=self._owner, member=attr)
                cmd.command = ""  # plumbers don't have names
                self.commands = [cmd]
                self.plumb = True
                continue

            if self.find_by_command(cmd.command):
                raise SetupError(
                    f"duplicate command name {cmd.command!r}", handler=self._owner, member=attr
                )
            self.commands.append(cmd)

        logger.debug(
            "subcommand_parsed",
            handler=self._owner,
            commands=[c.command for c in self.commands],
            events=len(self.events),
            middlewares=len(self.middlewares),
            plumb=self.plumb,
        )
