"""Dispatch context: the root of a subcommand tree.

A Context wraps the root handler object and every registered
subcommand. Transports hand it events through :meth:`Context.call`
(errors raised to the caller) or :meth:`Context.handle` (errors logged
and optionally replied to).

Dispatch of a MessageCreateEvent:
    1. event handlers of every subcommand matching the event type run,
       preceded by the root middleware;
    2. the prefix matcher strips the prefix, the line is tokenized and
       name tokens are walked down the subcommand tree;
    3. middleware of every subcommand on the path runs, root first;
    4. the command is resolved, its arguments bound, and it is invoked;
    5. its return value is sent back as a reply.

Key classes:
    Context: Dispatcher and registration entry point.

Key functions:
    new_prefix: Literal prefix matcher.
"""

import inspect
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import structlog

from .arguments import Tokens, bind_arguments
from .config import Config, get_config
from .events import Embed, MessageCreateEvent, SendMessageData, Snowflake
from .exceptions import (
    Break,
    CmdwireError,
    PermissionDeniedError,
    ReplyError,
    SetupError,
    UnknownCommandError,
)
from .fields import resolve_channel_id
from .nameflag import NameFlag
from .sanitize import identity, sanitize_message
from .subcommand import CommandContext, Subcommand

logger = structlog.get_logger("cmdwire.dispatch")

Prefixer = Callable[[MessageCreateEvent], Tuple[bool, str]]
Sender = Callable[[Snowflake, SendMessageData], Awaitable[Any]]

HELP_INDENT = "      "


def new_prefix(*prefixes: str) -> Prefixer:
    """Return a matcher accepting messages that start with any of ``prefixes``.

    The first matching prefix is stripped from the returned command line.
    """
    def has_prefix(event: MessageCreateEvent) -> Tuple[bool, str]:
        for prefix in prefixes:
            if event.content.startswith(prefix):
                return True, event.content[len(prefix):]
        return False, ""

    return has_prefix


def format_error(err: BaseException) -> str:
    """Default rendering of a dispatch error for the chat."""
    if isinstance(err, CmdwireError):
        return err.message
    return str(err) or type(err).__name__


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _error_of(result: Any) -> Optional[BaseException]:
    """Extract the error part of a member's return value."""
    if isinstance(result, BaseException):
        return result
    if isinstance(result, tuple) and len(result) == 2 and isinstance(result[1], BaseException):
        return result[1]
    return None


class Context:
    """Root of a command tree and the single dispatch entry point.

    Args:
        handler: Root handler object; its commands need no name token.
        send: Async callable ``(channel_id, SendMessageData)`` delivering
            replies.
        has_prefix: Prefix matcher; defaults to ``new_prefix`` over the
            configured prefixes.
        config: Config instance; defaults to the global one.

    Raises:
        SetupError: the root handler could not be registered.
    """

    def __init__(
        self,
        handler: Any,
        *,
        send: Sender,
        has_prefix: Optional[Prefixer] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.send = send
        self.has_prefix = has_prefix or new_prefix(*self.config.prefixes)

        self.quiet_unknown_command = self.config.quiet_unknown_command
        self.reply_errors = self.config.reply_errors
        self.ignore_bots = self.config.ignore_bots
        self.help_underline = self.config.help_underline
        self.admin_ids = set(self.config.admin_ids)
        self.sanitize_message: Callable[[str], str] = (
            sanitize_message if self.config.sanitize_mentions else identity
        )
        self.format_error: Callable[[BaseException], str] = format_error
        self.is_admin: Callable[[MessageCreateEvent], Any] = self._is_admin

        self.subcommand = Subcommand(handler)
        self.subcommand.init_commands(self)

        logger.info(
            "context_created",
            handler=type(handler).__name__,
            commands=len(self.subcommand.commands),
            events=len(self.subcommand.events),
            middlewares=len(self.subcommand.middlewares),
        )

    # --- registration ---

    @property
    def name(self) -> str:
        return self.subcommand.command

    @property
    def description(self) -> str:
        return self.subcommand.description

    def subcommands(self) -> List[Subcommand]:
        """Top-level subcommands, in registration order."""
        return list(self.subcommand.subcommands)

    def register_subcommand(
        self,
        handler: Any,
        *,
        parent: Optional[Subcommand] = None,
        name: Optional[str] = None,
    ) -> Subcommand:
        """Register ``handler`` as a subcommand.

        Args:
            handler: Handler object, named after its class unless ``name``
                is given.
            parent: Subcommand to nest under; defaults to the root.
            name: Explicit subcommand name.

        Returns:
            The new Subcommand, attached only if registration succeeded.

        Raises:
            SetupError: the handler is malformed or its name is taken.
        """
        parent = parent or self.subcommand
        if not any(node is parent for node in self.subcommand.walk()):
            raise SetupError("parent subcommand belongs to another context")

        sub = Subcommand(handler)
        sub.needs_name()
        if name:
            sub.command = name
        if parent.find_subcommand(sub.command):
            raise SetupError(
                f"duplicate subcommand name {sub.command!r}",
                handler=type(handler).__name__,
            )
        if parent.find_by_command(sub.command):
            raise SetupError(
                f"subcommand name {sub.command!r} is taken by a command",
                handler=type(handler).__name__,
            )

        sub.flag |= parent.flag
        sub.init_commands(self)
        parent.add_subcommand(sub)

        logger.info(
            "subcommand_registered",
            name=sub.command,
            parent=parent.command or "root",
            commands=len(sub.commands),
            events=len(sub.events),
            middlewares=len(sub.middlewares),
        )
        return sub

    def find_command(self, struct_name: str, method_name: str) -> Optional[CommandContext]:
        """Find a command by subcommand name and declared method name.

        An empty ``struct_name`` searches the root handler.
        """
        if not struct_name:
            return self.subcommand.find_command(method_name)
        for sub in self.subcommand.walk():
            if sub is not self.subcommand and struct_name in (sub.command, sub.struct_name):
                return sub.find_command(method_name)
        return None

    # --- help ---

    def help(self) -> str:
        """Help text without admin-only commands."""
        return self._help(hide_admin=True)

    def help_admin(self) -> str:
        """Help text including admin-only commands."""
        return self._help(hide_admin=False)

    def _help(self, hide_admin: bool) -> str:
        root = self.subcommand
        parts = ["__Help__" + (": " + root.command if root.command else "")]
        if root.description:
            parts.append(HELP_INDENT + root.description)
        if root.flag.is_set(NameFlag.ADMIN_ONLY) and hide_admin:
            return "\n".join(parts)

        commands = root.help_lines(HELP_INDENT, hide_admin, self.help_underline)
        if commands:
            parts.append("---")
            parts.append("__Commands__")
            parts.extend(commands)

        subcommands = []
        for sub in root.walk():
            if sub is root:
                continue
            text = sub.help(HELP_INDENT, hide_admin, self.help_underline)
            if text:
                subcommands.append(text)
        if subcommands:
            parts.append("---")
            parts.append("__Subcommands__")
            parts.extend(subcommands)

        return "\n".join(parts)

    # --- dispatch ---

    async def handle(self, event: Any) -> None:
        """Dispatch ``event``, logging failures instead of raising them.

        When ``reply_errors`` is set, the formatted error is sent to the
        channel of the message that caused it.
        """
        try:
            await self.call(event)
        except Exception as err:
            logger.warning(
                "dispatch_failed",
                event_type=type(event).__name__,
                error=str(err),
                error_type=type(err).__name__,
                category=getattr(getattr(err, "category", None), "value", None),
            )
            if not self.reply_errors or not isinstance(event, MessageCreateEvent):
                return
            channel_id = resolve_channel_id(event)
            if not channel_id:
                return
            content = self.sanitize_message(self.format_error(err))
            try:
                await self.send(channel_id, SendMessageData(content=content))
            except Exception as e:
                logger.error("error_reply_failed", channel_id=channel_id, error=str(e))

    async def call(self, event: Any) -> None:
        """Dispatch one event.

        Returns None on success, including when nothing matched.

        Raises:
            UnknownCommandError: no command matched the message.
            InvalidUsageError: arguments could not be bound.
            PermissionDeniedError: admin-only command, non-admin author.
            ReplyError: the reply could not be sent.
            Exception: whatever a middleware or handler raised or returned.
        """
        try:
            await self._call(event)
        except Break:
            logger.debug("dispatch_break", event_type=type(event).__name__)

    async def _call(self, event: Any) -> None:
        root_ran = False

        callers = [
            cmd
            for sub in self.subcommand.walk()
            for cmd in sub.events
            if cmd.accepts(event)
        ]
        if callers:
            await self._run_middlewares(self.subcommand, event)
            root_ran = True
            for cmd in callers:
                error = _error_of(await _maybe_await(cmd.value(event)))
                if error is not None:
                    raise error

        if not isinstance(event, MessageCreateEvent):
            return
        if self.ignore_bots and event.author.bot:
            return
        await self._call_message_create(event, root_ran)

    async def _call_message_create(self, event: MessageCreateEvent, root_ran: bool) -> None:
        matched, line = self.has_prefix(event)
        if not matched:
            return

        tokens = Tokens(line)
        if not len(tokens):
            return

        sub = self.subcommand
        path = [sub]
        while True:
            token = tokens.peek()
            if token is None or sub.find_by_command(token) is not None:
                break
            child = sub.find_subcommand(token)
            if child is None:
                break
            tokens.next()
            sub = child
            path.append(child)

        for node in path:
            if node is self.subcommand and root_ran:
                continue
            await self._run_middlewares(node, event)

        cmd = self._resolve_command(sub, tokens, path)
        if cmd is None:
            return

        if cmd.flag.is_set(NameFlag.ADMIN_ONLY) and not await _maybe_await(self.is_admin(event)):
            raise PermissionDeniedError(
                f"{cmd.command or sub.command} is restricted to admins",
                author_id=event.author.id,
            )

        name = " ".join(sub.path() + ([cmd.command] if cmd.command else []))
        values = bind_arguments(cmd.arguments, tokens, name)

        logger.debug(
            "command_dispatched",
            command=name or "<plumb>",
            method=cmd.method_name,
            arguments=len(values),
        )
        result = await _maybe_await(cmd.value(event, *values))
        await self._interpret(event, sub, result)

    def _resolve_command(
        self, sub: Subcommand, tokens: Tokens, path: List[Subcommand]
    ) -> Optional[CommandContext]:
        if sub.plumb:
            return sub.commands[0]

        token = tokens.next()
        if token is not None:
            cmd = sub.find_by_command(token)
            if cmd is not None:
                return cmd

        if self.quiet_unknown_command or any(n.quiet_unknown_command for n in path):
            logger.debug("unknown_command_ignored", command=token, parent=sub.path())
            return None
        raise UnknownCommandError(token or "", parent=sub.path())

    async def _run_middlewares(self, sub: Subcommand, event: Any) -> None:
        for mw in sub.middlewares:
            if not mw.accepts(event):
                continue
            try:
                error = _error_of(await _maybe_await(mw.value(event)))
            except Break:
                raise
            except Exception as e:
                logger.info("middleware_failed", middleware=mw.method_name, error=str(e))
                raise
            if error is not None:
                logger.info("middleware_failed", middleware=mw.method_name, error=str(error))
                raise error

    async def _interpret(self, event: Any, sub: Subcommand, result: Any) -> None:
        if result is None:
            return
        if isinstance(result, BaseException):
            raise result

        content, error = result, None
        if isinstance(result, tuple):
            if len(result) != 2:
                raise ReplyError(f"handler returned {len(result)} values, expected 2")
            content, error = result

        if content:
            await self._reply(event, sub, content)
        if error is not None:
            raise error

    def _build_reply(self, sub: Subcommand, content: Any) -> SendMessageData:
        sanitize = sub.sanitize_message or self.sanitize_message
        if isinstance(content, str):
            return SendMessageData(content=sanitize(content))
        if isinstance(content, Embed):
            return SendMessageData(embed=content)
        if isinstance(content, SendMessageData):
            if not content.content:
                return content
            return content.model_copy(update={"content": sanitize(content.content)})
        raise ReplyError(f"unsupported reply type {type(content).__name__}")

    async def _reply(self, event: Any, sub: Subcommand, content: Any) -> None:
        data = self._build_reply(sub, content)
        channel_id = resolve_channel_id(event)
        if not channel_id:
            raise ReplyError("event has no channel to reply to", event=type(event).__name__)
        try:
            await self.send(channel_id, data)
        except Exception as e:
            raise ReplyError(f"failed to send reply: {e}", channel_id=channel_id) from e

    def _is_admin(self, event: MessageCreateEvent) -> bool:
        return event.author.id in self.admin_ids
