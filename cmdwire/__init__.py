"""Command dispatch for chat bots.

Turns plain handler objects into command tables and routes incoming
gateway events to them.
"""

from .arguments import Argument, ArgumentKind, RawArguments, register_parser
from .config import Config, get_config
from .context import Context, format_error, new_prefix
from .decorators import admin_only, command, hidden, middleware, plumb
from .events import (
    Embed,
    EmbedField,
    EmbedFooter,
    Member,
    Message,
    MessageCreateEvent,
    MessageDeleteEvent,
    MessageUpdateEvent,
    ReadyEvent,
    SendMessageData,
    Snowflake,
    TypingStartEvent,
    User,
)
from .exceptions import (
    AmbiguousFieldError,
    ArgumentTypeError,
    Break,
    CmdwireError,
    ConfigurationError,
    ErrorCategory,
    InvalidUsageError,
    PermissionDeniedError,
    ReplyError,
    SetupError,
    UnknownCommandError,
)
from .fields import resolve_channel_id, resolve_guild_id, resolve_id
from .logging_config import setup_logging
from .nameflag import FLAG_SEPARATOR, NameFlag, parse_flag
from .subcommand import CommandContext, Subcommand

__all__ = [
    # Dispatch
    "Context",
    "new_prefix",
    "format_error",
    "Subcommand",
    "CommandContext",
    # Flags and decorators
    "FLAG_SEPARATOR",
    "NameFlag",
    "parse_flag",
    "command",
    "middleware",
    "plumb",
    "admin_only",
    "hidden",
    # Arguments
    "Argument",
    "ArgumentKind",
    "RawArguments",
    "register_parser",
    # Events
    "Snowflake",
    "User",
    "Member",
    "Message",
    "MessageCreateEvent",
    "MessageUpdateEvent",
    "MessageDeleteEvent",
    "TypingStartEvent",
    "ReadyEvent",
    "Embed",
    "EmbedField",
    "EmbedFooter",
    "SendMessageData",
    # Fields
    "resolve_id",
    "resolve_channel_id",
    "resolve_guild_id",
    # Errors
    "ErrorCategory",
    "CmdwireError",
    "Break",
    "SetupError",
    "ArgumentTypeError",
    "UnknownCommandError",
    "InvalidUsageError",
    "PermissionDeniedError",
    "ReplyError",
    "AmbiguousFieldError",
    "ConfigurationError",
    # Ambient
    "Config",
    "get_config",
    "setup_logging",
]
