"""Exception hierarchy for cmdwire.

Setup-time errors abandon a registration; dispatch-time errors are the
sole result of one ``Context.call``. Exceptions raised by user handlers
and middleware are never wrapped and propagate as they are.

The ErrorCategory enum classifies every library error so callers can
decide how to report it without matching on classes.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of cmdwire errors."""
    SETUP = "setup"                      # Malformed handler, fatal to registration
    UNKNOWN_COMMAND = "unknown_command"
    USAGE = "usage"                      # Argument count or parse failure
    PERMISSION = "permission"
    REPLY = "reply"                      # Send collaborator failed
    RESOLUTION = "resolution"            # Field resolver ambiguity
    CONFIG = "config"


class CmdwireError(Exception):
    """Base exception for all cmdwire errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification.
        module: Originating module name (e.g. "dispatch").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.SETUP,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


class Break(Exception):
    """Raised by middleware to stop dispatch without reporting an error."""


# ---------------------------------------------------------------------------
# Setup exceptions
# ---------------------------------------------------------------------------

class SetupError(CmdwireError):
    """A handler object could not be registered.

    Attributes:
        handler: Class name of the handler object.
        member: Offending member name (if known).
    """

    def __init__(
        self,
        message: str = "",
        *,
        handler: Optional[str] = None,
        member: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.SETUP,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.handler = handler
        self.member = member
        super().__init__(
            message, category=category, module=module or "setup", **context
        )


class ArgumentTypeError(SetupError):
    """No parser is known for a command parameter's declared type."""

    def __init__(
        self,
        message: str = "",
        *,
        parameter: Optional[str] = None,
        type_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.parameter = parameter
        self.type_name = type_name
        super().__init__(message, **kwargs)


# ---------------------------------------------------------------------------
# Dispatch exceptions
# ---------------------------------------------------------------------------

class UnknownCommandError(CmdwireError):
    """The command line named no registered command.

    Attributes:
        command: The attempted command token ("" when none was given).
        parent: Display names of the subcommands walked to reach it.
    """

    def __init__(
        self,
        command: str,
        *,
        parent: Optional[list] = None,
        module: Optional[str] = None,
    ) -> None:
        self.command = command
        self.parent = list(parent or [])
        attempted = " ".join(p for p in self.parent + [command] if p)
        super().__init__(
            f"Unknown command: {attempted}",
            category=ErrorCategory.UNKNOWN_COMMAND,
            module=module,
        )


class InvalidUsageError(CmdwireError):
    """Arguments could not be bound to a command.

    Attributes:
        command: Display name of the command.
        index: Zero-based index of the failing argument.
        usage: Usage line of the command.
        reason: Short explanation ("not enough arguments", parse error).
    """

    def __init__(
        self,
        reason: str,
        *,
        command: str = "",
        index: int = 0,
        usage: str = "",
        module: Optional[str] = None,
    ) -> None:
        self.reason = reason
        self.command = command
        self.index = index
        self.usage = usage
        message = f"Invalid usage at argument {index + 1}: {reason}"
        if usage:
            message += f"\nUsage: {usage}"
        super().__init__(message, category=ErrorCategory.USAGE, module=module)


class PermissionDeniedError(CmdwireError):
    """An admin-only command was invoked by a non-admin author."""

    def __init__(self, message: str = "", *, module: Optional[str] = None, **context: Any) -> None:
        super().__init__(
            message, category=ErrorCategory.PERMISSION, module=module, **context
        )


class ReplyError(CmdwireError):
    """The reply could not be delivered through the send collaborator."""

    def __init__(self, message: str = "", *, module: Optional[str] = None, **context: Any) -> None:
        super().__init__(
            message, category=ErrorCategory.REPLY, module=module or "dispatch", **context
        )


class AmbiguousFieldError(CmdwireError):
    """Different identifiers were reachable in one payload (strict mode).

    Attributes:
        candidates: The distinct identifiers found, in traversal order.
    """

    def __init__(self, message: str = "", *, candidates: Optional[list] = None) -> None:
        self.candidates = list(candidates or [])
        super().__init__(
            message, category=ErrorCategory.RESOLUTION, module="fields"
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(CmdwireError):
    """Invalid or unreadable configuration file."""

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=ErrorCategory.CONFIG, module=module or "config", **context
        )
