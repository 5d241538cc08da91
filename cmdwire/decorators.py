"""Explicit command metadata.

Decorators attach a :class:`CommandMeta` to a handler member so flags,
display name and description do not have to be encoded in the method
name. The metadata is read once, when the handler is registered.
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional

from .nameflag import NameFlag

META_ATTRIBUTE = "__cmdwire_meta__"


@dataclass(frozen=True)
class CommandMeta:
    """Registration metadata attached to a handler member.

    Attributes:
        name: Display name overriding the one derived from the member name.
        description: Help text overriding the member's docstring.
        flags: Flags united with the name-encoded ones.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    flags: NameFlag = NameFlag.NONE


def get_meta(func: Callable) -> CommandMeta:
    """Return the metadata attached to ``func`` (empty if none)."""
    func = getattr(func, "__func__", func)
    return getattr(func, META_ATTRIBUTE, None) or CommandMeta()


def _attach(func: Callable, **changes) -> Callable:
    meta = get_meta(func)
    flags = changes.pop("flags", NameFlag.NONE)
    meta = replace(meta, flags=meta.flags | flags, **changes)
    setattr(func, META_ATTRIBUTE, meta)
    return func


def command(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    flags: NameFlag = NameFlag.NONE,
):
    """Mark a member as a command with an explicit name, description or flags.

    Usable bare (``@command``) or called (``@command(name="ping")``).
    """
    def decorator(f: Callable) -> Callable:
        changes = {"flags": flags}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        return _attach(f, **changes)

    if func is not None:
        return decorator(func)
    return decorator


def middleware(func: Callable) -> Callable:
    """Mark a member as middleware, run before the matched command."""
    return _attach(func, flags=NameFlag.MIDDLEWARE)


def plumb(func: Callable) -> Callable:
    """Mark a member as the nameless fallback command of its subcommand."""
    return _attach(func, flags=NameFlag.PLUMB)


def admin_only(func: Callable) -> Callable:
    return _attach(func, flags=NameFlag.ADMIN_ONLY)


def hidden(func: Callable) -> Callable:
    return _attach(func, flags=NameFlag.HIDDEN)
