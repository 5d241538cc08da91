"""Structural lookup of identifiers inside event payloads.

Transports deliver events of many shapes. To reply to one, the
dispatcher needs the channel it came from, wherever that is declared.
:func:`resolve_id` finds a ``<thing>_id`` field (or ``id`` on a class
whose name contains the thing, e.g. ``Channel.id``):

1. a payload implementing ``reply_<thing>_id()`` answers directly;
2. otherwise the payload's own declared fields are checked;
3. otherwise each composed value is searched the same way, in
   declaration order, depth first, with no depth limit.

The first non-zero match wins. Nothing found resolves to 0.
"""

import dataclasses
import enum
import types
from typing import Any, Iterator, List, Tuple

import structlog
from pydantic import BaseModel

from .events import Snowflake
from .exceptions import AmbiguousFieldError

logger = structlog.get_logger("cmdwire.fields")


def _declared_fields(obj: Any) -> List[Tuple[str, Any]]:
    """Return (name, value) pairs of ``obj``'s fields in declaration order."""
    if isinstance(obj, BaseModel):
        return [(name, getattr(obj, name, None)) for name in type(obj).model_fields]
    if dataclasses.is_dataclass(obj):
        return [(f.name, getattr(obj, f.name, None)) for f in dataclasses.fields(obj)]

    pairs = []
    for cls in reversed(type(obj).__mro__):
        slots = getattr(cls, "__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if hasattr(obj, name):
                pairs.append((name, getattr(obj, name)))
    pairs.extend(getattr(obj, "__dict__", {}).items())
    return pairs


def _is_composite(value: Any) -> bool:
    if value is None or isinstance(value, (str, bytes, int, float, enum.Enum)):
        return False
    if isinstance(value, (type, types.ModuleType, types.FunctionType, types.MethodType)):
        return False
    if isinstance(value, (BaseModel,)) or dataclasses.is_dataclass(value):
        return True
    return hasattr(value, "__dict__") or hasattr(type(value), "__slots__")


def _as_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def _iter_ids(obj: Any, thing: str, seen: set) -> Iterator[int]:
    if id(obj) in seen:
        return
    seen.add(id(obj))

    field_name = f"{thing}_id"
    in_name = thing.capitalize() in type(obj).__name__
    fields = _declared_fields(obj)

    for name, value in fields:
        if name == field_name or (in_name and name == "id"):
            found = _as_id(value)
            if found:
                yield found

    for _, value in fields:
        if _is_composite(value):
            yield from _iter_ids(value, thing, seen)


def resolve_id(payload: Any, thing: str = "channel", *, strict: bool = False) -> Snowflake:
    """Find the ``thing`` identifier in ``payload``.

    Args:
        payload: Any event value.
        thing: Identifier family, e.g. "channel" or "guild".
        strict: Raise instead of returning the first match when different
            identifiers are reachable.

    Returns:
        The identifier, or 0 when the payload holds none.

    Raises:
        AmbiguousFieldError: ``strict`` is set and the payload holds
            more than one distinct identifier.
    """
    answer = getattr(payload, f"reply_{thing}_id", None)
    if callable(answer):
        found = _as_id(answer())
        if found:
            return Snowflake(found)

    ids = _iter_ids(payload, thing, set())
    if not strict:
        return Snowflake(next(ids, 0))

    distinct: List[int] = []
    for found in ids:
        if found not in distinct:
            distinct.append(found)
    if len(distinct) > 1:
        logger.warning(
            "ambiguous_identifier",
            thing=thing,
            payload=type(payload).__name__,
            candidates=distinct,
        )
        raise AmbiguousFieldError(
            f"{type(payload).__name__} holds {len(distinct)} different {thing} IDs",
            candidates=distinct,
        )
    return Snowflake(distinct[0] if distinct else 0)


def resolve_channel_id(payload: Any, *, strict: bool = False) -> Snowflake:
    """Find the channel a reply to ``payload`` should go to."""
    return resolve_id(payload, "channel", strict=strict)


def resolve_guild_id(payload: Any, *, strict: bool = False) -> Snowflake:
    return resolve_id(payload, "guild", strict=strict)
