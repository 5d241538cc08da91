"""Name-encoded command flags.

A member name may carry flag letters before the ``ー`` separator::

    def Aーban(self, event: MessageCreateEvent, user: int): ...

registers an admin-only command named ``ban``. Recognised letters:

    R  raw casing (the display name keeps its first letter as written)
    A  admin only
    H  hidden (registered as an event handler, not shown in help)
    P  plumb (the nameless fallback command of a subcommand)
    M  middleware

Flags can also be given explicitly with the decorators in
:mod:`cmdwire.decorators`.
"""

import enum
from typing import Tuple

FLAG_SEPARATOR = "ー"


class NameFlag(enum.IntFlag):
    """Bitmask of command flags."""
    NONE = 0
    RAW = enum.auto()
    ADMIN_ONLY = enum.auto()
    HIDDEN = enum.auto()
    PLUMB = enum.auto()
    MIDDLEWARE = enum.auto()

    def is_set(self, flag: "NameFlag") -> bool:
        return self & flag == flag


_LETTERS = {
    "R": NameFlag.RAW,
    "A": NameFlag.ADMIN_ONLY,
    "H": NameFlag.HIDDEN,
    "P": NameFlag.PLUMB,
    "M": NameFlag.MIDDLEWARE,
}


def lower_first_letter(name: str) -> str:
    if not name:
        return name
    return name[0].lower() + name[1:]


def parse_flag(name: str) -> Tuple[NameFlag, str]:
    """Split a declared name into its flags and its display name.

    Unknown flag letters are ignored. Unless RAW is set, the first
    letter of the returned name is lower-cased.
    """
    flag = NameFlag.NONE
    head, sep, tail = name.partition(FLAG_SEPARATOR)
    if sep:
        for letter in head:
            flag |= _LETTERS.get(letter, NameFlag.NONE)
        name = tail

    if not flag.is_set(NameFlag.RAW):
        name = lower_first_letter(name)
    return flag, name
