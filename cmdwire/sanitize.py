"""Text sanitizers applied to reply content before it is sent.

Provides mention escaping (so a command echoing user input cannot ping
``@everyone``), control-character stripping and a length cap. The
default sanitizer chains all three; a Subcommand or Context can swap in
any ``str -> str`` callable.
"""

import re
import unicodedata

# Chat services reject messages above this length.
MAX_MESSAGE_LENGTH = 2000

_ZERO_WIDTH_SPACE = "\u200b"
_MASS_MENTION = re.compile(r"@(everyone|here)")
_BIDI_CHARS = frozenset("\u202a\u202b\u202c\u202d\u202e\u2066\u2067\u2068\u2069")


def escape_mentions(text: str) -> str:
    """Break ``@everyone``/``@here`` with a zero-width space."""
    return _MASS_MENTION.sub("@" + _ZERO_WIDTH_SPACE + r"\1", text)


def strip_control_chars(text: str) -> str:
    """Remove control and bidi-override characters, keeping newlines and tabs."""
    return "".join(
        ch for ch in text
        if ch in ("\n", "\r", "\t")
        or not (unicodedata.category(ch).startswith("C") or ch in _BIDI_CHARS)
    )


def sanitize_message(text: str) -> str:
    """Default reply sanitizer."""
    text = escape_mentions(strip_control_chars(text))
    if len(text) > MAX_MESSAGE_LENGTH:
        text = text[:MAX_MESSAGE_LENGTH]
    return text


def identity(text: str) -> str:
    return text
