"""
Utilities for turning token symbols into displayable strings.
"""

import unicodedata

from ._bytemap import symbols_to_bytes


def _escape_ctrl_chars(s: str) -> str:
    """Replace all Unicode control characters with their escape sequences."""
    cleaned = []
    for c in s:
        # control category codes vary: Cc, Cf, Cn etc.
        # so check via first character
        if unicodedata.category(c)[0] != "C":
            cleaned.append(c)
        else:
            cleaned.append(f"\\u{ord(c):04x}")
    return "".join(cleaned)


def render_symbol(symbol: str) -> str:
    """
    Render one byte-mapped token symbol as readable text.

    Partial UTF-8 sequences become the replacement character and control
    characters such as newlines are shown escaped.
    """
    raw = symbols_to_bytes(symbol)
    return _escape_ctrl_chars(raw.decode("utf-8", errors="replace"))
