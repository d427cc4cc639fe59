"""
Reversible byte <-> printable character mapping used by byte-level BPE.

Every byte value gets a single visible character so merges can run over
plain strings without ever seeing whitespace or control characters. Bytes
that are already printable Latin-1 map to themselves; the remaining 68 are
shifted, in ascending order, onto U+0100 and beyond.
"""

from typing import Final

_PRINTABLE_RANGES: Final[tuple[tuple[str, str], ...]] = (
    ("!", "~"),
    ("\N{INVERTED EXCLAMATION MARK}", "\N{NOT SIGN}"),
    ("\N{REGISTERED SIGN}", "\N{LATIN SMALL LETTER Y WITH DIAERESIS}"),
)


def _build_byte_encoder() -> tuple[str, ...]:
    """Return a 256-tuple where index ``b`` holds the character for byte ``b``."""
    printable = {
        b for lo, hi in _PRINTABLE_RANGES for b in range(ord(lo), ord(hi) + 1)
    }
    table: list[str] = []
    shifted = 0
    for b in range(256):
        if b in printable:
            table.append(chr(b))
        else:
            table.append(chr(256 + shifted))
            shifted += 1
    return tuple(table)


BYTE_ENCODER: Final[tuple[str, ...]] = _build_byte_encoder()
BYTE_DECODER: Final[dict[str, int]] = {c: b for b, c in enumerate(BYTE_ENCODER)}


def bytes_to_symbols(data: bytes) -> str:
    """Map raw bytes to their printable stand-ins, one character per byte."""
    return "".join(BYTE_ENCODER[b] for b in data)


def symbols_to_bytes(symbols: str) -> bytes:
    """
    Invert :func:`bytes_to_symbols`.

    :raises KeyError: If ``symbols`` contains a character outside the map.
    """
    return bytes(BYTE_DECODER[c] for c in symbols)
