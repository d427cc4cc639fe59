"""Factory functions for creating and sharing encodings."""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Final, Literal, Mapping

from .encoding import DEFAULT_CACHE_SIZE, Encoding
from .errors import EncodingNotFoundError
from .pattern import TokenPattern
from .types import Token
from .vocab import bundled_tables, load_tables

log = logging.getLogger(__name__)

ENDOFTEXT: Final[str] = "<|endoftext|>"
CACHE_SIZE_ENV: Final[str] = "GPTCLIENT_CACHE_SIZE"

EncodingName = Literal["gpt2"]


def _cache_size() -> int:
    """Chunk cache size, overridable through the environment."""
    raw = os.environ.get(CACHE_SIZE_ENV, "").strip()
    if not raw:
        return DEFAULT_CACHE_SIZE
    try:
        size = int(raw)
        if size < 0:
            raise ValueError()
    except ValueError:
        log.warning(f"ignoring invalid {CACHE_SIZE_ENV}={raw!r}")
        return DEFAULT_CACHE_SIZE
    return size


def _gpt2() -> Encoding:
    return Encoding(
        "gpt2",
        bundled_tables(),
        pattern=TokenPattern.GPT2.value,
        special_tokens={ENDOFTEXT: 50256},
        cache_size=_cache_size(),
    )


_ENCODING_CONSTRUCTORS: Final[dict[str, Callable[[], Encoding]]] = {
    "gpt2": _gpt2,
}

# built encodings, shared process-wide once constructed
_ENCODINGS: dict[str, Encoding] = {}
_lock = threading.Lock()


def list_encodings() -> list[str]:
    """Return names of all built-in encodings."""
    return list(_ENCODING_CONSTRUCTORS.keys())


def get_encoding(name: EncodingName = "gpt2") -> Encoding:
    """
    Return the shared built-in encoding called ``name``.

    Tables are loaded on first use; concurrent first calls wait for a single
    load and then share the result.

    :param name: Built-in encoding name, see :func:`list_encodings`.
    :raises EncodingNotFoundError: If ``name`` is not registered.
    :raises TableIntegrityError: If the bundled data is corrupt.

    .. code-block:: python

        enc = get_encoding()
        enc.count("One plus one equals two")  # 5
    """
    enc = _ENCODINGS.get(name)
    if enc is not None:
        return enc

    with _lock:
        # another thread may have finished loading while we waited
        if name in _ENCODINGS:
            return _ENCODINGS[name]

        if name not in _ENCODING_CONSTRUCTORS:
            raise EncodingNotFoundError(name, available=list_encodings())

        log.info(f"initialising encoding {name!r}")
        enc = _ENCODING_CONSTRUCTORS[name]()
        _ENCODINGS[name] = enc
        return enc


def from_files(
    encoder_path: str | Path,
    merges_path: str | Path,
    *,
    name: str = "custom",
    pattern: str = TokenPattern.GPT2.value,
    special_tokens: Mapping[str, Token] | None = None,
    expected_hashes: Mapping[str, str] | None = None,
) -> Encoding:
    """
    Build an independent encoding from an ``encoder.json`` / ``vocab.bpe`` pair.

    The result is not registered or shared; each call loads the files again.

    :param encoder_path: Path to the symbol to id JSON file.
    :param merges_path: Path to the ranked merge list.
    :param name: Display name for the encoding.
    :param pattern: Pre-tokenization regex, GPT-2's by default.
    :param special_tokens: Optional control tokens and their ids.
    :param expected_hashes: Optional sha256 digests to verify the files against.
    :raises TableIntegrityError: If the files are missing or inconsistent.
    :raises PatternError: If ``pattern`` is not a valid regex.
    """
    tables = load_tables(encoder_path, merges_path, expected_hashes=expected_hashes)
    return Encoding(
        name,
        tables,
        pattern=pattern,
        special_tokens=special_tokens,
        cache_size=_cache_size(),
    )


# Convenience wrappers over the default encoding
# ===================================================================================


def encode(text: str) -> list[Token]:
    """Encode ``text`` with the GPT-2 encoding."""
    return get_encoding().encode(text)


def decode(tokens: list[Token]) -> str:
    """Decode ``tokens`` with the GPT-2 encoding."""
    return get_encoding().decode(tokens)


def count(text: str) -> int:
    """Count the GPT-2 tokens in ``text``."""
    return get_encoding().count(text)
