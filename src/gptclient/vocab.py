"""
Vocabulary and merge table loading.

A byte-level BPE model is described by two static files:

- ``encoder.json``: a JSON object mapping token symbols to integer ids.
- ``vocab.bpe``: a ``#version`` header followed by one merge per line,
  ``left right``, in priority order (first line merges first).

Both are validated on load; any inconsistency is fatal because an encoding
built on a broken table cannot guarantee a lossless round trip.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from importlib.resources import as_file, files
from pathlib import Path
from types import MappingProxyType
from typing import Final, Mapping

from ._bytemap import BYTE_ENCODER
from ._decorators import timed
from .errors import TableIntegrityError
from .types import SymbolPair, Token

log = logging.getLogger(__name__)

ENCODER_FILENAME: Final[str] = "encoder.json"
MERGES_FILENAME: Final[str] = "vocab.bpe"

# same digests tiktoken pins for the GPT-2 asset
GPT2_HASHES: Final[dict[str, str]] = {
    ENCODER_FILENAME: "196139668be63f3b5d6574427317ae82f612a97c5d1cdaf36ed2256dbf636783",
    MERGES_FILENAME: "1ce1664773c50f3e0cc8842619a93edc4624525b728b188a9e0be33b7726adc5",
}


@dataclass(frozen=True)
class BPETables:
    """Immutable vocabulary, reverse vocabulary and merge ranks."""

    # symbol -> token id
    encoder: Mapping[str, Token]
    # token id -> symbol
    decoder: Mapping[Token, str]
    # (left, right) -> rank, lower merges first
    bpe_ranks: Mapping[SymbolPair, int]

    @property
    def n_vocab(self) -> int:
        """Number of entries in the vocabulary."""
        return len(self.encoder)

    @classmethod
    def build(
        cls,
        encoder: dict[str, Token],
        merges: list[SymbolPair],
        *,
        path: str | None = None,
    ) -> "BPETables":
        """
        Validate raw tables and freeze them.

        :param encoder: Symbol to token id mapping.
        :param merges: Merge pairs in priority order.
        :param path: Source description used in error messages.
        :raises TableIntegrityError: If the tables are inconsistent.
        """
        decoder: dict[Token, str] = {}
        for symbol, tok in encoder.items():
            # bool is an int subclass but never a valid id
            if not isinstance(tok, int) or isinstance(tok, bool) or tok < 0:
                raise TableIntegrityError(
                    "token id must be a non-negative integer", path=path, symbol=symbol
                )
            if tok in decoder:
                raise TableIntegrityError(
                    f"duplicate token id {tok}", path=path, symbol=symbol
                )
            decoder[tok] = symbol

        for symbol in BYTE_ENCODER:
            if symbol not in encoder:
                raise TableIntegrityError(
                    "byte symbol missing from vocabulary", path=path, symbol=symbol
                )

        bpe_ranks: dict[SymbolPair, int] = {}
        for rank, pair in enumerate(merges):
            left, right = pair
            if pair in bpe_ranks:
                raise TableIntegrityError(
                    f"duplicate merge at rank {rank}", path=path, symbol=left + " " + right
                )
            for symbol in (left, right, left + right):
                if symbol not in encoder:
                    raise TableIntegrityError(
                        f"merge at rank {rank} references unknown symbol",
                        path=path,
                        symbol=symbol,
                    )
            bpe_ranks[pair] = rank

        log.debug(f"built tables: {len(encoder)} tokens, {len(bpe_ranks)} merges")

        return cls(
            encoder=MappingProxyType(dict(encoder)),
            decoder=MappingProxyType(decoder),
            bpe_ranks=MappingProxyType(bpe_ranks),
        )


class _DuplicateSymbol(ValueError):
    def __init__(self, symbol: str) -> None:
        super().__init__(symbol)
        self.symbol = symbol


def _reject_duplicate_keys(pairs: list[tuple[str, object]]) -> dict[str, object]:
    """``json`` object hook that refuses repeated symbols."""
    out: dict[str, object] = {}
    for key, value in pairs:
        if key in out:
            raise _DuplicateSymbol(key)
        out[key] = value
    return out


def _check_hash(name: str, data: bytes, expected: str) -> None:
    digest = hashlib.sha256(data).hexdigest()
    if digest != expected:
        raise TableIntegrityError(
            f"hash mismatch (expected {expected}) (got {digest})", path=name
        )


def parse_encoder(data: bytes, *, path: str | None = None) -> dict[str, Token]:
    """Parse ``encoder.json`` content into a symbol to id mapping."""
    try:
        encoder = json.loads(
            data.decode("utf-8"), object_pairs_hook=_reject_duplicate_keys
        )
    except _DuplicateSymbol as e:
        raise TableIntegrityError(
            "duplicate symbol in vocabulary", path=path, symbol=e.symbol
        ) from e
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TableIntegrityError(f"invalid vocabulary json: {e}", path=path) from e

    if not isinstance(encoder, dict):
        raise TableIntegrityError("vocabulary must be a json object", path=path)
    return encoder


def parse_merges(data: bytes, *, path: str | None = None) -> list[SymbolPair]:
    """Parse ``vocab.bpe`` content into merge pairs in priority order."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TableIntegrityError("merge table is not valid utf-8", path=path) from e

    lines = text.split("\n")
    # header is optional, but only ever on the first line
    if lines and lines[0].startswith("#version"):
        start = 1
    else:
        start = 0

    merges: list[SymbolPair] = []
    for lineno, line in enumerate(lines[start:], start=start + 1):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        parts = line.split(" ")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise TableIntegrityError(
                "merge must be two space-separated symbols", path=path, line=lineno
            )
        merges.append((parts[0], parts[1]))
    return merges


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise TableIntegrityError(f"cannot read table: {e}", path=str(path)) from e


@timed("table load")
def load_tables(
    encoder_path: str | Path,
    merges_path: str | Path,
    *,
    expected_hashes: Mapping[str, str] | None = None,
) -> BPETables:
    """
    Load and validate a vocabulary and merge table from disk.

    :param encoder_path: Path to an ``encoder.json`` style file.
    :param merges_path: Path to a ``vocab.bpe`` style file.
    :param expected_hashes: Optional sha256 digests keyed by
        ``ENCODER_FILENAME`` / ``MERGES_FILENAME``.
    :return: Frozen tables ready for encoding.
    :raises TableIntegrityError: If either file is missing, malformed, or the
        two disagree.
    """
    encoder_path, merges_path = Path(encoder_path), Path(merges_path)
    log.info(f"loading tables from {encoder_path} and {merges_path}")

    encoder_data = _read(encoder_path)
    merges_data = _read(merges_path)

    if expected_hashes:
        _check_hash(str(encoder_path), encoder_data, expected_hashes[ENCODER_FILENAME])
        _check_hash(str(merges_path), merges_data, expected_hashes[MERGES_FILENAME])

    encoder = parse_encoder(encoder_data, path=str(encoder_path))
    merges = parse_merges(merges_data, path=str(merges_path))

    return BPETables.build(encoder, merges, path=str(merges_path))


def bundled_tables() -> BPETables:
    """Load the GPT-2 tables shipped in ``gptclient/data``."""
    data_dir = files("gptclient") / "data"
    with (
        as_file(data_dir / ENCODER_FILENAME) as encoder_path,
        as_file(data_dir / MERGES_FILENAME) as merges_path,
    ):
        return load_tables(encoder_path, merges_path, expected_hashes=GPT2_HASHES)
