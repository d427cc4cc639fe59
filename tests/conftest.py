"""Shared fixtures: small hand-built tables for loader and merge tests."""

import json

import pytest

from gptclient._bytemap import BYTE_ENCODER

# left, right; results get ids after the 256 byte symbols, in this order
TINY_MERGES = [
    ("h", "e"),
    ("l", "l"),
    ("he", "ll"),
    ("hell", "o"),
    ("a", "a"),
    ("Ġ", "w"),
]


@pytest.fixture
def tiny_merges():
    """Merge list for the tiny tables; safe to modify."""
    return list(TINY_MERGES)


@pytest.fixture
def tiny_vocab():
    """Byte symbols plus one entry per tiny merge result; safe to modify."""
    vocab = {sym: idx for idx, sym in enumerate(BYTE_ENCODER)}
    for left, right in TINY_MERGES:
        vocab.setdefault(left + right, len(vocab))
    return vocab


@pytest.fixture
def write_tables(tmp_path):
    """Return a helper writing an encoder.json / vocab.bpe pair under tmp_path."""

    def _write(vocab, merges, *, header="#version: 0.2"):
        encoder_path = tmp_path / "encoder.json"
        merges_path = tmp_path / "vocab.bpe"
        encoder_path.write_text(json.dumps(vocab), encoding="utf-8")
        lines = [header] if header else []
        lines += [f"{left} {right}" for left, right in merges]
        merges_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return encoder_path, merges_path

    return _write


@pytest.fixture
def tiny_paths(write_tables, tiny_vocab, tiny_merges):
    """Paths to a valid tiny table pair."""
    return write_tables(tiny_vocab, tiny_merges)
