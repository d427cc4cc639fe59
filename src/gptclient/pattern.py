"""Pre-tokenization patterns that split text into independently merged chunks."""

from enum import Enum

import regex as re

from .errors import PatternError


class TokenPattern(str, Enum):
    """
    Split patterns of the built-in encodings.

    Source: https://github.com/openai/tiktoken/blob/main/tiktoken_ext/openai_public.py
    """

    # contractions, letter runs, digit runs, punctuation runs (each optionally
    # led by one space), then whitespace that is not followed by a non-space
    GPT2 = (
        r"'(?:[sdmt]|ll|ve|re)|"
        r" ?\p{L}+|"
        r" ?\p{N}+|"
        r" ?[^\s\p{L}\p{N}]+|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    @classmethod
    def get(cls, name: str) -> str:
        """Pattern text for an encoding name, ignoring case."""
        member = cls.__members__.get(name.upper().replace("-", "_"))
        if member is None:
            known = ", ".join(m.name.lower() for m in cls)
            raise PatternError(f"no split pattern named {name!r} (known: {known})")
        return member.value


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a split pattern with the ``regex`` module.

    :param pattern: Pattern text, may use ``\\p{..}`` Unicode classes.
    :return: The compiled pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e) from e


def split_chunks(compiled: re.Pattern[str], text: str) -> list[str]:
    """Split ``text`` into the ordered chunks matched by ``compiled``."""
    return [m.group(0) for m in compiled.finditer(text)]
