"""
Special token handling for encoding.

GPT-2 registers ``<|endoftext|>`` as a control token. By default an encoding
treats that text like any other (it is split and merged into ordinary
tokens). A strategy opts into recognising registered special tokens as single
atomic ids instead.
"""

import logging
from abc import ABC, abstractmethod
from typing import Final, Iterable, Literal, Mapping, overload, override

from .errors import SpecialTokenError, StrategyError
from .types import Token

log = logging.getLogger(__name__)


class SpecialTokenStrategy(ABC):
    """Decides which registered special tokens are atomic for one encode call."""

    @staticmethod
    def present(text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        """Registered special tokens that occur in ``text``."""
        return {seq: tok for seq, tok in special_toks.items() if seq in text}

    @abstractmethod
    def select(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        """
        Pick the special tokens to emit as single ids while encoding ``text``.

        An empty result means ``text`` is encoded as ordinary text.

        :raises SpecialTokenError: If the strategy refuses ``text``.
        """


class AllowAllStrategy(SpecialTokenStrategy):
    """Every registered special token is atomic."""

    @override
    def select(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        if not special_toks:
            log.warning("allow-all strategy used on an encoding without special tokens")
        return self.present(text, special_toks)


class AllowNoneStrategy(SpecialTokenStrategy):
    """Special token text is encoded as ordinary text."""

    @override
    def select(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        found = self.present(text, special_toks)
        if found:
            log.debug(f"encoding {sorted(found)} as plain text")
        return {}


class AllowNoneRaiseStrategy(SpecialTokenStrategy):
    """Refuse text that contains any registered special token."""

    @override
    def select(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        found = self.present(text, special_toks)
        if found:
            raise SpecialTokenError(
                "text contains disallowed special tokens", found_tokens=set(found)
            )
        return {}


class AllowCustomStrategy(SpecialTokenStrategy):
    """Only the named subset of special tokens is atomic."""

    def __init__(self, allowed_subset: Iterable[str]) -> None:
        self.allowed_subset = frozenset(allowed_subset)

    def __repr__(self) -> str:
        return f"AllowCustomStrategy({sorted(self.allowed_subset)!r})"

    @override
    def select(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        unknown = self.allowed_subset.difference(special_toks)
        if unknown:
            raise SpecialTokenError(
                "allowed special tokens are not registered", found_tokens=set(unknown)
            )
        found = self.present(text, special_toks)
        return {seq: tok for seq, tok in found.items() if seq in self.allowed_subset}


StrategyName = Literal["all", "none", "none-raise", "custom"]

_STRATEGIES: Final[dict[str, type[SpecialTokenStrategy]]] = {
    "all": AllowAllStrategy,
    "none": AllowNoneStrategy,
    "none-raise": AllowNoneRaiseStrategy,
    "custom": AllowCustomStrategy,
}


def list_strategies() -> list[str]:
    """Names accepted by :func:`get_strategy`."""
    return list(_STRATEGIES)


@overload
def get_strategy(
    name: Literal["all", "none", "none-raise"],
) -> SpecialTokenStrategy: ...


@overload
def get_strategy(
    name: Literal["custom"], allowed_subset: Iterable[str]
) -> AllowCustomStrategy: ...


def get_strategy(
    name: StrategyName = "none", allowed_subset: Iterable[str] | None = None
) -> SpecialTokenStrategy:
    """
    Build a special token strategy from its name.

    :param name: One of :func:`list_strategies`.
    :param allowed_subset: Tokens treated as atomic; only for ``"custom"``,
        where it is required.
    :raises StrategyError: On an unknown name, or ``"custom"`` without a subset.

    .. code-block:: python

        enc.encode("a<|endoftext|>b", strategy=get_strategy("all"))  # [64, 50256, 65]
    """
    cls = _STRATEGIES.get(name)
    if cls is None:
        raise StrategyError(
            "unknown special token strategy",
            invalid_name=name,
            available_strats=list_strategies(),
        )
    if cls is AllowCustomStrategy:
        if allowed_subset is None:
            raise StrategyError("custom strategy needs allowed_subset")
        return AllowCustomStrategy(allowed_subset)
    return cls()
