"""Byte-level BPE encoder/decoder over a fixed vocabulary and merge table."""

import functools
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Final, Mapping, Sequence
from types import MappingProxyType

import regex as re

from ._bytemap import bytes_to_symbols, symbols_to_bytes
from ._sanitise import render_symbol
from .errors import SpecialTokenError, TableIntegrityError, UnknownTokenError
from .pattern import TokenPattern, compile_pattern, split_chunks
from .strategy import SpecialTokenStrategy
from .types import Token
from .vocab import BPETables

DEFAULT_CACHE_SIZE: Final[int] = 4096

log = logging.getLogger(__name__)


def _check_token(tok: object) -> None:
    # bool is an int subclass but never a token id
    if not isinstance(tok, int) or isinstance(tok, bool):
        raise UnknownTokenError("token id must be an integer", token=tok)


class Encoding:
    """
    Handle bundling BPE tables, a split pattern and special tokens.

    Instances are immutable after construction and safe to share between
    threads. Obtain the stock GPT-2 encoding through
    :func:`gptclient.get_encoding`; build independent ones with
    :func:`gptclient.from_files`.

    .. code-block:: python

        enc = get_encoding("gpt2")
        ids = enc.encode("Hello, world!")  # [15496, 11, 995, 0]
        assert enc.decode(ids) == "Hello, world!"
    """

    def __init__(
        self,
        name: str,
        tables: BPETables,
        *,
        pattern: str = TokenPattern.GPT2.value,
        special_tokens: Mapping[str, Token] | None = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        """
        :param name: Display name of the encoding.
        :param tables: Validated vocabulary and merge ranks.
        :param pattern: Pre-tokenization regex; chunks never merge across matches.
        :param special_tokens: Control token text mapped to its id.
        :param cache_size: Number of distinct chunks whose ids are memoised.
        :raises PatternError: If ``pattern`` does not compile.
        :raises SpecialTokenError: If a special token id belongs to another symbol.
        """
        self.name = name
        self.tables = tables
        self.pat = str(pattern)
        self.compiled_pat: re.Pattern[str] = compile_pattern(self.pat)

        special_toks = dict(special_tokens or {})
        for seq, tok in special_toks.items():
            owner = tables.decoder.get(tok)
            if owner is not None and owner != seq:
                raise SpecialTokenError(
                    f"special token id {tok} already used by vocabulary",
                    found_tokens={seq},
                )
        self.special_tokens: Mapping[str, Token] = MappingProxyType(special_toks)
        self._special_decoder: dict[Token, bytes] = {
            tok: seq.encode("utf-8") for seq, tok in special_toks.items()
        }

        # per-instance memo of chunk -> ids; tables themselves are never touched
        self._encode_chunk = functools.lru_cache(maxsize=cache_size)(
            self._encode_chunk_uncached
        )

    def __repr__(self) -> str:
        return f"<Encoding {self.name!r}>"

    @property
    def n_vocab(self) -> int:
        """One past the largest token id, special tokens included."""
        return max([*self.tables.decoder, *self.special_tokens.values()]) + 1

    @property
    def eot_token(self) -> Token | None:
        """Id of ``<|endoftext|>`` when the encoding registers it."""
        return self.special_tokens.get("<|endoftext|>")

    # Encoding
    # ---------------------------------------------------------------------------

    def encode(
        self, text: str, strategy: SpecialTokenStrategy | None = None
    ) -> list[Token]:
        """
        Encode text into token ids.

        If ``strategy`` is ``None`` special token text is encoded like any
        other text. Otherwise the strategy picks which registered special
        tokens are emitted as single ids; the text between them is encoded
        normally.

        :param text: Text to encode. Any ``str`` is accepted.
        :param strategy: Optional special token handling strategy.
        :returns: Token ids in text order.
        :raises SpecialTokenError: If the strategy rejects the text.
        :raises TableIntegrityError: If the tables cannot represent a merge result.
        """
        if strategy is None:
            return self.encode_ordinary(text)

        allowed = strategy.select(text, self.special_tokens)
        if not allowed:
            return self.encode_ordinary(text)

        # longest first so overlapping special tokens resolve greedily
        esc_special_toks = [
            re.escape(seq) for seq in sorted(allowed, key=len, reverse=True)
        ]
        # capturing group keeps the special tokens in the split result
        special_pat = "(" + "|".join(esc_special_toks) + ")"

        tokens: list[Token] = []
        for part in re.split(special_pat, text):
            if part in allowed:
                tokens.append(allowed[part])
            elif part:
                tokens.extend(self.encode_ordinary(part))
        return tokens

    def encode_ordinary(self, text: str) -> list[Token]:
        """Encode text without any special token handling."""
        tokens: list[Token] = []
        for chunk in split_chunks(self.compiled_pat, text):
            tokens.extend(self._encode_chunk(chunk))
        return tokens

    def encode_batch(
        self,
        texts: Sequence[str],
        strategy: SpecialTokenStrategy | None = None,
        num_workers: int | None = None,
    ) -> list[list[Token]]:
        """
        Encode many texts, in parallel across texts when it can help.

        :param texts: Text inputs to encode.
        :param strategy: Optional special token handling strategy.
        :param num_workers: Thread count; defaults to the CPU count.
        :returns: Encoded token sequences in input order.
        """
        if num_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, num_workers)  # "0" interpreted as 1 worker

        if workers == 1 or len(texts) <= 1:
            return [self.encode(text, strategy) for text in texts]

        log.debug(f"encoding {len(texts)} texts with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda text: self.encode(text, strategy), texts))

    def count(self, text: str, strategy: SpecialTokenStrategy | None = None) -> int:
        """Return the number of tokens ``text`` encodes to."""
        return len(self.encode(text, strategy))

    def _encode_chunk_uncached(self, chunk: str) -> tuple[Token, ...]:
        """Encode one pre-tokenized chunk to ids."""
        # lone surrogates have no utf-8 form; they become "?"
        symbols = bytes_to_symbols(chunk.encode("utf-8", errors="replace"))
        encoder = self.tables.encoder
        try:
            return tuple(encoder[symbol] for symbol in self.bpe(symbols))
        except KeyError as e:
            raise TableIntegrityError(
                "merged symbol missing from vocabulary", symbol=e.args[0]
            ) from e

    def bpe(self, symbols: str) -> list[str]:
        """
        Apply ranked merges to one chunk of byte symbols.

        Each round merges every non-overlapping occurrence, left to right, of
        the adjacent pair with the lowest rank. Stops when no adjacent pair is
        ranked.

        :param symbols: Byte-mapped chunk, one character per byte.
        :returns: The merged symbols in order.
        """
        word = list(symbols)
        if len(word) < 2:
            return word

        ranks = self.tables.bpe_ranks
        while len(word) > 1:
            best: tuple[str, str] | None = None
            best_rank: int | None = None
            for pair in zip(word, word[1:]):
                rank = ranks.get(pair)
                if rank is not None and (best_rank is None or rank < best_rank):
                    best, best_rank = pair, rank

            if best is None:
                break

            first, second = best
            merged = first + second
            new_word: list[str] = []
            i = 0
            while i < len(word):
                if i < len(word) - 1 and word[i] == first and word[i + 1] == second:
                    new_word.append(merged)
                    i += 2
                else:
                    new_word.append(word[i])
                    i += 1
            word = new_word

        return word

    # Decoding
    # ---------------------------------------------------------------------------

    def decode_bytes(self, tokens: Sequence[Token]) -> bytes:
        """
        Decode token ids to the raw bytes they stand for.

        :raises UnknownTokenError: If any id is not an integer in the vocabulary.
        """
        decoder = self.tables.decoder
        out: list[bytes] = []
        for tok in tokens:
            _check_token(tok)
            if tok in self._special_decoder:
                out.append(self._special_decoder[tok])
                continue
            symbol = decoder.get(tok)
            if symbol is None:
                raise UnknownTokenError("token not found in vocabulary", token=tok)
            try:
                out.append(symbols_to_bytes(symbol))
            except KeyError as e:
                raise TableIntegrityError(
                    "vocabulary symbol outside the byte alphabet", symbol=symbol
                ) from e
        return b"".join(out)

    def decode(self, tokens: Sequence[Token], errors: str = "replace") -> str:
        """
        Decode token ids back into text.

        :param tokens: Token ids, e.g. the output of :meth:`encode`.
        :param errors: How to handle invalid UTF-8, as in ``bytes.decode``.
            Slicing an encoding mid-character yields invalid UTF-8.
        :raises UnknownTokenError: If any id is not in the vocabulary.
        """
        return self.decode_bytes(tokens).decode("utf-8", errors=errors)

    def decode_batch(
        self, token_batch: Sequence[Sequence[Token]], errors: str = "replace"
    ) -> list[str]:
        """Decode several token sequences."""
        return [self.decode(tokens, errors=errors) for tokens in token_batch]

    def token_strings(self, tokens: Sequence[Token]) -> list[str]:
        """Readable form of each token, control characters escaped."""
        out = []
        for tok in tokens:
            _check_token(tok)
            if tok in self._special_decoder:
                out.append(self._special_decoder[tok].decode("utf-8"))
                continue
            symbol = self.tables.decoder.get(tok)
            if symbol is None:
                raise UnknownTokenError("token not found in vocabulary", token=tok)
            out.append(render_symbol(symbol))
        return out
