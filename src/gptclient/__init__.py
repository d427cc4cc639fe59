"""gptclient: GPT API client with a local byte-level BPE tokenizer."""

from importlib.metadata import PackageNotFoundError, version

from .client import Client
from .config import ClientSettings
from .encoding import Encoding
from .errors import (
    ConfigurationError,
    EncodingNotFoundError,
    GptClientError,
    ParameterError,
    PatternError,
    RequestError,
    SpecialTokenError,
    StrategyError,
    TableIntegrityError,
    UnknownTokenError,
    VocabularyError,
)
from .factory import (
    count,
    decode,
    encode,
    from_files,
    get_encoding,
    list_encodings,
)
from .pattern import TokenPattern
from .strategy import (
    AllowAllStrategy,
    AllowCustomStrategy,
    AllowNoneRaiseStrategy,
    AllowNoneStrategy,
    SpecialTokenStrategy,
    get_strategy,
    list_strategies,
)
from .vocab import BPETables, load_tables

try:
    __version__ = version("gptclient")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Client",
    "ClientSettings",
    "Encoding",
    "BPETables",
    "TokenPattern",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "GptClientError",
    "TableIntegrityError",
    "VocabularyError",
    "UnknownTokenError",
    "PatternError",
    "SpecialTokenError",
    "StrategyError",
    "EncodingNotFoundError",
    "ConfigurationError",
    "ParameterError",
    "RequestError",
    "get_encoding",
    "from_files",
    "load_tables",
    "get_strategy",
    "list_encodings",
    "list_strategies",
    "encode",
    "decode",
    "count",
]
