"""Custom exception hierarchy for gptclient errors."""

import regex as re


class GptClientError(Exception):
    """Base exception for all gptclient errors."""


class TableIntegrityError(GptClientError):
    """
    Raised when vocabulary or merge tables are malformed or inconsistent.

    Not recoverable: an encoding built on such tables is unusable.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
        symbol: str | None = None,
    ) -> None:
        extra = " "
        if path:
            extra += f"(path: {path}) "
        if line is not None:
            extra += f"(line: {line}) "
        if symbol is not None:
            extra += f"(symbol: {symbol!r}) "
        super().__init__(message + extra)
        self.path = path
        self.line = line
        self.symbol = symbol


class VocabularyError(GptClientError):
    """Raised when vocabulary lookups fail on caller-supplied input."""


class UnknownTokenError(VocabularyError):
    """Raised when decoding a token id that is not in the vocabulary."""

    def __init__(self, message: str, *, token: object) -> None:
        super().__init__(f"{message} (invalid token: {token!r})")
        self.token = token


class SpecialTokenError(GptClientError):
    """Raised when special token handling fails."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens


class StrategyError(GptClientError):
    """Raised when strategy lookups fail."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available_strats: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available_strats}) (got {invalid_name}) "
        super().__init__(message + extra)
        self.invalid_name = invalid_name
        self.available_strats = available_strats


class PatternError(GptClientError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra)
        self.pattern = pattern
        self.regex_err = regex_err


class EncodingNotFoundError(GptClientError):
    """Raised when an encoding name is not registered."""

    def __init__(self, name: str, *, available: list[str]) -> None:
        super().__init__(f"unknown encoding {name!r} (available: {available})")
        self.name = name
        self.available = available


class ConfigurationError(GptClientError):
    """Raised when the API client is missing required configuration."""


class ParameterError(GptClientError):
    """Raised when request parameters fail validation before sending."""

    def __init__(self, message: str, *, param: str | None = None) -> None:
        if param:
            message = f"{message} (param: {param})"
        super().__init__(message)
        self.param = param


class RequestError(GptClientError):
    """
    Raised when the remote API rejects a request or cannot be reached.

    Mirrors the ``{"error": {...}}`` body returned by the API.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        param: str | None = None,
        type: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.param = param
        self.type = type
        self.status = status

    @classmethod
    def from_payload(cls, payload: object, status: int | None = None) -> "RequestError":
        """Build from a decoded error response body, tolerating odd shapes."""
        err = payload.get("error") if isinstance(payload, dict) else None
        if not isinstance(err, dict):
            return cls(f"request failed with status {status}", status=status)
        return cls(
            err.get("message") or f"request failed with status {status}",
            code=err.get("code"),
            param=err.get("param"),
            type=err.get("type"),
            status=status,
        )
