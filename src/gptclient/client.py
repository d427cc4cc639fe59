"""
Client for the remote generative-language HTTP API.

Every operation is one request/response round trip. Nothing is retried,
streamed or cached; failures surface as :class:`RequestError`.
"""

import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
import uuid
from pathlib import Path
from typing import IO, Any, Final, Literal, Sequence

from pydantic import BaseModel, ValidationError
from typing_extensions import deprecated

from .config import ClientSettings
from .encoding import Encoding
from .errors import ConfigurationError, ParameterError, RequestError
from .factory import get_encoding
from .schemas import AnswerParams, ClassificationParams, CompletionParams, SearchParams
from .types import Token

log = logging.getLogger(__name__)

Purpose = Literal["search", "answers", "classifications"]
PURPOSES: Final[frozenset[str]] = frozenset({"search", "answers", "classifications"})
DEFAULT_UPLOAD_NAME: Final[str] = "file.jsonl"


def _validate(schema: type[BaseModel], body: dict[str, Any]) -> dict[str, Any]:
    """Check ``body`` against ``schema`` and return the cleaned request body."""
    try:
        return schema(**body).to_body()
    except ValidationError as e:
        first = e.errors()[0]
        param = ".".join(str(part) for part in first["loc"]) or None
        raise ParameterError(f"invalid body content: {first['msg']}", param=param) from e


def _encode_multipart(
    fields: dict[str, str], filename: str, content: bytes
) -> tuple[bytes, str]:
    """Build a ``multipart/form-data`` body holding ``fields`` and one file part."""
    boundary = uuid.uuid4().hex
    lines: list[bytes] = []
    for key, value in fields.items():
        lines += [
            f"--{boundary}".encode(),
            f'Content-Disposition: form-data; name="{key}"'.encode(),
            b"",
            value.encode("utf-8"),
        ]
    lines += [
        f"--{boundary}".encode(),
        f'Content-Disposition: form-data; name="file"; filename="{filename}"'.encode(),
        b"Content-Type: application/octet-stream",
        b"",
        content,
        f"--{boundary}--".encode(),
        b"",
    ]
    return b"\r\n".join(lines), f"multipart/form-data; boundary={boundary}"


def _read_upload(file: str | bytes | os.PathLike | IO[bytes]) -> tuple[str, bytes]:
    """Resolve the accepted upload inputs to ``(filename, content)``."""
    if isinstance(file, str):
        # a plain string is the document content itself, not a path
        return DEFAULT_UPLOAD_NAME, file.encode("utf-8")
    if isinstance(file, bytes):
        return DEFAULT_UPLOAD_NAME, file
    if isinstance(file, os.PathLike):
        path = Path(file)
        return path.name, path.read_bytes()
    if hasattr(file, "read"):
        content = file.read()
        if isinstance(content, str):
            content = content.encode("utf-8")
        name = getattr(file, "name", None)
        filename = os.path.basename(name) if isinstance(name, str) else DEFAULT_UPLOAD_NAME
        return filename, content
    raise ParameterError(
        "file must be a string, bytes, a path or a readable binary stream", param="file"
    )


class Client:
    """
    API client with local token utilities.

    .. code-block:: python

        client = Client("sk-...")
        completion = client.complete("My name is Bond", stop=["\\n"], temperature=0)
        client.tokens("Hello, world!")  # 4
    """

    def __init__(
        self,
        api_key: str | None = None,
        organization: str | None = None,
        engine: str | None = None,
        *,
        settings: ClientSettings | None = None,
        encoding: Encoding | None = None,
    ) -> None:
        """
        :param api_key: Secret key; falls back to ``OPENAI_API_KEY``.
        :param organization: Organization id; falls back to ``OPENAI_ORGANIZATION``.
        :param engine: Default engine; falls back to ``OPENAI_ENGINE`` or ``davinci``.
        :param settings: Explicit settings instead of reading the environment.
        :param encoding: Tokenizer used by :meth:`encode` and friends; GPT-2 by default.
        :raises ConfigurationError: If no API key is available.
        """
        self.settings = settings if settings is not None else ClientSettings()
        key = api_key or self.settings.api_key
        if not key:
            raise ConfigurationError(
                "an API key is required: pass api_key or set OPENAI_API_KEY"
            )
        self._api_key = key
        self._organization = organization or self.settings.organization
        self.engine = engine or self.settings.engine
        self._encoding = encoding

    def __repr__(self) -> str:
        return f"<Client engine={self.engine!r} base_url={self.settings.base_url!r}>"

    @property
    def encoding(self) -> Encoding:
        """Tokenizer backing the local token helpers."""
        if self._encoding is None:
            self._encoding = get_encoding()
        return self._encoding

    # Transport
    # ===================================================================================

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._organization:
            headers["OpenAI-Organization"] = self._organization
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _request(
        self,
        method: Literal["GET", "POST", "DELETE"],
        endpoint: str,
        *,
        body: dict[str, Any] | None = None,
        data: bytes | None = None,
        content_type: str | None = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON response.

        ``body`` is sent as JSON; ``data`` is sent verbatim with ``content_type``.

        :raises RequestError: On an HTTP error status, a transport failure or
            a response that is not JSON.
        """
        url = self.settings.base_url + endpoint

        if body is not None:
            data = json.dumps(body).encode("utf-8")
            content_type = "application/json"

        req = urllib.request.Request(
            url, data=data, headers=self._headers(content_type), method=method
        )
        log.debug(f"{method} {endpoint}")

        try:
            with urllib.request.urlopen(req, timeout=self.settings.timeout) as resp:
                raw = resp.read()
                status = resp.status
        except urllib.error.HTTPError as e:
            raw_err = e.read()
            try:
                payload = json.loads(raw_err)
            except ValueError:
                payload = None
            log.warning(f"{method} {endpoint} failed with status {e.code}")
            raise RequestError.from_payload(payload, status=e.code) from e
        except urllib.error.URLError as e:
            raise RequestError(f"request failed: {e.reason}") from e
        except TimeoutError as e:
            raise RequestError("request timed out") from e

        try:
            return json.loads(raw)
        except ValueError as e:
            raise RequestError("response is not valid json", status=status) from e

    # Engines
    # ===================================================================================

    def list_engines(self) -> list[dict[str, Any]]:
        """List the available engines with owner and availability details."""
        return self._request("GET", "/engines")["data"]

    def get_engine(self, engine: str) -> dict[str, Any]:
        """Retrieve one engine by id."""
        return self._request("GET", f"/engines/{urllib.parse.quote(engine)}")

    # Generation
    # ===================================================================================

    def complete(self, prompt: str | list, **body: Any) -> dict[str, Any]:
        """
        Create a completion for ``prompt``.

        :param prompt: A string, a list of strings, or a list of token lists.
        :param body: Completion parameters, see :class:`CompletionParams`.
            ``engine`` overrides the client engine for this call.
        :raises ParameterError: If ``prompt`` or ``body`` is invalid, or the
            prompt exceeds ``max_prompt_tokens``.
        :raises RequestError: If the API rejects the request.
        """
        if not isinstance(prompt, (str, list)):
            raise ParameterError("prompt must be a string or list", param="prompt")
        params = _validate(CompletionParams, body)
        engine = params.pop("engine", None) or self.engine
        self._check_prompt_length(prompt)
        return self._request(
            "POST",
            f"/engines/{urllib.parse.quote(engine)}/completions",
            body={"prompt": prompt, **params},
        )

    def search(self, query: str, **body: Any) -> list[dict[str, Any]]:
        """
        Rank documents by semantic similarity to ``query``.

        :param body: Search parameters, see :class:`SearchParams`.
        """
        if not isinstance(query, str):
            raise ParameterError("query must be a string", param="query")
        params = _validate(SearchParams, body)
        engine = params.pop("engine", None) or self.engine
        return self._request(
            "POST",
            f"/engines/{urllib.parse.quote(engine)}/search",
            body={"query": query, **params},
        )["data"]

    def classify(self, query: str, **body: Any) -> dict[str, Any]:
        """
        Classify ``query`` using labelled examples.

        :param body: Classification parameters, see :class:`ClassificationParams`.
            ``model`` defaults to the client engine.
        """
        if not isinstance(query, str):
            raise ParameterError("query must be a string", param="query")
        params = _validate(ClassificationParams, body)
        model = params.pop("model", None) or self.engine
        return self._request(
            "POST", "/classifications", body={"model": model, "query": query, **params}
        )

    @deprecated("classificate() is an alias kept for compatibility; use classify()")
    def classificate(self, query: str, **body: Any) -> dict[str, Any]:
        return self.classify(query, **body)

    def answer(self, question: str, **body: Any) -> dict[str, Any]:
        """
        Answer ``question`` from documents, steered by example Q/A pairs.

        :param body: Answer parameters, see :class:`AnswerParams`;
            ``examples`` and ``examples_context`` are required.
        """
        if not isinstance(question, str):
            raise ParameterError("question must be a string", param="question")
        params = _validate(AnswerParams, body)
        model = params.pop("model", None) or self.engine
        return self._request(
            "POST", "/answers", body={"model": model, "question": question, **params}
        )

    # Files
    # ===================================================================================

    def list_files(self) -> list[dict[str, Any]]:
        """List files belonging to the organization."""
        return self._request("GET", "/files")["data"]

    def get_file(self, file_id: str) -> dict[str, Any]:
        """Retrieve metadata for one file."""
        return self._request("GET", f"/files/{urllib.parse.quote(file_id)}")

    def delete_file(self, file_id: str) -> dict[str, Any]:
        """Delete a file."""
        return self._request("DELETE", f"/files/{urllib.parse.quote(file_id)}")

    def upload_file(
        self, file: str | bytes | os.PathLike | IO[bytes], purpose: Purpose
    ) -> dict[str, Any]:
        """
        Upload a JSON Lines document for use by search, answers or classifications.

        :param file: Document content as ``str``/``bytes``, a path, or a binary
            stream. Content without a file name is uploaded as ``file.jsonl``.
        :param purpose: One of ``search``, ``answers`` or ``classifications``.
        :raises ParameterError: If ``purpose`` or ``file`` is invalid.
        """
        if purpose not in PURPOSES:
            raise ParameterError(
                f"invalid purpose, expected one of {sorted(PURPOSES)}", param="purpose"
            )
        filename, content = _read_upload(file)
        data, content_type = _encode_multipart({"purpose": purpose}, filename, content)
        log.info(f"uploading {filename} ({len(content)} bytes) for {purpose}")
        return self._request("POST", "/files", data=data, content_type=content_type)

    # Tokens
    # ===================================================================================

    def encode(self, text: str) -> list[Token]:
        """Split text into token ids."""
        return self.encoding.encode(text)

    def decode(self, tokens: Sequence[Token]) -> str:
        """Turn token ids back into text."""
        return self.encoding.decode(tokens)

    def tokens(self, text: str) -> int:
        """Number of tokens in ``text``."""
        return self.encoding.count(text)

    def _check_prompt_length(self, prompt: str | list) -> None:
        limit = self.settings.max_prompt_tokens
        if limit is None:
            return
        single_token_list = bool(prompt) and all(
            isinstance(t, int) and not isinstance(t, bool) for t in prompt
        )
        prompts = [prompt] if isinstance(prompt, str) or single_token_list else prompt
        for item in prompts:
            if isinstance(item, str):
                n = self.tokens(item)
            elif isinstance(item, list):
                # token lists are already encoded
                n = len(item)
            else:
                raise ParameterError(
                    "prompt must be text, a token list, or a list of either",
                    param="prompt",
                )
            if n > limit:
                raise ParameterError(
                    f"prompt is {n} tokens, above the limit of {limit}", param="prompt"
                )
