"""Tests for the API client: request building, error mapping and token helpers."""

import io
import json
import urllib.error
import urllib.request

import pytest

from gptclient import Client, ClientSettings
from gptclient.errors import ConfigurationError, ParameterError, RequestError


class FakeResponse:
    def __init__(self, payload, status=200):
        self._raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self.status = status

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def transport(monkeypatch):
    """Record outgoing requests and answer them with a queued payload."""
    calls = []
    state = {"response": {"data": []}}

    def fake_urlopen(req, timeout=None):
        calls.append(SimpleRequest(req, timeout))
        response = state["response"]
        if isinstance(response, Exception):
            raise response
        return FakeResponse(response)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    class Transport:
        def respond(self, payload):
            state["response"] = payload

        @property
        def last(self):
            return calls[-1]

        @property
        def count(self):
            return len(calls)

    return Transport()


class SimpleRequest:
    def __init__(self, req, timeout):
        self.method = req.get_method()
        self.url = req.full_url
        self.timeout = timeout
        self.data = req.data
        self.headers = {k.lower(): v for k, v in req.header_items()}

    def json(self):
        return json.loads(self.data)


@pytest.fixture
def settings():
    return ClientSettings(
        api_key="sk-test", organization=None, engine="davinci", _env_file=None
    )


@pytest.fixture
def client(settings):
    return Client(settings=settings)


def _http_error(status, payload):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return urllib.error.HTTPError(
        "https://api.openai.com/v1/x", status, "error", {}, io.BytesIO(body)
    )


# Configuration
# ---------------------------------------------------------------------------


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        Client(settings=ClientSettings(api_key=None, _env_file=None))


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OPENAI_ENGINE", "curie")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1/")
    settings = ClientSettings(_env_file=None)
    assert settings.api_key == "sk-env"
    assert settings.engine == "curie"
    assert settings.base_url == "http://localhost:8080/v1"


def test_explicit_arguments_override_settings(settings):
    client = Client("sk-other", "org-1", "ada", settings=settings)
    assert client.engine == "ada"
    assert "ada" in repr(client)


# Requests
# ---------------------------------------------------------------------------


def test_headers(transport, settings):
    client = Client(organization="org-42", settings=settings)
    client.list_engines()
    headers = transport.last.headers
    assert headers["authorization"] == "Bearer sk-test"
    assert headers["openai-organization"] == "org-42"


def test_list_engines(client, transport):
    transport.respond({"object": "list", "data": [{"id": "davinci"}]})
    assert client.list_engines() == [{"id": "davinci"}]
    assert transport.last.method == "GET"
    assert transport.last.url == "https://api.openai.com/v1/engines"
    assert transport.last.timeout == 60.0


def test_get_engine(client, transport):
    transport.respond({"id": "ada", "ready": True})
    assert client.get_engine("ada")["ready"] is True
    assert transport.last.url.endswith("/engines/ada")


def test_complete_body(client, transport):
    transport.respond({"choices": [{"text": " James Bond"}]})
    result = client.complete("My name is", max_tokens=5, stop=["\n"], temperature=0)
    assert result["choices"][0]["text"] == " James Bond"

    req = transport.last
    assert req.method == "POST"
    assert req.url == "https://api.openai.com/v1/engines/davinci/completions"
    assert req.headers["content-type"] == "application/json"
    assert req.json() == {
        "prompt": "My name is",
        "max_tokens": 5,
        "stop": ["\n"],
        "temperature": 0,
    }


def test_complete_engine_override(client, transport):
    client.complete("Hi", engine="babbage")
    assert transport.last.url.endswith("/engines/babbage/completions")
    assert "engine" not in transport.last.json()


def test_complete_rejects_unknown_parameter(client, transport):
    with pytest.raises(ParameterError) as exc_info:
        client.complete("Hi", stream=True)
    assert exc_info.value.param == "stream"
    assert transport.count == 0


@pytest.mark.parametrize(
    "body, param",
    [
        ({"temperature": 3}, "temperature"),
        ({"stop": ["a", "b", "c", "d", "e"]}, "stop"),
        ({"n": 0}, "n"),
    ],
)
def test_complete_invalid_values(client, body, param):
    with pytest.raises(ParameterError, match="invalid body content") as exc_info:
        client.complete("Hi", **body)
    assert exc_info.value.param == param


def test_complete_rejects_bad_prompt(client):
    with pytest.raises(ParameterError):
        client.complete(42)  # type: ignore[arg-type]


def test_prompt_token_limit(transport):
    settings = ClientSettings(api_key="sk-test", max_prompt_tokens=3, _env_file=None)
    client = Client(settings=settings)
    with pytest.raises(ParameterError, match="above the limit"):
        client.complete("Hello, world!")
    assert transport.count == 0

    client.complete("Hello")
    client.complete([[1, 2, 3]])
    assert transport.count == 2


def test_prompt_token_limit_single_token_list(transport):
    settings = ClientSettings(api_key="sk-test", max_prompt_tokens=3, _env_file=None)
    client = Client(settings=settings)
    with pytest.raises(ParameterError, match="prompt is 4 tokens"):
        client.complete([15496, 11, 995, 0])
    assert transport.count == 0

    client.complete([15496, 11, 995])
    assert transport.last.json()["prompt"] == [15496, 11, 995]


def test_prompt_token_limit_rejects_odd_items(transport):
    settings = ClientSettings(api_key="sk-test", max_prompt_tokens=3, _env_file=None)
    client = Client(settings=settings)
    with pytest.raises(ParameterError) as exc_info:
        client.complete(["ok", 1.5])
    assert exc_info.value.param == "prompt"
    assert transport.count == 0


def test_search(client, transport):
    transport.respond({"data": [{"document": 0, "score": 215.4}]})
    results = client.search("the president", documents=["White House", "hospital"])
    assert results[0]["score"] == 215.4
    assert transport.last.url.endswith("/engines/davinci/search")
    assert transport.last.json() == {
        "query": "the president",
        "documents": ["White House", "hospital"],
    }


def test_classify_defaults_model_to_engine(client, transport):
    examples = [["A happy moment", "Positive"], ["I am sad.", "Negative"]]
    client.classify("It is a raining day :(", examples=examples, labels=["Positive"])
    body = transport.last.json()
    assert transport.last.url.endswith("/classifications")
    assert body["model"] == "davinci"
    assert body["query"] == "It is a raining day :("
    assert body["examples"] == examples


def test_classify_rejects_bad_example(client):
    with pytest.raises(ParameterError):
        client.classify("q", examples=[["only text"]])


def test_classificate_is_deprecated(client, transport):
    with pytest.deprecated_call():
        client.classificate("q", model="ada")
    assert transport.last.json()["model"] == "ada"


def test_answer(client, transport):
    client.answer(
        "which puppy is happy?",
        documents=["Puppy A is happy.", "Puppy B is sad."],
        examples=[["What is human life expectancy?", "78 years."]],
        examples_context="In 2017, U.S. life expectancy was 78.6 years.",
        max_tokens=5,
    )
    body = transport.last.json()
    assert transport.last.url.endswith("/answers")
    assert body["question"] == "which puppy is happy?"
    assert body["model"] == "davinci"


def test_answer_requires_examples(client, transport):
    with pytest.raises(ParameterError) as exc_info:
        client.answer("q", documents=["d"], examples_context="ctx")
    assert exc_info.value.param == "examples"
    assert transport.count == 0


# Files
# ---------------------------------------------------------------------------


def test_list_files(client, transport):
    transport.respond({"data": [{"id": "file-1"}]})
    assert client.list_files() == [{"id": "file-1"}]
    assert transport.last.url.endswith("/files")


def test_get_and_delete_file(client, transport):
    client.get_file("file-abc")
    assert transport.last.method == "GET"
    assert transport.last.url.endswith("/files/file-abc")

    transport.respond({"id": "file-abc", "deleted": True})
    assert client.delete_file("file-abc")["deleted"] is True
    assert transport.last.method == "DELETE"


def test_upload_string_content(client, transport):
    content = '{"text": "puppy A is happy", "metadata": "emotional"}\n'
    client.upload_file(content, "search")

    req = transport.last
    assert req.method == "POST"
    assert req.headers["content-type"].startswith("multipart/form-data; boundary=")
    assert b'name="purpose"\r\n\r\nsearch' in req.data
    assert b'filename="file.jsonl"' in req.data
    assert content.encode() in req.data


def test_upload_path_keeps_name(client, transport, tmp_path):
    path = tmp_path / "queries.jsonl"
    path.write_bytes(b'{"text": "x"}\n')
    client.upload_file(path, "answers")
    assert b'filename="queries.jsonl"' in transport.last.data


def test_upload_stream(client, transport):
    client.upload_file(io.BytesIO(b'{"text": "x"}\n'), "classifications")
    assert b'{"text": "x"}' in transport.last.data


def test_upload_invalid_purpose(client, transport):
    with pytest.raises(ParameterError) as exc_info:
        client.upload_file("{}", "fine-tune")  # type: ignore[arg-type]
    assert exc_info.value.param == "purpose"
    assert transport.count == 0


def test_upload_invalid_file(client):
    with pytest.raises(ParameterError):
        client.upload_file(12, "search")  # type: ignore[arg-type]


# Errors
# ---------------------------------------------------------------------------


def test_http_error_maps_fields(client, transport):
    transport.respond(
        _http_error(
            400,
            {
                "error": {
                    "message": "invalid engine",
                    "type": "invalid_request_error",
                    "param": "engine",
                    "code": "engine_not_found",
                }
            },
        )
    )
    with pytest.raises(RequestError) as exc_info:
        client.get_engine("nope")
    err = exc_info.value
    assert err.status == 400
    assert err.message == "invalid engine"
    assert err.type == "invalid_request_error"
    assert err.param == "engine"
    assert err.code == "engine_not_found"


def test_http_error_without_json(client, transport):
    transport.respond(_http_error(502, b"<html>bad gateway</html>"))
    with pytest.raises(RequestError, match="status 502") as exc_info:
        client.list_engines()
    assert exc_info.value.status == 502


def test_transport_failure(client, transport):
    transport.respond(urllib.error.URLError("connection refused"))
    with pytest.raises(RequestError, match="connection refused") as exc_info:
        client.list_files()
    assert exc_info.value.status is None


def test_timeout(client, transport):
    transport.respond(TimeoutError())
    with pytest.raises(RequestError, match="timed out"):
        client.list_files()


def test_non_json_response(client, transport):
    transport.respond(b"not json")
    with pytest.raises(RequestError, match="not valid json"):
        client.list_files()


# Tokens
# ---------------------------------------------------------------------------


def test_token_helpers_work_offline(client, transport):
    assert client.encode("Hello, world!") == [15496, 11, 995, 0]
    assert client.decode([15496, 11, 995, 0]) == "Hello, world!"
    assert client.tokens("My name is Fulano") == 5
    assert transport.count == 0
