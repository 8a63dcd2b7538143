"""Tests for the Ollama HTTP client."""

from __future__ import annotations

import asyncio
import io
import json
import threading
from urllib.error import HTTPError, URLError

import pytest

from repodoc.errors import (
    BackendConnectionError,
    BackendProtocolError,
    BackendTimeoutError,
    BackendUnavailableError,
    ConfigError,
)
from repodoc.llm.ollama import DEFAULT_SYSTEM_PROMPT, GenerationParams, OllamaClient


class FakeResponse:
    def __init__(self, payload, status: int = 200):
        self._payload = payload
        self.status = status

    def read(self):
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


@pytest.fixture(autouse=True)
def _clear_ollama_env(monkeypatch) -> None:
    monkeypatch.delenv("REPODOC_OLLAMA_URL", raising=False)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)


def _run(client: OllamaClient, call):
    async def go():
        try:
            return await call
        finally:
            await client.close()

    return asyncio.run(go())


def test_generate_posts_non_streaming_payload(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["method"] = request.get_method()
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"response": "Generated docs", "done": True})

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient("deepseek-coder", request_timeout=42.0)
    result = _run(client, client.generate("Describe this file", GenerationParams(0.3, 2048)))

    assert result == "Generated docs"
    assert captured["url"] == "http://localhost:11434/api/generate"
    assert captured["method"] == "POST"
    assert captured["headers"]["content-type"] == "application/json"
    assert captured["payload"] == {
        "model": "deepseek-coder",
        "prompt": "Describe this file",
        "system": DEFAULT_SYSTEM_PROMPT,
        "stream": False,
        "options": {"temperature": 0.3, "num_ctx": 2048},
    }
    assert captured["timeout"] == 42.0


def test_generate_returns_empty_text_when_response_field_missing(monkeypatch) -> None:
    monkeypatch.setattr(
        "repodoc.llm.ollama.urlopen", lambda request, timeout=None: FakeResponse({"done": True})
    )

    client = OllamaClient()

    assert _run(client, client.generate("prompt")) == ""


def test_generate_raises_protocol_error_on_server_error(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise HTTPError(request.full_url, 500, "Internal Server Error", {}, io.BytesIO(b"model crashed"))

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient()
    with pytest.raises(BackendProtocolError) as excinfo:
        _run(client, client.generate("prompt"))

    assert excinfo.value.status == 500
    assert "model crashed" in str(excinfo.value)


def test_generate_maps_socket_timeout(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError(TimeoutError("timed out"))

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient()
    with pytest.raises(BackendTimeoutError):
        _run(client, client.generate("prompt"))


def test_generate_maps_refused_connection(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError(ConnectionRefusedError(111, "Connection refused"))

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient()
    with pytest.raises(BackendConnectionError):
        _run(client, client.generate("prompt"))


def test_initialize_accepts_installed_model(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["timeout"] = timeout
        return FakeResponse({"models": [{"name": "llama3:8b"}, {"name": "deepseek-coder:latest"}]})

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient("deepseek-coder", probe_timeout=3.0)
    _run(client, client.initialize())

    assert captured == {"url": "http://localhost:11434/api/tags", "timeout": 3.0}


def test_initialize_rejects_missing_model(monkeypatch) -> None:
    monkeypatch.setattr(
        "repodoc.llm.ollama.urlopen",
        lambda request, timeout=None: FakeResponse({"models": [{"name": "llama3:8b"}]}),
    )

    client = OllamaClient("deepseek-coder")
    with pytest.raises(BackendUnavailableError, match="ollama pull deepseek-coder"):
        _run(client, client.initialize())


def test_initialize_reports_unreachable_server(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError(ConnectionRefusedError(111, "Connection refused"))

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient()
    with pytest.raises(BackendUnavailableError, match="not reachable"):
        _run(client, client.initialize())


def test_is_ready_reflects_liveness_status(monkeypatch) -> None:
    statuses = iter([200, 503])

    def fake_urlopen(request, timeout=None):
        status = next(statuses)
        if status != 200:
            raise HTTPError(request.full_url, status, "Unavailable", {}, io.BytesIO(b""))
        return FakeResponse({"models": []})

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", fake_urlopen)

    client = OllamaClient()

    async def check_twice():
        try:
            return await client.is_ready(), await client.is_ready()
        finally:
            await client.close()

    assert asyncio.run(check_twice()) == (True, False)


def test_base_url_from_environment_gets_scheme(monkeypatch) -> None:
    monkeypatch.setenv("OLLAMA_HOST", "127.0.0.1:11500")

    assert OllamaClient().base_url == "http://127.0.0.1:11500"


def test_explicit_base_url_wins_and_is_normalized(monkeypatch) -> None:
    monkeypatch.setenv("REPODOC_OLLAMA_URL", "http://ollama:11434")

    assert OllamaClient(base_url="http://localhost:9999/").base_url == "http://localhost:9999"


def test_remote_hosts_are_accepted_as_base_url(monkeypatch) -> None:
    monkeypatch.setenv("OLLAMA_HOST", "gpu-box:11434")

    assert OllamaClient().base_url == "http://gpu-box:11434"
    assert OllamaClient(base_url="https://ollama-server.example.com/").base_url == (
        "https://ollama-server.example.com"
    )


def test_non_http_base_url_is_rejected() -> None:
    with pytest.raises(ConfigError, match="Unsupported Ollama base URL"):
        OllamaClient(base_url="ftp://gpu-box:11434")


def test_generate_enforces_wall_clock_timeout(monkeypatch) -> None:
    release = threading.Event()

    def hanging_urlopen(request, timeout=None):
        release.wait(5)
        return FakeResponse({"response": "too late"})

    monkeypatch.setattr("repodoc.llm.ollama.urlopen", hanging_urlopen)

    client = OllamaClient(request_timeout=0.05)
    try:
        with pytest.raises(BackendTimeoutError, match=r"Request to /api/generate timed out after 0.05s"):
            _run(client, client.generate("slow"))
    finally:
        release.set()
