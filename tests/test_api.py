"""HTTP surface tests with in-memory repositories and a mocked upstream."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from controller.controller_dependencies import (
    get_batch_service,
    get_credential_service,
    get_llm_service,
    get_prompt_service,
    rate_limiter,
)
from main import app
from model.api import LLMRequest
from service.batch_service import BatchService
from service.credential_service import CredentialService
from service.llm_service import LLMService
from service.prompt_service import PromptService
from tests.conftest import (
    MemoryPromptRepository,
    MemoryUserKeyRepository,
    ScriptedLLM,
    TrackedBody,
    failing,
    make_extractor,
    sse,
    summary,
)

USER = {"Authorization": "Bearer session-token-1"}


class Upstream:
    """MockTransport handler recording provider calls."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.reply = lambda: httpx.Response(
            200,
            content=sse(
                '{"choices":[{"delta":{"content":"Hi"}}]}',
                '{"choices":[{"delta":{"content":" there"}}]}',
                "[DONE]",
            ),
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply()


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM(
        {
            "text of a.pdf": summary("Summary ", "A"),
            "text of c.pdf": failing(message="rate limited"),
        }
    )


@pytest.fixture
def client(monkeypatch, upstream, llm):
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.setattr(settings, name, None)

    credentials = CredentialService(MemoryUserKeyRepository())
    prompts = PromptService(MemoryPromptRepository())
    factory = lambda: httpx.AsyncClient(transport=httpx.MockTransport(upstream))

    app.dependency_overrides[rate_limiter] = lambda: None
    app.dependency_overrides[get_credential_service] = lambda: credentials
    app.dependency_overrides[get_prompt_service] = lambda: prompts
    app.dependency_overrides[get_llm_service] = lambda: LLMService(credentials, client_factory=factory)
    app.dependency_overrides[get_batch_service] = lambda: BatchService(
        credentials, extract=make_extractor(), llm=llm
    )
    # No context manager: the lifespan (Redis, limiter init) is not needed here.
    yield TestClient(app)
    app.dependency_overrides.clear()


def _records(body: str) -> list[dict]:
    return [json.loads(line[len("data:"):]) for line in body.splitlines() if line.startswith("data:")]


def _ndjson(body: str) -> list[dict]:
    return [json.loads(line) for line in body.splitlines() if line.strip()]


# ---------------------------------------------------------------------------
# POST /api/v1/llm
# ---------------------------------------------------------------------------

class TestLLMEndpoint:
    @pytest.mark.parametrize(
        "body, message",
        [
            ({"provider": "openai", "prompt": "", "text": "doc"}, "Missing prompt or text"),
            ({"provider": "openai", "prompt": "p", "text": ""}, "Missing prompt or text"),
            ({"provider": "mistral", "prompt": "p", "text": "doc"}, "Invalid provider. Must be: openai, anthropic, or gemini"),
        ],
    )
    def test_rejects_bad_requests(self, client, upstream, body, message):
        res = client.post("/api/v1/llm", json=body)
        assert res.status_code == 400
        assert res.json() == {"error": message}
        assert upstream.requests == []

    def test_no_key_anywhere_is_rejected_before_upstream(self, client, upstream):
        res = client.post("/api/v1/llm", json={"provider": "openai", "prompt": "p", "text": "doc"})
        assert res.status_code == 400
        assert res.json()["error"].startswith("No API key configured for openai")
        assert upstream.requests == []

    def test_relays_provider_stream_as_records(self, client, upstream, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-env-default")

        res = client.post(
            "/api/v1/llm",
            json={"provider": "openai", "prompt": "Summarize", "text": "doc", "modelName": "gpt-test"},
        )

        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/event-stream")
        assert _records(res.text) == [{"chunk": "Hi"}, {"chunk": " there"}, {"done": True}]
        sent = upstream.requests[0]
        assert sent.headers["authorization"] == "Bearer sk-env-default"
        assert json.loads(sent.content)["model"] == "gpt-test"

    def test_upstream_rejection_becomes_error_record(self, client, upstream, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-env-default")
        upstream.reply = lambda: httpx.Response(429, json={"error": {"message": "rate limited"}})

        res = client.post("/api/v1/llm", json={"provider": "openai", "prompt": "p", "text": "doc"})

        assert res.status_code == 200
        assert _records(res.text) == [{"error": "OpenAI API error: rate limited"}]

    def test_saved_user_key_wins_over_default(self, client, upstream, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-env-default")
        saved = client.post("/api/v1/keys", headers=USER, json={"provider": "openai", "apiKey": "sk-user-key-123"})
        assert saved.status_code == 200

        client.post("/api/v1/llm", headers=USER, json={"provider": "openai", "prompt": "p", "text": "doc"})
        client.post("/api/v1/llm", json={"provider": "openai", "prompt": "p", "text": "doc"})

        used = [r.headers["authorization"] for r in upstream.requests]
        assert used == ["Bearer sk-user-key-123", "Bearer sk-env-default"]


@pytest.mark.asyncio
async def test_relay_closed_by_the_client_releases_the_upstream(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-env-default")
    body = TrackedBody(
        sse('{"choices":[{"delta":{"content":"Hi"}}]}', '{"choices":[{"delta":{"content":" more"}}]}', "[DONE]")
    )
    service = LLMService(
        CredentialService(MemoryUserKeyRepository()),
        client_factory=lambda: httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, stream=body))
        ),
    )

    stream = await service.open_stream(LLMRequest(provider="openai", prompt="p", text="doc"), None)
    first = await stream.__anext__()
    await stream.aclose()

    assert _records(first.decode("utf-8")) == [{"chunk": "Hi"}]
    assert body.closed


# ---------------------------------------------------------------------------
# POST /api/v1/batches
# ---------------------------------------------------------------------------

class TestBatchEndpoint:
    def test_streams_batch_job_and_done_events(self, client, llm):
        files = [
            ("files", ("c.pdf", b"text of c.pdf", "application/pdf")),
            ("files", ("a.pdf", b"text of a.pdf", "application/pdf")),
            ("files", ("b.pdf", b"corrupt", "application/pdf")),
            ("files", ("readme.txt", b"ignored", "text/plain")),
        ]

        res = client.post("/api/v1/batches", data={"prompt": " Summarize ", "provider": "openai"}, files=files)

        assert res.status_code == 200
        events = _ndjson(res.text)
        first, last = events[0], events[-1]
        assert first["type"] == "batch"
        assert [j["filename"] for j in first["payload"]["jobs"]] == ["a.pdf", "b.pdf", "c.pdf"]
        assert {j["status"] for j in first["payload"]["jobs"]} == {"pending"}
        assert last == {"type": "done", "payload": {"complete": 1, "failed": 2}}

        final = {}
        for e in events:
            if e["type"] == "job":
                final[e["payload"]["index"]] = e["payload"]
        assert final[0]["status"] == "complete" and final[0]["output"] == "Summary A"
        assert final[1]["status"] == "failed" and "corrupt PDF" in final[1]["statusMessage"]
        assert final[2]["statusMessage"] == "Error: rate limited"
        assert {c[0] for c in llm.calls} == {"Summarize"}

    @pytest.mark.parametrize(
        "data, files, message",
        [
            ({"prompt": "Summarize"}, None, "Please upload at least one PDF file"),
            ({"prompt": "Summarize"}, [("files", ("notes.txt", b"x", "text/plain"))], "Please upload at least one PDF file"),
            ({"prompt": "  "}, [("files", ("a.pdf", b"x", "application/pdf"))], "Please enter a prompt"),
            ({"prompt": "p", "provider": "bogus"}, [("files", ("a.pdf", b"x", "application/pdf"))], "Invalid provider. Must be: openai, anthropic, or gemini"),
        ],
    )
    def test_rejected_batches_start_nothing(self, client, llm, data, files, message):
        res = client.post("/api/v1/batches", data=data, files=files)
        assert res.status_code == 400
        assert res.json() == {"error": message}
        assert llm.calls == []


# ---------------------------------------------------------------------------
# Prompts, keys and public config
# ---------------------------------------------------------------------------

class TestPrompts:
    def test_save_list_update_delete(self, client):
        url = "/api/v1/prompts/weekly"
        assert client.put(url, json={"text": "Summarize"}).json()["message"] == 'Prompt "weekly" saved'
        assert client.put(url, json={"text": "Summarize briefly"}).json()["message"] == 'Prompt "weekly" updated'

        listed = client.get("/api/v1/prompts").json()["prompts"]
        assert [(p["name"], p["text"]) for p in listed] == [("weekly", "Summarize briefly")]

        assert client.delete(url).json()["message"] == 'Prompt "weekly" deleted'
        missing = client.delete(url)
        assert missing.status_code == 404
        assert missing.json() == {"error": 'No prompt named "weekly" found'}

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_text_gets_the_service_message(self, client, text):
        res = client.put("/api/v1/prompts/weekly", json={"text": text})
        assert res.status_code == 400
        assert res.json() == {"error": "Please enter both a prompt name and prompt text"}
        assert client.get("/api/v1/prompts").json()["prompts"] == []

    def test_prompts_are_scoped_per_caller(self, client):
        client.put("/api/v1/prompts/mine", headers=USER, json={"text": "private"})
        assert client.get("/api/v1/prompts").json()["prompts"] == []
        assert len(client.get("/api/v1/prompts", headers=USER).json()["prompts"]) == 1


class TestKeys:
    def test_requires_bearer(self, client):
        res = client.get("/api/v1/keys")
        assert res.status_code == 401
        assert res.json() == {"error": "Unauthorized. Please login first."}

    @pytest.mark.parametrize(
        "body, message",
        [
            ({"provider": "openai", "apiKey": "short"}, "API key appears to be invalid (too short)"),
            ({"provider": "nope", "apiKey": "long-enough-key"}, "Invalid provider. Must be: openai, anthropic, or gemini"),
            ({"provider": "openai"}, "Missing provider or apiKey"),
        ],
    )
    def test_rejects_bad_keys(self, client, body, message):
        res = client.post("/api/v1/keys", headers=USER, json=body)
        assert res.status_code == 400
        assert res.json() == {"error": message}

    def test_save_list_delete(self, client):
        saved = client.post("/api/v1/keys", headers=USER, json={"provider": "Gemini", "apiKey": "gm-key-0123456789"})
        assert saved.json() == {"success": True, "message": "gemini API key saved successfully"}

        keys = client.get("/api/v1/keys", headers=USER).json()["keys"]
        assert [(k["provider"], k["configured"]) for k in keys] == [("gemini", True)]
        assert "gm-key-0123456789" not in json.dumps(keys)

        deleted = client.request("DELETE", "/api/v1/keys", headers=USER, json={"provider": "gemini"})
        assert deleted.json()["message"] == "gemini API key deleted"
        assert client.get("/api/v1/keys", headers=USER).json()["keys"] == []


def test_public_config(client):
    body = client.get("/api/v1/config").json()
    assert body["providers"] == ["openai", "anthropic", "gemini"]
    assert body["defaultModels"]["openai"] == settings.OPENAI_MODEL
    assert body["maxOutputTokens"] == settings.LLM_MAX_OUTPUT_TOKENS
    assert set(body) == {"providers", "defaultModels", "maxOutputTokens"}


def test_healthz_reports_redis_state(client):
    # The lifespan never ran, so no Redis client exists yet.
    assert client.get("/healthz").json() == {"ok": True, "redis": False}
