"""Tests for API routes."""
import json
import re
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import DONE, FakeCompletionClient, FakeSearchClient, sse_record
from deepsearch.agents.orchestrator import QueryOrchestrator
from deepsearch.api.deps import ConversationRegistry, get_registry
from deepsearch.main import app
from deepsearch.tools.search_provider import SearchResponse


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def research_client(weather_chunks):
    """App whose conversations use in-memory search and completion fakes."""
    from sse_starlette.sse import AppStatus

    # sse-starlette keeps a module-level exit event bound to the first loop it saw
    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None

    registry = ConversationRegistry(
        lambda: QueryOrchestrator(
            FakeSearchClient(),
            FakeCompletionClient(weather_chunks),
            buffer_partial_lines=False,
            canonical_sources_table=False,
        )
    )
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _sse_events(body: str) -> list[tuple[str, dict]]:
    names = re.findall(r"^event: (\w+)", body, re.M)
    payloads = [json.loads(p) for p in re.findall(r"^data: (.+?)\r?$", body, re.M)]
    return list(zip(names, payloads))


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "deepsearch"}


def test_search_requires_query(client):
    response = client.post("/api/search", json={"query": "  "})
    assert response.status_code == 400
    assert response.json() == {"error": "Query is required"}


def test_search_returns_provider_payload(client):
    payload = {"results": [{"title": "T", "url": "https://t.com"}], "images": [], "answer": None, "query": "q"}
    with patch(
        "deepsearch.api.routes.search.search_provider.search",
        new=AsyncMock(return_value=SearchResponse(payload=payload, provider="tavily")),
    ) as search:
        response = client.post(
            "/api/search", json={"query": "q", "includeImages": False, "includeImageDescriptions": False}
        )

    assert response.status_code == 200
    assert response.json() == payload
    search.assert_awaited_once_with("q", include_images=False, include_image_descriptions=False)


def test_search_reports_provider_failure(client):
    with patch(
        "deepsearch.api.routes.search.search_provider.search",
        new=AsyncMock(side_effect=RuntimeError("upstream down")),
    ):
        response = client.post("/api/search", json={"query": "q"})

    assert response.status_code == 500
    assert response.json() == {"error": "upstream down"}


def test_chat_relays_repaired_records(client):
    @asynccontextmanager
    async def fake_stream_completion(messages, *, model=None):
        assert messages[0]["role"] == "system"

        async def body():
            yield sse_record(reasoning_content="thinking")
            yield sse_record(content="#Title")
            yield DONE

        yield body()

    with patch("deepsearch.api.routes.chat.llm_client.stream_completion", new=fake_stream_completion):
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    deltas = [json.loads(line)["choices"][0]["delta"] for line in response.text.splitlines() if line]
    assert deltas == [{"reasoning_content": "thinking"}, {"content": "# Title"}]


def test_chat_reports_open_failure(client):
    @asynccontextmanager
    async def failing_stream_completion(messages, *, model=None):
        raise RuntimeError("COMPLETION_API_KEY is not configured")
        yield

    with patch("deepsearch.api.routes.chat.llm_client.stream_completion", new=failing_stream_completion):
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 500
    assert response.json() == {"error": "COMPLETION_API_KEY is not configured"}


def test_list_suggestions(client):
    response = client.get("/api/suggestions")
    assert response.status_code == 200
    labels = [s["label"] for s in response.json()["suggestions"]]
    assert labels == ["Podcast Outline", "YouTube Video Research", "Short Form Hook Ideas", "Newsletter Draft"]


def test_research_streams_section_until_done(research_client):
    response = research_client.post("/api/research", json={"query": "weather", "conversation_id": "c1"})

    assert response.status_code == 200
    events = _sse_events(response.text)
    assert [name for name, _ in events] == [
        "section_created",
        "sources_ready",
        "reasoning_updated",
        "response_updated",
        "response_updated",
        "section_done",
    ]
    assert events[-1][1]["response"] == "# Weather\n\nIt is cold."

    snapshot = research_client.get("/api/conversations/c1").json()
    assert snapshot["in_flight"] is False
    assert snapshot["sections"][0]["phase"] == "done"
    assert snapshot["sections"][0]["query"] == "weather"


def test_research_applies_suggestion(research_client):
    response = research_client.post(
        "/api/research",
        json={"query": "solar power", "conversation_id": "c2", "suggestion": "Podcast Outline"},
    )

    events = _sse_events(response.text)
    assert events[0][1]["query"] == "Create a detailed podcast outline for: solar power"


def test_research_rejects_empty_query(research_client):
    response = research_client.post("/api/research", json={"query": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "Query must not be empty"}


def test_research_rejects_unknown_suggestion(research_client):
    response = research_client.post("/api/research", json={"query": "x", "suggestion": "Sonnet"})

    assert response.status_code == 400
    assert "Unknown suggestion" in response.json()["error"]


def test_unknown_conversation_is_404(client):
    response = client.get("/api/conversations/missing")
    assert response.status_code == 404
