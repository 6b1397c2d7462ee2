"""Integration tests for the LogChat HTTP API."""
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import ORIGIN, USER, FakeIndex, FakeLLM, FakeEmbedder, area_notes, make_log, make_settings
from logchat.api.auth import RemoteTokenVerifier, StaticTokenVerifier
from logchat.core.errors import UpstreamError
from logchat.main import create_app
from logchat.services.ai import AIServices
from logchat.services.chat.orchestrator import PRIVATE_MODE_MESSAGE

TOKEN = "tok-1"
AUTH = {"Authorization": f"Bearer {TOKEN}", "Origin": ORIGIN}


@pytest.fixture
def live_store(store):
    """Logs relative to the real clock, since requests use the current time."""
    now = datetime.now(timezone.utc)
    store.add_logs([
        make_log(0.01, area_notes("Fitness", "Laufen"), duration=30, xp=10, now=now, log_id="a"),
        make_log(1.5, area_notes("Lesen", "Roman"), duration=20, xp=5, now=now, log_id="b"),
        make_log(40, "Alt", duration=10, now=now, log_id="c"),
    ])
    return store


def build_client(store, private_mode=False, llm=None, index=None, **settings_overrides):
    settings = make_settings(private_mode=private_mode, **settings_overrides)
    ai = None if private_mode else AIServices(embedder=FakeEmbedder(), llm=llm or FakeLLM())
    app = create_app(
        settings=settings,
        store=store,
        index=index if index is not None else FakeIndex(),
        ai=ai,
        verifier=StaticTokenVerifier({TOKEN: USER}),
    )
    return TestClient(app)


@pytest.fixture
def client(live_store):
    return build_client(live_store)


@pytest.mark.integration
class TestChatEndpoint:
    """Test POST /chat."""

    def test_answers_an_intent(self, client):
        response = client.post("/chat", json={"query": "How many activities overall?"}, headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"answer": "Insgesamt hast du 3 Aktivitäten erfasst.", "sources": []}
        assert response.headers["access-control-allow-origin"] == ORIGIN

    def test_seven_day_count(self, client):
        response = client.post("/chat", json={"query": "Wie viele Aktivitäten in den letzten 7 Tagen?"},
                               headers=AUTH)

        assert response.json()["answer"] == "Du hast in den letzten 7 Tagen 2 Aktivitäten erfasst."

    def test_data_question_returns_sources(self, client):
        response = client.post("/chat", json={"query": "Zeig mir meine Notizen"}, headers=AUTH)

        data = response.json()
        assert data["answer"] == "Antwort vom Modell"
        assert [s["id"] for s in data["sources"]] == ["a", "b"]
        assert all(s["title"] == "Log" for s in data["sources"])

    def test_missing_origin_is_forbidden(self, client):
        response = client.post("/chat", json={"query": "streak"}, headers={"Authorization": f"Bearer {TOKEN}"})

        assert response.status_code == 403
        assert response.json() == {"error": "origin_forbidden"}

    def test_unknown_origin_is_forbidden(self, client):
        headers = dict(AUTH, Origin="https://evil.example.com")

        response = client.post("/chat", json={"query": "streak"}, headers=headers)

        assert response.status_code == 403
        assert response.headers["access-control-allow-origin"] == ""

    def test_missing_bearer(self, client):
        response = client.post("/chat", json={"query": "streak"}, headers={"Origin": ORIGIN})

        assert response.status_code == 401
        assert response.json() == {"error": "missing_bearer"}

    def test_invalid_token(self, client):
        headers = dict(AUTH, Authorization="Bearer nope")

        response = client.post("/chat", json={"query": "streak"}, headers=headers)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_auth_is_checked_before_the_body(self, client):
        response = client.post("/chat", json={}, headers={"Origin": ORIGIN})

        assert response.status_code == 401

    def test_missing_query(self, client):
        response = client.post("/chat", json={}, headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "query required"}

    def test_query_too_long(self, client):
        response = client.post("/chat", json={"query": "x" * 2001}, headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "Query too long"}

    def test_malformed_body(self, client):
        response = client.post("/chat", json={"query": "streak", "top_k": "many"}, headers=AUTH)

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")

    def test_upstream_failure(self, live_store):
        client = build_client(live_store, llm=FakeLLM(error=UpstreamError("LLM service unavailable: down")))

        response = client.post("/chat", json={"query": "Hallo!"}, headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "LLM service unavailable: down"}

    def test_very_long_window(self, client):
        response = client.post("/chat", json={"query": "How many activities in the last 1000000 days?"},
                               headers=AUTH)

        assert response.status_code == 200
        assert response.json()["answer"] == "Du hast in den letzten 1000000 Tagen 3 Aktivitäten erfasst."

    def test_auth_server_garbage_is_json_error(self, live_store):
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))
        app = create_app(
            settings=make_settings(),
            store=live_store,
            index=FakeIndex(),
            ai=AIServices(embedder=FakeEmbedder(), llm=FakeLLM()),
            verifier=RemoteTokenVerifier("https://auth.example.com", client=http),
        )

        response = TestClient(app).post("/chat", json={"query": "streak"}, headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "Auth server returned an invalid response"}
        assert response.headers["access-control-allow-origin"] == ORIGIN

    def test_private_mode(self, live_store):
        client = build_client(live_store, private_mode=True)

        smalltalk = client.post("/chat", json={"query": "Hallo!"}, headers=AUTH)
        data = client.post("/chat", json={"query": "Zeig mir meine Logs"}, headers=AUTH)

        assert smalltalk.json() == {"answer": PRIVATE_MODE_MESSAGE, "sources": []}
        assert data.json()["answer"].startswith("Letzte Aktivitäten (ca. 7 Tage):")


@pytest.mark.integration
class TestPreflight:
    def test_allowed_origin(self, client):
        response = client.options("/chat", headers={"Origin": ORIGIN})

        assert response.status_code == 200
        assert response.text == "ok"
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert "authorization" in response.headers["access-control-allow-headers"]

    def test_forbidden_origin(self, client):
        response = client.options("/chat", headers={"Origin": "https://evil.example.com"})

        assert response.status_code == 403
        assert response.text == "Forbidden"


@pytest.mark.integration
class TestHealthAndIngest:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "running", "private_mode": False, "chunks": 0, "llm_status": None}

    def test_ingest(self, live_store):
        index = FakeIndex()
        client = build_client(live_store, index=index)

        response = client.post("/ingest", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {"logs": 3, "chunks": 3}
        assert client.get("/health").json()["chunks"] == 3

    def test_ingest_disabled(self, live_store):
        from logchat.core.config import FeaturesConfig

        client = build_client(live_store, features=FeaturesConfig(external_embeddings=False))

        response = client.post("/ingest", json={"since": "2020-01-01T00:00:00Z"}, headers=AUTH)

        assert response.json() == {"logs": 3, "chunks": 0}

    def test_ingest_requires_auth(self, client):
        assert client.post("/ingest", headers={"Origin": ORIGIN}).status_code == 401
