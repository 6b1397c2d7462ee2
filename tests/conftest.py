"""
LogChat Test Configuration

Shared fixtures and fakes for pytest. Nothing here touches the network:
the AI capability is replaced by recording fakes and the stores live in
``tmp_path``.
"""

import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from logchat.core.config import (
    CorsConfig, FeaturesConfig, RAGConfig, Settings, StorageConfig
)
from logchat.models.records import ActivityLog, ChunkMatch, LifeArea
from logchat.services.ai import AIServices

# Fixed "now" for every time-dependent test
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
USER = "user-1"
OTHER_USER = "user-2"
ORIGIN = "https://app.example.com"


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: fast tests without I/O beyond tmp_path")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# =============================================================================
# Builders
# =============================================================================

def area_notes(area: str, text: str, title: str = "") -> str:
    """Notes JSON as written by the editor: metadata wrapper around a delta."""
    return json.dumps(
        {"title": title, "area": area, "delta": [{"insert": text + "\n"}]},
        ensure_ascii=False,
    )


def make_log(
    days_ago: float = 0,
    notes: Optional[str] = "Notiz",
    duration: Optional[int] = None,
    xp: int = 0,
    user_id: str = USER,
    log_id: Optional[str] = None,
    now: datetime = NOW,
) -> ActivityLog:
    return ActivityLog(
        id=log_id or str(uuid.uuid4()),
        user_id=user_id,
        occurred_at=now - timedelta(days=days_ago),
        duration_min=duration,
        notes=notes,
        earned_xp=xp,
    )


def make_settings(private_mode: bool = False, tmp_path=None, **overrides) -> Settings:
    """Settings for tests; everything else keeps its default."""
    values = dict(
        cors=CorsConfig(allowed_origins=[ORIGIN]),
        features=FeaturesConfig(private_mode=private_mode, external_embeddings=True),
        rag=RAGConfig(),
    )
    if tmp_path is not None:
        values["storage"] = StorageConfig(db_path=tmp_path / "logchat.db", chroma_path=tmp_path / "chroma")
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# Fakes
# =============================================================================

class FakeEmbedder:
    """Records every embedding request."""

    def __init__(self, vector: Optional[List[float]] = None):
        self.vector = vector or [1.0, 0.0, 0.0]
        self.calls: List[List[str]] = []

    def embed_texts(self, texts):
        self.calls.append(list(texts))
        return [list(self.vector) for _ in texts]

    def embed_query(self, text):
        return self.embed_texts([text])[0]


class FakeLLM:
    """Records every completion request and returns a canned answer."""

    def __init__(self, answer: str = "Antwort vom Modell", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls = []

    def complete(self, system_prompt, user_prompt, temperature):
        self.calls.append({"system": system_prompt, "user": user_prompt, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.answer


class FakeIndex:
    """Document index returning preset matches."""

    def __init__(self, matches: Optional[List[ChunkMatch]] = None):
        self.matches = matches or []
        self.searches = []
        self.upserted = []

    def search(self, query_vector, match_count, min_similarity, user_id):
        self.searches.append({
            "vector": query_vector,
            "match_count": match_count,
            "min_similarity": min_similarity,
            "user_id": user_id,
        })
        return list(self.matches)

    def upsert(self, chunks):
        self.upserted.extend(chunks)
        return len(chunks)

    def count(self, user_id=None):
        return len(self.upserted)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """Empty activity store in a temp directory."""
    from logchat.services.store import ActivityStore

    return ActivityStore(tmp_path / "logchat.db")


@pytest.fixture
def seeded_store(store):
    """Store with a small, realistic history for USER and one foreign log."""
    store.add_area(LifeArea(user_id=USER, name="Fitness", category="Gesundheit"))
    store.add_area(LifeArea(user_id=USER, name="Lesen", category="Bildung"))
    store.add_logs([
        make_log(0.1, area_notes("Fitness", "Laufen im Park\nZweite Zeile"), duration=45, xp=30, log_id="log-1"),
        make_log(1.2, area_notes("Lesen", "Atomic Habits Kapitel 3", title="Atomic Habits"),
                 duration=30, xp=10, log_id="log-2"),
        make_log(2.3, "Einfach eine Notiz", duration=15, xp=5, log_id="log-3"),
        make_log(20, area_notes("Fitness", "Krafttraining"), duration=60, xp=40, log_id="log-4"),
        make_log(0.5, "Fremder Eintrag", duration=999, xp=999, user_id=OTHER_USER, log_id="log-x"),
    ])
    return store


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def private_settings():
    return make_settings(private_mode=True)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def fake_ai(fake_embedder, fake_llm):
    return AIServices(embedder=fake_embedder, llm=fake_llm)


@pytest.fixture
def pipeline(settings, seeded_store, fake_index, fake_ai):
    """Pipeline with the AI capability wired to recording fakes."""
    from logchat.services.chat.orchestrator import ChatPipeline

    return ChatPipeline(settings, seeded_store, index=fake_index, ai=fake_ai)


@pytest.fixture
def private_pipeline(private_settings, seeded_store):
    """Pipeline in private mode: no AI capability at all."""
    from logchat.services.chat.orchestrator import ChatPipeline

    return ChatPipeline(private_settings, seeded_store, index=None, ai=None)
