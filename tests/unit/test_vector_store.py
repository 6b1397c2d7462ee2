"""Tests for the ChromaDB document index and ingestion."""

from datetime import timedelta

import pytest

from conftest import NOW, OTHER_USER, USER, FakeEmbedder, FakeIndex, area_notes, make_log
from logchat.core.config import RAGConfig
from logchat.models.records import DocumentChunk
from logchat.services.ingest import SOURCE_TABLE, IngestService
from logchat.services.vector_store import DocumentIndex


def chunk(source_id, embedding, user_id=USER, content="Inhalt", days_ago=1):
    return DocumentChunk(
        user_id=user_id,
        source_table=SOURCE_TABLE,
        source_id=source_id,
        content=content,
        embedding=embedding,
        occurred_at=NOW - timedelta(days=days_ago),
        metadata={"template_id": "t1"},
    )


@pytest.fixture
def index(tmp_path):
    # Persistent client per test; the ephemeral client shares state in-process
    return DocumentIndex(collection_name="test_documents", persist_path=tmp_path / "chroma")


@pytest.mark.unit
class TestDocumentIndex:
    def test_upsert_is_idempotent(self, index):
        index.upsert([chunk("log-1#0", [1.0, 0.0, 0.0], content="alt")])
        index.upsert([chunk("log-1#0", [1.0, 0.0, 0.0], content="neu")])

        assert index.count(USER) == 1
        assert index.get(USER, SOURCE_TABLE, "log-1#0").content == "neu"

    def test_get_roundtrips_metadata(self, index):
        index.upsert([chunk("log-1#0", [0.0, 1.0, 0.0])])

        stored = index.get(USER, SOURCE_TABLE, "log-1#0")

        assert stored.metadata == {"template_id": "t1"}
        assert stored.occurred_at == NOW - timedelta(days=1)
        assert stored.embedding == pytest.approx([0.0, 1.0, 0.0])
        assert index.get(USER, SOURCE_TABLE, "missing") is None

    def test_search_orders_by_similarity(self, index):
        index.upsert([
            chunk("near", [1.0, 0.1, 0.0]),
            chunk("far", [0.0, 1.0, 0.0]),
            chunk("mid", [1.0, 1.0, 0.0]),
        ])

        hits = index.search([1.0, 0.0, 0.0], match_count=12, min_similarity=0.2, user_id=USER)

        assert [h.id for h in hits] == ["near", "mid"]
        assert hits[0].similarity > 0.9
        assert hits[0].occurred_at == NOW - timedelta(days=1)

    def test_search_is_scoped_to_user(self, index):
        index.upsert([chunk("mine", [1.0, 0.0, 0.0]), chunk("theirs", [1.0, 0.0, 0.0], user_id=OTHER_USER)])

        hits = index.search([1.0, 0.0, 0.0], match_count=12, min_similarity=0.0, user_id=USER)

        assert [h.id for h in hits] == ["mine"]

    def test_search_empty_collection(self, index):
        assert index.search([1.0, 0.0, 0.0], match_count=12, min_similarity=0.2, user_id=USER) == []


@pytest.mark.unit
class TestIngestService:
    def test_one_chunk_per_short_log(self, seeded_store, fake_embedder):
        index = FakeIndex()
        service = IngestService(seeded_store, index, fake_embedder, enabled=True)

        result = service.ingest_user(USER)

        assert result.to_dict() == {"logs": 4, "chunks": 4}
        assert [c.source_id for c in index.upserted] == ["log-1#0", "log-2#0", "log-3#0", "log-4#0"]
        first = index.upserted[0]
        assert first.content.startswith("Bereich: Fitness\nDatum: 2026-03-15T09:36:00+00:00\n")
        assert first.metadata == {"template_id": None}
        assert first.user_id == USER

    def test_long_notes_are_split_with_one_embedding_call(self, store, fake_embedder):
        store.add_log(make_log(1, "a" * 4500, log_id="long"))
        index = FakeIndex()
        service = IngestService(store, index, fake_embedder, config=RAGConfig(), enabled=True)

        result = service.ingest_user(USER)

        assert result.chunks == 3
        assert [c.source_id for c in index.upserted] == ["long#0", "long#1", "long#2"]
        assert len(fake_embedder.calls) == 1

    def test_since_limits_the_logs(self, seeded_store, fake_embedder):
        service = IngestService(seeded_store, FakeIndex(), fake_embedder, enabled=True)

        assert service.ingest_user(USER, since=NOW - timedelta(days=7)).logs == 3

    def test_disabled_makes_no_calls(self, seeded_store):
        embedder = FakeEmbedder()
        index = FakeIndex()
        service = IngestService(seeded_store, index, embedder, enabled=False)

        result = service.ingest_user(USER)

        assert result.to_dict() == {"logs": 4, "chunks": 0}
        assert embedder.calls == []
        assert index.upserted == []

    def test_private_mode_has_no_embedder(self, seeded_store):
        service = IngestService(seeded_store, FakeIndex(), None, enabled=True)

        assert not service.active
        assert service.ingest_user(USER).chunks == 0

    def test_reingest_replaces_chunks(self, seeded_store, fake_embedder, index):
        seeded_store.add_log(make_log(0.2, area_notes("Lesen", "Neu"), log_id="log-5"))
        service = IngestService(seeded_store, index, fake_embedder, enabled=True)

        service.ingest_user(USER)
        service.ingest_user(USER)

        assert index.count(USER) == 5
