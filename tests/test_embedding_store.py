"""Tests for the persistent reference embedding store."""

import json

import numpy as np
import pytest

from consistency_engine.core.embedding_store import EmbeddingStore, vector_id
from consistency_engine.core.exceptions import (
    ErrorCode,
    MalformedEmbeddingError,
    VectorStoreUnavailableError,
)


class TestEmbeddingStore:
    def test_vector_id_format(self):
        assert vector_id("abc") == "entity_abc_combined"
        assert vector_id("abc", "visual") == "entity_abc_visual"

    def test_fetch_omits_missing_entities(self, tmp_path):
        store = EmbeddingStore(tmp_path, model="m")
        store.upsert("e1", [1.0, 0.0])

        refs = store.fetch_reference_embeddings(["e1", "e2"])

        assert list(refs) == ["e1"]
        np.testing.assert_allclose(refs["e1"], [1.0, 0.0])

    def test_fetch_reads_combined_kind(self, tmp_path):
        store = EmbeddingStore(tmp_path, model="m")
        store.upsert("e1", [0.0, 1.0], "visual")
        assert store.fetch_reference_embeddings(["e1"]) == {}

    def test_persists_across_instances(self, tmp_path):
        with EmbeddingStore(tmp_path, model="m") as store:
            store.upsert("e1", [1.0, 2.0, 3.0])

        reloaded = EmbeddingStore(tmp_path, model="m")
        np.testing.assert_allclose(reloaded.get("e1"), [1.0, 2.0, 3.0])
        metadata = json.loads((tmp_path / "metadata.json").read_text())
        assert metadata["model"] == "m"
        assert metadata["embeddings_count"] == 1

    def test_model_change_invalidates(self, tmp_path):
        with EmbeddingStore(tmp_path, model="old") as store:
            store.upsert("e1", [1.0, 0.0])

        reloaded = EmbeddingStore(tmp_path, model="new")
        assert reloaded.get("e1") is None

    def test_corrupt_file_makes_store_unavailable(self, tmp_path):
        (tmp_path / "references.npz").write_bytes(b"not a zip archive")
        store = EmbeddingStore(tmp_path, model="m")

        with pytest.raises(VectorStoreUnavailableError) as exc_info:
            store.fetch_reference_embeddings(["e1"])
        assert exc_info.value.code == ErrorCode.SERVICE_UNAVAILABLE
        assert exc_info.value.retryable
        assert store.get_stats()["available"] is False

    def test_save_recovers_from_corrupt_file(self, tmp_path):
        (tmp_path / "references.npz").write_bytes(b"garbage")
        store = EmbeddingStore(tmp_path, model="m")
        store.upsert("e1", [1.0, 0.0])
        store.save()

        assert store.fetch_reference_embeddings(["e1"])
        assert EmbeddingStore(tmp_path, model="m").get("e1") is not None

    def test_delete_entity_removes_every_kind(self, tmp_path):
        store = EmbeddingStore(tmp_path, model="m")
        for kind in ("combined", "visual", "semantic"):
            store.upsert("e1", [1.0, 0.0], kind)
        store.upsert("e2", [1.0, 0.0])

        assert store.delete_entity("e1") == 3
        assert store.delete_entity("e1") == 0
        assert store.get_stats()["embeddings_count"] == 1

    def test_rejects_unknown_kind(self, tmp_path):
        store = EmbeddingStore(tmp_path, model="m")
        with pytest.raises(ValueError):
            store.upsert("e1", [1.0], "audio")

    def test_rejects_malformed_vector(self, tmp_path):
        store = EmbeddingStore(tmp_path, model="m")
        with pytest.raises(MalformedEmbeddingError):
            store.upsert("e1", [1.0, float("inf")])

    def test_invalidate_all(self, tmp_path):
        store = EmbeddingStore(tmp_path, model="m")
        store.upsert("e1", [1.0])
        store.invalidate_all()
        assert store.get("e1") is None
