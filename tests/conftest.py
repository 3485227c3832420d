"""Shared fixtures: in-memory collaborators for the consistency analyzer."""

import numpy as np
import pytest

from consistency_engine.core.config_loader import Settings
from consistency_engine.core.interfaces import (
    EmbeddingExtractor,
    EntityRecord,
    GenerationRecord,
    GenerationRepository,
    ReferenceStore,
)


class InMemoryRepository(GenerationRepository):
    def __init__(self, generations=(), entities=()):
        self.generations = {g.id: g for g in generations}
        self.entities = {e.id: e for e in entities}
        self.persisted: list[tuple[str, int]] = []

    def get_generation(self, generation_id):
        return self.generations.get(generation_id)

    def get_entities(self, entity_ids):
        return [self.entities[i] for i in entity_ids if i in self.entities]

    def persist_score(self, generation_id, overall_score):
        self.persisted.append((generation_id, overall_score))


class StaticExtractor(EmbeddingExtractor):
    """Returns a fixed vector, or raises the queued errors first."""

    def __init__(self, vector, errors=()):
        self.vector = np.asarray(vector, dtype=float)
        self.errors = list(errors)
        self.calls = 0

    def extract_embedding(self, content_url, content_type="image"):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.vector


class DictReferenceStore(ReferenceStore):
    def __init__(self, vectors):
        self.vectors = dict(vectors)

    def fetch_reference_embeddings(self, entity_ids):
        return {i: self.vectors[i] for i in entity_ids if i in self.vectors}


@pytest.fixture
def entities():
    return [
        EntityRecord(
            id="e1",
            name="Aria",
            description="Silver hair. Green hooded cloak. Carved longbow. Brave heart.",
        ),
        EntityRecord(
            id="e2",
            name="Obsidian Tower",
            description="Black glass spire, floating runes, storm clouds",
        ),
    ]


@pytest.fixture
def repository(entities):
    generation = GenerationRecord(id="g1", entity_ids=["e1", "e2"])
    return InMemoryRepository(generations=[generation], entities=entities)


@pytest.fixture
def reference_store():
    return DictReferenceStore({"e1": [1.0, 0.0], "e2": [0.0, 1.0]})


@pytest.fixture
def settings(tmp_path):
    return Settings.model_validate({
        "references": {"store_dir": str(tmp_path / "references")},
        "data": {"catalog_path": str(tmp_path / "catalog.json")},
        "output": {"directory": str(tmp_path / "output")},
        "openai": {"fake_mode": True, "dimensions": 8},
    })
