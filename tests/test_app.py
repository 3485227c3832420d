"""Tests for the Flask API."""

import json

import pytest

from consistency_engine.app import create_app
from consistency_engine.core.data_manager import DataManager
from consistency_engine.core.embedding_store import EmbeddingStore
from consistency_engine.core.exceptions import EmbeddingExtractionError, ErrorCode
from consistency_engine.core.retry import RetryPolicy
from consistency_engine.modules.extractors import FakeEmbeddingExtractor

CATALOG = {
    "entities": [
        {
            "id": "e1",
            "name": "Aria",
            "description": "Silver hair. Green hooded cloak. Carved longbow.",
            "image_urls": ["https://cdn/aria.png"],
        },
        {"id": "e2", "name": "Obsidian Tower", "description": "Black glass spire"},
        {"id": "e3", "name": "Empty"},
    ],
    "generations": [
        {
            "id": "g1",
            "entity_ids": ["e1", "e2"],
            "status": "completed",
            "original_prompt": "Aria at the tower",
            "enhanced_prompt": "Aria (Silver hair) at the tower",
        },
    ],
}


class UnavailableExtractor(FakeEmbeddingExtractor):
    def __init__(self):
        super().__init__(dimensions=2)
        self.calls = 0

    def extract_embedding(self, content_url, content_type="image"):
        self.calls += 1
        raise EmbeddingExtractionError("down", code=ErrorCode.SERVICE_UNAVAILABLE)


@pytest.fixture
def data_manager(settings):
    settings.data.catalog_path.write_text(json.dumps(CATALOG), encoding="utf-8")
    return DataManager(settings)


@pytest.fixture
def store(settings):
    store = EmbeddingStore(settings.references.store_dir, model="fake")
    store.upsert("e1", [1.0, 0.0])
    store.upsert("e2", [0.0, 1.0])
    return store


@pytest.fixture
def extractor():
    return FakeEmbeddingExtractor(
        dimensions=2,
        overrides={
            "https://cdn/img.png": [1.0, 0.0],
            "https://cdn/aria.png": [1.0, 0.0],
        },
    )


def make_client(settings, data_manager, store, extractor):
    app = create_app(
        settings=settings,
        data_manager=data_manager,
        extractor=extractor,
        store=store,
        retry_policy=RetryPolicy(sleep=lambda _: None),
    )
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def client(settings, data_manager, store, extractor):
    return make_client(settings, data_manager, store, extractor)


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"


class TestConsistencyCheck:
    def test_check_and_persist(self, client, data_manager):
        response = client.post("/api/consistency/check", json={
            "generationId": "g1",
            "contentUrl": "https://cdn/img.png",
            "contentType": "image",
        })

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["data"]["overallScore"] == 75
        assert body["data"]["recommendation"] == "review"
        assert body["data"]["driftedAttributes"][0]["subjectName"] == "Obsidian Tower"
        assert data_manager.get_generation("g1").consistency_score == 75

        score = client.get("/api/generations/g1/consistency").get_json()
        assert score["data"] == {"consistencyScore": 75, "status": "completed"}

    def test_snake_case_fields_accepted(self, client):
        response = client.post("/api/consistency/check", json={
            "generation_id": "g1",
            "content_url": "https://cdn/img.png",
        })
        assert response.status_code == 200

    def test_validation_error(self, client):
        response = client.post("/api/consistency/check", json={"generationId": "g1"})
        assert response.status_code == 400
        assert response.get_json()["code"] == "VALIDATION_ERROR"

    def test_invalid_content_type(self, client):
        response = client.post("/api/consistency/check", json={
            "generationId": "g1",
            "contentUrl": "https://cdn/a.mp3",
            "contentType": "audio",
        })
        assert response.status_code == 400

    def test_unknown_generation(self, client):
        response = client.post("/api/consistency/check", json={
            "generationId": "nope",
            "contentUrl": "https://cdn/img.png",
        })
        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_external_outage(self, settings, data_manager, store):
        extractor = UnavailableExtractor()
        client = make_client(settings, data_manager, store, extractor)

        response = client.post("/api/consistency/check", json={
            "generationId": "g1",
            "contentUrl": "https://cdn/img.png",
        })

        assert response.status_code == 503
        assert response.get_json()["code"] == "SERVICE_UNAVAILABLE"
        assert extractor.calls == 3
        assert data_manager.get_generation("g1").consistency_score is None


class TestGenerationEndpoints:
    def test_consistency_not_found(self, client):
        assert client.get("/api/generations/nope/consistency").status_code == 404

    def test_unscored_generation(self, client):
        body = client.get("/api/generations/g1/consistency").get_json()
        assert body["data"]["consistencyScore"] is None

    def test_regenerate_with_constraints(self, client, data_manager):
        response = client.post(
            "/api/generations/g1/constraints",
            json={"additionalConstraints": "keep the cloak green"},
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["enhancedPrompt"] == (
            "Aria (Silver hair) at the tower. IMPORTANT: maintain exact visual "
            "consistency, follow reference images precisely, preserve all key "
            "attributes, keep the cloak green."
        )
        new_generation = data_manager.get_generation(data["generationId"])
        assert new_generation.status == "queued"
        assert new_generation.entity_ids == ["e1", "e2"]

    def test_regenerate_unknown(self, client):
        assert client.post("/api/generations/nope/constraints", json={}).status_code == 404


class TestPromptEnhancement:
    def test_detects_entities(self, client):
        response = client.post("/api/prompts/enhance", json={"prompt": "Aria rides at dawn"})
        data = response.get_json()["data"]
        assert data["detectedEntityIds"] == ["e1"]
        assert data["enhancedPrompt"].startswith("Aria (Silver hair, Green hooded cloak, Carved longbow)")

    def test_manual_entities(self, client):
        response = client.post(
            "/api/prompts/enhance",
            json={"prompt": "A black spire", "entityIds": ["e2"]},
        )
        assert response.get_json()["data"]["detectedEntityIds"] == ["e2"]

    def test_empty_prompt(self, client):
        assert client.post("/api/prompts/enhance", json={"prompt": ""}).status_code == 400


class TestReferenceRebuild:
    def test_rebuild(self, client, store):
        response = client.post("/api/entities/e1/references")
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["entityId"] == "e1"
        assert data["imageCount"] == 1
        assert store.get("e1", "visual") is not None

    def test_entity_without_material(self, client):
        response = client.post("/api/entities/e3/references")
        assert response.status_code == 400

    def test_unknown_entity(self, client):
        assert client.post("/api/entities/nope/references").status_code == 404
