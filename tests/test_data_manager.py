"""Tests for the file-backed catalog and report persistence."""

import json

import pytest
import yaml

from consistency_engine.core.config_loader import Settings
from consistency_engine.core.data_manager import DataManager
from consistency_engine.core.exceptions import DataManagerError, NotFoundError
from consistency_engine.core.interfaces import EntityRecord, GenerationRecord
from consistency_engine.modules.consistency import ConsistencyAnalysis, Recommendation

CATALOG = {
    "entities": [
        {"id": "e1", "name": "Aria", "description": "Silver hair"},
        {"id": "e2", "name": "Tower", "is_archived": True},
    ],
    "generations": [
        {"id": "g1", "entity_ids": ["e1", "e2"], "status": "completed"},
    ],
}


@pytest.fixture
def catalog_path(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")
    return path


@pytest.fixture
def manager(settings, catalog_path):
    return DataManager(settings, catalog_path=catalog_path)


def make_analysis(score=80):
    return ConsistencyAnalysis(
        overall_score=score,
        visual_score=score,
        semantic_score=score,
        recommendation=Recommendation.REVIEW,
        message="Good consistency",
        entity_scores={"e1": score},
    )


class TestCatalog:
    def test_lookups(self, manager):
        assert manager.get_generation("g1").entity_ids == ["e1", "e2"]
        assert manager.get_generation("missing") is None
        assert manager.get_entity("e1").name == "Aria"

    def test_get_entities_keeps_order_and_skips_missing(self, manager):
        assert [e.id for e in manager.get_entities(["e2", "x", "e1"])] == ["e2", "e1"]

    def test_list_entities_hides_archived(self, manager):
        assert [e.id for e in manager.list_entities()] == ["e1"]
        assert len(manager.list_entities(include_archived=True)) == 2

    def test_missing_catalog_is_empty(self, settings, tmp_path):
        manager = DataManager(settings, catalog_path=tmp_path / "none.json")
        assert manager.get_generation("g1") is None

    def test_invalid_json(self, settings, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataManagerError):
            DataManager(settings, catalog_path=path)

    def test_invalid_records(self, settings, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"entities": [{"name": "no id"}]}), encoding="utf-8")
        with pytest.raises(DataManagerError):
            DataManager(settings, catalog_path=path)

    def test_yaml_catalog(self, settings, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(yaml.safe_dump(CATALOG), encoding="utf-8")
        manager = DataManager(settings, catalog_path=path)
        assert manager.get_entity("e1").description == "Silver hair"

    def test_upserts_are_written(self, manager, settings, catalog_path):
        manager.upsert_entity(EntityRecord(id="e3", name="Bow"))
        manager.upsert_generation(GenerationRecord(id="g2", entity_ids=["e3"]))

        reloaded = DataManager(settings, catalog_path=catalog_path)
        assert reloaded.get_entity("e3").name == "Bow"
        assert reloaded.get_generation("g2").entity_ids == ["e3"]


class TestPersistScore:
    def test_score_written_and_status_unchanged(self, manager, settings, catalog_path):
        manager.persist_score("g1", 83)

        reloaded = DataManager(settings, catalog_path=catalog_path)
        generation = reloaded.get_generation("g1")
        assert generation.consistency_score == 83
        assert generation.status == "completed"

    def test_last_write_wins(self, manager):
        manager.persist_score("g1", 40)
        manager.persist_score("g1", 90)
        assert manager.get_generation("g1").consistency_score == 90

    def test_unknown_generation(self, manager):
        with pytest.raises(NotFoundError):
            manager.persist_score("missing", 50)


class TestSaveAnalysis:
    def test_json_report(self, manager, settings):
        path = manager.save_analysis("g1", "https://cdn/img.png", make_analysis())

        assert path.parent == settings.output.directory
        assert path.name.startswith("consistency_g1_")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["generationId"] == "g1"
        assert data["analysis"]["overallScore"] == 80
        assert data["analysis"]["recommendation"] == "review"
        assert data["metadata"]["entities_scored"] == 1

    def test_yaml_report_without_metadata(self, catalog_path, tmp_path):
        settings = Settings.model_validate({
            "output": {
                "directory": str(tmp_path / "out"),
                "format": "yaml",
                "include_metadata": False,
            },
        })
        manager = DataManager(settings, catalog_path=catalog_path)

        path = manager.save_analysis("g1", "https://cdn/img.png", make_analysis(95))

        assert path.suffix == ".yaml"
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["analysis"]["overallScore"] == 95
        assert "metadata" not in data

    def test_load_json_missing_file(self, manager, tmp_path):
        with pytest.raises(DataManagerError):
            manager.load_json(tmp_path / "nope.json")
