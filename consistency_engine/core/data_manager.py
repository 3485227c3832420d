"""
Data Manager for the Entity Consistency Engine.

Handles I/O operations: the entity/generation catalog the analyzer reads
from, persistence of consistency scores, and analysis report files. All
data persistence logic is centralized here to maintain separation of
concerns.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

import yaml
from pydantic import ValidationError

from consistency_engine.core.config_loader import Settings
from consistency_engine.core.exceptions import DataManagerError, NotFoundError
from consistency_engine.core.interfaces import (
    EntityRecord,
    GenerationRecord,
    GenerationRepository,
)
from consistency_engine.modules.consistency.models import ConsistencyAnalysis

logger = logging.getLogger(__name__)


class AnalysisReport:
    """A consistency analysis together with the context it ran in.

    Attributes:
        generation_id: The analyzed generation.
        content_url: URL of the analyzed content.
        analysis: The analysis result.
        timestamp: When the report was created.
        metadata: Execution metadata.
    """

    def __init__(
        self,
        generation_id: str,
        content_url: str,
        analysis: ConsistencyAnalysis,
    ) -> None:
        self.generation_id = generation_id
        self.content_url = content_url
        self.analysis = analysis
        self.timestamp = datetime.now(timezone.utc)
        self.metadata: dict[str, Any] = {
            "created_at": self.timestamp.isoformat(),
            "entities_scored": len(analysis.entity_scores),
            "entities_failed": len(analysis.failed_entity_ids),
        }

    def to_dict(self, include_metadata: bool = True) -> dict[str, Any]:
        """Convert the report to a dictionary.

        Args:
            include_metadata: Whether to include execution metadata.

        Returns:
            Dictionary representation of the report.
        """
        output: dict[str, Any] = {
            "generationId": self.generation_id,
            "contentUrl": self.content_url,
            "timestamp": self.timestamp.isoformat(),
            "analysis": self.analysis.to_api(),
        }

        if include_metadata:
            output["metadata"] = self.metadata

        return output


class DataManager(GenerationRepository):
    """File-backed catalog of entities and generations.

    The catalog is a single JSON or YAML document:

        entities:
          - {id, name, description, entity_type, image_urls, is_archived}
        generations:
          - {id, entity_ids, status, original_prompt, enhanced_prompt,
             consistency_score}

    Attributes:
        settings: The application settings.
        catalog_path: Path to the catalog document.
        output_dir: Path to the report output directory.
    """

    def __init__(
        self,
        settings: Settings,
        catalog_path: Path | str | None = None,
    ) -> None:
        """Initialize the data manager.

        Args:
            settings: The application settings.
            catalog_path: Overrides settings.data.catalog_path.
        """
        self.settings = settings
        self.catalog_path = Path(catalog_path or settings.data.catalog_path)
        self.output_dir = Path(settings.output.directory)

        self._entities: dict[str, EntityRecord] = {}
        self._generations: dict[str, GenerationRecord] = {}
        self.reload()

    def _ensure_directory(self, directory: Path) -> None:
        """Create a directory if it doesn't exist."""
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DataManagerError(
                f"Failed to create directory: {directory}",
                details={"error": str(e)}
            ) from e

    def _is_yaml(self, path: Path) -> bool:
        return path.suffix.lower() in (".yaml", ".yml")

    def reload(self) -> None:
        """(Re)load the catalog from disk.

        A missing catalog is treated as empty.

        Raises:
            DataManagerError: If the catalog cannot be parsed.
        """
        if not self.catalog_path.exists():
            logger.info("Catalog not found, starting empty: %s", self.catalog_path)
            self._entities = {}
            self._generations = {}
            return

        if self._is_yaml(self.catalog_path):
            try:
                with self.catalog_path.open("r", encoding="utf-8") as f:
                    raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise DataManagerError(
                    f"Invalid YAML format: {self.catalog_path}",
                    details={"path": str(self.catalog_path), "error": str(e)}
                ) from e
        else:
            raw = self.load_json(self.catalog_path)

        try:
            entities = [EntityRecord(**e) for e in raw.get("entities", [])]
            generations = [GenerationRecord(**g) for g in raw.get("generations", [])]
        except (ValidationError, TypeError, AttributeError) as e:
            raise DataManagerError(
                f"Invalid catalog records: {self.catalog_path}",
                details={"path": str(self.catalog_path), "error": str(e)}
            ) from e

        self._entities = {e.id: e for e in entities}
        self._generations = {g.id: g for g in generations}
        logger.debug(
            "Catalog loaded: %d entities, %d generations",
            len(self._entities),
            len(self._generations),
        )

    def _write_catalog(self) -> None:
        """Write the catalog back to disk atomically."""
        self._ensure_directory(self.catalog_path.parent)
        data = {
            "entities": [e.model_dump() for e in self._entities.values()],
            "generations": [g.model_dump() for g in self._generations.values()],
        }

        tmp_path = self.catalog_path.with_name(self.catalog_path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                if self._is_yaml(self.catalog_path):
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.catalog_path)
        except OSError as e:
            raise DataManagerError(
                f"Failed to write catalog: {self.catalog_path}",
                details={"error": str(e)}
            ) from e

    def get_generation(self, generation_id: str) -> GenerationRecord | None:
        """Return a generation by ID, or None."""
        return self._generations.get(generation_id)

    def get_entity(self, entity_id: str) -> EntityRecord | None:
        """Return an entity by ID, or None."""
        return self._entities.get(entity_id)

    def get_entities(self, entity_ids: Sequence[str]) -> list[EntityRecord]:
        """Return the existing entities in the order of ``entity_ids``."""
        return [self._entities[i] for i in entity_ids if i in self._entities]

    def list_entities(self, include_archived: bool = False) -> list[EntityRecord]:
        """Return all entities, optionally including archived ones."""
        return [
            e for e in self._entities.values()
            if include_archived or not e.is_archived
        ]

    def upsert_entity(self, entity: EntityRecord) -> None:
        """Insert or replace an entity and write the catalog."""
        self._entities[entity.id] = entity
        self._write_catalog()

    def upsert_generation(self, generation: GenerationRecord) -> None:
        """Insert or replace a generation and write the catalog."""
        self._generations[generation.id] = generation
        self._write_catalog()

    def persist_score(self, generation_id: str, overall_score: int) -> None:
        """Record a consistency score on a generation.

        Only the score changes; the generation's status is left as is.

        Raises:
            NotFoundError: If the generation does not exist.
            DataManagerError: If the catalog cannot be written.
        """
        generation = self._generations.get(generation_id)
        if generation is None:
            raise NotFoundError(
                f"Generation {generation_id} not found",
                resource="generation",
            )

        self._generations[generation_id] = generation.model_copy(
            update={"consistency_score": overall_score}
        )
        self._write_catalog()
        logger.info(
            "Persisted consistency score %d for generation %s",
            overall_score,
            generation_id,
        )

    def save_analysis(
        self,
        generation_id: str,
        content_url: str,
        analysis: ConsistencyAnalysis,
    ) -> Path:
        """Save an analysis report to a file.

        The filename is generated from the generation ID and timestamp.
        The format is determined by settings.output.format.

        Returns:
            Path to the saved report file.

        Raises:
            DataManagerError: If the report cannot be saved.
        """
        report = AnalysisReport(generation_id, content_url, analysis)
        self._ensure_directory(self.output_dir)

        timestamp_str = report.timestamp.strftime("%Y%m%d_%H%M%S")
        extension = self.settings.output.format
        filename = f"consistency_{generation_id}_{timestamp_str}.{extension}"
        output_path = self.output_dir / filename

        data = report.to_dict(
            include_metadata=self.settings.output.include_metadata
        )

        try:
            with output_path.open("w", encoding="utf-8") as f:
                if self.settings.output.format == "json":
                    json.dump(data, f, indent=2, ensure_ascii=False)
                else:
                    yaml.safe_dump(data, f, default_flow_style=False)

            logger.info("Report saved to: %s", output_path)
            return output_path

        except (OSError, TypeError) as e:
            raise DataManagerError(
                f"Failed to save report: {output_path}",
                details={"error": str(e)}
            ) from e

    def load_json(self, path: Path) -> dict[str, Any]:
        """Load data from a JSON file.

        Args:
            path: Path to the JSON file.

        Returns:
            Parsed JSON data.

        Raises:
            DataManagerError: If the file cannot be loaded.
        """
        if not path.exists():
            raise DataManagerError(
                f"File not found: {path}",
                details={"path": str(path)}
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise DataManagerError(
                f"Invalid JSON format: {path}",
                details={"path": str(path), "error": str(e)}
            ) from e
