"""
Embedding Store for the Entity Consistency Engine.

Persists per-entity reference embeddings. Uses NumPy .npz format for
efficient storage, keyed by ``entity_{entity_id}_{kind}``.
"""

import json
import logging
import os
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from consistency_engine.core.exceptions import (
    ErrorCode,
    VectorStoreUnavailableError,
)
from consistency_engine.core.interfaces import ReferenceStore
from consistency_engine.core.vector_math import as_vector

logger = logging.getLogger(__name__)

REFERENCE_KINDS = ("combined", "visual", "semantic")
DEFAULT_KIND = "combined"


def vector_id(entity_id: str, kind: str = DEFAULT_KIND) -> str:
    """Build the storage key of an entity's reference vector."""
    return f"entity_{entity_id}_{kind}"


class EmbeddingStore(ReferenceStore):
    """Persistent store of reference embeddings using NumPy .npz files.

    This store provides:
    - One vector per entity and kind (combined, visual, semantic)
    - Automatic persistence to disk
    - Model-aware invalidation

    Store Structure:
        references/
        ├── references.npz    # {entity_<id>_<kind>: vector}
        └── metadata.json     # Model version, timestamps

    Example:
        store = EmbeddingStore(store_dir="./cache/references")
        store.upsert("e1", vector)
        refs = store.fetch_reference_embeddings(["e1", "e2"])
    """

    def __init__(
        self,
        store_dir: Path | str = "./cache/references",
        model: str | None = None,
    ) -> None:
        """Initialize the embedding store.

        Args:
            store_dir: Directory for store files.
            model: Embedding model name (default from env or text-embedding-3-small).
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

        self.model = model or os.getenv(
            "OPENAI_EMBEDDING_MODEL",
            "text-embedding-3-small"
        )

        self._vectors_path = self.store_dir / "references.npz"
        self._metadata_path = self.store_dir / "metadata.json"

        self._vectors: dict[str, np.ndarray] = {}
        self._dirty = False
        self._load_error: str | None = None

        self._load()

    def _load(self) -> None:
        """Load vectors from disk."""
        if self._vectors_path.exists():
            try:
                with np.load(self._vectors_path, allow_pickle=False) as data:
                    self._vectors = {key: data[key] for key in data.files}
                logger.info(
                    "Loaded %d reference embeddings from %s",
                    len(self._vectors),
                    self._vectors_path,
                )
            except (OSError, ValueError, zipfile.BadZipFile) as e:
                logger.error("Failed to load reference store: %s", e)
                self._vectors = {}
                self._load_error = str(e)
                return

        # Validate model version
        if self._metadata_path.exists():
            try:
                with open(self._metadata_path, "r", encoding="utf-8") as f:
                    metadata = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load metadata: %s", e)
                return

            cached_model = metadata.get("model")
            if cached_model and cached_model != self.model:
                logger.warning(
                    "Model changed (%s -> %s), invalidating reference store",
                    cached_model,
                    self.model
                )
                self._vectors = {}
                self._dirty = True

    def _ensure_available(self) -> None:
        if self._load_error is not None:
            raise VectorStoreUnavailableError(
                "Reference store could not be loaded",
                code=ErrorCode.SERVICE_UNAVAILABLE,
                details={"path": str(self._vectors_path), "error": self._load_error},
            )

    def save(self) -> None:
        """Persist the store to disk."""
        if self._dirty:
            tmp_path = self.store_dir / "references.tmp.npz"
            np.savez(tmp_path, **self._vectors)
            os.replace(tmp_path, self._vectors_path)
            self._dirty = False
            self._load_error = None
            logger.debug("Saved %d reference embeddings", len(self._vectors))

        metadata = {
            "model": self.model,
            "updated_at": datetime.now().isoformat(),
            "embeddings_count": len(self._vectors),
        }
        with open(self._metadata_path, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2)

    def upsert(
        self,
        entity_id: str,
        embedding: Any,
        kind: str = DEFAULT_KIND,
    ) -> str:
        """Insert or replace an entity's reference embedding.

        Args:
            entity_id: Entity identifier.
            embedding: The vector to store.
            kind: combined, visual or semantic.

        Returns:
            The storage key of the vector.

        Raises:
            ValueError: If ``kind`` is unknown.
            MalformedEmbeddingError: If the vector is invalid.
        """
        if kind not in REFERENCE_KINDS:
            raise ValueError(f"Unknown reference kind: {kind}")

        key = vector_id(entity_id, kind)
        self._vectors[key] = np.array(as_vector(embedding, key))
        self._dirty = True
        logger.debug("Upserted reference embedding %s", key)
        return key

    def get(self, entity_id: str, kind: str = DEFAULT_KIND) -> np.ndarray | None:
        """Return a stored vector, or None."""
        self._ensure_available()
        return self._vectors.get(vector_id(entity_id, kind))

    def fetch_reference_embeddings(
        self,
        entity_ids: Sequence[str],
        kind: str = DEFAULT_KIND,
    ) -> dict[str, np.ndarray]:
        """Fetch reference embeddings for the given entities.

        Entities without a stored vector are left out of the result.

        Raises:
            VectorStoreUnavailableError: If the store failed to load.
        """
        self._ensure_available()

        found: dict[str, np.ndarray] = {}
        for entity_id in entity_ids:
            vector = self._vectors.get(vector_id(entity_id, kind))
            if vector is not None:
                found[entity_id] = vector

        missing = len(set(entity_ids)) - len(found)
        if missing:
            logger.info(
                "No %s reference embedding for %d of %d entities",
                kind,
                missing,
                len(set(entity_ids)),
            )
        return found

    def delete_entity(self, entity_id: str) -> int:
        """Delete every stored vector of an entity.

        Returns:
            Number of vectors removed.
        """
        keys = [vector_id(entity_id, kind) for kind in REFERENCE_KINDS]
        removed = 0
        for key in keys:
            if self._vectors.pop(key, None) is not None:
                removed += 1

        if removed:
            self._dirty = True
            logger.info("Deleted %d reference embeddings for entity %s", removed, entity_id)
        return removed

    def invalidate_all(self) -> None:
        """Drop every stored vector.

        Call this when the embedding model changes.
        """
        self._vectors = {}
        self._dirty = True
        logger.info("Invalidated reference store")

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with store stats.
        """
        return {
            "embeddings_count": len(self._vectors),
            "model": self.model,
            "store_dir": str(self.store_dir),
            "available": self._load_error is None,
        }

    def __enter__(self) -> "EmbeddingStore":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit - auto-save."""
        self.save()
