"""
Reference Builder: turns an entity into stored reference embeddings.

The visual embedding is the centroid of the entity's reference image
embeddings, the semantic embedding embeds its description, and the
combined embedding (the one consistency scoring reads) is their weighted
sum.
"""

import logging

import numpy as np

from consistency_engine.core.embedding_store import EmbeddingStore
from consistency_engine.core.interfaces import (
    EmbeddingExtractor,
    EntityRecord,
    TextEmbedder,
)
from consistency_engine.core.vector_math import combine_embeddings, mean_vector
from consistency_engine.modules.references.models import ReferenceBuildResult

logger = logging.getLogger(__name__)

DEFAULT_VISUAL_WEIGHT = 0.6
DEFAULT_SEMANTIC_WEIGHT = 0.4


class ReferenceBuilder:
    """Builds and stores the reference embeddings of entities.

    Example:
        builder = ReferenceBuilder(extractor, extractor, store)
        result = builder.build(entity)
    """

    def __init__(
        self,
        extractor: EmbeddingExtractor,
        text_embedder: TextEmbedder,
        store: EmbeddingStore,
        visual_weight: float = DEFAULT_VISUAL_WEIGHT,
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    ) -> None:
        self.extractor = extractor
        self.text_embedder = text_embedder
        self.store = store
        self.visual_weight = visual_weight
        self.semantic_weight = semantic_weight

    def _visual_embedding(self, entity: EntityRecord) -> np.ndarray | None:
        if not entity.image_urls:
            return None
        embeddings = [
            self.extractor.extract_embedding(url, "image")
            for url in entity.image_urls
        ]
        return mean_vector(embeddings)

    def _semantic_embedding(self, entity: EntityRecord) -> np.ndarray | None:
        if not entity.description.strip():
            return None
        return self.text_embedder.embed_text(entity.description)

    def build(self, entity: EntityRecord) -> ReferenceBuildResult:
        """Compute and store the reference embeddings of an entity.

        Raises:
            ValueError: If the entity has neither images nor a description.
            EmbeddingExtractionError: If an embedding cannot be computed.
        """
        visual = self._visual_embedding(entity)
        semantic = self._semantic_embedding(entity)

        if visual is None and semantic is None:
            raise ValueError(
                f"Entity {entity.id} has no reference images or description"
            )

        parts: list[tuple[np.ndarray, float]] = []
        keys: list[str] = []

        if visual is not None:
            keys.append(self.store.upsert(entity.id, visual, "visual"))
            parts.append((visual, self.visual_weight))
        if semantic is not None:
            keys.append(self.store.upsert(entity.id, semantic, "semantic"))
            parts.append((semantic, self.semantic_weight))

        combined = combine_embeddings(parts)
        keys.insert(0, self.store.upsert(entity.id, combined, "combined"))
        self.store.save()

        logger.info(
            "Built reference embeddings for entity %s (%d images, description=%s)",
            entity.id,
            len(entity.image_urls),
            semantic is not None,
        )
        return ReferenceBuildResult(
            entity_id=entity.id,
            stored_keys=keys,
            image_count=len(entity.image_urls),
            has_semantic=semantic is not None,
            dimensions=int(combined.size),
        )

    def rebuild(self, entity: EntityRecord) -> ReferenceBuildResult:
        """Delete an entity's stored embeddings and build them again."""
        removed = self.store.delete_entity(entity.id)
        logger.info("Rebuilding entity %s (removed %d vectors)", entity.id, removed)
        return self.build(entity)
