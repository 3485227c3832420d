"""
Fake Embedding Extractor for offline runs and tests.

Returns deterministic pseudo-random unit vectors seeded from a hash of
the input, so the same content always maps to the same vector.
"""

import hashlib
import logging
from typing import Any, Mapping

import numpy as np

from consistency_engine.core.interfaces import (
    CONTENT_TYPES,
    ContentType,
    EmbeddingExtractor,
    TextEmbedder,
)
from consistency_engine.core.vector_math import as_vector, normalize_vector

logger = logging.getLogger(__name__)

MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}
DEFAULT_DIMENSIONS = 1536


def get_dimension_for_model(model: str) -> int:
    """Return the output dimensionality of an embedding model."""
    return MODEL_DIMENSIONS.get(model, DEFAULT_DIMENSIONS)


class FakeEmbeddingExtractor(EmbeddingExtractor, TextEmbedder):
    """Deterministic extractor that never calls a network service.

    Attributes:
        dimensions: Length of produced vectors.
        overrides: Fixed vectors returned for specific URLs or texts.
    """

    def __init__(
        self,
        dimensions: int = DEFAULT_DIMENSIONS,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be at least 1")
        self.dimensions = dimensions
        self.overrides = {
            key: as_vector(value, key) for key, value in (overrides or {}).items()
        }

    def _vector_for(self, key: str) -> np.ndarray:
        if key in self.overrides:
            return self.overrides[key]

        seed = int.from_bytes(hashlib.sha256(key.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        return normalize_vector(rng.standard_normal(self.dimensions))

    def extract_embedding(
        self,
        content_url: str,
        content_type: ContentType = "image",
    ) -> np.ndarray:
        """Return the deterministic vector of a content URL."""
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unsupported content type: {content_type}")
        logger.debug("Fake embedding for %s (%s)", content_url, content_type)
        return self._vector_for(content_url)

    def embed_text(self, text: str) -> np.ndarray:
        """Return the deterministic vector of a text."""
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        return self._vector_for(text)
