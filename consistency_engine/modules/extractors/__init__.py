"""
Embedding extractors for the Entity Consistency Engine.

- OpenAIEmbeddingExtractor: vision description + embedding via OpenAI
- FakeEmbeddingExtractor: deterministic offline vectors
"""

import logging

from consistency_engine.core.config_loader import Settings
from consistency_engine.core.embedding_cache import EmbeddingCache
from consistency_engine.modules.extractors.fake_extractor import (
    FakeEmbeddingExtractor,
    get_dimension_for_model,
)
from consistency_engine.modules.extractors.openai_extractor import (
    OpenAIEmbeddingExtractor,
    translate_openai_error,
)

logger = logging.getLogger(__name__)


def build_extractor(
    settings: Settings,
) -> OpenAIEmbeddingExtractor | FakeEmbeddingExtractor:
    """Create the extractor selected by the settings.

    Fake mode (``openai.fake_mode`` or FAKE_OPENAI_RESULT) needs no API key.
    """
    if settings.openai.fake_mode:
        dimensions = settings.openai.dimensions or get_dimension_for_model(
            settings.openai.embedding_model
        )
        logger.info("Using fake embedding extractor (dim=%d)", dimensions)
        return FakeEmbeddingExtractor(dimensions=dimensions)

    logger.info(
        "Using OpenAI embedding extractor (%s / %s)",
        settings.openai.model,
        settings.openai.embedding_model,
    )
    return OpenAIEmbeddingExtractor(
        config=settings.openai,
        cache=EmbeddingCache.from_config(settings.cache),
    )


__all__ = [
    "FakeEmbeddingExtractor",
    "OpenAIEmbeddingExtractor",
    "build_extractor",
    "get_dimension_for_model",
    "translate_openai_error",
]
