"""
Abstract Base Classes defining the contracts for the Entity Consistency Engine.

The analyzer talks to its collaborators only through these interfaces, so
the scoring core runs without a live database, vector store or model API.
"""

from abc import ABC, abstractmethod
from typing import Literal, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["image", "video"]
CONTENT_TYPES: tuple[str, ...] = ("image", "video")


class EntityRecord(BaseModel):
    """A persistent reference subject.

    Attributes:
        id: Entity identifier.
        name: Display name, also used to detect the entity in prompts.
        description: Free-text description of the entity's attributes.
        entity_type: character, location, object or style.
        image_urls: Reference image URLs.
        is_archived: Archived entities are skipped by prompt detection.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    entity_type: str = "character"
    image_urls: list[str] = Field(default_factory=list)
    is_archived: bool = False


class GenerationRecord(BaseModel):
    """One AI content-creation request/result.

    Attributes:
        id: Generation identifier.
        entity_ids: Entities the generation was made with, in order.
        status: Lifecycle status (queued, processing, completed, failed).
        original_prompt: Prompt as typed by the user.
        enhanced_prompt: Prompt after entity attribute injection.
        consistency_score: Last persisted overall score, if any.
    """

    id: str = Field(..., min_length=1)
    entity_ids: list[str] = Field(default_factory=list)
    status: str = "completed"
    original_prompt: str = ""
    enhanced_prompt: str = ""
    consistency_score: int | None = Field(default=None, ge=0, le=100)


class EmbeddingExtractor(ABC):
    """Turns generated content into an embedding vector."""

    @abstractmethod
    def extract_embedding(
        self,
        content_url: str,
        content_type: ContentType = "image",
    ) -> np.ndarray:
        """Extract an embedding from an image or video URL.

        Raises:
            EmbeddingExtractionError: If the external service fails.
        """


class TextEmbedder(ABC):
    """Turns text into an embedding vector in the same space as content."""

    @abstractmethod
    def embed_text(self, text: str) -> np.ndarray:
        """Embed a piece of text."""


class ReferenceStore(ABC):
    """Vector store of per-entity reference embeddings."""

    @abstractmethod
    def fetch_reference_embeddings(
        self,
        entity_ids: Sequence[str],
    ) -> dict[str, np.ndarray]:
        """Fetch reference embeddings by entity ID.

        Entities with no stored embedding are omitted from the result.

        Raises:
            VectorStoreUnavailableError: If the store cannot be read.
        """


class GenerationRepository(ABC):
    """Persistence layer for generations and entities."""

    @abstractmethod
    def get_generation(self, generation_id: str) -> GenerationRecord | None:
        """Return the generation, or None if it does not exist."""

    @abstractmethod
    def get_entities(self, entity_ids: Sequence[str]) -> list[EntityRecord]:
        """Return the entities that exist, in the order of ``entity_ids``."""

    @abstractmethod
    def persist_score(self, generation_id: str, overall_score: int) -> None:
        """Record the overall consistency score on the generation."""
