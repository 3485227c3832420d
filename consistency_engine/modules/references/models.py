"""
Pydantic models for the References module.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReferenceBuildResult(BaseModel):
    """Outcome of building an entity's reference embeddings.

    Attributes:
        entity_id: The entity that was processed.
        stored_keys: Storage keys written, combined first.
        image_count: Number of reference images embedded.
        has_semantic: Whether a description embedding was included.
        dimensions: Length of the stored vectors.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entity_id: str
    stored_keys: list[str] = Field(default_factory=list)
    image_count: int = Field(default=0, ge=0)
    has_semantic: bool = False
    dimensions: int = Field(..., ge=1)

    def to_api(self) -> dict:
        """Serialize with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
