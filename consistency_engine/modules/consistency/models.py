"""
Pydantic models for the consistency scoring module.

These models define the data contracts of an analysis result. They
serialize with camelCase aliases, the shape the UI consumes.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    """How far an entity drifted from its reference."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Recommendation(str, Enum):
    """What the creator should do with the generated content."""

    ACCEPT = "accept"
    REVIEW = "review"
    REGENERATE = "regenerate"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class AttributeDrift(_CamelModel):
    """A detected deviation of one entity from its expected attributes.

    Attributes:
        subject_name: Name of the drifting entity.
        expected_description: Key attributes taken from the description.
        issue_text: Human-readable explanation of the issue.
        severity: low, medium or high.
    """

    subject_name: str
    expected_description: str
    issue_text: str
    severity: Severity


class ConsistencyAnalysis(_CamelModel):
    """Result of scoring one generated piece of content.

    ``visual_score`` and ``semantic_score`` both repeat ``overall_score``:
    only one (visual) embedding comparison exists.

    Attributes:
        overall_score: Rounded mean of the contributing entity scores.
        visual_score: Same as overall_score.
        semantic_score: Same as overall_score.
        drifted_attributes: Drift per imperfectly matching entity.
        recommendation: accept, review or regenerate.
        message: Text shown next to the recommendation.
        entity_scores: Per-entity percentage scores that contributed.
        failed_entity_ids: Entities whose reference could not be compared
            and were scored 0.
    """

    overall_score: int = Field(..., ge=0, le=100)
    visual_score: int = Field(..., ge=0, le=100)
    semantic_score: int = Field(..., ge=0, le=100)
    drifted_attributes: list[AttributeDrift] = Field(default_factory=list)
    recommendation: Recommendation
    message: str
    entity_scores: dict[str, int] = Field(default_factory=dict)
    failed_entity_ids: list[str] = Field(default_factory=list)

    def to_api(self) -> dict:
        """Serialize with camelCase keys and plain enum values."""
        return self.model_dump(mode="json", by_alias=True)
