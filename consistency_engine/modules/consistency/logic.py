"""
Consistency Scorer: per-entity similarity, aggregation, drift and
recommendation.

Scores generated content against each entity's reference embedding,
averages the scores, flags entities that drifted and turns the overall
score into an accept / review / regenerate recommendation.
"""

import logging
import re
from typing import Any, Mapping, Sequence

import numpy as np

from consistency_engine.core.config_loader import ThresholdConfig
from consistency_engine.core.exceptions import (
    NoEntitiesError,
    ScoringError,
    ZeroVectorError,
)
from consistency_engine.core.interfaces import EntityRecord
from consistency_engine.core.vector_math import (
    as_vector,
    cosine_similarity,
    round_half_up,
    similarity_to_percentage,
)
from consistency_engine.modules.consistency.models import (
    AttributeDrift,
    Recommendation,
    Severity,
)

logger = logging.getLogger(__name__)

RECOMMENDATION_MESSAGES: dict[Recommendation, str] = {
    Recommendation.ACCEPT: (
        "Excellent consistency! The generated content closely matches "
        "your entity references."
    ),
    Recommendation.REVIEW: (
        "Good consistency with minor variations. Review the content to "
        "ensure it meets your expectations."
    ),
    Recommendation.REGENERATE: (
        "Low consistency detected. Consider regenerating with more specific "
        "prompts or adjusting entity references."
    ),
}

SENTENCE_SPLIT = re.compile(r"[.!?]")
MAX_EXPECTED_SEGMENTS = 3


def expected_description(description: str) -> str:
    """Take the first three sentence-like segments of a description."""
    segments = [s.strip() for s in SENTENCE_SPLIT.split(description or "")]
    segments = [s for s in segments if s]
    return ". ".join(segments[:MAX_EXPECTED_SEGMENTS])


class ConsistencyScorer:
    """Scores generated content against entity reference embeddings.

    All methods are pure: the scorer holds only its thresholds.

    Example:
        scorer = ConsistencyScorer()
        scores = scorer.score_entities(content, {"e1": ref1, "e2": ref2})
        overall = scorer.overall_score(scores)
        recommendation, message = scorer.recommend(overall)
    """

    def __init__(self, thresholds: ThresholdConfig | None = None) -> None:
        """Initialize the scorer.

        Args:
            thresholds: Score bands. Defaults to ThresholdConfig().
        """
        self.thresholds = thresholds or ThresholdConfig()

    def score_entities_detailed(
        self,
        content_embedding: Any,
        reference_embeddings: Mapping[str, Any],
    ) -> tuple[dict[str, int], dict[str, ScoringError]]:
        """Score every entity and report which references failed.

        Args:
            content_embedding: Embedding of the generated content.
            reference_embeddings: Entity ID to reference embedding.

        Returns:
            Tuple of (entity ID to score, entity ID to the error that made
            its score 0).
        """
        content = as_vector(content_embedding, "content embedding")
        if not np.any(content):
            raise ZeroVectorError("Content embedding has zero magnitude")

        scores: dict[str, int] = {}
        failures: dict[str, ScoringError] = {}

        for entity_id, reference in reference_embeddings.items():
            try:
                similarity = cosine_similarity(content, reference)
                scores[entity_id] = similarity_to_percentage(similarity)
            except ScoringError as e:
                logger.warning(
                    "Reference embedding for entity %s could not be compared, "
                    "scoring it 0: %s",
                    entity_id,
                    e,
                )
                scores[entity_id] = 0
                failures[entity_id] = e

        return scores, failures

    def score_entities(
        self,
        content_embedding: Any,
        reference_embeddings: Mapping[str, Any],
    ) -> dict[str, int]:
        """Compute a 0-100 similarity score per entity.

        A reference that cannot be compared scores 0 without aborting the
        other entities.
        """
        scores, _ = self.score_entities_detailed(
            content_embedding, reference_embeddings
        )
        return scores

    def overall_score(self, scores: Mapping[str, int]) -> int:
        """Average entity scores, rounded to the nearest integer.

        Raises:
            NoEntitiesError: If ``scores`` is empty.
        """
        if not scores:
            raise NoEntitiesError("No entity scores to aggregate")

        return round_half_up(float(np.mean(list(scores.values()))))

    def severity_for(self, score: int) -> Severity:
        """Classify how badly an entity drifted."""
        if score < self.thresholds.drift_medium_min:
            return Severity.HIGH
        if score < self.thresholds.drift_low_min:
            return Severity.MEDIUM
        return Severity.LOW

    def identify_drift(
        self,
        entities: Sequence[EntityRecord],
        scores: Mapping[str, int],
    ) -> list[AttributeDrift]:
        """List drifted entities in input order.

        Entities scoring at or above the report threshold are omitted. An
        entity without a score (no reference embedding) counts as 0.
        """
        drifts: list[AttributeDrift] = []

        for entity in entities:
            score = scores.get(entity.id)
            if score is None:
                logger.debug("Entity %s has no score, reporting it at 0", entity.id)
                score = 0
            if score >= self.thresholds.drift_report_below:
                continue

            drifts.append(AttributeDrift(
                subject_name=entity.name,
                expected_description=expected_description(entity.description),
                issue_text=(
                    f"Visual consistency score of {score}% indicates "
                    "potential drift from reference"
                ),
                severity=self.severity_for(score),
            ))

        return drifts

    def recommend(self, overall_score: int) -> tuple[Recommendation, str]:
        """Map an overall score to a recommendation and its message."""
        if overall_score >= self.thresholds.accept_min:
            recommendation = Recommendation.ACCEPT
        elif overall_score >= self.thresholds.review_min:
            recommendation = Recommendation.REVIEW
        else:
            recommendation = Recommendation.REGENERATE

        return recommendation, RECOMMENDATION_MESSAGES[recommendation]
