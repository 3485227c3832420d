"""
Consistency scoring module for the Entity Consistency Engine.

Compares generated content with entity reference embeddings and turns the
similarities into scores, drift reports and a recommendation.
"""

from consistency_engine.modules.consistency.logic import (
    RECOMMENDATION_MESSAGES,
    ConsistencyScorer,
    expected_description,
)
from consistency_engine.modules.consistency.models import (
    AttributeDrift,
    ConsistencyAnalysis,
    Recommendation,
    Severity,
)

__all__ = [
    "ConsistencyScorer",
    "RECOMMENDATION_MESSAGES",
    "expected_description",
    "AttributeDrift",
    "ConsistencyAnalysis",
    "Recommendation",
    "Severity",
]
