"""Tests for per-entity scoring, aggregation, drift and recommendations."""

import pytest

from consistency_engine.core.config_loader import ThresholdConfig
from consistency_engine.core.exceptions import NoEntitiesError, ZeroVectorError
from consistency_engine.core.interfaces import EntityRecord
from consistency_engine.modules.consistency import (
    RECOMMENDATION_MESSAGES,
    ConsistencyScorer,
    Recommendation,
    Severity,
    expected_description,
)


@pytest.fixture
def scorer():
    return ConsistencyScorer()


class TestScoreEntities:
    def test_orthogonal_and_identical_references(self, scorer):
        scores = scorer.score_entities([1.0, 0.0], {"e1": [1.0, 0.0], "e2": [0.0, 1.0]})
        assert scores == {"e1": 100, "e2": 50}

    def test_malformed_reference_scores_zero(self, scorer, caplog):
        scores, failures = scorer.score_entities_detailed(
            [1.0, 0.0],
            {"e1": [1.0, 0.0], "bad": ["x", "y"], "e2": [0.0, 1.0]},
        )
        assert scores == {"e1": 100, "bad": 0, "e2": 50}
        assert list(failures) == ["bad"]
        assert "bad" in caplog.text

    def test_dimension_mismatch_reference_scores_zero(self, scorer):
        scores, failures = scorer.score_entities_detailed(
            [1.0, 0.0], {"e1": [1.0, 0.0, 0.0], "e2": [1.0, 0.0]}
        )
        assert scores == {"e1": 0, "e2": 100}
        assert set(failures) == {"e1"}

    def test_zero_reference_scores_zero(self, scorer):
        scores = scorer.score_entities([1.0, 0.0], {"e1": [0.0, 0.0]})
        assert scores == {"e1": 0}

    def test_zero_content_vector_is_hard_failure(self, scorer):
        with pytest.raises(ZeroVectorError):
            scorer.score_entities([0.0, 0.0], {"e1": [1.0, 0.0]})

    def test_empty_references(self, scorer):
        assert scorer.score_entities([1.0, 0.0], {}) == {}


class TestOverallScore:
    def test_mean(self, scorer):
        assert scorer.overall_score({"A": 90, "B": 80, "C": 70}) == 80

    def test_half_rounds_up(self, scorer):
        assert scorer.overall_score({"A": 100, "B": 49}) == 75

    def test_empty_raises(self, scorer):
        with pytest.raises(NoEntitiesError):
            scorer.overall_score({})


class TestRecommend:
    @pytest.mark.parametrize("score, expected", [
        (100, Recommendation.ACCEPT),
        (90, Recommendation.ACCEPT),
        (89, Recommendation.REVIEW),
        (75, Recommendation.REVIEW),
        (74, Recommendation.REGENERATE),
        (0, Recommendation.REGENERATE),
    ])
    def test_boundaries(self, scorer, score, expected):
        recommendation, message = scorer.recommend(score)
        assert recommendation == expected
        assert message == RECOMMENDATION_MESSAGES[expected]

    def test_messages_verbatim(self):
        assert RECOMMENDATION_MESSAGES[Recommendation.ACCEPT] == (
            "Excellent consistency! The generated content closely matches "
            "your entity references."
        )

    def test_custom_thresholds(self):
        scorer = ConsistencyScorer(ThresholdConfig(accept_min=95, review_min=80))
        assert scorer.recommend(92)[0] == Recommendation.REVIEW
        assert scorer.recommend(79)[0] == Recommendation.REGENERATE


class TestIdentifyDrift:
    @pytest.mark.parametrize("score, severity", [
        (0, Severity.HIGH),
        (59, Severity.HIGH),
        (60, Severity.MEDIUM),
        (74, Severity.MEDIUM),
        (75, Severity.LOW),
        (89, Severity.LOW),
    ])
    def test_severity_bands(self, scorer, entities, score, severity):
        drifts = scorer.identify_drift(entities[:1], {"e1": score})
        assert len(drifts) == 1
        assert drifts[0].severity == severity
        assert drifts[0].issue_text == (
            f"Visual consistency score of {score}% indicates potential drift from reference"
        )

    @pytest.mark.parametrize("score", [90, 95, 100])
    def test_consistent_entities_omitted(self, scorer, entities, score):
        assert scorer.identify_drift(entities[:1], {"e1": score}) == []

    def test_preserves_entity_order(self, scorer, entities):
        drifts = scorer.identify_drift(entities, {"e2": 40, "e1": 80})
        assert [d.subject_name for d in drifts] == ["Aria", "Obsidian Tower"]

    def test_unscored_entity_reported_at_zero(self, scorer, entities):
        drifts = scorer.identify_drift(entities, {"e2": 40})
        assert [d.subject_name for d in drifts] == ["Aria", "Obsidian Tower"]
        assert drifts[0].severity == Severity.HIGH
        assert drifts[0].issue_text.startswith("Visual consistency score of 0%")

    def test_unscored_entity_not_averaged(self, scorer, entities):
        scores = {"e2": 40}
        scorer.identify_drift(entities, scores)
        assert scorer.overall_score(scores) == 40

    def test_expected_description_uses_first_three_sentences(self, scorer, entities):
        drift = scorer.identify_drift(entities[:1], {"e1": 10})[0]
        assert drift.expected_description == "Silver hair. Green hooded cloak. Carved longbow"


class TestExpectedDescription:
    def test_trims_and_joins(self):
        assert expected_description("  One!  Two? Three. Four.") == "One. Two. Three"

    def test_empty(self):
        assert expected_description("") == ""

    def test_single_sentence(self):
        entity = EntityRecord(id="x", name="X", description="Just one")
        assert expected_description(entity.description) == "Just one"
