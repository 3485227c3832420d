"""
Orchestrator for the Entity Consistency Engine.

The ConsistencyAnalyzer is the pipeline runner that:
1. Looks up the generation and its entities
2. Extracts the content embedding
3. Fetches the entity reference embeddings
4. Scores, aggregates, detects drift and recommends
5. Persists the overall score
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from consistency_engine.core.exceptions import (
    ConsistencyEngineError,
    EmbeddingExtractionError,
    ErrorCode,
    GenerationNotFoundError,
    VectorStoreUnavailableError,
)
from consistency_engine.core.interfaces import (
    CONTENT_TYPES,
    ContentType,
    EmbeddingExtractor,
    EntityRecord,
    GenerationRepository,
    ReferenceStore,
)
from consistency_engine.core.retry import RetryPolicy
from consistency_engine.core.vector_math import as_vector
from consistency_engine.modules.consistency.logic import ConsistencyScorer
from consistency_engine.modules.consistency.models import ConsistencyAnalysis

logger = logging.getLogger(__name__)


def _error_code_for(
    error: BaseException,
    default: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
) -> ErrorCode:
    """Map a raw collaborator exception to an ErrorCode."""
    if isinstance(error, TimeoutError):
        return ErrorCode.TIMEOUT
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCode.CONNECTION_ERROR
    return default


@dataclass
class AnalysisRun:
    """An analysis together with the vectors it was computed from.

    Attributes:
        analysis: The composed analysis.
        content_embedding: Embedding of the generated content.
        reference_embeddings: Entity ID to reference embedding.
        entities: Entity records of the generation, in order.
    """

    analysis: ConsistencyAnalysis
    content_embedding: np.ndarray
    reference_embeddings: dict[str, np.ndarray]
    entities: list[EntityRecord] = field(default_factory=list)


class ConsistencyAnalyzer:
    """Runs one consistency analysis per call.

    Collaborators are injected; the analyzer keeps no state between calls.

    Attributes:
        repository: Generation and entity persistence.
        extractor: Content embedding extractor.
        reference_store: Reference embedding store.
        scorer: Scoring logic and thresholds.
    """

    def __init__(
        self,
        repository: GenerationRepository,
        extractor: EmbeddingExtractor,
        reference_store: ReferenceStore,
        scorer: ConsistencyScorer | None = None,
    ) -> None:
        self.repository = repository
        self.extractor = extractor
        self.reference_store = reference_store
        self.scorer = scorer or ConsistencyScorer()

    def _extract(self, content_url: str, content_type: ContentType) -> np.ndarray:
        try:
            embedding = self.extractor.extract_embedding(content_url, content_type)
        except ConsistencyEngineError:
            raise
        except Exception as e:
            raise EmbeddingExtractionError(
                f"Failed to extract embedding: {e}",
                code=_error_code_for(e),
                details={"content_url": content_url},
            ) from e

        return as_vector(embedding, "content embedding")

    def _fetch_references(self, entity_ids: list[str]) -> dict[str, Any]:
        try:
            return self.reference_store.fetch_reference_embeddings(entity_ids)
        except ConsistencyEngineError:
            raise
        except Exception as e:
            raise VectorStoreUnavailableError(
                f"Failed to fetch reference embeddings: {e}",
                code=_error_code_for(e, ErrorCode.SERVICE_UNAVAILABLE),
                details={"entity_ids": list(entity_ids)},
            ) from e

    def analyze_detailed(
        self,
        generation_id: str,
        content_url: str,
        content_type: ContentType = "image",
    ) -> AnalysisRun:
        """Analyze generated content and keep the intermediate vectors.

        Args:
            generation_id: Generation whose entities are checked.
            content_url: URL of the generated image or video.
            content_type: "image" or "video".

        Returns:
            AnalysisRun with the analysis and the vectors behind it.

        Raises:
            GenerationNotFoundError: Unknown generation or no entities.
            EmbeddingExtractionError: The content could not be embedded.
            VectorStoreUnavailableError: References could not be read.
            ScoringError: The content vector is unusable, every reference
                failed, or nothing could be scored.
        """
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unsupported content type: {content_type}")

        generation = self.repository.get_generation(generation_id)
        if generation is None or not generation.entity_ids:
            raise GenerationNotFoundError(
                "Generation not found or has no entities",
                details={"generation_id": generation_id},
            )

        logger.info(
            "Analyzing generation %s (%d entities)",
            generation_id,
            len(generation.entity_ids),
        )

        content_embedding = self._extract(content_url, content_type)
        references = self._fetch_references(generation.entity_ids)

        scores, failures = self.scorer.score_entities_detailed(
            content_embedding, references
        )
        if failures and len(failures) == len(scores):
            first_failure = next(iter(failures.values()))
            logger.error(
                "All %d reference embeddings failed for generation %s",
                len(failures),
                generation_id,
            )
            raise first_failure

        overall = self.scorer.overall_score(scores)
        entities = self.repository.get_entities(generation.entity_ids)
        drifts = self.scorer.identify_drift(entities, scores)
        recommendation, message = self.scorer.recommend(overall)

        analysis = ConsistencyAnalysis(
            overall_score=overall,
            visual_score=overall,
            semantic_score=overall,
            drifted_attributes=drifts,
            recommendation=recommendation,
            message=message,
            entity_scores=scores,
            failed_entity_ids=list(failures),
        )

        self.repository.persist_score(generation_id, overall)
        logger.info(
            "Generation %s scored %d (%s)",
            generation_id,
            overall,
            recommendation.value,
        )

        return AnalysisRun(
            analysis=analysis,
            content_embedding=content_embedding,
            reference_embeddings=dict(references),
            entities=entities,
        )

    def analyze(
        self,
        generation_id: str,
        content_url: str,
        content_type: ContentType = "image",
    ) -> ConsistencyAnalysis:
        """Analyze generated content for entity consistency.

        Performs no retries; wrap the call in a RetryPolicy for that.
        """
        return self.analyze_detailed(generation_id, content_url, content_type).analysis


@dataclass
class CheckResult:
    """Outcome of a non-blocking consistency check.

    Attributes:
        success: Whether the analysis completed.
        data: The analysis on success.
        error: Error message on failure.
        error_code: ErrorCode value on failure.
    """

    success: bool
    data: ConsistencyAnalysis | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON body returned by the API."""
        output: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            output["data"] = self.data.to_api()
        if self.error is not None:
            output["error"] = self.error
            output["code"] = self.error_code
        return output


def run_consistency_check(
    analyzer: ConsistencyAnalyzer,
    generation_id: str,
    content_url: str,
    content_type: ContentType = "image",
    policy: RetryPolicy | None = None,
) -> CheckResult:
    """Run an analysis under a retry policy without ever raising.

    A failed check leaves the generation record untouched.

    Args:
        analyzer: The analyzer to run.
        generation_id: Generation whose entities are checked.
        content_url: URL of the generated content.
        content_type: "image" or "video".
        policy: Retry policy. Defaults to RetryPolicy().

    Returns:
        CheckResult with the analysis or the error.
    """
    policy = policy or RetryPolicy()

    try:
        analysis = policy.call(
            analyzer.analyze, generation_id, content_url, content_type
        )
        return CheckResult(success=True, data=analysis)

    except ConsistencyEngineError as e:
        logger.error("Consistency check failed for %s: %s", generation_id, e)
        return CheckResult(
            success=False,
            error=e.message,
            error_code=e.code.value,
        )
    except ValueError as e:
        logger.error("Consistency check rejected for %s: %s", generation_id, e)
        return CheckResult(
            success=False,
            error=str(e),
            error_code=ErrorCode.VALIDATION_ERROR.value,
        )
    except Exception as e:
        logger.exception("Unexpected error in consistency check: %s", generation_id)
        return CheckResult(
            success=False,
            error=f"Unexpected error: {e}",
            error_code=ErrorCode.UNKNOWN_ERROR.value,
        )
