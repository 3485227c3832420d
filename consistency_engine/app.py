"""
Flask backend API for the Entity Consistency Engine.

This module provides REST endpoints for consistency checks, prompt
enhancement, regeneration prompts and reference embedding rebuilds.
Responses use camelCase keys, the shape the UI consumes.
"""

import logging
import uuid

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from consistency_engine import __version__
from consistency_engine.core.config_loader import Settings, load_settings
from consistency_engine.core.data_manager import DataManager
from consistency_engine.core.embedding_store import EmbeddingStore
from consistency_engine.core.exceptions import (
    ERROR_STATUS_CODES,
    ConsistencyEngineError,
    ErrorCode,
)
from consistency_engine.core.interfaces import ContentType
from consistency_engine.core.orchestrator import (
    ConsistencyAnalyzer,
    run_consistency_check,
)
from consistency_engine.core.retry import RetryPolicy
from consistency_engine.main import setup_logging
from consistency_engine.modules.consistency import ConsistencyScorer
from consistency_engine.modules.extractors import build_extractor
from consistency_engine.modules.prompt_enhancer import (
    add_consistency_constraints,
    enhance_prompt,
)
from consistency_engine.modules.references import ReferenceBuilder

logger = logging.getLogger(__name__)


# ============================================================================
# Request Models
# ============================================================================


class _RequestModel(BaseModel):
    """Accepts both snake_case and camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckRequest(_RequestModel):
    generation_id: str = Field(..., min_length=1)
    content_url: str = Field(..., min_length=1)
    content_type: ContentType = "image"


class EnhanceRequest(_RequestModel):
    prompt: str = Field(..., min_length=1)
    entity_ids: list[str] | None = None


class ConstraintsRequest(_RequestModel):
    additional_constraints: str | None = None


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message: str, code: ErrorCode, details: dict | None = None):
    body = {"success": False, "error": message, "code": code.value}
    if details:
        body["details"] = details
    return jsonify(body), ERROR_STATUS_CODES[code]


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    settings: Settings | None = None,
    data_manager: DataManager | None = None,
    extractor=None,
    store: EmbeddingStore | None = None,
    retry_policy: RetryPolicy | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Components not passed in are built from the settings.

    Args:
        settings: Application settings. Loaded from YAML when None.
        data_manager: Entity/generation catalog.
        extractor: Content embedding extractor (also embeds text).
        store: Reference embedding store.
        retry_policy: Retry policy applied to consistency checks.

    Returns:
        The configured Flask application.
    """
    if settings is None:
        settings = load_settings()
    setup_logging(settings.logging.level)

    data_manager = data_manager or DataManager(settings)
    extractor = extractor or build_extractor(settings)
    store = store or EmbeddingStore(
        store_dir=settings.references.store_dir,
        model=settings.openai.embedding_model,
    )
    retry_policy = retry_policy or RetryPolicy.from_config(settings.retry)

    analyzer = ConsistencyAnalyzer(
        repository=data_manager,
        extractor=extractor,
        reference_store=store,
        scorer=ConsistencyScorer(settings.thresholds),
    )
    builder = ReferenceBuilder(
        extractor=extractor,
        text_embedder=extractor,
        store=store,
        visual_weight=settings.references.visual_weight,
        semantic_weight=settings.references.semantic_weight,
    )

    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend

    @app.route("/api/health", methods=["GET"])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "entity-consistency-engine",
            "version": __version__,
            "referenceStore": store.get_stats()["available"],
        }), 200

    @app.route("/api/consistency/check", methods=["POST"])
    def check_consistency():
        """Analyze generated content against its entities.

        Expected JSON:
            {"generationId": str, "contentUrl": str, "contentType": "image"|"video"}
        """
        try:
            payload = CheckRequest.model_validate(_json_body())
        except ValidationError as e:
            return _error(
                "Invalid request",
                ErrorCode.VALIDATION_ERROR,
                {"errors": e.errors(include_url=False, include_context=False)},
            )

        result = run_consistency_check(
            analyzer,
            payload.generation_id,
            payload.content_url,
            payload.content_type,
            policy=retry_policy,
        )
        if result.success:
            return jsonify(result.to_dict()), 200

        status = ERROR_STATUS_CODES.get(ErrorCode(result.error_code), 500)
        return jsonify(result.to_dict()), status

    @app.route("/api/generations/<generation_id>/consistency", methods=["GET"])
    def get_consistency(generation_id: str):
        """Return the persisted score of a generation."""
        generation = data_manager.get_generation(generation_id)
        if generation is None:
            return _error("Generation not found.", ErrorCode.NOT_FOUND)

        return jsonify({
            "success": True,
            "data": {
                "consistencyScore": generation.consistency_score,
                "status": generation.status,
            },
        }), 200

    @app.route("/api/prompts/enhance", methods=["POST"])
    def enhance():
        """Inject entity attributes into a prompt.

        Expected JSON:
            {"prompt": str, "entityIds": [str] (optional)}
        """
        try:
            payload = EnhanceRequest.model_validate(_json_body())
        except ValidationError as e:
            return _error(
                "Invalid request",
                ErrorCode.VALIDATION_ERROR,
                {"errors": e.errors(include_url=False, include_context=False)},
            )

        if payload.entity_ids:
            entities = data_manager.get_entities(payload.entity_ids)
        else:
            entities = data_manager.list_entities()

        enhanced = enhance_prompt(payload.prompt, entities, payload.entity_ids)
        return jsonify({"success": True, "data": enhanced.to_api()}), 200

    @app.route("/api/generations/<generation_id>/constraints", methods=["POST"])
    def regenerate_with_constraints(generation_id: str):
        """Queue a new generation whose prompt carries strict constraints."""
        try:
            payload = ConstraintsRequest.model_validate(_json_body())
        except ValidationError as e:
            return _error(
                "Invalid request",
                ErrorCode.VALIDATION_ERROR,
                {"errors": e.errors(include_url=False, include_context=False)},
            )

        generation = data_manager.get_generation(generation_id)
        if generation is None:
            return _error("Generation not found.", ErrorCode.NOT_FOUND)

        base_prompt = generation.enhanced_prompt or generation.original_prompt
        new_generation = generation.model_copy(update={
            "id": str(uuid.uuid4()),
            "enhanced_prompt": add_consistency_constraints(
                base_prompt, payload.additional_constraints
            ),
            "status": "queued",
            "consistency_score": None,
        })
        data_manager.upsert_generation(new_generation)
        logger.info(
            "Queued regeneration %s of %s", new_generation.id, generation_id
        )

        return jsonify({
            "success": True,
            "data": {
                "generationId": new_generation.id,
                "enhancedPrompt": new_generation.enhanced_prompt,
            },
        }), 201

    @app.route("/api/entities/<entity_id>/references", methods=["POST"])
    def rebuild_references(entity_id: str):
        """Rebuild the reference embeddings of an entity."""
        entity = data_manager.get_entity(entity_id)
        if entity is None:
            return _error("Entity not found.", ErrorCode.NOT_FOUND)

        try:
            result = builder.rebuild(entity)
        except ValueError as e:
            return _error(str(e), ErrorCode.VALIDATION_ERROR)

        return jsonify({"success": True, "data": result.to_api()}), 200

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.errorhandler(ConsistencyEngineError)
    def engine_error(error: ConsistencyEngineError):
        """Map engine errors to their HTTP status."""
        logger.error("Request failed: %s", error)
        return _error(error.message, error.code)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error("Internal server error: %s", error)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    logger.info("Flask application initialized")
    return app
