"""
Entity Consistency Engine - Entry Point

Command line interface for running consistency analyses, enhancing
prompts, rebuilding reference embeddings and serving the API.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from consistency_engine.core.config_loader import Settings, load_settings
from consistency_engine.core.data_manager import DataManager
from consistency_engine.core.embedding_store import EmbeddingStore
from consistency_engine.core.exceptions import ConsistencyEngineError
from consistency_engine.core.orchestrator import ConsistencyAnalyzer
from consistency_engine.core.retry import RetryPolicy
from consistency_engine.modules.consistency import ConsistencyScorer
from consistency_engine.modules.extractors import build_extractor
from consistency_engine.modules.prompt_enhancer import enhance_prompt
from consistency_engine.modules.references import ReferenceBuilder
from consistency_engine.modules.reporting import AnalysisReportVisualizer

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _build_store(settings: Settings) -> EmbeddingStore:
    return EmbeddingStore(
        store_dir=settings.references.store_dir,
        model=settings.openai.embedding_model,
    )


def run_analyze(args: argparse.Namespace, settings: Settings) -> int:
    """Analyze one generated content URL and save the result."""
    data_manager = DataManager(settings)
    analyzer = ConsistencyAnalyzer(
        repository=data_manager,
        extractor=build_extractor(settings),
        reference_store=_build_store(settings),
        scorer=ConsistencyScorer(settings.thresholds),
    )
    policy = RetryPolicy.from_config(settings.retry)

    try:
        run = policy.call(
            analyzer.analyze_detailed,
            args.generation_id,
            args.content_url,
            args.content_type,
        )
    except ConsistencyEngineError as e:
        logger.error("Analysis failed [%s]: %s", e.code.value, e)
        return 1

    analysis = run.analysis
    output_path = data_manager.save_analysis(
        args.generation_id, args.content_url, analysis
    )

    logger.info("=" * 60)
    logger.info("ANALYSIS COMPLETE")
    logger.info("=" * 60)
    logger.info("Overall score: %d%%", analysis.overall_score)
    logger.info("Recommendation: %s", analysis.recommendation.value)
    logger.info("Drifted entities: %d", len(analysis.drifted_attributes))
    logger.info("Report saved to: %s", output_path)

    if args.report:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        visual_path = Path(settings.output.directory) / "visuals" / (
            f"consistency_{args.generation_id}_{timestamp}.html"
        )
        AnalysisReportVisualizer(settings.thresholds).generate_report(
            run, visual_path, title=f"Generation {args.generation_id}"
        )
        logger.info("Visual report saved to: %s", visual_path)

    print(json.dumps(analysis.to_api(), indent=2))
    return 0


def run_enhance(args: argparse.Namespace, settings: Settings) -> int:
    """Print the enhanced version of a prompt."""
    data_manager = DataManager(settings)
    if args.entity_ids:
        entities = data_manager.get_entities(args.entity_ids)
    else:
        entities = data_manager.list_entities()

    enhanced = enhance_prompt(args.prompt, entities, args.entity_ids)
    print(json.dumps(enhanced.to_api(), indent=2))
    return 0


def run_build_references(args: argparse.Namespace, settings: Settings) -> int:
    """Rebuild reference embeddings for the given or all entities."""
    data_manager = DataManager(settings)
    extractor = build_extractor(settings)
    builder = ReferenceBuilder(
        extractor=extractor,
        text_embedder=extractor,
        store=_build_store(settings),
        visual_weight=settings.references.visual_weight,
        semantic_weight=settings.references.semantic_weight,
    )

    if args.entity_ids:
        entities = data_manager.get_entities(args.entity_ids)
    else:
        entities = data_manager.list_entities()

    failures = 0
    for entity in entities:
        try:
            result = builder.rebuild(entity)
            logger.info("Entity %s: %s", entity.id, ", ".join(result.stored_keys))
        except (ConsistencyEngineError, ValueError) as e:
            failures += 1
            logger.error("Failed to build references for %s: %s", entity.id, e)

    logger.info("Built references for %d of %d entities", len(entities) - failures, len(entities))
    return 1 if failures else 0


def run_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the development API server."""
    from consistency_engine.app import create_app

    app = create_app(settings)
    logger.info("API Health: http://%s:%d/api/health", args.host, args.port)
    app.run(debug=False, host=args.host, port=args.port, use_reloader=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="consistency-engine",
        description="Score AI-generated content against entity references.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: $CONSISTENCY_ENGINE_CONFIG or ./config/settings.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze generated content")
    analyze.add_argument("generation_id")
    analyze.add_argument("content_url")
    analyze.add_argument("--content-type", choices=["image", "video"], default="image")
    analyze.add_argument("--report", action="store_true", help="Also write an HTML report")
    analyze.set_defaults(handler=run_analyze)

    enhance = subparsers.add_parser("enhance", help="Enhance a generation prompt")
    enhance.add_argument("prompt")
    enhance.add_argument("--entity-id", dest="entity_ids", action="append", default=None)
    enhance.set_defaults(handler=run_enhance)

    references = subparsers.add_parser("build-references", help="Rebuild reference embeddings")
    references.add_argument("--entity-id", dest="entity_ids", action="append", default=None)
    references.set_defaults(handler=run_build_references)

    serve = subparsers.add_parser("serve", help="Run the development API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(handler=run_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Entity Consistency Engine.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        setup_logging(settings.logging.level)
        return args.handler(args, settings)

    except ConsistencyEngineError as e:
        setup_logging()
        logger.error("Fatal error: %s", e)
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
