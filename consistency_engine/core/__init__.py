"""
Core module for the Entity Consistency Engine.

This module contains the infrastructure layer:
- interfaces: Abstract Base Classes (The Contract)
- config_loader: Pydantic models for configuration
- data_manager: Catalog, score persistence and report files
- orchestrator: The consistency analysis pipeline
- exceptions: Custom exceptions and error codes
- vector_math: Similarity and vector helpers
- retry: Exponential-backoff retry policy
- embedding_store: Persistent reference embeddings
- embedding_cache: In-memory TTL cache of extracted embeddings
"""

from consistency_engine.core.config_loader import Settings, load_settings
from consistency_engine.core.data_manager import DataManager
from consistency_engine.core.embedding_cache import EmbeddingCache
from consistency_engine.core.embedding_store import EmbeddingStore
from consistency_engine.core.exceptions import (
    APIError,
    ConfigurationError,
    ConsistencyEngineError,
    ErrorCode,
)
from consistency_engine.core.interfaces import (
    EmbeddingExtractor,
    GenerationRepository,
    ReferenceStore,
    TextEmbedder,
)
from consistency_engine.core.orchestrator import (
    CheckResult,
    ConsistencyAnalyzer,
    run_consistency_check,
)
from consistency_engine.core.retry import RetryPolicy

__all__ = [
    "Settings",
    "load_settings",
    "DataManager",
    "EmbeddingCache",
    "EmbeddingStore",
    "APIError",
    "ConfigurationError",
    "ConsistencyEngineError",
    "ErrorCode",
    "EmbeddingExtractor",
    "GenerationRepository",
    "ReferenceStore",
    "TextEmbedder",
    "CheckResult",
    "ConsistencyAnalyzer",
    "run_consistency_check",
    "RetryPolicy",
]
