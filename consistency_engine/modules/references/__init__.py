"""
References module.

Builds the per-entity reference embeddings consistency scoring compares
generated content against.
"""

from consistency_engine.modules.references.logic import ReferenceBuilder
from consistency_engine.modules.references.models import ReferenceBuildResult

__all__ = ["ReferenceBuilder", "ReferenceBuildResult"]
