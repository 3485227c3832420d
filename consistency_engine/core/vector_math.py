"""
Vector math for consistency scoring.

Pure functions over embeddings: validation, cosine similarity and its
percentage mapping, and weighted combination of embeddings.
"""

import logging
import math
from typing import Any, Iterable

import numpy as np

from consistency_engine.core.exceptions import (
    DimensionMismatchError,
    MalformedEmbeddingError,
    ZeroVectorError,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's round() uses banker's rounding; scores are rounded the way
    the UI always displayed them (74.5 -> 75).
    """
    return int(math.floor(value + 0.5))


def as_vector(values: Any, name: str = "embedding") -> np.ndarray:
    """Convert an embedding to a validated 1-D float array.

    Args:
        values: Sequence of numbers or numpy array.
        name: Label used in error messages.

    Returns:
        A read-only float64 numpy array.

    Raises:
        MalformedEmbeddingError: If the input is empty, not 1-D, not
            numeric, or contains NaN/inf.
    """
    try:
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MalformedEmbeddingError(
            f"{name} is not a numeric vector",
            details={"error": str(e)},
        ) from e

    if vector.ndim != 1:
        raise MalformedEmbeddingError(
            f"{name} must be one-dimensional",
            details={"shape": list(vector.shape)},
        )
    if vector.size == 0:
        raise MalformedEmbeddingError(f"{name} is empty")
    if not np.all(np.isfinite(vector)):
        raise MalformedEmbeddingError(f"{name} contains non-finite values")

    if vector is values:
        vector = vector.copy()
    vector.setflags(write=False)
    return vector


def cosine_similarity(vec_a: Any, vec_b: Any) -> float:
    """Calculate cosine similarity between two vectors.

    Args:
        vec_a: First vector.
        vec_b: Second vector.

    Returns:
        Cosine similarity between -1 and 1.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
        ZeroVectorError: If either vector has zero magnitude.
        MalformedEmbeddingError: If either input is not a valid vector.
    """
    a = as_vector(vec_a, "vector a")
    b = as_vector(vec_b, "vector b")

    if a.shape != b.shape:
        raise DimensionMismatchError(
            "Vectors must have the same length",
            details={"len_a": int(a.size), "len_b": int(b.size)},
        )

    scale_a = float(np.max(np.abs(a)))
    scale_b = float(np.max(np.abs(b)))
    if scale_a == 0.0 or scale_b == 0.0:
        raise ZeroVectorError(
            "Cosine similarity is undefined for a zero vector",
            details={"zero_a": scale_a == 0.0, "zero_b": scale_b == 0.0},
        )

    # Max-abs scaling keeps the squared norms in [1, n]
    a = a / scale_a
    b = b / scale_b
    norm_a_sq = float(np.dot(a, a))
    norm_b_sq = float(np.dot(b, b))

    # sqrt(x * x) == x exactly, so a vector compared with itself gives 1.0
    similarity = float(np.dot(a, b)) / math.sqrt(norm_a_sq * norm_b_sq)
    return float(min(1.0, max(-1.0, similarity)))


def cosine_distance(vec_a: Any, vec_b: Any) -> float:
    """Calculate cosine distance (1 - cosine similarity), between 0 and 2."""
    return 1.0 - cosine_similarity(vec_a, vec_b)


def similarity_to_percentage(similarity: float) -> int:
    """Map a cosine similarity (-1..1) to a percentage score (0..100).

    Args:
        similarity: Cosine similarity score.

    Returns:
        round((similarity + 1) / 2 * 100), clamped to [0, 100].
    """
    score = round_half_up((similarity + 1.0) / 2.0 * 100.0)
    return max(0, min(100, score))


def normalize_vector(vector: Any) -> np.ndarray:
    """Scale a vector to unit length.

    A zero vector is returned unchanged.
    """
    v = as_vector(vector)
    magnitude = float(np.linalg.norm(v))
    if magnitude == 0.0:
        return v
    return v / magnitude


def mean_vector(vectors: Iterable[Any]) -> np.ndarray:
    """Compute the centroid of a non-empty collection of vectors.

    Raises:
        ValueError: If no vectors are given.
        DimensionMismatchError: If the vectors differ in length.
    """
    arrays = [as_vector(v) for v in vectors]
    if not arrays:
        raise ValueError("Cannot compute centroid of empty list")

    dims = {a.size for a in arrays}
    if len(dims) > 1:
        raise DimensionMismatchError(
            "Cannot average vectors of different lengths",
            details={"dimensions": sorted(dims)},
        )

    return np.mean(np.vstack(arrays), axis=0)


def combine_embeddings(parts: list[tuple[Any, float]]) -> np.ndarray:
    """Combine embeddings into one unit vector by weighted sum.

    Each part is normalized before weighting so that neither modality
    dominates by magnitude. Weights are renormalized over the parts given,
    so a missing modality leaves the remaining one at full weight.

    Args:
        parts: List of (vector, weight) pairs with positive weights.

    Returns:
        Unit-length combined embedding.

    Raises:
        ValueError: If no parts or no positive weight are given.
        DimensionMismatchError: If the parts differ in length.
        ZeroVectorError: If the weighted sum cancels out to zero.
    """
    if not parts:
        raise ValueError("At least one embedding is required")

    total_weight = sum(weight for _, weight in parts if weight > 0)
    if total_weight <= 0:
        raise ValueError("At least one positive weight is required")

    vectors = [(normalize_vector(v), w) for v, w in parts if w > 0]
    dims = {v.size for v, _ in vectors}
    if len(dims) > 1:
        raise DimensionMismatchError(
            "Cannot combine embeddings of different lengths",
            details={"dimensions": sorted(dims)},
        )

    combined = sum(v * (w / total_weight) for v, w in vectors)
    magnitude = float(np.linalg.norm(combined))
    if magnitude == 0.0:
        raise ZeroVectorError("Combined embedding has zero magnitude")

    logger.debug("Combined %d embeddings (dim=%d)", len(vectors), dims.pop())
    return combined / magnitude
