"""
Vector similarity helpers for table gating.

Accumulation is done in float32 so scores match what the embedding
provider's own float32 vectors would produce.
"""

from typing import Optional, Sequence

import numpy as np


def _as_float32(vector: Sequence[float]) -> np.ndarray:
    return np.asarray(vector, dtype=np.float32)


def vector_norm(vector: Sequence[float]) -> float:
    """Euclidean norm of a vector (float32)."""
    return float(np.linalg.norm(_as_float32(vector)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """
    Cosine similarity of two vectors.

    Returns None when either vector has zero norm (similarity is undefined)
    so callers can exclude the candidate instead of dividing by zero.

    Raises:
        ValueError: If the vectors have different lengths
    """
    va = _as_float32(a)
    vb = _as_float32(b)

    if va.shape != vb.shape:
        raise ValueError(f"Vector dimension mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm_a = np.float32(np.sqrt(np.dot(va, va)))
    norm_b = np.float32(np.sqrt(np.dot(vb, vb)))
    if norm_a == 0 or norm_b == 0:
        return None

    similarity = np.float32(np.dot(va, vb)) / (norm_a * norm_b)
    # Rounding can push |cos| slightly above 1 for near-parallel vectors
    return float(np.clip(similarity, -1.0, 1.0))
