"""Vector similarity helpers (numpy)."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

Vector = Sequence[float] | np.ndarray


def as_matrix(vectors: Sequence[Vector]) -> np.ndarray:
    if len(vectors) == 0:
        return np.zeros((0, 0), dtype=np.float64)
    return np.asarray([np.asarray(v, dtype=np.float64) for v in vectors], dtype=np.float64)


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"dimension mismatch: {va.shape} vs {vb.shape}")
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (na * nb))


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


def similarity_matrix(vectors: Sequence[Vector]) -> np.ndarray:
    """Pairwise cosine similarity, shape (n, n). Zero vectors score 0 against everything."""
    m = as_matrix(vectors)
    if m.size == 0:
        return np.zeros((len(vectors), len(vectors)), dtype=np.float64)
    unit = normalize_rows(m)
    sims = unit @ unit.T
    return np.clip(sims, -1.0, 1.0)


def centroid(vectors: Sequence[Vector]) -> list[float]:
    """Arithmetic mean of the vectors."""
    if len(vectors) == 0:
        raise ValueError("centroid of an empty set")
    return [float(x) for x in as_matrix(vectors).mean(axis=0)]
