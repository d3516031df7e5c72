from __future__ import annotations

import numpy as np
import pytest

from topicgraph.graph.similarity import centroid, cosine_similarity, similarity_matrix


def test_cosine_similarity_basic_cases() -> None:
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 1], [-1, -1]) == pytest.approx(-1.0)


def test_zero_vector_scores_zero() -> None:
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0


def test_dimension_mismatch_raises() -> None:
    with pytest.raises(ValueError, match="dimension mismatch"):
        cosine_similarity([1, 0], [1, 0, 0])


def test_similarity_matrix_is_symmetric_with_unit_diagonal() -> None:
    m = similarity_matrix([[1, 0], [0.6, 0.8], [0, 1]])
    assert m.shape == (3, 3)
    assert np.allclose(m, m.T)
    assert np.allclose(np.diag(m), 1.0)
    assert m[0, 1] == pytest.approx(0.6)


def test_centroid_is_mean_and_rejects_empty() -> None:
    assert centroid([[1, 2], [3, 4]]) == [2.0, 3.0]
    with pytest.raises(ValueError):
        centroid([])
