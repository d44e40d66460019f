"""Tests for vector similarity helpers."""

import math

import numpy as np
import pytest

from docchat.utils.similarity import cosine_similarity, cosine_similarity_matrix, rank_by_score


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self):
        """Test a vector is fully similar to itself."""
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_scale_invariant(self):
        """Test magnitude does not matter."""
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        """Test orthogonal vectors score zero."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        """Test opposite vectors score -1."""
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_symmetric(self):
        """Test sim(a, b) == sim(b, a)."""
        a, b = [0.3, -1.2, 4.0], [2.0, 0.5, -0.7]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_bounded(self):
        """Test results stay within [-1, 1]."""
        rng = np.random.default_rng(7)
        for _ in range(50):
            a, b = rng.normal(size=8), rng.normal(size=8)
            assert -1.0 - 1e-9 <= cosine_similarity(a, b) <= 1.0 + 1e-9

    def test_zero_vector_is_nan(self):
        """Test a zero-magnitude vector yields NaN."""
        assert math.isnan(cosine_similarity([0.0, 0.0], [1.0, 1.0]))

    def test_length_mismatch(self):
        """Test vectors of different lengths are rejected."""
        with pytest.raises(ValueError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


class TestMatrixAndRanking:
    """Tests for batch scoring and ranking."""

    def test_matrix_matches_pairwise(self):
        """Test batch scores equal pairwise scores."""
        query = [1.0, 0.5, 0.0]
        rows = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.5, 0.0]]
        scores = cosine_similarity_matrix(query, np.array(rows))
        for row, score in zip(rows, scores):
            assert score == pytest.approx(cosine_similarity(query, row))

    def test_zero_row_is_nan(self):
        """Test zero rows score NaN."""
        scores = cosine_similarity_matrix([1.0, 0.0], np.array([[0.0, 0.0], [1.0, 0.0]]))
        assert math.isnan(scores[0])
        assert scores[1] == pytest.approx(1.0)

    def test_shape_mismatch(self):
        """Test a matrix with the wrong width is rejected."""
        with pytest.raises(ValueError):
            cosine_similarity_matrix([1.0, 0.0], np.ones((2, 3)))

    def test_rank_descending_ties_stable_nan_last(self):
        """Test ranking order."""
        scores = np.array([0.5, np.nan, 0.9, 0.5, -1.0])
        assert list(rank_by_score(scores)) == [2, 0, 3, 4, 1]
