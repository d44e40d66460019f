"""Utility helpers."""

from docchat.utils.similarity import cosine_similarity, cosine_similarity_matrix, rank_by_score

__all__ = ["cosine_similarity", "cosine_similarity_matrix", "rank_by_score"]
