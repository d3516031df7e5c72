"""Embedding providers."""

from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.providers.embedding.hashing import HashingEmbeddingProvider

__all__ = ["EmbeddingProvider", "HashingEmbeddingProvider"]
