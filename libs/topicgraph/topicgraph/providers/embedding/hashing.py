"""Deterministic feature-hashing embedder.

Needs no model download or network, so it is the default for local runs and
tests. Texts sharing vocabulary score high cosine similarity.
"""

from __future__ import annotations

import hashlib

import numpy as np

from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.topics.keywords import tokenize


class HashingEmbeddingProvider(EmbeddingProvider):
    provider = "hashing"

    def __init__(self, dimension: int = 384) -> None:
        self.dimension = int(dimension)
        self.model = f"hashing-{self.dimension}"

    def _bucket(self, token: str) -> tuple[int, float]:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "little")
        sign = 1.0 if value & 1 else -1.0
        return (value >> 1) % self.dimension, sign

    def embed_one(self, text: str) -> list[float]:
        vec = np.zeros(self.dimension, dtype=np.float64)
        tokens = tokenize(text)
        for token in tokens:
            idx, sign = self._bucket(token)
            vec[idx] += sign
        for a, b in zip(tokens, tokens[1:]):
            idx, sign = self._bucket(f"{a} {b}")
            vec[idx] += 0.5 * sign
        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec /= norm
        return [float(x) for x in vec]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_one(t) for t in texts]
