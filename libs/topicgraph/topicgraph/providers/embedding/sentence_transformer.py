"""Local sentence-transformers embedder (optional dependency, loaded lazily)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ConfigurationError, ProviderError
from topicgraph.providers.embedding.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    provider = "sentence_transformers"

    def __init__(self, model: str = "all-MiniLM-L6-v2", *, device: str | None = None, batch_size: int = 64) -> None:
        self.model = model
        self.device = device
        self.batch_size = max(1, int(batch_size))
        self._model: Any | None = None
        self._lock = asyncio.Lock()

    def _load(self) -> Any:
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as exc:
            raise ConfigurationError(
                "EMBEDDING_PROVIDER=sentence_transformers requires the 'local-embeddings' extra"
            ) from exc
        logger.info("loading embedding model (model=%s, device=%s)", self.model, self.device)
        return SentenceTransformer(self.model, device=self.device)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        async with self._lock:
            if self._model is None:
                self._model = await asyncio.to_thread(self._load)
        model = self._model

        def _encode() -> list[list[float]]:
            emb = model.encode(texts, batch_size=self.batch_size, normalize_embeddings=True)
            return [[float(x) for x in row] for row in emb]

        try:
            return await asyncio.to_thread(_encode)
        except Exception as exc:
            raise ProviderError(self.provider, str(exc), error_code=ErrorCode.EMBEDDING_FAILED) from exc
