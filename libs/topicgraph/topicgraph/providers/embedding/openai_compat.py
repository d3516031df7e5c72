"""OpenAI-compatible `/embeddings` provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ProviderError
from topicgraph.providers._retry import (
    RetryableProviderError,
    log_retry,
    raise_for_status,
    wait_retry,
)
from topicgraph.providers.embedding.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAICompatEmbeddingProvider(EmbeddingProvider):
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        *,
        provider: str = "openai_compat",
        batch_size: int = 64,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.batch_size = max(1, int(batch_size))
        self.timeout = float(timeout)
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @retry(
        retry=retry_if_exception_type(RetryableProviderError),
        stop=stop_after_attempt(3),
        wait=wait_retry,
        before_sleep=log_retry(logger, "embedding"),
        reraise=True,
    )
    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/embeddings",
                headers=self._headers(),
                json={"model": self.model, "input": texts},
            )
        except httpx.TransportError as exc:
            raise RetryableProviderError(
                self.provider, str(exc), error_code=ErrorCode.EMBEDDING_FAILED
            ) from exc
        raise_for_status(self.provider, response, response.content, error_code=ErrorCode.EMBEDDING_FAILED)

        payload: Any = response.json()
        items = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(items, list) or len(items) != len(texts):
            raise ProviderError(
                self.provider,
                f"expected {len(texts)} embeddings, got {len(items) if isinstance(items, list) else 'none'}",
                error_code=ErrorCode.EMBEDDING_FAILED,
            )
        ordered = sorted(items, key=lambda d: int(d.get("index", 0)))
        return [[float(x) for x in d["embedding"]] for d in ordered]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        out: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            out.extend(await self._embed_batch(texts[i : i + self.batch_size]))
        logger.debug("embeddings computed (provider=%s, model=%s, n=%s)", self.provider, self.model, len(out))
        return out

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
