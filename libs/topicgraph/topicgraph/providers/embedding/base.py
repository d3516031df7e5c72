"""Embedding provider base class."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Maps texts to fixed-size vectors; output order matches input order."""

    provider: str = "embedding"
    model: str = ""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        ...

    async def close(self) -> None:
        return None
