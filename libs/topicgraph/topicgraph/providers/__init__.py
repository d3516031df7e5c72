"""Capability providers (ASR, LLM, embeddings, media) and their factories."""

from topicgraph.providers.registry import (
    get_asr_provider,
    get_embedding_provider,
    get_llm_provider,
    get_media_provider,
)

__all__ = [
    "get_asr_provider",
    "get_embedding_provider",
    "get_llm_provider",
    "get_media_provider",
]
