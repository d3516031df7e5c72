"""Provider factory and registry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from topicgraph.exceptions import ConfigurationError
from topicgraph.providers.asr.base import ASRProvider
from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.providers.llm.base import LLMProvider
from topicgraph.providers.media.base import MediaProvider


def get_asr_provider(config: Mapping[str, Any]) -> ASRProvider:
    """Get ASR provider based on configuration."""
    provider_type = str(config.get("provider", "openai_compat")).strip().lower()

    match provider_type:
        case "openai" | "openai_compat" | "whisper":
            from topicgraph.providers.asr.openai_compat import OpenAICompatASRProvider

            base_url = str(config.get("base_url") or "").strip()
            if not base_url:
                raise ConfigurationError("ASR provider requires base_url (ASR_BASE_URL)")
            return OpenAICompatASRProvider(
                base_url=base_url,
                model=str(config.get("model") or "whisper-1"),
                api_key=str(config.get("api_key") or ""),
                provider=provider_type,
                timeout=float(config.get("timeout", 300.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown ASR provider: {provider_type}")


def get_llm_provider(config: Mapping[str, Any]) -> LLMProvider:
    """Get LLM provider based on configuration."""
    provider_type = str(config.get("provider", "openai_compat")).strip().lower()

    match provider_type:
        case "openai" | "openai_compat":
            from topicgraph.providers.llm.openai_compat import OpenAICompatProvider

            return OpenAICompatProvider(
                api_key=str(config.get("api_key") or ""),
                model=str(config.get("model") or "gpt-4o-mini"),
                base_url=config.get("base_url"),
                provider=provider_type,
                timeout=float(config.get("timeout", 120.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown LLM provider: {provider_type}")


def get_embedding_provider(config: Mapping[str, Any]) -> EmbeddingProvider:
    provider_type = str(config.get("provider", "hashing")).strip().lower()

    match provider_type:
        case "hashing":
            from topicgraph.providers.embedding.hashing import HashingEmbeddingProvider

            return HashingEmbeddingProvider(dimension=int(config.get("dimension", 384)))
        case "openai" | "openai_compat":
            from topicgraph.providers.embedding.openai_compat import OpenAICompatEmbeddingProvider

            model = str(config.get("model") or "").strip()
            if not model:
                raise ConfigurationError("embedding provider requires model (EMBEDDING_MODEL)")
            return OpenAICompatEmbeddingProvider(
                api_key=str(config.get("api_key") or ""),
                model=model,
                base_url=str(config.get("base_url") or "https://api.openai.com/v1"),
                provider=provider_type,
                batch_size=int(config.get("batch_size", 64)),
                timeout=float(config.get("timeout", 60.0)),
            )
        case "sentence_transformers" | "local":
            from topicgraph.providers.embedding.sentence_transformer import (
                SentenceTransformerEmbeddingProvider,
            )

            return SentenceTransformerEmbeddingProvider(
                model=str(config.get("model") or "all-MiniLM-L6-v2"),
                device=config.get("device"),
                batch_size=int(config.get("batch_size", 64)),
            )
        case _:
            raise ConfigurationError(f"Unknown embedding provider: {provider_type}")


def get_media_provider(config: Mapping[str, Any]) -> MediaProvider:
    provider_type = str(config.get("provider", "ffmpeg")).strip().lower()

    match provider_type:
        case "ffmpeg" | "default":
            from topicgraph.providers.media.ffmpeg import FFmpegMediaProvider

            return FFmpegMediaProvider(
                ffmpeg_bin=str(config.get("ffmpeg_bin") or "ffmpeg"),
                ffprobe_bin=str(config.get("ffprobe_bin") or "ffprobe"),
                ytdlp_bin=str(config.get("ytdlp_bin") or "yt-dlp"),
                download_timeout_s=float(config.get("download_timeout_s", 600.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown media provider: {provider_type}")
