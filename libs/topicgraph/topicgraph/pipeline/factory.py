"""Pipeline factories: built-in step registration and orchestrator wiring."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from topicgraph.config import PipelineConfig, Settings, settings_from_snapshot
from topicgraph.graph.clustering import ClusteringStrategy
from topicgraph.models.manifest import ArtifactManifest, StepName
from topicgraph.pipeline.orchestrator import PipelineOrchestrator
from topicgraph.providers import (
    get_asr_provider,
    get_embedding_provider,
    get_llm_provider,
    get_media_provider,
)
from topicgraph.providers.asr.base import ASRProvider
from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.providers.llm.base import LLMProvider
from topicgraph.providers.media.base import MediaProvider
from topicgraph.steps.asr import ASRStep
from topicgraph.steps.base import RetryPolicy
from topicgraph.steps.embeddings_graph import EmbeddingsGraphStep
from topicgraph.steps.export import ExportStep
from topicgraph.steps.registry import StepMetadata, StepPlugin, StepRegistry
from topicgraph.steps.snippet import SnippetStep
from topicgraph.steps.topic import TopicStep
from topicgraph.steps.video import VideoStep
from topicgraph.storage import get_storage
from topicgraph.storage.port import StoragePort
from topicgraph.topics.summarize import HeuristicSummarizer, LLMSummarizer, Summarizer

logger = logging.getLogger(__name__)

AUTHOR = "topicgraph"


@dataclass
class StepProviders:
    """Capability adapters shared by the built-in steps. `None` leaves a step unregistered."""

    media: MediaProvider | None = None
    asr: ASRProvider | None = None
    embedder: EmbeddingProvider | None = None
    summarizer: Summarizer | None = None
    llm: LLMProvider | None = None
    clustering: ClusteringStrategy | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> StepProviders:
        media = get_media_provider(
            {**settings.media.model_dump(), "download_timeout_s": settings.video.download_timeout_s}
        )
        llm: LLMProvider | None = None
        summarizer: Summarizer
        if settings.llm.api_key:
            llm = get_llm_provider(settings.llm.model_dump())
            summarizer = LLMSummarizer(llm, max_tokens=settings.llm.max_tokens)
        else:
            logger.info("no LLM api key configured, using heuristic topic summaries")
            summarizer = HeuristicSummarizer()
        return cls(
            media=media,
            asr=get_asr_provider(settings.asr.model_dump()),
            embedder=get_embedding_provider(settings.embedding.model_dump()),
            summarizer=summarizer,
            llm=llm,
        )

    async def close(self) -> None:
        for provider in (self.asr, self.embedder, self.llm):
            if provider is not None:
                await provider.close()


def register_builtin_steps(registry: StepRegistry, settings: Settings, providers: StepProviders) -> None:
    """Register the six built-in steps; steps whose provider is missing are skipped."""
    retry = RetryPolicy.from_settings(settings.retry)
    media, asr, embedder = providers.media, providers.asr, providers.embedder

    if media is not None:
        registry.register(
            StepName.VIDEO.value,
            lambda: VideoStep(settings.video, media, retry=retry),
            StepMetadata.for_step(VideoStep, author=AUTHOR, config_model=type(settings.video)),
        )
        registry.register(
            StepName.SNIPPET.value,
            lambda: SnippetStep(settings.snippet, media, retry=retry),
            StepMetadata.for_step(SnippetStep, author=AUTHOR, config_model=type(settings.snippet)),
        )
    if asr is not None:
        registry.register(
            StepName.ASR.value,
            lambda: ASRStep(settings.asr_step, asr, retry=retry),
            StepMetadata.for_step(ASRStep, author=AUTHOR, config_model=type(settings.asr_step)),
        )
    if embedder is not None:
        registry.register(
            StepName.TOPIC.value,
            lambda: TopicStep(settings.topic, embedder, providers.summarizer, retry=retry),
            StepMetadata.for_step(TopicStep, author=AUTHOR, config_model=type(settings.topic)),
        )
        registry.register(
            StepName.EMBEDDINGS_GRAPH.value,
            lambda: EmbeddingsGraphStep(
                settings.graph, embedder, clustering=providers.clustering, retry=retry
            ),
            StepMetadata.for_step(EmbeddingsGraphStep, author=AUTHOR, config_model=type(settings.graph)),
        )
    registry.register(
        StepName.EXPORT.value,
        lambda: ExportStep(settings.export, retry=retry),
        StepMetadata.for_step(ExportStep, author=AUTHOR, config_model=type(settings.export)),
    )
    logger.debug("builtin steps registered (steps=%s)", registry.names())


def default_step_names(settings: Settings, export_format: str | None = None) -> list[str]:
    names = [
        StepName.VIDEO.value,
        StepName.ASR.value,
        StepName.TOPIC.value,
        StepName.EMBEDDINGS_GRAPH.value,
    ]
    if settings.snippet.enabled:
        names.append(StepName.SNIPPET.value)
    if export_format:
        names.append(StepName.EXPORT.value)
    return names


def new_manifest(
    settings: Settings,
    video_id: str,
    *,
    job_id: str | None = None,
    graph_version_id: str | None = None,
) -> ArtifactManifest:
    """Fresh manifest carrying the current config snapshot."""
    return ArtifactManifest.create(
        video_id=video_id,
        job_id=job_id or uuid.uuid4().hex,
        config_snapshot=PipelineConfig.from_settings(settings).snapshot(),
        graph_version_id=graph_version_id,
    )


def create_orchestrator(
    settings: Settings,
    *,
    storage: StoragePort | None = None,
    providers: StepProviders | None = None,
    plugins: Sequence[StepPlugin] = (),
    config_snapshot: Mapping[str, Any] | None = None,
) -> PipelineOrchestrator:
    """Build a registry with the built-in steps (plus plugins) and wrap it in an orchestrator.

    When resuming or forking, pass the manifest's `config_snapshot` so its steps
    run with the options it recorded rather than the live settings.
    """
    registry = StepRegistry()
    step_settings = settings_from_snapshot(settings, config_snapshot)
    register_builtin_steps(registry, step_settings, providers or StepProviders.from_settings(settings))
    for plugin in plugins:
        registry.load_plugin(plugin)
    return PipelineOrchestrator(
        registry,
        storage or get_storage(settings),
        work_dir=Path(settings.work_dir),
    )
