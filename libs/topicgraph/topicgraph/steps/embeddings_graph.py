"""Embed-and-graph step: topic embeddings, typed edges, clusters and metrics."""

from __future__ import annotations

import asyncio

from topicgraph.config import GraphStepConfig
from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import StepExecutionError
from topicgraph.graph.builder import build_graph, strategy_from_config
from topicgraph.graph.clustering import ClusteringStrategy
from topicgraph.models.manifest import ArtifactKind, StepName
from topicgraph.models.serializers import deserialize_topics, serialize_graph
from topicgraph.models.topic import Topic
from topicgraph.pipeline.context import StepContext
from topicgraph.providers.embedding.base import EmbeddingProvider
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult
from topicgraph.storage.port import version_artifact_path


def embedding_text(topic: Topic) -> str:
    return f"{topic.title}. {topic.summary}. Keywords: {', '.join(topic.keywords)}"


class EmbeddingsGraphStep(PipelineStep):
    name = StepName.EMBEDDINGS_GRAPH.value
    description = "Generate topic embeddings and construct the topic graph"
    tags = ("embeddings", "graph", "clustering", "semantic", "edges")
    required_inputs = (ArtifactKind.TOPICS, ArtifactKind.TRANSCRIPT)
    produced_outputs = (ArtifactKind.EMBEDDINGS, ArtifactKind.GRAPH)

    def __init__(
        self,
        config: GraphStepConfig,
        embedder: EmbeddingProvider,
        *,
        clustering: ClusteringStrategy | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        super().__init__(retry=retry)
        self.config = config
        self.embedder = embedder
        self.clustering = clustering

    async def execute(self, ctx: StepContext) -> StepResult:
        vid = ctx.video_id
        topics_path = self.require_path(ctx, ArtifactKind.TOPICS)

        await ctx.report(10, "Loading topics")
        topics = deserialize_topics(await ctx.storage.read_json(topics_path))

        ctx.check_aborted()
        await ctx.report(20, "Generating embeddings")
        embeddings = await self.embedder.embed([embedding_text(t) for t in topics]) if topics else []
        if len(embeddings) != len(topics):
            raise StepExecutionError(
                self.name,
                f"embedder returned {len(embeddings)} vectors for {len(topics)} topics",
                video_id=vid,
                error_code=ErrorCode.EMBEDDING_FAILED,
            )

        ctx.check_aborted()
        await ctx.report(45, "Building graph")
        strategy = self.clustering
        if strategy is None and self.config.enable_clustering:
            strategy = strategy_from_config(self.config)
        graph = await asyncio.to_thread(build_graph, topics, embeddings, self.config, strategy)

        await ctx.report(90, "Writing graph")
        embeddings_path = version_artifact_path(vid, "embeddings", "embeddings.json", ctx.graph_version_id)
        await ctx.storage.write_json(
            embeddings_path,
            {
                "model": f"{self.embedder.provider}:{self.embedder.model}",
                "items": [{"id": t.id, "embedding": t.embedding} for t in topics],
            },
        )
        graph_path = version_artifact_path(vid, "graph", "graph.json", ctx.graph_version_id)
        await ctx.storage.write_json(graph_path, serialize_graph(graph))

        metrics = {
            "node_count": graph.metrics.node_count,
            "edge_count": graph.metrics.edge_count,
            "cluster_count": graph.metrics.cluster_count,
        }
        ctx.logger.info("graph step done", components=graph.metrics.connected_components, **metrics)
        return self.result(
            {ArtifactKind.EMBEDDINGS: embeddings_path, ArtifactKind.GRAPH: graph_path},
            metrics,
        )
