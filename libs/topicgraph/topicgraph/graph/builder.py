"""Assemble a `TopicGraph` from embedded topics."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from topicgraph.config import GraphStepConfig
from topicgraph.graph.clustering import ClusteringStrategy, cluster_label, get_clustering_strategy
from topicgraph.graph.edges import hierarchy_edges, reference_edges, semantic_edges, sequence_edges
from topicgraph.graph.metrics import compute_metrics
from topicgraph.graph.pruning import prune_edges
from topicgraph.graph.similarity import similarity_matrix
from topicgraph.models.graph import GraphEdge, TopicGraph
from topicgraph.models.topic import Topic

logger = logging.getLogger(__name__)


def strategy_from_config(config: GraphStepConfig) -> ClusteringStrategy:
    return get_clustering_strategy(
        config.clustering_algorithm,
        threshold=config.cluster_threshold,
        n_clusters=config.num_clusters,
        min_cluster_size=config.hdbscan_min_cluster_size,
    )


def assign_clusters(
    topics: Sequence[Topic],
    embeddings: Sequence[Sequence[float]],
    strategy: ClusteringStrategy,
) -> dict[str, list[str]]:
    """Set `cluster_id` on each topic; returns cluster id -> member topic ids."""
    labels = strategy.fit(embeddings)
    clusters: dict[str, list[str]] = {}
    for topic, label in zip(topics, labels):
        cid = cluster_label(label)
        topic.cluster_id = cid
        clusters.setdefault(cid, []).append(topic.id)
    return clusters


def build_graph(
    topics: Sequence[Topic],
    embeddings: Sequence[Sequence[float]],
    config: GraphStepConfig | None = None,
    strategy: ClusteringStrategy | None = None,
) -> TopicGraph:
    """Edges -> prune -> cluster -> metrics.

    `embeddings[i]` belongs to `topics[i]` and is stored on it. Topics are
    updated in place (embedding, cluster_id).
    """
    cfg = config or GraphStepConfig()
    if len(topics) != len(embeddings):
        raise ValueError("topics and embeddings length mismatch")
    for topic, vector in zip(topics, embeddings):
        topic.embedding = [float(x) for x in vector]

    raw: list[GraphEdge] = []
    if cfg.create_semantic_edges and topics:
        matrix = similarity_matrix(embeddings)
        raw.extend(semantic_edges(topics, matrix, threshold=cfg.similarity_threshold, k=cfg.knn_k))
    if cfg.create_hierarchy_edges:
        raw.extend(hierarchy_edges(topics))
    if cfg.create_sequence_edges:
        raw.extend(sequence_edges(topics, weight=cfg.sequence_weight))
    if cfg.create_reference_edges:
        raw.extend(reference_edges(topics, min_shared=cfg.reference_min_shared))

    edges = prune_edges(raw, max_semantic_per_node=cfg.max_semantic_edges)

    clusters: dict[str, list[str]] = {}
    if cfg.enable_clustering and topics:
        clusters = assign_clusters(topics, embeddings, strategy or strategy_from_config(cfg))

    metrics = compute_metrics(topics, edges, cluster_count=len(clusters))
    logger.info(
        "graph built (nodes=%s, raw_edges=%s, edges=%s, clusters=%s, components=%s)",
        metrics.node_count,
        len(raw),
        metrics.edge_count,
        metrics.cluster_count,
        metrics.connected_components,
    )
    return TopicGraph(nodes=list(topics), edges=edges, metrics=metrics, clusters=clusters)
