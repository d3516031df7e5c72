from __future__ import annotations

import pytest

from topicgraph.config import GraphStepConfig
from topicgraph.exceptions import ConfigurationError
from topicgraph.graph.builder import build_graph
from topicgraph.graph.clustering import (
    GreedyCentroidClustering,
    HDBSCANClustering,
    KMeansClustering,
    get_clustering_strategy,
)
from topicgraph.models.graph import EdgeType
from topicgraph.models.topic import Topic

TWO_BLOBS = [[1.0, 0.0], [0.98, 0.05], [0.97, 0.1], [0.0, 1.0], [0.05, 0.99], [0.1, 0.97]]


def test_greedy_groups_similar_vectors() -> None:
    labels = GreedyCentroidClustering(threshold=0.7).fit(TWO_BLOBS)
    assert labels == [0, 0, 0, 1, 1, 1]


def test_greedy_threshold_is_strict() -> None:
    labels = GreedyCentroidClustering(threshold=1.0).fit([[1.0, 0.0], [1.0, 0.0]])
    assert labels == [0, 1]


def test_kmeans_auto_k_and_relabelled_output() -> None:
    strategy = KMeansClustering()
    assert strategy.resolve_k(6) == 2
    assert strategy.resolve_k(1) == 1
    labels = strategy.fit(TWO_BLOBS)
    assert labels == [0, 0, 0, 1, 1, 1]


def test_kmeans_explicit_k_is_clamped_to_sample_count() -> None:
    assert KMeansClustering(n_clusters=10).resolve_k(3) == 3
    assert KMeansClustering(n_clusters=3).fit([]) == []


def test_hdbscan_small_input_gives_singletons() -> None:
    assert HDBSCANClustering(min_cluster_size=3).fit([[1.0, 0.0], [0.0, 1.0]]) == [0, 1]


def test_hdbscan_labels_are_dense_and_cover_every_point() -> None:
    labels = HDBSCANClustering(min_cluster_size=2).fit(TWO_BLOBS + [[-5.0, -5.0]])
    assert len(labels) == 7
    assert labels[0] == 0
    assert sorted(set(labels)) == list(range(max(labels) + 1))


def test_unknown_algorithm_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        get_clustering_strategy("spectral")


def test_build_graph_assigns_clusters_and_metrics() -> None:
    topics = [
        Topic(id="p", level=1, start=0, end=30, child_ids=["a", "b", "c"], keywords=["neural", "network"]),
        Topic(id="a", level=0, start=0, end=10, parent_ids=["p"], keywords=["neural", "network"]),
        Topic(id="b", level=0, start=10, end=20, parent_ids=["p"]),
        Topic(id="c", level=0, start=20, end=30, parent_ids=["p"]),
    ]
    vectors = [[1.0, 0.0], [0.99, 0.1], [0.98, 0.15], [0.0, 1.0]]
    cfg = GraphStepConfig(_env_file=None, clustering_algorithm="greedy", cluster_threshold=0.7)

    graph = build_graph(topics, vectors, cfg)

    assert graph.metrics.node_count == 4
    assert graph.metrics.edge_count == len(graph.edges)
    assert len(graph.edges_of_type(EdgeType.HIERARCHY)) == 3
    assert len(graph.edges_of_type(EdgeType.SEQUENCE)) == 2
    assert {(e.source, e.target) for e in graph.edges_of_type(EdgeType.REFERENCE)} == {("p", "a"), ("a", "p")}
    assert graph.clusters == {"cluster-0": ["p", "a", "b"], "cluster-1": ["c"]}
    assert topics[3].cluster_id == "cluster-1"
    assert topics[0].embedding == [1.0, 0.0]
    assert graph.metrics.connected_components == 1


def test_build_graph_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError):
        build_graph([Topic(id="a", level=0, start=0, end=1)], [])
