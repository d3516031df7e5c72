from __future__ import annotations

import numpy as np
import pytest

from topicgraph.graph.edges import hierarchy_edges, reference_edges, semantic_edges, sequence_edges
from topicgraph.graph.similarity import similarity_matrix
from topicgraph.models.graph import EdgeType, GraphEdge
from topicgraph.models.topic import Topic


def _topic(tid: str, level: int = 0, start: float = 0, end: float = 1, **kwargs) -> Topic:
    return Topic(id=tid, level=level, start=start, end=end, **kwargs)


def test_semantic_edges_keep_top_k_above_threshold() -> None:
    topics = [_topic("a"), _topic("b"), _topic("c"), _topic("d")]
    matrix = similarity_matrix([[1, 0], [0.95, 0.3], [0.8, 0.6], [0, 1]])
    edges = semantic_edges(topics, matrix, threshold=0.75, k=1)

    by_source = {e.source: e.target for e in edges}
    assert by_source["a"] == "b"
    assert "d" not in by_source
    assert all(e.type == EdgeType.SEMANTIC for e in edges)
    assert all(e.distance == pytest.approx(1 - e.weight) for e in edges)


def test_semantic_edges_reject_mismatched_matrix() -> None:
    with pytest.raises(ValueError):
        semantic_edges([_topic("a")], np.zeros((2, 2)))


def test_hierarchy_edges_point_parent_to_child_with_unit_weight() -> None:
    topics = [_topic("p", level=1, child_ids=["c1", "c2", "ghost"]), _topic("c1"), _topic("c2")]
    edges = hierarchy_edges(topics)
    assert [(e.source, e.target, e.weight) for e in edges] == [("p", "c1", 1.0), ("p", "c2", 1.0)]


def test_sequence_edges_link_consecutive_topics_per_level() -> None:
    topics = [
        _topic("late", start=20, end=30),
        _topic("early", start=0, end=10),
        _topic("mid", start=10, end=20),
        _topic("parent", level=1, start=0, end=30),
    ]
    edges = sequence_edges(topics, weight=0.8)
    assert [(e.source, e.target) for e in edges] == [("early", "mid"), ("mid", "late")]
    assert {e.weight for e in edges} == {0.8}


def test_reference_edges_need_shared_keywords_across_levels() -> None:
    topics = [
        _topic("a", level=0, keywords=["neural", "network", "layers"]),
        _topic("b", level=1, keywords=["neural", "network", "training", "data"]),
        _topic("c", level=0, keywords=["neural", "network"]),
        _topic("d", level=1, keywords=["cooking"]),
    ]
    edges = reference_edges(topics, min_shared=2)
    pairs = {(e.source, e.target) for e in edges}

    assert ("a", "b") in pairs
    assert ("a", "c") not in pairs
    assert not any("d" in pair for pair in pairs)
    ab = next(e for e in edges if (e.source, e.target) == ("a", "b"))
    assert ab.weight == pytest.approx(2 / 4)
    assert ab.metadata["shared_keywords"] == ["neural", "network"]


def test_graph_edge_rejects_self_loop_and_clamps_weight() -> None:
    with pytest.raises(ValueError):
        GraphEdge.build("a", "a", EdgeType.SEMANTIC, 0.9)
    edge = GraphEdge.build("a", "b", EdgeType.SEMANTIC, 1.0000001)
    assert edge.weight == 1.0
    assert edge.id == "edge-a-b-semantic"
