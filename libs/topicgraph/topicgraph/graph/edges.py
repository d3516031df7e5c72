"""Typed edge synthesis over a topic set."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

import numpy as np

from topicgraph.models.graph import EdgeType, GraphEdge
from topicgraph.models.topic import Topic


def semantic_edges(
    topics: Sequence[Topic],
    matrix: np.ndarray,
    *,
    threshold: float = 0.75,
    k: int = 5,
) -> list[GraphEdge]:
    """Directed k-NN edges: for each topic, its top-`k` neighbours with similarity >= threshold.

    `matrix[i, j]` is the similarity of `topics[i]` and `topics[j]`. Ties keep topic order.
    """
    n = len(topics)
    if matrix.shape != (n, n):
        raise ValueError(f"similarity matrix shape {matrix.shape} does not match {n} topics")
    edges: list[GraphEdge] = []
    for i, source in enumerate(topics):
        candidates = [
            (float(matrix[i, j]), j)
            for j in range(n)
            if j != i and topics[j].id != source.id and float(matrix[i, j]) >= threshold
        ]
        candidates.sort(key=lambda c: (-c[0], c[1]))
        for sim, j in candidates[: max(0, int(k))]:
            edges.append(GraphEdge.build(source.id, topics[j].id, EdgeType.SEMANTIC, sim))
    return edges


def hierarchy_edges(topics: Sequence[Topic]) -> list[GraphEdge]:
    """Parent -> child, weight 1."""
    known = {t.id for t in topics}
    return [
        GraphEdge.build(topic.id, child_id, EdgeType.HIERARCHY, 1.0)
        for topic in topics
        for child_id in topic.child_ids
        if child_id in known and child_id != topic.id
    ]


def sequence_edges(topics: Sequence[Topic], *, weight: float = 0.8) -> list[GraphEdge]:
    """Consecutive topics (by start time) within each level."""
    by_level: dict[int, list[Topic]] = defaultdict(list)
    for topic in topics:
        by_level[topic.level].append(topic)
    edges: list[GraphEdge] = []
    for level in sorted(by_level):
        ordered = sorted(by_level[level], key=lambda t: (t.start, t.end, t.id))
        for a, b in zip(ordered, ordered[1:]):
            edges.append(GraphEdge.build(a.id, b.id, EdgeType.SEQUENCE, weight))
    return edges


def reference_edges(topics: Sequence[Topic], *, min_shared: int = 2) -> list[GraphEdge]:
    """Keyword-overlap edges between topics on different levels.

    weight = shared / max(len(keywords)); `shared_keywords` lands in the metadata.
    """
    edges: list[GraphEdge] = []
    for a in topics:
        if not a.keywords:
            continue
        for b in topics:
            if a.id == b.id or a.level == b.level or not b.keywords:
                continue
            b_keywords = set(b.keywords)
            shared = [kw for kw in dict.fromkeys(a.keywords) if kw in b_keywords]
            if len(shared) < min_shared:
                continue
            weight = len(shared) / max(len(a.keywords), len(b.keywords))
            edges.append(
                GraphEdge.build(
                    a.id,
                    b.id,
                    EdgeType.REFERENCE,
                    weight,
                    metadata={"shared_keywords": shared},
                )
            )
    return edges
