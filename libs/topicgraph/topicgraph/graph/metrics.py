"""Graph metrics over the undirected simple view of the edge set."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from topicgraph.models.graph import GraphEdge, GraphMetrics
from topicgraph.models.topic import Topic


def density(node_count: int, edge_count: int) -> float:
    if node_count < 2:
        return 0.0
    return edge_count / (node_count * (node_count - 1) / 2)


def undirected_adjacency(node_ids: Sequence[str], edges: Sequence[GraphEdge]) -> dict[str, set[str]]:
    """Neighbour sets; direction, edge type and multiplicity are dropped."""
    adj: dict[str, set[str]] = {nid: set() for nid in node_ids}
    for edge in edges:
        if edge.source == edge.target or edge.source not in adj or edge.target not in adj:
            continue
        adj[edge.source].add(edge.target)
        adj[edge.target].add(edge.source)
    return adj


def average_clustering(adj: dict[str, set[str]]) -> float:
    """Mean local clustering coefficient; nodes with degree < 2 count as 0."""
    if not adj:
        return 0.0
    total = 0.0
    for node, neighbours in adj.items():
        degree = len(neighbours)
        if degree < 2:
            continue
        ordered = sorted(neighbours)
        links = sum(
            1
            for i, a in enumerate(ordered)
            for b in ordered[i + 1 :]
            if b in adj[a]
        )
        total += 2.0 * links / (degree * (degree - 1))
    return total / len(adj)


def connected_components(adj: dict[str, set[str]]) -> int:
    seen: set[str] = set()
    count = 0
    for start in adj:
        if start in seen:
            continue
        count += 1
        stack = [start]
        seen.add(start)
        while stack:
            node = stack.pop()
            for nxt in adj[node]:
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
    return count


def compute_metrics(
    topics: Sequence[Topic],
    edges: Sequence[GraphEdge],
    *,
    cluster_count: int = 0,
) -> GraphMetrics:
    node_ids = [t.id for t in topics]
    adj = undirected_adjacency(node_ids, edges)
    histogram = Counter(t.level for t in topics)
    return GraphMetrics(
        node_count=len(topics),
        edge_count=len(edges),
        density=density(len(topics), len(edges)),
        level_histogram=dict(sorted(histogram.items())),
        avg_clustering=round(average_clustering(adj), 6),
        connected_components=connected_components(adj),
        cluster_count=int(cluster_count),
    )
