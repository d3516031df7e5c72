"""Edge de-duplication and per-node semantic caps."""

from __future__ import annotations

from collections.abc import Iterable

from topicgraph.models.graph import EdgeType, GraphEdge


def dedupe_edges(edges: Iterable[GraphEdge]) -> list[GraphEdge]:
    """One edge per (source, target, type), keeping the heaviest; first-seen order."""
    best: dict[tuple[str, str, EdgeType], GraphEdge] = {}
    for edge in edges:
        current = best.get(edge.key)
        if current is None or edge.weight > current.weight:
            best[edge.key] = edge
    return list(best.values())


def prune_edges(edges: Iterable[GraphEdge], *, max_semantic_per_node: int = 10) -> list[GraphEdge]:
    """Dedupe, then keep at most `max_semantic_per_node` semantic edges per source.

    Other edge types are never capped. Output: non-semantic edges in first-seen
    order, then semantic edges grouped by source (first-seen) and sorted by
    descending weight, ties by target id.
    """
    unique = dedupe_edges(edges)
    structural = [e for e in unique if e.type != EdgeType.SEMANTIC]

    by_source: dict[str, list[GraphEdge]] = {}
    for edge in unique:
        if edge.type == EdgeType.SEMANTIC:
            by_source.setdefault(edge.source, []).append(edge)

    cap = max(0, int(max_semantic_per_node))
    semantic: list[GraphEdge] = []
    for group in by_source.values():
        group.sort(key=lambda e: (-e.weight, e.target))
        semantic.extend(group[:cap])
    return structural + semantic
