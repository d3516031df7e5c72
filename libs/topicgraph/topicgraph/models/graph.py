"""Graph edge, metrics and the persisted topic graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from topicgraph.models.topic import Topic


class EdgeType(str, Enum):
    SEMANTIC = "semantic"
    HIERARCHY = "hierarchy"
    SEQUENCE = "sequence"
    REFERENCE = "reference"


def edge_id(source: str, target: str, edge_type: EdgeType) -> str:
    return f"edge-{source}-{target}-{edge_type.value}"


@dataclass(frozen=True)
class GraphEdge:
    id: str
    source: str
    target: str
    type: EdgeType
    weight: float
    distance: float
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if self.source == self.target:
            raise ValueError(f"self-loop edge on {self.source}")
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"edge weight out of range: {self.weight}")

    @classmethod
    def build(
        cls,
        source: str,
        target: str,
        edge_type: EdgeType,
        weight: float,
        metadata: dict[str, Any] | None = None,
    ) -> GraphEdge:
        # Float noise from cosine can land a hair outside [0, 1].
        w = min(1.0, max(0.0, float(weight)))
        return cls(
            id=edge_id(source, target, edge_type),
            source=source,
            target=target,
            type=edge_type,
            weight=w,
            distance=1.0 - w,
            metadata=dict(metadata or {}),
        )

    @property
    def key(self) -> tuple[str, str, EdgeType]:
        return (self.source, self.target, self.type)


@dataclass
class GraphMetrics:
    node_count: int = 0
    edge_count: int = 0
    density: float = 0.0
    level_histogram: dict[int, int] = field(default_factory=dict)
    avg_clustering: float = 0.0
    connected_components: int = 0
    cluster_count: int = 0


@dataclass
class TopicGraph:
    nodes: list[Topic]
    edges: list[GraphEdge]
    metrics: GraphMetrics
    clusters: dict[str, list[str]] = field(default_factory=dict)

    def edges_of_type(self, edge_type: EdgeType) -> list[GraphEdge]:
        return [e for e in self.edges if e.type == edge_type]
