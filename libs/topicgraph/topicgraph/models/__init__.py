"""Core data models for topicgraph."""

from topicgraph.models.graph import EdgeType, GraphEdge, GraphMetrics, TopicGraph
from topicgraph.models.manifest import ArtifactKind, ArtifactManifest, StepName
from topicgraph.models.topic import SpeakerTurn, Topic, TranscriptSegment, WordTiming

__all__ = [
    "ArtifactKind",
    "ArtifactManifest",
    "EdgeType",
    "GraphEdge",
    "GraphMetrics",
    "SpeakerTurn",
    "StepName",
    "Topic",
    "TopicGraph",
    "TranscriptSegment",
    "WordTiming",
]
