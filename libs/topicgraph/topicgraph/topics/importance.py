"""Topic importance scoring."""

from __future__ import annotations

from dataclasses import dataclass

from topicgraph.config import TopicStepConfig
from topicgraph.models.topic import Topic

DURATION_NORM_S = 60.0
CONNECTION_NORM = 5.0
KEYWORD_NORM = 10.0


@dataclass(frozen=True)
class ImportanceWeights:
    duration: float = 0.3
    centrality: float = 0.3
    novelty: float = 0.4

    @classmethod
    def from_config(cls, cfg: TopicStepConfig) -> ImportanceWeights:
        return cls(
            duration=cfg.duration_weight,
            centrality=cfg.centrality_weight,
            novelty=cfg.novelty_weight,
        )


def compute_importance(topic: Topic, weights: ImportanceWeights) -> float:
    duration_score = min(topic.duration / DURATION_NORM_S, 1.0)
    centrality_score = min((len(topic.parent_ids) + len(topic.child_ids)) / CONNECTION_NORM, 1.0)
    novelty_score = min(len(topic.keywords) / KEYWORD_NORM, 1.0)
    score = (
        weights.duration * duration_score
        + weights.centrality * centrality_score
        + weights.novelty * novelty_score
    )
    return round(min(1.0, max(0.0, score)), 6)


def apply_importance(topics: list[Topic], weights: ImportanceWeights) -> None:
    for topic in topics:
        topic.importance = compute_importance(topic, weights)
