"""Export deck model: which topics go into a presentation and in what order."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from topicgraph.models.topic import Topic


@dataclass(frozen=True)
class SnippetLink:
    topic_id: str
    video_url: str
    thumbnail_url: str | None = None


@dataclass
class ExportDeck:
    video_id: str
    title: str
    topics: list[Topic]
    metrics: Mapping[str, Any] = field(default_factory=dict)
    snippets: dict[str, SnippetLink] = field(default_factory=dict)
    include_appendix: bool = True


def select_topics(topics: Sequence[Topic], *, max_topics: int) -> list[Topic]:
    """Non-micro topics ranked by importance (desc), ties by start time, capped."""
    candidates = [t for t in topics if t.level > 0]
    ranked = sorted(candidates, key=lambda t: (-t.importance, t.start, t.id))
    return ranked[: max(0, int(max_topics))]
