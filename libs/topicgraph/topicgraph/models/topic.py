"""Transcript and topic models."""

from __future__ import annotations

from dataclasses import dataclass, field

TITLE_MAX_CHARS = 200
SUMMARY_MAX_CHARS = 5000
KEYWORDS_MAX = 20


@dataclass
class WordTiming:
    word: str
    start: float
    end: float
    probability: float | None = None


@dataclass
class TranscriptSegment:
    id: str
    start: float
    end: float
    text: str
    speaker: str | None = None
    words: list[WordTiming] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass
class SpeakerTurn:
    """One diarization turn."""

    speaker: str
    start: float
    end: float


@dataclass
class Topic:
    """A node of the topic hierarchy. Level 0 is the finest micro-segment."""

    id: str
    level: int
    start: float
    end: float
    title: str = ""
    summary: str = ""
    keywords: list[str] = field(default_factory=list)
    parent_ids: list[str] = field(default_factory=list)
    child_ids: list[str] = field(default_factory=list)
    transcript_segment_ids: list[str] = field(default_factory=list)
    importance: float = 0.5
    cluster_id: str | None = None
    embedding: list[float] | None = None

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)

    def add_parent(self, parent_id: str) -> None:
        if parent_id not in self.parent_ids:
            self.parent_ids.append(parent_id)

    def add_child(self, child_id: str) -> None:
        if child_id not in self.child_ids:
            self.child_ids.append(child_id)
