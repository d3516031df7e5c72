"""Two-pass topic segmentation.

Pass A cuts the transcript into level-0 micro-segments at long pauses or
drops in embedding coherence. Pass B builds each higher level by greedily
merging temporally adjacent, similar topics of the level below.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from topicgraph.config import TopicStepConfig
from topicgraph.graph.similarity import centroid, cosine_similarity
from topicgraph.models.topic import Topic, TranscriptSegment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentationParams:
    pause_threshold_s: float = 2.0
    coherence_threshold: float = 0.7
    topic_levels: int = 3
    merge_threshold: float = 0.85
    merge_max_gap_s: float = 5.0
    multi_parent: bool = False

    @classmethod
    def from_config(cls, cfg: TopicStepConfig) -> SegmentationParams:
        return cls(
            pause_threshold_s=cfg.pause_threshold_s,
            coherence_threshold=cfg.coherence_threshold,
            topic_levels=cfg.topic_levels,
            merge_threshold=cfg.merge_threshold,
            merge_max_gap_s=cfg.merge_max_gap_s,
            multi_parent=cfg.multi_parent,
        )


def find_boundaries(
    segments: Sequence[TranscriptSegment],
    embeddings: Sequence[Sequence[float]],
    *,
    pause_threshold_s: float,
    coherence_threshold: float,
) -> list[int]:
    """Indices `i` such that a micro-segment ends after `segments[i]`.

    The last index is always a boundary.
    """
    if len(segments) != len(embeddings):
        raise ValueError("segments and embeddings length mismatch")
    out: list[int] = []
    for i in range(len(segments)):
        if i == len(segments) - 1:
            out.append(i)
            break
        gap = segments[i + 1].start - segments[i].end
        if gap > pause_threshold_s:
            out.append(i)
            continue
        if cosine_similarity(embeddings[i], embeddings[i + 1]) < coherence_threshold:
            out.append(i)
    return out


def micro_segment(
    segments: Sequence[TranscriptSegment],
    embeddings: Sequence[Sequence[float]],
    *,
    pause_threshold_s: float = 2.0,
    coherence_threshold: float = 0.7,
) -> list[Topic]:
    """Pass A: one level-0 topic per run of segments between boundaries."""
    if not segments:
        return []
    boundaries = find_boundaries(
        segments,
        embeddings,
        pause_threshold_s=pause_threshold_s,
        coherence_threshold=coherence_threshold,
    )
    topics: list[Topic] = []
    start = 0
    for end in boundaries:
        members = segments[start : end + 1]
        vectors = embeddings[start : end + 1]
        topics.append(
            Topic(
                id=f"topic-l0-{members[0].id}",
                level=0,
                start=min(s.start for s in members),
                end=max(s.end for s in members),
                summary=" ".join(s.text.strip() for s in members if s.text.strip()),
                transcript_segment_ids=[str(s.id) for s in members],
                embedding=centroid(vectors),
            )
        )
        start = end + 1
    return topics


def _group_adjacent(
    topics: Sequence[Topic], *, merge_threshold: float, max_gap_s: float
) -> list[list[Topic]]:
    groups: list[list[Topic]] = []
    i = 0
    while i < len(topics):
        group = [topics[i]]
        j = i + 1
        while j < len(topics):
            last = group[-1]
            candidate = topics[j]
            if candidate.start - last.end > max_gap_s:
                break
            if _similarity(last, candidate) < merge_threshold:
                break
            group.append(candidate)
            j += 1
        groups.append(group)
        i = j
    return groups


def _similarity(a: Topic, b: Topic) -> float:
    if a.embedding is None or b.embedding is None:
        return 0.0
    return cosine_similarity(a.embedding, b.embedding)


def _unique(items: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(items))


def merge_level(
    previous: Sequence[Topic],
    level: int,
    *,
    merge_threshold: float = 0.85,
    max_gap_s: float = 5.0,
    multi_parent: bool = False,
) -> list[Topic]:
    """Pass B for one level. Children get the new parent ids appended in place."""
    ordered = sorted(previous, key=lambda t: (t.start, t.end, t.id))
    groups = _group_adjacent(ordered, merge_threshold=merge_threshold, max_gap_s=max_gap_s)

    parents: list[Topic] = []
    for index, group in enumerate(groups):
        parent = Topic(
            id=f"topic-l{level}-{index}",
            level=level,
            start=min(t.start for t in group),
            end=max(t.end for t in group),
            summary=" ".join(t.summary for t in group if t.summary),
            child_ids=[t.id for t in group],
            transcript_segment_ids=_unique([s for t in group for s in t.transcript_segment_ids]),
            embedding=centroid([t.embedding for t in group if t.embedding is not None])
            if any(t.embedding is not None for t in group)
            else None,
        )
        for child in group:
            child.add_parent(parent.id)
        parents.append(parent)

    if multi_parent:
        _attach_boundary_children(groups, parents, merge_threshold=merge_threshold, max_gap_s=max_gap_s)
    return parents


def _attach_boundary_children(
    groups: Sequence[Sequence[Topic]],
    parents: Sequence[Topic],
    *,
    merge_threshold: float,
    max_gap_s: float,
) -> None:
    """Share a boundary topic with the neighbouring group when it fits that group's centroid."""
    for gi in range(len(groups) - 1):
        left_parent, right_parent = parents[gi], parents[gi + 1]
        tail = groups[gi][-1]
        head = groups[gi + 1][0]
        if len(groups[gi]) > 1 and head.start - tail.end <= max_gap_s:
            if right_parent.embedding is not None and tail.embedding is not None:
                if cosine_similarity(tail.embedding, right_parent.embedding) >= merge_threshold:
                    _link(right_parent, tail)
        if len(groups[gi + 1]) > 1 and head.start - tail.end <= max_gap_s:
            if left_parent.embedding is not None and head.embedding is not None:
                if cosine_similarity(head.embedding, left_parent.embedding) >= merge_threshold:
                    _link(left_parent, head)


def _link(parent: Topic, child: Topic) -> None:
    parent.add_child(child.id)
    child.add_parent(parent.id)
    parent.start = min(parent.start, child.start)
    parent.end = max(parent.end, child.end)
    parent.transcript_segment_ids = _unique(parent.transcript_segment_ids + child.transcript_segment_ids)


def reconcile_hierarchy(topics: Sequence[Topic]) -> None:
    """Make parent/child pointers bidirectional and re-derive parent spans."""
    by_id = {t.id: t for t in topics}
    for topic in topics:
        topic.child_ids = [c for c in _unique(topic.child_ids) if c in by_id]
        topic.parent_ids = [p for p in _unique(topic.parent_ids) if p in by_id]
    for topic in topics:
        for child_id in topic.child_ids:
            by_id[child_id].add_parent(topic.id)
        for parent_id in topic.parent_ids:
            by_id[parent_id].add_child(topic.id)
    for topic in sorted(topics, key=lambda t: t.level):
        if topic.level == 0 or not topic.child_ids:
            continue
        children = [by_id[c] for c in topic.child_ids]
        topic.start = min(c.start for c in children)
        topic.end = max(c.end for c in children)


def check_hierarchy(topics: Sequence[Topic]) -> list[str]:
    """Return every broken parent/child link and span mismatch (empty when consistent)."""
    by_id = {t.id: t for t in topics}
    problems: list[str] = []
    for topic in topics:
        if topic.level == 0 and topic.child_ids:
            problems.append(f"{topic.id}: level-0 topic has children")
        for child_id in topic.child_ids:
            child = by_id.get(child_id)
            if child is None:
                problems.append(f"{topic.id}: unknown child {child_id}")
            elif topic.id not in child.parent_ids:
                problems.append(f"{topic.id}: child {child_id} does not list it as parent")
        for parent_id in topic.parent_ids:
            parent = by_id.get(parent_id)
            if parent is None:
                problems.append(f"{topic.id}: unknown parent {parent_id}")
            elif topic.id not in parent.child_ids:
                problems.append(f"{topic.id}: parent {parent_id} does not list it as child")
        if topic.level > 0 and topic.child_ids:
            children = [by_id[c] for c in topic.child_ids if c in by_id]
            if children and (
                topic.start != min(c.start for c in children) or topic.end != max(c.end for c in children)
            ):
                problems.append(f"{topic.id}: span differs from children")
    return problems


def build_hierarchy(
    segments: Sequence[TranscriptSegment],
    embeddings: Sequence[Sequence[float]],
    params: SegmentationParams,
) -> list[Topic]:
    """Run Pass A then Pass B up to `topic_levels`.

    Level 1 is always built; later levels stop once the level below has collapsed
    to a single topic.
    """
    level0 = micro_segment(
        segments,
        embeddings,
        pause_threshold_s=params.pause_threshold_s,
        coherence_threshold=params.coherence_threshold,
    )
    topics: list[Topic] = list(level0)
    previous = level0
    for level in range(1, params.topic_levels):
        if len(previous) <= 1 and level > 1:
            break
        merged = merge_level(
            previous,
            level,
            merge_threshold=params.merge_threshold,
            max_gap_s=params.merge_max_gap_s,
            multi_parent=params.multi_parent,
        )
        topics.extend(merged)
        logger.debug("topic level merged (level=%s, in=%s, out=%s)", level, len(previous), len(merged))
        previous = merged
    reconcile_hierarchy(topics)
    return topics
