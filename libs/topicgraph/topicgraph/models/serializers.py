"""Serialization helpers for artifacts stored in JSON."""

from __future__ import annotations

from typing import Any

from topicgraph.models.graph import EdgeType, GraphEdge, GraphMetrics, TopicGraph
from topicgraph.models.topic import SpeakerTurn, Topic, TranscriptSegment, WordTiming


def serialize_transcript(segs: list[TranscriptSegment]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for s in segs:
        item: dict[str, Any] = {
            "id": str(s.id),
            "start": float(s.start),
            "end": float(s.end),
            "text": str(s.text),
        }
        if s.speaker is not None:
            item["speaker"] = s.speaker
        out.append(item)
    return out


def deserialize_transcript(items: list[dict[str, Any]]) -> list[TranscriptSegment]:
    out: list[TranscriptSegment] = []
    for idx, item in enumerate(items):
        out.append(
            TranscriptSegment(
                id=str(item.get("id", idx)),
                start=float(item["start"]),
                end=float(item["end"]),
                text=str(item.get("text") or ""),
                speaker=item.get("speaker"),
            )
        )
    return out


def serialize_word_alignment(segs: list[TranscriptSegment]) -> list[dict[str, Any]]:
    return [
        {
            "segment_id": str(s.id),
            "words": [
                {
                    "word": w.word,
                    "start": float(w.start),
                    "end": float(w.end),
                    "probability": w.probability,
                }
                for w in s.words
            ],
        }
        for s in segs
        if s.words
    ]


def deserialize_word_alignment(items: list[dict[str, Any]]) -> dict[str, list[WordTiming]]:
    out: dict[str, list[WordTiming]] = {}
    for item in items:
        out[str(item["segment_id"])] = [
            WordTiming(
                word=str(w["word"]),
                start=float(w["start"]),
                end=float(w["end"]),
                probability=w.get("probability"),
            )
            for w in item.get("words") or []
        ]
    return out


def serialize_speaker_turns(turns: list[SpeakerTurn]) -> list[dict[str, Any]]:
    return [{"speaker": t.speaker, "start": float(t.start), "end": float(t.end)} for t in turns]


def deserialize_speaker_turns(items: list[dict[str, Any]]) -> list[SpeakerTurn]:
    return [
        SpeakerTurn(speaker=str(i["speaker"]), start=float(i["start"]), end=float(i["end"]))
        for i in items
    ]


def serialize_topic(topic: Topic, *, include_embedding: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": topic.id,
        "level": int(topic.level),
        "start": float(topic.start),
        "end": float(topic.end),
        "title": topic.title,
        "summary": topic.summary,
        "keywords": list(topic.keywords),
        "parent_ids": list(topic.parent_ids),
        "child_ids": list(topic.child_ids),
        "transcript_segment_ids": list(topic.transcript_segment_ids),
        "importance": float(topic.importance),
        "cluster_id": topic.cluster_id,
    }
    if include_embedding and topic.embedding is not None:
        data["embedding"] = [float(x) for x in topic.embedding]
    return data


def deserialize_topic(item: dict[str, Any]) -> Topic:
    embedding = item.get("embedding")
    return Topic(
        id=str(item["id"]),
        level=int(item["level"]),
        start=float(item["start"]),
        end=float(item["end"]),
        title=str(item.get("title") or ""),
        summary=str(item.get("summary") or ""),
        keywords=[str(k) for k in item.get("keywords") or []],
        parent_ids=[str(p) for p in item.get("parent_ids") or []],
        child_ids=[str(c) for c in item.get("child_ids") or []],
        transcript_segment_ids=[str(s) for s in item.get("transcript_segment_ids") or []],
        importance=float(item.get("importance", 0.5)),
        cluster_id=item.get("cluster_id"),
        embedding=[float(x) for x in embedding] if embedding is not None else None,
    )


def serialize_topics(topics: list[Topic], *, include_embedding: bool = False) -> list[dict[str, Any]]:
    return [serialize_topic(t, include_embedding=include_embedding) for t in topics]


def deserialize_topics(items: list[dict[str, Any]]) -> list[Topic]:
    return [deserialize_topic(i) for i in items]


def serialize_edge(edge: GraphEdge) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "type": edge.type.value,
        "weight": float(edge.weight),
        "distance": float(edge.distance),
    }
    if edge.metadata:
        data["metadata"] = dict(edge.metadata)
    return data


def deserialize_edge(item: dict[str, Any]) -> GraphEdge:
    return GraphEdge(
        id=str(item["id"]),
        source=str(item["source"]),
        target=str(item["target"]),
        type=EdgeType(str(item["type"])),
        weight=float(item["weight"]),
        distance=float(item.get("distance", 1.0 - float(item["weight"]))),
        metadata=dict(item.get("metadata") or {}),
    )


def serialize_metrics(metrics: GraphMetrics) -> dict[str, Any]:
    return {
        "node_count": metrics.node_count,
        "edge_count": metrics.edge_count,
        "density": metrics.density,
        "level_histogram": {str(k): v for k, v in sorted(metrics.level_histogram.items())},
        "avg_clustering": metrics.avg_clustering,
        "connected_components": metrics.connected_components,
        "cluster_count": metrics.cluster_count,
    }


def deserialize_metrics(item: dict[str, Any]) -> GraphMetrics:
    return GraphMetrics(
        node_count=int(item.get("node_count", 0)),
        edge_count=int(item.get("edge_count", 0)),
        density=float(item.get("density", 0.0)),
        level_histogram={int(k): int(v) for k, v in dict(item.get("level_histogram") or {}).items()},
        avg_clustering=float(item.get("avg_clustering", 0.0)),
        connected_components=int(item.get("connected_components", 0)),
        cluster_count=int(item.get("cluster_count", 0)),
    )


def serialize_graph(graph: TopicGraph) -> dict[str, Any]:
    return {
        "nodes": serialize_topics(graph.nodes),
        "edges": [serialize_edge(e) for e in graph.edges],
        "metrics": serialize_metrics(graph.metrics),
        "clusters": {k: list(v) for k, v in graph.clusters.items()},
    }


def deserialize_graph(data: dict[str, Any]) -> TopicGraph:
    return TopicGraph(
        nodes=deserialize_topics(list(data.get("nodes") or [])),
        edges=[deserialize_edge(e) for e in data.get("edges") or []],
        metrics=deserialize_metrics(dict(data.get("metrics") or {})),
        clusters={str(k): [str(x) for x in v] for k, v in dict(data.get("clusters") or {}).items()},
    )
