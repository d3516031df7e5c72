from __future__ import annotations

import pytest

from topicgraph.models.manifest import ArtifactKind, ArtifactManifest


def _manifest() -> ArtifactManifest:
    return ArtifactManifest.create("vid-1", "job-1", {"topic": {"topic_levels": 3}})


def test_create_starts_empty_with_generated_graph_version() -> None:
    m = _manifest()
    assert m.paths == {}
    assert m.metrics == {}
    assert m.completed_steps == ()
    assert len(m.graph_version_id) == 32
    assert ArtifactManifest.create("v", "j").graph_version_id != m.graph_version_id


def test_config_snapshot_is_read_only_and_survives_updates() -> None:
    m = _manifest()
    with pytest.raises(TypeError):
        m.config_snapshot["topic"] = {}  # type: ignore[index]
    later = m.with_paths({ArtifactKind.TRANSCRIPT: "t.json"}).with_metrics({"x": 1}).mark_completed("asr")
    assert dict(later.config_snapshot) == {"topic": {"topic_levels": 3}}


def test_with_paths_returns_new_manifest_and_never_drops_kinds() -> None:
    m0 = _manifest()
    m1 = m0.with_paths({ArtifactKind.AUDIO_WAV: "videos/vid-1/audio/audio.wav"})
    m2 = m1.with_paths({ArtifactKind.TRANSCRIPT: "videos/vid-1/transcripts/transcript.json"})

    assert m0.paths == {}
    assert m1.has(ArtifactKind.AUDIO_WAV)
    assert m2.has(ArtifactKind.AUDIO_WAV)
    assert m2.path("transcript") == "videos/vid-1/transcripts/transcript.json"


def test_list_kinds_append_with_dedup_and_scalar_kinds_overwrite() -> None:
    m = _manifest().with_paths({ArtifactKind.SNIPPETS: ["a.mp4", "b.mp4"]})
    m = m.with_paths({ArtifactKind.SNIPPETS: ["b.mp4", "c.mp4"], ArtifactKind.GRAPH: "g1.json"})
    m = m.with_paths({ArtifactKind.GRAPH: "g2.json"})

    assert m.path_list(ArtifactKind.SNIPPETS) == ["a.mp4", "b.mp4", "c.mp4"]
    assert m.path(ArtifactKind.GRAPH) == "g2.json"


def test_scalar_kind_rejects_list_value() -> None:
    with pytest.raises(TypeError):
        _manifest().with_paths({ArtifactKind.GRAPH: ["a", "b"]})


def test_with_metrics_merges_step_timings_keywise() -> None:
    m = _manifest().with_metrics({"duration_s": 10.0, "step_timings": {"video": 5}})
    m = m.with_metrics({"step_timings": {"asr": 7}})
    assert m.metrics["duration_s"] == 10.0
    assert m.metrics["step_timings"] == {"video": 5, "asr": 7}


def test_mark_completed_is_idempotent_and_clears_error() -> None:
    m = _manifest().record_error("asr", "boom")
    assert m.step_errors == {"asr": "boom"}
    m = m.mark_completed("video").mark_completed("asr").mark_completed("video")
    assert m.completed_steps == ("video", "asr")
    assert "asr" not in m.step_errors


def test_record_error_leaves_paths_and_steps_untouched() -> None:
    m = _manifest().with_paths({ArtifactKind.AUDIO_WAV: "a.wav"}).mark_completed("video")
    failed = m.record_error("asr", "provider down")
    assert failed.paths == m.paths
    assert failed.completed_steps == m.completed_steps
    assert failed.step_errors["asr"] == "provider down"


def test_fork_keeps_ingest_artifacts_and_drops_graph_version_outputs() -> None:
    m = (
        _manifest()
        .with_paths(
            {
                ArtifactKind.AUDIO_WAV: "a.wav",
                ArtifactKind.TRANSCRIPT: "t.json",
                ArtifactKind.TOPICS: "topics.json",
                ArtifactKind.GRAPH: "graph.json",
                ArtifactKind.EXPORTS: ["e.html"],
            }
        )
        .mark_completed("video")
        .mark_completed("asr")
        .mark_completed("topic")
        .mark_completed("embeddings_graph")
    )
    forked = m.fork()

    assert forked.video_id == m.video_id
    assert forked.job_id == m.job_id
    assert forked.graph_version_id != m.graph_version_id
    assert forked.has(ArtifactKind.TRANSCRIPT)
    assert not forked.has(ArtifactKind.TOPICS)
    assert not forked.has(ArtifactKind.EXPORTS)
    assert forked.completed_steps == ("video", "asr")
    assert forked.config_snapshot == m.config_snapshot

    retuned = m.fork(config_snapshot={"topic": {"topic_levels": 2}})
    assert retuned.config_snapshot["topic"]["topic_levels"] == 2
    assert m.config_snapshot["topic"]["topic_levels"] == 3


def test_to_dict_from_dict_preserves_list_and_scalar_paths() -> None:
    m = (
        _manifest()
        .with_paths({ArtifactKind.GRAPH: "g.json", ArtifactKind.CAPTIONS: ["a.vtt"]})
        .with_metrics({"step_timings": {"topic": 3}})
        .mark_completed("topic")
    )
    restored = ArtifactManifest.from_dict(m.to_dict())
    assert restored.paths == m.paths
    assert restored.metrics == m.metrics
    assert restored.completed_steps == m.completed_steps
    assert restored.created_at == m.created_at
