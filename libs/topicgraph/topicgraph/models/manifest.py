"""Artifact manifest threaded through every pipeline step."""

from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any


class ArtifactKind(str, Enum):
    ORIGINAL_VIDEO = "original_video"
    NORMALIZED_VIDEO = "normalized_video"
    AUDIO_WAV = "audio_wav"
    TRANSCRIPT = "transcript"
    WORD_ALIGNMENT = "word_alignment"
    DIARIZATION = "diarization"
    SCENES = "scenes"
    TOPICS = "topics"
    EMBEDDINGS = "embeddings"
    GRAPH = "graph"
    SNIPPETS = "snippets"
    EXPORTS = "exports"
    THUMBNAILS = "thumbnails"
    CAPTIONS = "captions"


class StepName(str, Enum):
    VIDEO = "video"
    ASR = "asr"
    TOPIC = "topic"
    EMBEDDINGS_GRAPH = "embeddings_graph"
    SNIPPET = "snippet"
    EXPORT = "export"


LIST_KINDS = frozenset(
    {ArtifactKind.SNIPPETS, ArtifactKind.EXPORTS, ArtifactKind.THUMBNAILS, ArtifactKind.CAPTIONS}
)

# Artifacts that belong to one graph version; a fork starts without them.
GRAPH_VERSION_KINDS = frozenset(
    {
        ArtifactKind.TOPICS,
        ArtifactKind.EMBEDDINGS,
        ArtifactKind.GRAPH,
        *LIST_KINDS,
    }
)
GRAPH_VERSION_STEPS = frozenset(
    {StepName.TOPIC.value, StepName.EMBEDDINGS_GRAPH.value, StepName.SNIPPET.value, StepName.EXPORT.value}
)

PathValue = str | tuple[str, ...]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _dt_to_iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _dt_from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _coerce_kind(kind: ArtifactKind | str) -> ArtifactKind:
    return kind if isinstance(kind, ArtifactKind) else ArtifactKind(str(kind))


def _merge_metrics(base: Mapping[str, Any], delta: Mapping[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(dict(base))
    for key, value in delta.items():
        if isinstance(value, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = _merge_metrics(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


@dataclass(frozen=True)
class ArtifactManifest:
    """Append-only record of paths, metrics and config for one job.

    Every mutator returns a new manifest; the receiver is never modified.
    """

    video_id: str
    graph_version_id: str
    job_id: str
    paths: Mapping[ArtifactKind, PathValue] = field(default_factory=dict)
    metrics: Mapping[str, Any] = field(default_factory=dict)
    config_snapshot: Mapping[str, Any] = field(default_factory=dict)
    completed_steps: tuple[str, ...] = ()
    step_errors: Mapping[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not isinstance(self.config_snapshot, MappingProxyType):
            object.__setattr__(
                self,
                "config_snapshot",
                MappingProxyType(copy.deepcopy(dict(self.config_snapshot))),
            )

    @classmethod
    def create(
        cls,
        video_id: str,
        job_id: str,
        config_snapshot: Mapping[str, Any] | None = None,
        *,
        graph_version_id: str | None = None,
    ) -> ArtifactManifest:
        now = _utcnow()
        return cls(
            video_id=video_id,
            graph_version_id=graph_version_id or uuid.uuid4().hex,
            job_id=job_id,
            config_snapshot=dict(config_snapshot or {}),
            created_at=now,
            updated_at=now,
        )

    def has(self, kind: ArtifactKind | str) -> bool:
        value = self.paths.get(_coerce_kind(kind))
        if value is None:
            return False
        if isinstance(value, tuple):
            return True
        return bool(value)

    def path(self, kind: ArtifactKind | str) -> str | None:
        value = self.paths.get(_coerce_kind(kind))
        if isinstance(value, str):
            return value
        return None

    def path_list(self, kind: ArtifactKind | str) -> list[str]:
        value = self.paths.get(_coerce_kind(kind))
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)

    def with_paths(self, delta: Mapping[ArtifactKind | str, str | list[str] | tuple[str, ...]]) -> ArtifactManifest:
        paths: dict[ArtifactKind, PathValue] = dict(self.paths)
        for raw_kind, value in delta.items():
            kind = _coerce_kind(raw_kind)
            if kind in LIST_KINDS:
                incoming = [value] if isinstance(value, str) else list(value)
                merged = list(self.path_list(kind))
                for item in incoming:
                    if item not in merged:
                        merged.append(item)
                paths[kind] = tuple(merged)
            else:
                if not isinstance(value, str):
                    raise TypeError(f"artifact kind {kind.value} takes a single path")
                paths[kind] = value
        return replace(self, paths=paths, updated_at=_utcnow())

    def with_metrics(self, delta: Mapping[str, Any]) -> ArtifactManifest:
        return replace(self, metrics=_merge_metrics(self.metrics, delta), updated_at=_utcnow())

    def mark_completed(self, step_name: str) -> ArtifactManifest:
        completed = self.completed_steps
        if step_name not in completed:
            completed = (*completed, step_name)
        errors = {k: v for k, v in self.step_errors.items() if k != step_name}
        return replace(self, completed_steps=completed, step_errors=errors, updated_at=_utcnow())

    def record_error(self, step_name: str, message: str) -> ArtifactManifest:
        errors = dict(self.step_errors)
        errors[step_name] = message
        return replace(self, step_errors=errors, updated_at=_utcnow())

    def fork(
        self,
        graph_version_id: str | None = None,
        *,
        config_snapshot: Mapping[str, Any] | None = None,
    ) -> ArtifactManifest:
        """Start a new graph version that reuses the ingest artifacts.

        Pass `config_snapshot` when the new version runs with different options.
        """
        paths = {k: v for k, v in self.paths.items() if k not in GRAPH_VERSION_KINDS}
        completed = tuple(s for s in self.completed_steps if s not in GRAPH_VERSION_STEPS)
        errors = {k: v for k, v in self.step_errors.items() if k not in GRAPH_VERSION_STEPS}
        now = _utcnow()
        return replace(
            self,
            graph_version_id=graph_version_id or uuid.uuid4().hex,
            paths=paths,
            completed_steps=completed,
            step_errors=errors,
            config_snapshot=self.config_snapshot if config_snapshot is None else config_snapshot,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "video_id": self.video_id,
            "graph_version_id": self.graph_version_id,
            "job_id": self.job_id,
            "paths": {
                k.value: (list(v) if isinstance(v, tuple) else v) for k, v in self.paths.items()
            },
            "metrics": copy.deepcopy(dict(self.metrics)),
            "config_snapshot": copy.deepcopy(dict(self.config_snapshot)),
            "completed_steps": list(self.completed_steps),
            "step_errors": dict(self.step_errors),
            "created_at": _dt_to_iso(self.created_at),
            "updated_at": _dt_to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArtifactManifest:
        paths: dict[ArtifactKind, PathValue] = {}
        for raw_kind, value in dict(data.get("paths") or {}).items():
            kind = ArtifactKind(str(raw_kind))
            if kind in LIST_KINDS:
                paths[kind] = tuple(str(x) for x in (value or []))
            elif value:
                paths[kind] = str(value)
        return cls(
            video_id=str(data["video_id"]),
            graph_version_id=str(data["graph_version_id"]),
            job_id=str(data["job_id"]),
            paths=paths,
            metrics=dict(data.get("metrics") or {}),
            config_snapshot=dict(data.get("config_snapshot") or {}),
            completed_steps=tuple(str(x) for x in (data.get("completed_steps") or [])),
            step_errors={str(k): str(v) for k, v in dict(data.get("step_errors") or {}).items()},
            created_at=_dt_from_iso(data.get("created_at")) or _utcnow(),
            updated_at=_dt_from_iso(data.get("updated_at")) or _utcnow(),
        )
