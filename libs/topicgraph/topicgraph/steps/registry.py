"""Step registry: name -> factory + capability metadata."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel

from topicgraph.exceptions import StepNotFoundError
from topicgraph.models.manifest import ArtifactKind
from topicgraph.steps.base import PipelineStep

logger = logging.getLogger(__name__)

StepFactory = Callable[[], PipelineStep]


@dataclass(frozen=True)
class StepMetadata:
    description: str = ""
    version: str = "1.0.0"
    tags: tuple[str, ...] = ()
    inputs: tuple[ArtifactKind, ...] = ()
    outputs: tuple[ArtifactKind, ...] = ()
    author: str | None = None
    config_model: type[BaseModel] | None = None

    @classmethod
    def for_step(
        cls,
        step_cls: type[PipelineStep],
        *,
        author: str | None = None,
        config_model: type[BaseModel] | None = None,
    ) -> StepMetadata:
        return cls(
            description=step_cls.description,
            version=step_cls.version,
            tags=tuple(step_cls.tags),
            inputs=tuple(step_cls.required_inputs),
            outputs=tuple(step_cls.produced_outputs),
            author=author,
            config_model=config_model,
        )


class StepPlugin(Protocol):
    def register(self, registry: StepRegistry) -> None: ...


@dataclass(frozen=True)
class _Entry:
    factory: StepFactory
    metadata: StepMetadata


class StepRegistry:
    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def register(self, name: str, factory: StepFactory, metadata: StepMetadata | None = None) -> None:
        key = str(name or "").strip()
        if not key:
            raise ValueError("step name is required")
        if key in self._entries:
            logger.warning("step overwritten in registry (step=%s)", key)
        self._entries[key] = _Entry(factory=factory, metadata=metadata or StepMetadata())

    def unregister(self, name: str) -> bool:
        return self._entries.pop(name, None) is not None

    def has(self, name: str) -> bool:
        return name in self._entries

    def create(self, name: str) -> PipelineStep:
        entry = self._entries.get(name)
        if entry is None:
            raise StepNotFoundError(name)
        return entry.factory()

    def get(self, name: str) -> PipelineStep | None:
        entry = self._entries.get(name)
        return entry.factory() if entry is not None else None

    def metadata(self, name: str) -> StepMetadata | None:
        entry = self._entries.get(name)
        return entry.metadata if entry is not None else None

    def names(self) -> list[str]:
        return sorted(self._entries)

    def find_by_tag(self, tag: str) -> list[str]:
        return sorted(n for n, e in self._entries.items() if tag in e.metadata.tags)

    def find_by_input(self, kind: ArtifactKind | str) -> list[str]:
        k = ArtifactKind(kind)
        return sorted(n for n, e in self._entries.items() if k in e.metadata.inputs)

    def find_by_output(self, kind: ArtifactKind | str) -> list[str]:
        k = ArtifactKind(kind)
        return sorted(n for n, e in self._entries.items() if k in e.metadata.outputs)

    def load_plugin(self, plugin: StepPlugin) -> None:
        before = set(self._entries)
        plugin.register(self)
        added = sorted(set(self._entries) - before)
        logger.info("step plugin loaded (plugin=%s, added=%s)", type(plugin).__name__, added)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
