"""Ports handed to every step: logger, progress, cancellation and storage.

A step never talks to the orchestrator directly; it receives a `StepContext`
holding the current manifest plus these collaborators.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from topicgraph.exceptions import PipelineAbortedError
from topicgraph.models.manifest import ArtifactManifest
from topicgraph.storage.port import StoragePort


class ProgressReporter(Protocol):
    async def report(self, progress: int, message: str) -> None: ...


class NullProgressReporter:
    async def report(self, progress: int, message: str) -> None:
        return None


class StepLogger:
    """Structured logger port; extra fields render as `key=value` pairs.

    Logging must never break a step, so handler failures are dropped here.
    """

    def __init__(self, logger: logging.Logger | str, **fields: Any) -> None:
        self._logger = logger if isinstance(logger, logging.Logger) else logging.getLogger(logger)
        self._fields = dict(fields)

    def bind(self, **fields: Any) -> StepLogger:
        return StepLogger(self._logger, **{**self._fields, **fields})

    def _log(self, level: int, message: str, fields: dict[str, Any]) -> None:
        try:
            if not self._logger.isEnabledFor(level):
                return
            merged = {**self._fields, **fields}
            if merged:
                rendered = ", ".join(f"{k}={v}" for k, v in merged.items())
                self._logger.log(level, "%s (%s)", message, rendered)
            else:
                self._logger.log(level, "%s", message)
        except Exception:  # noqa: BLE001
            pass

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, fields)

    warn = warning

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, fields)


class AbortSignal:
    """Cooperative cancellation flag shared by a run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def abort(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_aborted(self) -> None:
        if self._event.is_set():
            raise PipelineAbortedError(self._reason)


@dataclass
class StepContext:
    manifest: ArtifactManifest
    storage: StoragePort
    work_dir: Path
    logger: StepLogger = field(default_factory=lambda: StepLogger("topicgraph.steps"))
    progress: ProgressReporter = field(default_factory=NullProgressReporter)
    abort: AbortSignal = field(default_factory=AbortSignal)
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def video_id(self) -> str:
        return self.manifest.video_id

    async def report(self, progress: int, message: str) -> None:
        await self.progress.report(progress, message)

    def check_aborted(self) -> None:
        self.abort.raise_if_aborted()

    @property
    def graph_version_id(self) -> str:
        return self.manifest.graph_version_id

    def step_work_path(self, step_name: str) -> Path:
        return self.work_dir / self.manifest.video_id / self.manifest.graph_version_id / step_name

    def step_work_dir(self, step_name: str) -> Path:
        path = self.step_work_path(step_name)
        path.mkdir(parents=True, exist_ok=True)
        return path
