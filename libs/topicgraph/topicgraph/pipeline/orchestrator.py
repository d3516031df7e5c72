"""Sequential, fail-fast pipeline orchestrator."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import PipelineAbortedError, StepNotFoundError
from topicgraph.models.manifest import ArtifactManifest
from topicgraph.pipeline.context import AbortSignal, ProgressReporter, StepContext, StepLogger
from topicgraph.steps.base import infer_error_code
from topicgraph.steps.registry import StepRegistry
from topicgraph.storage.port import StoragePort

logger = logging.getLogger(__name__)

PipelineProgressHook = Callable[[int, str, int, str], Awaitable[None]]


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepRunRecord:
    step_name: str
    success: bool
    duration_ms: int
    attempts: int = 0
    error: str | None = None
    error_code: ErrorCode | None = None


@dataclass(frozen=True)
class PipelineRunResult:
    success: bool
    manifest: ArtifactManifest
    results: list[StepRunRecord] = field(default_factory=list)
    state: PipelineState = PipelineState.IDLE
    failed_step: str | None = None
    error: str | None = None


class _StepProgressReporter(ProgressReporter):
    """Clamp to 0..100, never go backwards, and thin out chatty updates."""

    def __init__(
        self,
        *,
        step_index: int,
        step_name: str,
        hook: PipelineProgressHook | None,
        min_percent_step: int = 5,
        min_interval_s: float = 2.0,
    ) -> None:
        self._step_index = step_index
        self._step_name = step_name
        self._hook = hook
        self._min_percent_step = max(1, int(min_percent_step))
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._lock = asyncio.Lock()
        self._last_progress = -1
        self._last_update_at = 0.0

    @property
    def last_progress(self) -> int:
        return self._last_progress

    async def report(self, progress: int, message: str) -> None:
        pct = min(100, max(0, int(progress)))
        msg = str(message or "").strip() or "running"

        now = time.monotonic()
        async with self._lock:
            if pct < self._last_progress:
                pct = self._last_progress

            should_emit = False
            if self._last_progress < 0 or pct >= 100:
                should_emit = pct != self._last_progress or self._last_progress < 0
            elif pct >= self._last_progress + self._min_percent_step:
                should_emit = True
            elif self._min_interval_s > 0 and now - self._last_update_at >= self._min_interval_s:
                should_emit = True

            if not should_emit:
                return

            self._last_progress = pct
            self._last_update_at = now
            logger.debug("step progress (step=%s, progress=%s, message=%s)", self._step_name, pct, msg)
            if self._hook is not None:
                await self._hook(self._step_index, self._step_name, pct, msg)


def pending_steps(manifest: ArtifactManifest, step_names: Sequence[str]) -> list[str]:
    """Names not yet in `completed_steps`, in the requested order (resume helper)."""
    done = set(manifest.completed_steps)
    return [n for n in step_names if n not in done]


class PipelineOrchestrator:
    """Runs named steps in order against one manifest, halting on the first failure.

    The orchestrator is stateless across runs; resuming is done by the caller
    passing only the pending step names.
    """

    def __init__(
        self,
        registry: StepRegistry,
        storage: StoragePort,
        *,
        work_dir: str | Path,
        progress_min_percent_step: int = 5,
        progress_min_interval_s: float = 2.0,
    ) -> None:
        self.registry = registry
        self.storage = storage
        self.work_dir = Path(work_dir)
        self._progress_min_percent_step = progress_min_percent_step
        self._progress_min_interval_s = progress_min_interval_s
        self.state = PipelineState.IDLE
        self.current_step: str | None = None
        self.current_index: int | None = None

    def _fail(
        self,
        manifest: ArtifactManifest,
        results: list[StepRunRecord],
        step_name: str,
        message: str,
        *,
        record_in_manifest: bool = True,
    ) -> PipelineRunResult:
        self.state = PipelineState.FAILED
        out = manifest.record_error(step_name, message) if record_in_manifest else manifest
        return PipelineRunResult(
            success=False,
            manifest=out,
            results=results,
            state=PipelineState.FAILED,
            failed_step=step_name,
            error=message,
        )

    async def run(
        self,
        manifest: ArtifactManifest,
        step_names: Sequence[str],
        *,
        payload: dict[str, Any] | None = None,
        progress: PipelineProgressHook | None = None,
        abort: AbortSignal | None = None,
    ) -> PipelineRunResult:
        abort_signal = abort or AbortSignal()
        results: list[StepRunRecord] = []
        current = manifest
        self.state = PipelineState.RUNNING
        logger.info(
            "pipeline start (video_id=%s, graph_version_id=%s, steps=%s)",
            manifest.video_id,
            manifest.graph_version_id,
            list(step_names),
        )

        for index, name in enumerate(step_names):
            self.current_index = index
            self.current_step = name

            try:
                step = self.registry.create(name)
            except StepNotFoundError as exc:
                logger.error("pipeline step not found (video_id=%s, step=%s)", current.video_id, name)
                results.append(
                    StepRunRecord(name, False, 0, error=str(exc), error_code=ErrorCode.STEP_NOT_FOUND)
                )
                # Unknown names are a configuration bug; the manifest stays untouched.
                return self._fail(current, results, name, str(exc), record_in_manifest=False)

            reporter = _StepProgressReporter(
                step_index=index,
                step_name=name,
                hook=progress,
                min_percent_step=self._progress_min_percent_step,
                min_interval_s=self._progress_min_interval_s,
            )
            ctx = StepContext(
                manifest=current,
                storage=self.storage,
                work_dir=self.work_dir,
                logger=StepLogger(
                    f"topicgraph.steps.{name}", step=name, video_id=current.video_id
                ),
                progress=reporter,
                abort=abort_signal,
                payload=dict(payload or {}),
            )

            validation = step.validate(ctx)
            for warning in validation.warnings:
                logger.warning("step input warning (step=%s, warning=%s)", name, warning)
            if not validation.valid:
                message = f"Input validation failed for {name}: {'; '.join(validation.errors)}"
                logger.error("step validation failed (video_id=%s, step=%s): %s", current.video_id, name, message)
                results.append(
                    StepRunRecord(name, False, 0, error=message, error_code=ErrorCode.VALIDATION_FAILED)
                )
                return self._fail(current, results, name, message)

            if abort_signal.aborted:
                message = str(PipelineAbortedError(abort_signal.reason))
                logger.warning("pipeline aborted (video_id=%s, before_step=%s)", current.video_id, name)
                results.append(StepRunRecord(name, False, 0, error=message, error_code=ErrorCode.ABORTED))
                return self._fail(current, results, name, message)

            logger.info("step start (video_id=%s, step=%s)", current.video_id, name)
            await reporter.report(0, f"{name} started")
            started = time.monotonic()
            try:
                step_result = await step.execute_with_retry(ctx)
            except Exception as exc:
                duration_ms = int((time.monotonic() - started) * 1000)
                code = infer_error_code(exc)
                logger.exception(
                    "step failed (video_id=%s, step=%s, error_code=%s, duration_ms=%s)",
                    current.video_id,
                    name,
                    code.value,
                    duration_ms,
                )
                results.append(
                    StepRunRecord(
                        name,
                        False,
                        duration_ms,
                        attempts=step.last_attempts,
                        error=str(exc),
                        error_code=code,
                    )
                )
                return self._fail(current, results, name, str(exc))

            duration_ms = int((time.monotonic() - started) * 1000)
            if not step_result.success:
                message = f"Step {name} reported failure"
                results.append(
                    StepRunRecord(
                        name,
                        False,
                        duration_ms,
                        attempts=step_result.attempts,
                        error=message,
                        error_code=ErrorCode.EXECUTION_FAILED,
                    )
                )
                return self._fail(current, results, name, message)

            current = (
                current.with_paths(step_result.artifacts)
                .with_metrics({**step_result.metrics, "step_timings": {name: duration_ms}})
                .mark_completed(name)
            )
            await reporter.report(100, f"{name} completed")
            results.append(StepRunRecord(name, True, duration_ms, attempts=step_result.attempts))
            logger.info(
                "step done (video_id=%s, step=%s, duration_ms=%s, attempts=%s)",
                current.video_id,
                name,
                duration_ms,
                step_result.attempts,
            )

        self.state = PipelineState.COMPLETED
        self.current_step = None
        logger.info("pipeline done (video_id=%s, steps=%s)", current.video_id, len(results))
        return PipelineRunResult(
            success=True,
            manifest=current,
            results=results,
            state=PipelineState.COMPLETED,
        )
