"""Step abstractions for pipeline execution."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from topicgraph.config import RetrySettings
from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import (
    ArtifactNotFoundError,
    InputValidationError,
    PipelineAbortedError,
    StepTimeoutError,
)
from topicgraph.models.manifest import LIST_KINDS, ArtifactKind, ArtifactManifest
from topicgraph.pipeline.context import StepContext

logger = logging.getLogger(__name__)

ArtifactValue = str | list[str]


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class StepResult:
    success: bool
    artifacts: Mapping[ArtifactKind, ArtifactValue] = field(default_factory=dict)
    metrics: Mapping[str, Any] = field(default_factory=dict)
    execution_ms: int = 0
    attempts: int = 1


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay_s: float = 1.0
    backoff: Literal["fixed", "exponential"] = "exponential"
    max_delay_s: float = 30.0
    timeout_s: float | None = None
    total_timeout_s: float | None = None

    @classmethod
    def from_settings(cls, cfg: RetrySettings) -> RetryPolicy:
        return cls(
            max_attempts=int(cfg.max_attempts),
            delay_s=float(cfg.delay_s),
            backoff=cfg.backoff,
            max_delay_s=float(cfg.max_delay_s),
            timeout_s=cfg.timeout_s,
            total_timeout_s=cfg.total_timeout_s,
        )

    def delay_for(self, failed_attempts: int) -> float:
        n = max(1, int(failed_attempts))
        if self.backoff == "exponential":
            delay = self.delay_s * (2 ** (n - 1))
        else:
            delay = self.delay_s
        return min(delay, self.max_delay_s) if self.max_delay_s > 0 else delay


def _is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, Exception):
        return False
    if isinstance(exc, (InputValidationError, PipelineAbortedError)):
        return False
    if isinstance(exc, StepTimeoutError) and exc.total:
        return False
    return True


def infer_error_code(exc: BaseException) -> ErrorCode:
    code = getattr(exc, "error_code", None)
    if isinstance(code, ErrorCode):
        return code
    if isinstance(code, str) and code:
        try:
            return ErrorCode(code)
        except ValueError:
            return ErrorCode.UNKNOWN
    return ErrorCode.EXECUTION_FAILED


class PipelineStep(ABC):
    """One named unit of pipeline work.

    `execute` must be idempotent for a given context: retries call it fresh,
    and it has to re-derive and overwrite the same artifact paths.
    """

    name: str
    version: str = "1.0.0"
    description: str = ""
    tags: tuple[str, ...] = ()
    required_inputs: tuple[ArtifactKind, ...] = ()
    produced_outputs: tuple[ArtifactKind, ...] = ()

    def __init__(self, *, retry: RetryPolicy | None = None) -> None:
        self.retry = retry or RetryPolicy()
        self.last_attempts = 0

    def validate_input(self, manifest: ArtifactManifest) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []
        for kind in self.required_inputs:
            if not manifest.has(kind):
                errors.append(f"Missing required input: {kind.value}")
            elif kind in LIST_KINDS and not manifest.path_list(kind):
                warnings.append(f"Empty input list: {kind.value}")
        return ValidationResult(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))

    def context_errors(self, ctx: StepContext) -> list[str]:
        """Step-specific read-only checks on payload/config. No I/O."""
        return []

    def validate(self, ctx: StepContext) -> ValidationResult:
        base = self.validate_input(ctx.manifest)
        errors = list(base.errors)
        if not str(ctx.manifest.video_id or "").strip():
            errors.insert(0, "Missing video_id")
        errors.extend(self.context_errors(ctx))
        return ValidationResult(valid=not errors, errors=tuple(errors), warnings=base.warnings)

    def validate_context(self, ctx: StepContext) -> bool:
        return self.validate(ctx).valid

    @abstractmethod
    async def execute(self, ctx: StepContext) -> StepResult:
        """Do the work and return the produced artifacts and metrics."""

    async def cleanup(self, ctx: StepContext) -> None:
        return None

    async def remove_work_dir(self, ctx: StepContext) -> None:
        """Delete this step's local scratch directory for the current version."""
        await asyncio.to_thread(shutil.rmtree, ctx.step_work_path(self.name), ignore_errors=True)

    def require_path(self, ctx: StepContext, kind: ArtifactKind) -> str:
        path = ctx.manifest.path(kind)
        if not path:
            raise ArtifactNotFoundError(f"{self.name}: manifest has no {kind.value} path")
        return path

    def result(
        self,
        artifacts: Mapping[ArtifactKind, ArtifactValue] | None = None,
        metrics: Mapping[str, Any] | None = None,
    ) -> StepResult:
        return StepResult(success=True, artifacts=dict(artifacts or {}), metrics=dict(metrics or {}))

    async def _safe_cleanup(self, ctx: StepContext) -> None:
        try:
            await self.cleanup(ctx)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "step cleanup failed (step=%s, video_id=%s): %s", self.name, ctx.video_id, exc
            )

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        wait_s = state.next_action.sleep if state.next_action else None
        logger.warning(
            "step retrying (step=%s, attempt=%s, wait_s=%s, error=%s)",
            self.name,
            state.attempt_number,
            wait_s,
            exc,
        )

    async def _run_attempt(self, ctx: StepContext, deadline: float | None) -> StepResult:
        policy = self.retry
        timeout = policy.timeout_s
        bounded_by_deadline = False
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise StepTimeoutError(
                    self.name, float(policy.total_timeout_s or 0), video_id=ctx.video_id, total=True
                )
            if timeout is None or remaining < timeout:
                timeout = remaining
                bounded_by_deadline = True

        if timeout is None:
            return await self.execute(ctx)
        try:
            return await asyncio.wait_for(self.execute(ctx), timeout=timeout)
        except asyncio.TimeoutError as exc:
            if bounded_by_deadline:
                raise StepTimeoutError(
                    self.name, float(policy.total_timeout_s or 0), video_id=ctx.video_id, total=True
                ) from exc
            raise StepTimeoutError(self.name, float(timeout), video_id=ctx.video_id) from exc

    async def execute_with_retry(self, ctx: StepContext) -> StepResult:
        """Run `execute` under the retry policy; cleanup always runs once at the end.

        Per-attempt timeouts count as one failed attempt. The total deadline,
        validation errors and aborts end the loop immediately. When the budget
        is exhausted the last error is re-raised unchanged.
        """
        policy = self.retry
        started = time.monotonic()
        deadline = started + policy.total_timeout_s if policy.total_timeout_s else None
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, int(policy.max_attempts))),
            wait=lambda state: policy.delay_for(state.attempt_number),
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    ctx.check_aborted()
                    attempts += 1
                    self.last_attempts = attempts
                    result = await self._run_attempt(ctx, deadline)
        finally:
            await self._safe_cleanup(ctx)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        return replace(result, execution_ms=elapsed_ms, attempts=attempts)
