from __future__ import annotations

import asyncio

import pytest

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import (
    InputValidationError,
    PipelineAbortedError,
    StepExecutionError,
    StepTimeoutError,
)
from topicgraph.models.manifest import ArtifactKind, ArtifactManifest
from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult

FAST = RetryPolicy(max_attempts=3, delay_s=0.0, backoff="fixed")


class FlakyStep(PipelineStep):
    name = "flaky"

    def __init__(self, failures: int, *, retry: RetryPolicy = FAST, exc: Exception | None = None) -> None:
        super().__init__(retry=retry)
        self.failures = failures
        self.exc = exc
        self.calls = 0
        self.cleanups = 0

    async def execute(self, ctx) -> StepResult:
        self.calls += 1
        path = f"videos/{ctx.video_id}/graph/graph.json"
        await ctx.storage.write_json(path, {"attempt": self.calls})
        if self.calls <= self.failures:
            raise self.exc or StepExecutionError(self.name, f"attempt {self.calls} failed")
        return self.result({ArtifactKind.GRAPH: path}, {"edge_count": 3})

    async def cleanup(self, ctx) -> None:
        self.cleanups += 1


class SlowStep(PipelineStep):
    name = "slow"

    def __init__(self, retry: RetryPolicy) -> None:
        super().__init__(retry=retry)
        self.calls = 0

    async def execute(self, ctx) -> StepResult:
        self.calls += 1
        await asyncio.sleep(1.0)
        return self.result()


class BrokenCleanupStep(FlakyStep):
    async def cleanup(self, ctx) -> None:
        raise RuntimeError("cleanup exploded")


@pytest.mark.asyncio
async def test_two_transient_failures_then_success_runs_three_times(make_ctx, storage) -> None:
    step = FlakyStep(failures=2)
    ctx = make_ctx()
    result = await step.execute_with_retry(ctx)

    assert result.success
    assert step.calls == 3
    assert result.attempts == 3
    assert step.cleanups == 1
    assert await storage.read_json("videos/vid-1/graph/graph.json") == {"attempt": 3}


@pytest.mark.asyncio
async def test_exhausted_budget_reraises_last_error_unchanged(make_ctx) -> None:
    step = FlakyStep(failures=5)
    with pytest.raises(StepExecutionError, match="attempt 3 failed"):
        await step.execute_with_retry(make_ctx())
    assert step.calls == 3
    assert step.last_attempts == 3


@pytest.mark.asyncio
async def test_validation_error_is_not_retried(make_ctx) -> None:
    step = FlakyStep(failures=5, exc=InputValidationError("flaky", ["bad payload"]))
    with pytest.raises(InputValidationError):
        await step.execute_with_retry(make_ctx())
    assert step.calls == 1
    assert step.cleanups == 1


@pytest.mark.asyncio
async def test_per_attempt_timeout_is_distinguishable_and_retried(make_ctx) -> None:
    step = SlowStep(RetryPolicy(max_attempts=2, delay_s=0.0, timeout_s=0.05))
    with pytest.raises(StepTimeoutError) as info:
        await step.execute_with_retry(make_ctx())
    assert step.calls == 2
    assert info.value.total is False
    assert info.value.error_code == ErrorCode.TIMEOUT


@pytest.mark.asyncio
async def test_total_deadline_stops_retrying(make_ctx) -> None:
    step = SlowStep(RetryPolicy(max_attempts=5, delay_s=0.0, timeout_s=10.0, total_timeout_s=0.05))
    with pytest.raises(StepTimeoutError) as info:
        await step.execute_with_retry(make_ctx())
    assert step.calls == 1
    assert info.value.total is True


@pytest.mark.asyncio
async def test_abort_before_attempt_raises_without_executing(make_ctx) -> None:
    step = FlakyStep(failures=0)
    ctx = make_ctx()
    ctx.abort.abort("user cancelled")
    with pytest.raises(PipelineAbortedError, match="user cancelled"):
        await step.execute_with_retry(ctx)
    assert step.calls == 0


@pytest.mark.asyncio
async def test_cleanup_failure_never_masks_result(make_ctx) -> None:
    step = BrokenCleanupStep(failures=0)
    result = await step.execute_with_retry(make_ctx())
    assert result.success
    assert result.metrics == {"edge_count": 3}


def test_exponential_backoff_doubles_and_caps() -> None:
    policy = RetryPolicy(delay_s=1.0, backoff="exponential", max_delay_s=5.0)
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]
    assert RetryPolicy(delay_s=2.0, backoff="fixed").delay_for(3) == 2.0


def test_validate_input_reports_every_missing_kind() -> None:
    class NeedsTwo(FlakyStep):
        required_inputs = (ArtifactKind.TOPICS, ArtifactKind.TRANSCRIPT)

    result = NeedsTwo(0).validate_input(ArtifactManifest.create("v", "j"))
    assert not result.valid
    assert result.errors == (
        "Missing required input: topics",
        "Missing required input: transcript",
    )


def test_validate_input_warns_on_empty_list_kind() -> None:
    class NeedsSnippets(FlakyStep):
        required_inputs = (ArtifactKind.SNIPPETS,)

    manifest = ArtifactManifest.create("v", "j").with_paths({ArtifactKind.SNIPPETS: []})
    result = NeedsSnippets(0).validate_input(manifest)
    assert result.valid
    assert result.warnings == ("Empty input list: snippets",)
