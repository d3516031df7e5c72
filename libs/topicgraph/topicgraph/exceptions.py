"""topicgraph exception hierarchy."""

from __future__ import annotations

from collections.abc import Sequence

from topicgraph.error_codes import ErrorCode


class TopicGraphError(Exception):
    """Base error for topicgraph."""


class ConfigurationError(TopicGraphError):
    """Raised when configuration or inputs are invalid."""


class ProviderError(TopicGraphError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.error_code = error_code


class ArtifactNotFoundError(TopicGraphError):
    """Raised when an expected artifact is missing."""


class InputValidationError(TopicGraphError):
    """Raised when a manifest or payload lacks what a step requires. Never retried."""

    def __init__(self, step: str, errors: Sequence[str]) -> None:
        self.step = step
        self.errors = list(errors)
        self.error_code = ErrorCode.VALIDATION_FAILED
        super().__init__(f"Input validation failed for {step}: {'; '.join(self.errors)}")


class StepExecutionError(TopicGraphError):
    """Raised when a pipeline step fails."""

    def __init__(
        self,
        step: str,
        message: str,
        *,
        video_id: str | None = None,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        prefix = f"{step}"
        if video_id:
            prefix = f"{prefix} (video_id={video_id})"
        super().__init__(f"{prefix}: {message}")
        self.step = step
        self.video_id = video_id
        self.message = message
        self.error_code = error_code


class StepTimeoutError(StepExecutionError):
    """A single attempt (or the whole retry window) ran past its time budget."""

    def __init__(
        self,
        step: str,
        timeout_s: float,
        *,
        video_id: str | None = None,
        total: bool = False,
    ) -> None:
        scope = "total deadline" if total else "attempt"
        super().__init__(
            step,
            f"{scope} timed out after {timeout_s:g}s",
            video_id=video_id,
            error_code=ErrorCode.TIMEOUT,
        )
        self.timeout_s = timeout_s
        self.total = total


class PipelineAbortedError(TopicGraphError):
    """Raised when the cancellation signal is observed."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        self.error_code = ErrorCode.ABORTED
        message = "Pipeline aborted"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StepNotFoundError(TopicGraphError):
    """Raised when an unregistered step name is requested."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.error_code = ErrorCode.STEP_NOT_FOUND
        super().__init__(f"Step not found: {name}")
