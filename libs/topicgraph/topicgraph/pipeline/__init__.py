"""Pipeline orchestration.

Step modules import `topicgraph.pipeline.context` for their ports. Keep imports
lazy to avoid circular-import issues between `topicgraph.pipeline` and
`topicgraph.steps`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from topicgraph.pipeline.factory import create_orchestrator
    from topicgraph.pipeline.orchestrator import PipelineOrchestrator

__all__ = ["PipelineOrchestrator", "create_orchestrator"]


def __getattr__(name: str) -> Any:
    if name == "PipelineOrchestrator":
        from topicgraph.pipeline.orchestrator import PipelineOrchestrator

        return PipelineOrchestrator
    if name == "create_orchestrator":
        from topicgraph.pipeline.factory import create_orchestrator

        return create_orchestrator
    raise AttributeError(name)
