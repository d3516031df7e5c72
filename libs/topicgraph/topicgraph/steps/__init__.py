"""Pipeline step contract, registry and the built-in step variants.

Step variants are imported from their own modules to keep this package light.
"""

from topicgraph.steps.base import PipelineStep, RetryPolicy, StepResult, ValidationResult
from topicgraph.steps.registry import StepMetadata, StepRegistry

__all__ = [
    "PipelineStep",
    "RetryPolicy",
    "StepMetadata",
    "StepRegistry",
    "StepResult",
    "ValidationResult",
]
