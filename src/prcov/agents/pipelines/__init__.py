"""Pipeline orchestration modules."""

from prcov.agents.pipelines.check import (
    CheckPipeline,
    CheckPipelineConfig,
    CheckPipelineResult,
    meets_threshold,
)

__all__ = [
    "CheckPipeline",
    "CheckPipelineConfig",
    "CheckPipelineResult",
    "meets_threshold",
]
