"""Remote pipeline command lines and the project status document."""

from .commands import build_pipeline_command
from .status import PipelineStage, ProjectStatus

__all__ = ["PipelineStage", "ProjectStatus", "build_pipeline_command"]
