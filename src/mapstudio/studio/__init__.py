"""Session carrier and rule-task actions driven by the conversation orchestrator."""

from mapstudio.studio.session import SessionKeys, StudioSession
from mapstudio.studio.task import MappingStudioTask

__all__ = ["MappingStudioTask", "SessionKeys", "StudioSession"]
