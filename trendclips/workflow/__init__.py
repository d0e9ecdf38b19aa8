"""
Trending workflow: fetch, rank, select, persist, clip and upload.
"""
from .events import WorkflowEvent, WorkflowEventLog
from .models import (
    WorkflowConfig,
    WorkflowResult,
    WorkflowHardFailure,
    WorkflowCancelled,
    StageOutcome,
)
from .orchestrator import TrendingWorkflow, RunHandle

__all__ = [
    "WorkflowEvent",
    "WorkflowEventLog",
    "WorkflowConfig",
    "WorkflowResult",
    "WorkflowHardFailure",
    "WorkflowCancelled",
    "StageOutcome",
    "TrendingWorkflow",
    "RunHandle",
]
