"""
Configuration and result models for a trending workflow run.
"""
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..clips.models import ClipDescriptor, MomentCandidate, UploadResult
from ..discovery.models import RankedCandidate


class WorkflowConfig(BaseModel):
    """Per-run options. Accepts snake_case or camelCase keys; unknown keys are ignored."""
    max_results: int = Field(default=20, ge=1, alias="maxResults")
    top_count: int = Field(default=5, ge=1, alias="topCount")
    extract_clip: bool = Field(default=True, alias="extractClip")
    upload_to_youtube: bool = Field(default=False, alias="uploadToYouTube")
    process_video: bool = Field(default=False, alias="processVideo")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="after")
    def _top_count_within_results(self) -> "WorkflowConfig":
        if self.top_count > self.max_results:
            raise ValueError("top_count must not exceed max_results")
        return self


class WorkflowHardFailure(Exception):
    """A failure that ends the run: nothing left to rank or select."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


class WorkflowCancelled(Exception):
    """Cancellation observed at a stage boundary."""

    def __init__(self, stage: str):
        super().__init__(f"Cancelled before {stage}")
        self.stage = stage


@dataclass
class StageOutcome:
    stage: str
    status: str  # ok / failed / skipped
    message: str = ""


@dataclass
class WorkflowResult:
    """Structured outcome of one run. Never persisted by the workflow itself."""
    workflow_id: str
    config: WorkflowConfig
    success: bool = False
    outcome: str = "running"  # success / partial / failure / cancelled
    message: str = ""
    candidates_found: int = 0
    ranked_count: int = 0
    videos: list[RankedCandidate] = field(default_factory=list)
    moment: Optional[MomentCandidate] = None
    clip: Optional[ClipDescriptor] = None
    output_path: Optional[str] = None
    upload: Optional[UploadResult] = None
    stages: list[StageOutcome] = field(default_factory=list)
    run_id: Optional[int] = None

    def stage(self, name: str) -> Optional[StageOutcome]:
        for outcome in self.stages:
            if outcome.stage == name:
                return outcome
        return None

    def record(self, stage: str, status: str, message: str = "") -> StageOutcome:
        outcome = StageOutcome(stage=stage, status=status, message=message)
        self.stages.append(outcome)
        return outcome

    def to_dict(self) -> dict:
        return {
            "workflow_id": self.workflow_id,
            "success": self.success,
            "outcome": self.outcome,
            "message": self.message,
            "candidates_found": self.candidates_found,
            "ranked_count": self.ranked_count,
            "videos": [
                {
                    "video_id": v.video_id,
                    "title": v.title,
                    "channel_name": v.channel_name,
                    "url": v.url,
                    "trend_score": v.score,
                    "reason": v.reason,
                    "views": v.candidate.views,
                    "likes": v.candidate.likes,
                    "views_per_hour": round(v.trend.metrics.views_per_hour),
                    "like_ratio_pct": round(v.trend.metrics.like_ratio * 100, 2),
                    "published_at": v.candidate.published_at,
                }
                for v in self.videos
            ],
            "clip": self.clip.to_dict() if self.clip else None,
            "moment_source": self.moment.source if self.moment else None,
            "output_path": self.output_path,
            "upload": (
                {"platform_video_id": self.upload.platform_video_id, "url": self.upload.url}
                if self.upload else None
            ),
            "stages": [
                {"stage": s.stage, "status": s.status, "message": s.message}
                for s in self.stages
            ],
        }
