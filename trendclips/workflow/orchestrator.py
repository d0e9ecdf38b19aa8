"""
Trending workflow orchestrator.

Runs FETCH -> RANK -> SELECT_TOP -> PERSIST -> EXTRACT_CLIP? -> UPLOAD? as a
linear sequence. Blocking collaborator calls run in worker threads; every
stage receives its inputs explicitly and no state is shared between runs.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Union

from pydantic import ValidationError

from ..clips.models import OverlayOptions
from ..clips.resolver import resolve_clip
from ..clips.uploader import build_description
from ..config import POPULAR_CREATORS
from ..discovery.aggregator import DEFAULT_MAX_QUERIES, aggregate, build_search_queries
from ..discovery.ranking import rank
from ..discovery.transcripts import fetch_transcript as default_fetch_transcript
from ..discovery.youtube_api import fetch_video_metadata, search_candidates
from .events import WorkflowEvent, WorkflowEventLog
from .models import WorkflowCancelled, WorkflowConfig, WorkflowHardFailure, WorkflowResult

logger = logging.getLogger(__name__)


def _coerce_config(config: Union[WorkflowConfig, dict, None]) -> WorkflowConfig:
    if config is None:
        return WorkflowConfig()
    if isinstance(config, WorkflowConfig):
        return config
    return WorkflowConfig.model_validate(config)


class RunHandle:
    """Handle for a workflow started in the background."""

    def __init__(
        self,
        workflow_id: str,
        task: "asyncio.Task[WorkflowResult]",
        cancel_event: asyncio.Event,
        event_log: WorkflowEventLog,
    ):
        self.workflow_id = workflow_id
        self._task = task
        self._cancel_event = cancel_event
        self._event_log = event_log

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Request cancellation; honoured at the next stage boundary."""
        self._cancel_event.set()

    def events(self) -> list[WorkflowEvent]:
        return self._event_log.for_workflow(self.workflow_id)

    async def result(self) -> WorkflowResult:
        return await self._task


class TrendingWorkflow:
    """Orchestrates trending discovery, ranking, clip selection and upload."""

    def __init__(
        self,
        selector,
        analyzer=None,
        db=None,
        renderer=None,
        uploader=None,
        search: Optional[Callable] = None,
        fetch_metadata: Optional[Callable] = None,
        fetch_transcript: Optional[Callable] = None,
        events: Optional[WorkflowEventLog] = None,
        queries: Optional[list[str]] = None,
        popular_creators: Optional[Iterable[str]] = None,
        max_queries: int = DEFAULT_MAX_QUERIES,
        watermark_path: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.selector = selector
        self.analyzer = analyzer
        self.db = db
        self.renderer = renderer
        self.uploader = uploader
        self.search = search or search_candidates
        self.fetch_metadata = fetch_metadata or fetch_video_metadata
        self.fetch_transcript = fetch_transcript or default_fetch_transcript
        self.events = events if events is not None else WorkflowEventLog()
        self.popular_creators = list(
            POPULAR_CREATORS if popular_creators is None else popular_creators
        )
        self.queries = queries or build_search_queries(self.popular_creators)
        self.max_queries = max_queries
        self.watermark_path = watermark_path
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def start(
        self,
        config: Union[WorkflowConfig, dict, None] = None,
        workflow_id: Optional[str] = None,
    ) -> RunHandle:
        """Start a run in the background and return immediately.

        Must be called from a running event loop.
        """
        workflow_id = workflow_id or uuid.uuid4().hex[:12]
        cancel_event = asyncio.Event()
        task = asyncio.get_running_loop().create_task(
            self.run(config, cancel_event=cancel_event, workflow_id=workflow_id)
        )
        return RunHandle(workflow_id, task, cancel_event, self.events)

    async def run(
        self,
        config: Union[WorkflowConfig, dict, None] = None,
        cancel_event: Optional[asyncio.Event] = None,
        workflow_id: Optional[str] = None,
    ) -> WorkflowResult:
        """Run the full workflow.

        Only a hard failure (nothing fetched or nothing ranked) produces a
        failed outcome; every other stage failure is recorded and the run
        continues.

        Args:
            config: WorkflowConfig or a dict of options.
            cancel_event: Checked before each stage.
            workflow_id: Identifier used to group events.

        Returns:
            WorkflowResult describing every stage.
        """
        workflow_id = workflow_id or uuid.uuid4().hex[:12]
        try:
            config = _coerce_config(config)
        except ValidationError as e:
            message = f"Invalid workflow options: {e.errors()[0]['msg']}"
            self.events.add(message, "error", workflow_id)
            return WorkflowResult(
                workflow_id=workflow_id, config=WorkflowConfig(),
                success=False, outcome="failure", message=message,
            )
        result = WorkflowResult(workflow_id=workflow_id, config=config)

        self.events.add(
            "Starting trending workflow", "trigger", workflow_id,
            max_results=config.max_results, top_count=config.top_count,
            extract_clip=config.extract_clip, upload_to_youtube=config.upload_to_youtube,
        )

        try:
            await self._run_stages(config, result, cancel_event)
        except WorkflowHardFailure as e:
            result.success = False
            result.outcome = "failure"
            result.message = str(e)
            result.record(e.stage, "failed", str(e))
            self.events.add(f"Workflow failed at {e.stage}: {e}", "error", workflow_id)
        except WorkflowCancelled as e:
            result.success = False
            result.outcome = "cancelled"
            result.message = str(e)
            self.events.add(str(e), "error", workflow_id)
        else:
            failed = [s.stage for s in result.stages if s.status == "failed"]
            result.success = True
            result.outcome = "partial" if failed else "success"
            if failed:
                result.message = f"Trending workflow completed with failed stages: {', '.join(failed)}"
            elif result.clip is None:
                result.message = "Trending workflow completed (clip extraction skipped)"
            else:
                result.message = "Trending workflow completed successfully"
            self.events.add(result.message, "complete", workflow_id)

        await self._finish_persisted_run(result)
        return result

    @staticmethod
    def _check_cancel(cancel_event: Optional[asyncio.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise WorkflowCancelled(stage)

    async def _run_stages(
        self,
        config: WorkflowConfig,
        result: WorkflowResult,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        wid = result.workflow_id

        # FETCH
        self._check_cancel(cancel_event, "fetch")
        self.events.add("Fetching trending videos...", "search", wid)
        try:
            candidates = await asyncio.to_thread(
                aggregate, self.queries, config.max_results, self.search, self.max_queries,
            )
        except Exception as e:
            raise WorkflowHardFailure("fetch", f"Candidate search failed: {e}") from e
        if not candidates:
            raise WorkflowHardFailure("fetch", "No trending candidates found")
        result.candidates_found = len(candidates)
        result.record("fetch", "ok", f"{len(candidates)} candidates")

        # RANK
        self._check_cancel(cancel_event, "rank")
        self.events.add(f"Ranking {len(candidates)} videos...", "processing", wid)
        try:
            ranked = await asyncio.to_thread(
                rank, candidates, self.fetch_metadata, self.clock(), self.popular_creators,
            )
        except Exception as e:
            raise WorkflowHardFailure("rank", f"Ranking failed: {e}") from e
        if not ranked:
            raise WorkflowHardFailure("rank", "No videos could be ranked")
        result.ranked_count = len(ranked)
        result.record("rank", "ok", f"{len(ranked)} ranked")

        # SELECT_TOP
        self._check_cancel(cancel_event, "select_top")
        result.videos = ranked[:config.top_count]
        for i, video in enumerate(result.videos, 1):
            logger.info("%d. %s | score=%.2f | %s", i, video.title[:60], video.score, video.reason)
        result.record("select_top", "ok", f"{len(result.videos)} selected")
        self.events.add(f"Selected top {len(result.videos)} videos", "success", wid)

        # PERSIST
        self._check_cancel(cancel_event, "persist")
        await self._persist(result)

        # EXTRACT_CLIP
        self._check_cancel(cancel_event, "extract_clip")
        if config.extract_clip:
            await self._extract_clip(config, result)
        else:
            result.record("extract_clip", "skipped", "Clip extraction disabled")

        # UPLOAD
        self._check_cancel(cancel_event, "upload")
        if config.upload_to_youtube:
            await self._upload(result)
        else:
            result.record("upload", "skipped", "Upload disabled")

    async def _persist(self, result: WorkflowResult) -> None:
        if self.db is None:
            result.record("persist", "skipped", "No storage configured")
            return

        def _save() -> int:
            self.db.ensure_trending_tables()
            run_id = self.db.save_trending_run(
                result.workflow_id, result.candidates_found, result.ranked_count,
            )
            self.db.save_ranked_videos(run_id, result.videos)
            return run_id

        try:
            result.run_id = await asyncio.to_thread(_save)
            result.record("persist", "ok", f"Saved {len(result.videos)} videos")
        except Exception as e:
            logger.error("Error saving ranked videos: %s", e)
            result.record("persist", "failed", str(e))
            self.events.add(f"Saving results failed: {e}", "error", result.workflow_id)

    async def _extract_clip(self, config: WorkflowConfig, result: WorkflowResult) -> None:
        wid = result.workflow_id
        top = result.videos[0]
        self.events.add(f"Extracting best clip from {top.video_id}", "clip", wid)

        try:
            transcript = await asyncio.to_thread(self.fetch_transcript, top.video_id)
        except Exception as e:
            logger.warning("Transcript fetch failed for %s: %s", top.video_id, e)
            transcript = []
        self.events.add(f"Got {len(transcript)} transcript segments", "transcribe", wid)

        try:
            moment = await asyncio.to_thread(
                self.selector.select_moment, transcript, top.candidate,
            )
            analysis = None
            if self.analyzer is not None:
                analysis = await asyncio.to_thread(
                    self.analyzer.analyze, top.candidate, transcript, top.channel_name,
                )
            result.moment = moment
            result.clip = resolve_clip(top, moment, analysis)
        except Exception as e:
            logger.error("Error extracting clip from %s: %s", top.video_id, e)
            result.record("extract_clip", "failed", str(e))
            self.events.add(f"Clip extraction failed: {e}", "error", wid)
            return

        clip = result.clip
        self.events.add(
            f"Best clip: {clip.start_time:.0f}s - {clip.end_time:.0f}s ({clip.reason})", "clip", wid,
        )

        if not config.process_video:
            result.record("extract_clip", "ok", f"{clip.start_time:.0f}s-{clip.end_time:.0f}s")
            return

        if self.renderer is None:
            result.record("extract_clip", "failed", "No renderer configured")
            return

        overlay = OverlayOptions(
            title=clip.title, subtitle=clip.subtitle, watermark_path=self.watermark_path,
        )
        try:
            result.output_path = await asyncio.to_thread(
                self.renderer.transcode, clip.video_url, clip.start_time, clip.duration, overlay,
            )
        except Exception as e:
            logger.error("Error rendering clip for %s: %s", clip.video_id, e)
            result.record("extract_clip", "failed", f"Rendering failed: {e}")
            self.events.add(f"Rendering failed: {e}", "error", wid)
            return

        result.record("extract_clip", "ok", f"Rendered {result.output_path}")
        self.events.add(f"Rendered short: {result.output_path}", "success", wid)

    async def _upload(self, result: WorkflowResult) -> None:
        wid = result.workflow_id
        if result.clip is None or result.output_path is None:
            result.record("upload", "skipped", "No rendered clip to upload")
            return
        if self.uploader is None:
            result.record("upload", "failed", "No uploader configured")
            return

        clip = result.clip
        self.events.add("Uploading to YouTube Shorts...", "upload", wid)
        try:
            result.upload = await asyncio.to_thread(
                self.uploader.upload_clip,
                result.output_path,
                clip.caption,
                build_description(clip.reason, clip.hashtags),
                [tag.lstrip("#") for tag in clip.hashtags],
            )
        except Exception as e:
            logger.error("Error uploading clip for %s: %s", clip.video_id, e)
            result.record("upload", "failed", str(e))
            self.events.add(f"Upload failed: {e}", "error", wid)
            return

        result.record("upload", "ok", result.upload.url)
        self.events.add(f"Uploaded: {result.upload.url}", "upload", wid)

    async def _finish_persisted_run(self, result: WorkflowResult) -> None:
        if self.db is None or result.run_id is None:
            return

        def _save() -> None:
            if result.clip is not None:
                self.db.save_clip(
                    result.run_id, result.clip,
                    output_path=result.output_path,
                    upload_url=result.upload.url if result.upload else None,
                )
            self.db.finish_trending_run(result.run_id, result.outcome, result.message)

        try:
            await asyncio.to_thread(_save)
        except Exception as e:
            logger.error("Error saving run outcome: %s", e)
