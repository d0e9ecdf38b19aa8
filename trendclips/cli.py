#!/usr/bin/env python3
"""
CLI for the trending clip workflow

Usage:
    python -m trendclips.cli trending --db-path /path/to/db.sqlite
    python -m trendclips.cli trending --db-path /path/to/db.sqlite --process-video --upload
    python -m trendclips.cli moment --db-path /path/to/db.sqlite VIDEO_ID
    python -m trendclips.cli history --db-path /path/to/db.sqlite [--limit 10]
"""
import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

from .clips.analysis import ClipAnalyzer
from .clips.llm_client import LLMClient
from .clips.moment_selector import MomentSelector
from .clips.renderer import ShortRenderer, ffmpeg_available
from .clips.resolver import resolve_clip
from .clips.uploader import YouTubeUploader
from .config import get_settings
from .db.database import Database
from .discovery.models import RankedCandidate, VideoCandidate
from .discovery.transcripts import fetch_transcript
from .discovery.trend_scorer import score_video
from .discovery.youtube_api import fetch_video_metadata
from .workflow.events import WorkflowEventLog
from .workflow.orchestrator import TrendingWorkflow

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Trending clip workflow CLI"
    )
    parser.add_argument(
        "--db-path",
        required=True,
        help="Path to SQLite database"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Trending command
    trending_parser = subparsers.add_parser(
        "trending",
        help="Find trending videos, rank them and extract the best clip"
    )
    trending_parser.add_argument(
        "--max-results",
        type=int,
        default=20,
        help="Total candidate cap across all search queries (default: 20)"
    )
    trending_parser.add_argument(
        "--top-count",
        type=int,
        default=5,
        help="Number of ranked videos to keep (default: 5)"
    )
    trending_parser.add_argument(
        "--no-extract-clip",
        action="store_true",
        help="Skip moment selection for the top video"
    )
    trending_parser.add_argument(
        "--process-video",
        action="store_true",
        help="Download and render the clip as a vertical short (needs ffmpeg and yt-dlp)"
    )
    trending_parser.add_argument(
        "--upload",
        action="store_true",
        help="Upload the rendered short to YouTube (needs YOUTUBE_ACCESS_TOKEN)"
    )
    trending_parser.add_argument(
        "--llm-model",
        default=None,
        help="Ollama model for moment selection (default: LLM_MODEL setting)"
    )

    # Moment command
    moment_parser = subparsers.add_parser(
        "moment",
        help="Pick the best clip from a single video"
    )
    moment_parser.add_argument(
        "video_id",
        help="YouTube video ID"
    )
    moment_parser.add_argument(
        "--llm-model",
        default=None,
        help="Ollama model for moment selection (default: LLM_MODEL setting)"
    )

    # History command
    history_parser = subparsers.add_parser(
        "history",
        help="Show past trending runs"
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of runs to show (default: 10)"
    )

    args = parser.parse_args(argv)
    if args.command == "trending" and args.top_count > args.max_results:
        parser.error("--top-count must not exceed --max-results")
    return args


def _build_llm(args) -> LLMClient:
    settings = get_settings()
    return LLMClient(
        model=args.llm_model or settings.llm_model,
        host=settings.ollama_host,
        timeout=settings.llm_timeout_seconds,
    )


async def cmd_trending(db: Database, args) -> dict:
    """Execute the trending command."""
    settings = get_settings()
    llm = _build_llm(args)

    renderer = None
    if args.process_video:
        if ffmpeg_available():
            renderer = ShortRenderer(output_dir=settings.output_dir)
        else:
            logger.warning("ffmpeg not found on PATH; rendering will be reported as failed")

    uploader = None
    if args.upload and settings.youtube_access_token:
        token = settings.youtube_access_token.get_secret_value()
        uploader = YouTubeUploader(lambda: token)

    events = WorkflowEventLog(max_events=settings.event_log_size)
    workflow = TrendingWorkflow(
        selector=MomentSelector(llm, prompt_segments=settings.transcript_prompt_segments),
        analyzer=ClipAnalyzer(llm, prompt_segments=settings.transcript_prompt_segments),
        db=db,
        renderer=renderer,
        uploader=uploader,
        events=events,
        popular_creators=settings.popular_creators,
        max_queries=settings.max_search_queries,
        watermark_path=settings.watermark_path,
    )
    result = await workflow.run({
        "max_results": args.max_results,
        "top_count": args.top_count,
        "extract_clip": not args.no_extract_clip,
        "process_video": args.process_video,
        "upload_to_youtube": args.upload,
    })

    return {
        "command": "trending",
        **result.to_dict(),
        "events": [e.to_dict() for e in reversed(events.for_workflow(result.workflow_id))],
    }


async def cmd_moment(db: Database, args) -> dict:
    """Execute the moment command for a single video."""
    settings = get_settings()
    llm = _build_llm(args)
    now = datetime.now(timezone.utc)

    metadata = await asyncio.to_thread(fetch_video_metadata, args.video_id)
    candidate = VideoCandidate(
        video_id=args.video_id,
        title=metadata.title,
        channel_title=metadata.channel_title,
        url=metadata.url,
        published_at=metadata.published_at,
        views=metadata.views,
        likes=metadata.likes,
        duration_seconds=metadata.duration_seconds,
        description=metadata.description,
        thumbnail_url=metadata.thumbnail_url,
    )
    ranked = RankedCandidate(
        candidate=candidate,
        trend=score_video(candidate, now, settings.popular_creators),
        channel_name=candidate.channel_title or "Unknown",
    )

    transcript = await asyncio.to_thread(fetch_transcript, args.video_id)
    selector = MomentSelector(llm, prompt_segments=settings.transcript_prompt_segments)
    moment = await asyncio.to_thread(selector.select_moment, transcript, candidate)
    analyzer = ClipAnalyzer(llm, prompt_segments=settings.transcript_prompt_segments)
    analysis = await asyncio.to_thread(analyzer.analyze, candidate, transcript, ranked.channel_name)
    clip = resolve_clip(ranked, moment, analysis)

    return {
        "command": "moment",
        "video_id": args.video_id,
        "title": candidate.title,
        "transcript_segments": len(transcript),
        "moment_source": moment.source,
        "clip": clip.to_dict(),
    }


def cmd_history(db: Database, args) -> dict:
    """Execute the history command."""
    db.ensure_trending_tables()
    return {
        "command": "history",
        "runs": db.get_trending_history(limit=args.limit),
    }


async def main():
    """Main entry point."""
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")

    args = parse_args()

    with Database(args.db_path) as db:
        if args.command == "trending":
            result = await cmd_trending(db, args)
        elif args.command == "moment":
            result = await cmd_moment(db, args)
        elif args.command == "history":
            result = cmd_history(db, args)
        else:
            logger.error("Unknown command: %s", args.command)
            sys.exit(1)

    # Output results
    if args.json:
        print(json.dumps(result, indent=2))
        return

    print(f"\n{'=' * 50}")
    print(f"Command: {result['command']}")
    print(f"{'=' * 50}")

    if args.command == "trending":
        print(f"Outcome: {result['outcome']}")
        print(f"Message: {result['message']}")
        print(f"Candidates found: {result['candidates_found']}")
        if result["videos"]:
            print("\n  #  | SCORE    | CHANNEL              | TITLE")
            print("  " + "-" * 75)
            for i, v in enumerate(result["videos"], 1):
                print(f"  {i:<2} | {v['trend_score']:>8.2f} | {v['channel_name'][:20]:<20} | {v['title'][:40]}")
                print(f"     {v['reason']}")
        clip = result.get("clip")
        if clip:
            print(f"\nBest clip ({result['moment_source']}):")
            print(f"  Video:    {clip['video_url']}")
            print(f"  Window:   {clip['start_time']:.1f}s - {clip['end_time']:.1f}s ({clip['duration']:.0f}s)")
            print(f"  Caption:  {clip['caption']}")
            print(f"  Reason:   {clip['reason']}")
            print(f"  Hashtags: {' '.join(clip['hashtags'])}")
        if result.get("output_path"):
            print(f"  Rendered: {result['output_path']}")
        if result.get("upload"):
            print(f"  Uploaded: {result['upload']['url']}")
        print("\nStages:")
        for s in result["stages"]:
            print(f"  {s['stage']:<13} {s['status']:<8} {s['message']}")

    elif args.command == "moment":
        clip = result["clip"]
        print(f"Video: {result['title']} ({result['video_id']})")
        print(f"Transcript segments: {result['transcript_segments']}")
        print(f"Moment source: {result['moment_source']}")
        print(f"  Window:   {clip['start_time']:.1f}s - {clip['end_time']:.1f}s ({clip['duration']:.0f}s)")
        print(f"  Caption:  {clip['caption']}")
        if clip["subtitle"]:
            print(f"  Subtitle: {clip['subtitle']}")
        print(f"  Reason:   {clip['reason']}")
        print(f"  Hashtags: {' '.join(clip['hashtags'])}")

    elif args.command == "history":
        runs = result["runs"]
        print(f"Runs: {len(runs)}")
        for run in runs:
            print(f"\n  Run {run['run_id']} at {run['run_at']} [{run['outcome']}]")
            print(f"    Candidates: {run['candidates_found']}, ranked: {run['ranked_count']}")
            for v in run["videos"]:
                print(f"    {v['position']}. [{v['trend_score']:.2f}] {v['title'][:50]}")
            if run["clip"]:
                c = run["clip"]
                print(f"    Clip: {c['video_id']} {c['start_time']:.0f}s-{c['end_time']:.0f}s \"{c['caption']}\"")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
