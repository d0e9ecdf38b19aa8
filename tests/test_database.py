"""
Tests for the trending results database and workflow event log.
"""
import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from trendclips.clips.models import MomentCandidate
from trendclips.clips.resolver import resolve_clip
from trendclips.db.database import Database
from trendclips.workflow.events import WorkflowEventLog

from conftest import make_candidate, make_ranked


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database with trending tables."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    db = Database(db_path)
    db.connect()
    db.ensure_trending_tables()
    yield db
    db.close()
    os.unlink(db_path)


# ── Database ──────────────────────────────────────────────────────────


class TestDatabase:
    def test_requires_connection(self):
        db = Database(":memory:")
        with pytest.raises(RuntimeError, match="not connected"):
            db.ensure_trending_tables()

    def test_context_manager(self):
        with Database(":memory:") as db:
            db.ensure_trending_tables()
            assert db.get_trending_history() == []
        assert db._conn is None

    def test_ensure_tables_idempotent(self, temp_db):
        temp_db.ensure_trending_tables()
        tables = {
            row[0] for row in temp_db._conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }
        assert {"trending_runs", "trending_videos", "trending_clips"} <= tables

    def test_save_run_and_videos(self, temp_db):
        videos = [make_ranked(make_candidate("a", views=50000)), make_ranked(make_candidate("b"))]
        run_id = temp_db.save_trending_run("wf1", candidates_found=12, ranked_count=2)
        temp_db.save_ranked_videos(run_id, videos)
        temp_db.finish_trending_run(run_id, "success", "done")

        history = temp_db.get_trending_history()

        assert len(history) == 1
        run = history[0]
        assert run["workflow_id"] == "wf1"
        assert run["candidates_found"] == 12
        assert run["outcome"] == "success"
        assert [v["video_id"] for v in run["videos"]] == ["a", "b"]
        assert [v["position"] for v in run["videos"]] == [1, 2]
        assert run["clip"] is None

    def test_save_clip(self, temp_db):
        ranked = make_ranked(make_candidate("a"))
        clip = resolve_clip(ranked, MomentCandidate(start=45, end=90, text="wow", reason="peak"))
        run_id = temp_db.save_trending_run("wf1", 5, 1)
        temp_db.save_clip(run_id, clip, output_path="clips/a.mp4")

        saved = temp_db.get_trending_history()[0]["clip"]

        assert saved["video_id"] == "a"
        assert saved["start_time"] == 45
        assert saved["end_time"] == 90
        assert saved["hashtags"] == ["#viral", "#shorts", "#trending"]
        assert saved["output_path"] == "clips/a.mp4"
        assert saved["upload_url"] is None

    def test_history_newest_first_with_limit(self, temp_db):
        for i in range(3):
            temp_db.save_trending_run(f"wf{i}", 1, 1)
        history = temp_db.get_trending_history(limit=2)
        assert [h["workflow_id"] for h in history] == ["wf2", "wf1"]


# ── Event Log ─────────────────────────────────────────────────────────


class TestWorkflowEventLog:
    def test_newest_first(self):
        log = WorkflowEventLog()
        log.add("one")
        log.add("two")
        assert [e.message for e in log.get()] == ["two", "one"]

    def test_ring_buffer_eviction(self):
        log = WorkflowEventLog(max_events=3)
        for i in range(5):
            log.add(f"event {i}")
        assert len(log) == 3
        assert [e.message for e in log.get()] == ["event 4", "event 3", "event 2"]

    def test_filters(self):
        log = WorkflowEventLog()
        log.add("a", "search", "wf1")
        log.add("b", "error", "wf1")
        log.add("c", "search", "wf2")
        assert [e.message for e in log.for_workflow("wf1")] == ["b", "a"]
        assert [e.message for e in log.get(type="search")] == ["c", "a"]
        assert len(log.get(limit=1)) == 1

    def test_empty_log_is_truthy(self):
        log = WorkflowEventLog(max_events=5)
        assert len(log) == 0
        assert log

    def test_event_dict_includes_metadata(self):
        log = WorkflowEventLog()
        event = log.add("started", "trigger", "wf1", top_count=5)
        data = event.to_dict()
        assert data["top_count"] == 5
        assert data["workflow_id"] == "wf1"
        assert data["type"] == "trigger"

    def test_ids_increase_and_clear(self):
        log = WorkflowEventLog()
        first = log.add("a")
        second = log.add("b")
        assert second.id > first.id
        log.clear()
        assert len(log) == 0
