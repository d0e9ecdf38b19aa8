"""
SQLite persistence for trending runs, ranked videos and resolved clips.
"""
import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..clips.models import ClipDescriptor
from ..discovery.models import RankedCandidate


class Database:
    """Database adapter for trending workflow results."""

    def __init__(self, connection_string: str):
        """
        Initialize database adapter.

        Args:
            connection_string: Path to the SQLite .db file (or ":memory:").
        """
        self.connection_string = connection_string
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Establish database connection."""
        # Workflow stages run in worker threads
        self._conn = sqlite3.connect(self.connection_string, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if not self._conn:
            raise RuntimeError("Database not connected")
        return self._conn

    def ensure_trending_tables(self) -> None:
        """Create trending workflow tables if they don't exist."""
        conn = self._require_conn()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS trending_runs (
                run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                workflow_id TEXT,
                run_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                candidates_found INTEGER,
                ranked_count INTEGER,
                outcome TEXT,
                message TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS trending_videos (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id INTEGER REFERENCES trending_runs(run_id),
                position INTEGER NOT NULL,
                video_id TEXT NOT NULL,
                channel_name TEXT,
                title TEXT,
                url TEXT,
                trend_score REAL,
                reason TEXT,
                views INTEGER,
                likes INTEGER,
                views_per_hour REAL,
                like_ratio_pct REAL,
                published_at TEXT,
                status TEXT DEFAULT 'Selected'
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS trending_clips (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id INTEGER REFERENCES trending_runs(run_id),
                video_id TEXT NOT NULL,
                start_time REAL,
                end_time REAL,
                duration REAL,
                caption TEXT,
                subtitle TEXT,
                reason TEXT,
                hashtags TEXT,
                output_path TEXT,
                upload_url TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_trending_videos_run
            ON trending_videos(run_id)
        """)
        conn.commit()

    def save_trending_run(
        self,
        workflow_id: str,
        candidates_found: int,
        ranked_count: int,
        outcome: str = "running",
        message: str = "",
    ) -> int:
        """Save a trending run record and return its run_id."""
        conn = self._require_conn()

        cursor = conn.execute("""
            INSERT INTO trending_runs
                (workflow_id, run_at, candidates_found, ranked_count, outcome, message)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            workflow_id, datetime.now().isoformat(), candidates_found,
            ranked_count, outcome, message,
        ))
        conn.commit()
        return cursor.lastrowid

    def finish_trending_run(self, run_id: int, outcome: str, message: str = "") -> None:
        """Record the terminal outcome of a run."""
        conn = self._require_conn()
        conn.execute(
            "UPDATE trending_runs SET outcome = ?, message = ? WHERE run_id = ?",
            (outcome, message, run_id),
        )
        conn.commit()

    def save_ranked_videos(self, run_id: int, videos: Sequence[RankedCandidate]) -> None:
        """Save the selected ranked videos for a run, in rank order.

        Args:
            run_id: ID of the trending run.
            videos: Ranked candidates, best first.
        """
        conn = self._require_conn()

        for position, video in enumerate(videos, 1):
            metrics = video.trend.metrics
            conn.execute("""
                INSERT INTO trending_videos
                    (run_id, position, video_id, channel_name, title, url,
                     trend_score, reason, views, likes, views_per_hour,
                     like_ratio_pct, published_at, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                run_id, position, video.video_id, video.channel_name,
                video.title, video.url, video.score, video.reason,
                video.candidate.views, video.candidate.likes,
                round(metrics.views_per_hour),
                round(metrics.like_ratio * 100, 2),
                video.candidate.published_at, "Selected",
            ))
        conn.commit()

    def save_clip(
        self,
        run_id: int,
        clip: ClipDescriptor,
        output_path: Optional[str] = None,
        upload_url: Optional[str] = None,
    ) -> None:
        """Save the resolved clip for a run."""
        conn = self._require_conn()
        conn.execute("""
            INSERT INTO trending_clips
                (run_id, video_id, start_time, end_time, duration, caption,
                 subtitle, reason, hashtags, output_path, upload_url)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            run_id, clip.video_id, clip.start_time, clip.end_time,
            clip.duration, clip.caption, clip.subtitle, clip.reason,
            json.dumps(list(clip.hashtags)), output_path, upload_url,
        ))
        conn.commit()

    def get_trending_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent trending runs with their ranked videos and clip.

        Args:
            limit: Max number of runs to return.

        Returns:
            List of dicts with run info, top videos and the clip (if any).
        """
        conn = self._require_conn()

        runs = conn.execute("""
            SELECT run_id, workflow_id, run_at, candidates_found,
                   ranked_count, outcome, message
            FROM trending_runs
            ORDER BY run_id DESC
            LIMIT ?
        """, (limit,)).fetchall()

        results = []
        for run in runs:
            videos = conn.execute("""
                SELECT position, video_id, channel_name, title, url,
                       trend_score, reason, views, likes
                FROM trending_videos
                WHERE run_id = ?
                ORDER BY position
            """, (run["run_id"],)).fetchall()

            clip = conn.execute("""
                SELECT video_id, start_time, end_time, duration, caption,
                       reason, hashtags, output_path, upload_url
                FROM trending_clips
                WHERE run_id = ?
                ORDER BY id DESC
                LIMIT 1
            """, (run["run_id"],)).fetchone()

            results.append({
                "run_id": run["run_id"],
                "workflow_id": run["workflow_id"],
                "run_at": run["run_at"],
                "candidates_found": run["candidates_found"],
                "ranked_count": run["ranked_count"],
                "outcome": run["outcome"],
                "message": run["message"],
                "videos": [dict(v) for v in videos],
                "clip": (
                    {**dict(clip), "hashtags": json.loads(clip["hashtags"] or "[]")}
                    if clip else None
                ),
            })

        return results
