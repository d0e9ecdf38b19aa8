# Discovery module
from .aggregator import aggregate, build_search_queries, TOPIC_QUERIES
from .ranking import rank, merge_metadata
from .trend_scorer import score_video, compute_metrics, selection_reason
from .youtube_api import search_candidates, fetch_video_metadata, minimal_metadata
from .transcripts import fetch_transcript
