# Clips module
from .moment_selector import MomentSelector, fallback_moment, repair_moment
from .analysis import ClipAnalyzer
from .resolver import resolve_clip, clamp_duration
from .renderer import ShortRenderer, RenderError
from .uploader import YouTubeUploader, UploadError
