"""Core database models"""
from .video_snapshot import VideoSnapshot
from .trend import Trend, PERIODS
from .content_gap import ContentGap
from .tracked_channel import TrackedChannel

__all__ = ["VideoSnapshot", "Trend", "PERIODS", "ContentGap", "TrackedChannel"]
