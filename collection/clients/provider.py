"""Upstream metadata provider interface"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class VideoMetadata(BaseModel):
    """Current public statistics and metadata for one video"""
    video_id: str
    channel_id: str = ""
    title: str = ""
    tags: List[str] = Field(default_factory=list)
    published_at: datetime
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0


class SearchResult(BaseModel):
    """Competing videos found for a keyword"""
    keyword: str
    total_results: int = 0
    video_ids: List[str] = Field(default_factory=list)


class VideoMetadataProvider(ABC):
    """Abstract base class for video metadata sources"""

    @abstractmethod
    def get_video(self, video_id: str) -> VideoMetadata:
        """Fetch one video; raises ExternalFetchFailure when it cannot be read"""

    @abstractmethod
    def get_videos(self, video_ids: List[str]) -> List[VideoMetadata]:
        """Fetch several videos in one call; unknown ids are omitted"""

    @abstractmethod
    def get_recent_uploads(self, channel_id: str, max_results: int = 3) -> List[str]:
        """Most recent upload video ids for a channel, newest first"""

    @abstractmethod
    def get_chart_video_ids(self, region_code: str, max_results: int = 50) -> List[str]:
        """Video ids on the most-popular chart for a region"""

    @abstractmethod
    def search_videos(self, keyword: str, max_results: int = 50) -> SearchResult:
        """Existing videos matching a keyword"""

    def check(self) -> None:
        """Raise ConfigurationError when the provider cannot be used at all"""

    def close(self) -> None:
        """Release network resources"""
