"""Common test fixtures for all test modules"""
import os

# core.db builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from core.config import PipelineSettings
from core.db import Base, build_engine
from core.errors import ExternalFetchFailure
from core.models import VideoSnapshot
from collection.clients.provider import SearchResult, VideoMetadata, VideoMetadataProvider
from collection.jobs.snapshot_collector import compute_snapshot_metrics

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeProvider(VideoMetadataProvider):
    """In-memory provider; ids listed in `failing` raise ExternalFetchFailure"""

    def __init__(
        self,
        videos: Iterable[VideoMetadata] = (),
        uploads: Optional[Dict[str, List[str]]] = None,
        chart: Optional[List[str]] = None,
        searches: Optional[Dict[str, SearchResult]] = None,
        failing: Iterable[str] = (),
    ):
        self.videos = {video.video_id: video for video in videos}
        self.uploads = uploads or {}
        self.chart = chart or []
        self.searches = searches or {}
        self.failing = set(failing)
        self.closed = False

    def _maybe_fail(self, key: str) -> None:
        if key in self.failing:
            raise ExternalFetchFailure(f"{key} unavailable")

    def get_video(self, video_id: str) -> VideoMetadata:
        self._maybe_fail(video_id)
        if video_id not in self.videos:
            raise ExternalFetchFailure(f"Video {video_id} not found")
        return self.videos[video_id]

    def get_videos(self, video_ids: List[str]) -> List[VideoMetadata]:
        return [
            self.videos[video_id] for video_id in video_ids
            if video_id in self.videos and video_id not in self.failing
        ]

    def get_recent_uploads(self, channel_id: str, max_results: int = 3) -> List[str]:
        self._maybe_fail(channel_id)
        return list(self.uploads.get(channel_id, []))

    def get_chart_video_ids(self, region_code: str, max_results: int = 50) -> List[str]:
        self._maybe_fail(region_code)
        return self.chart[:max_results]

    def search_videos(self, keyword: str, max_results: int = 50) -> SearchResult:
        self._maybe_fail(keyword)
        return self.searches.get(keyword, SearchResult(keyword=keyword))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine():
    """Fresh in-memory database shared across connections"""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def settings():
    return PipelineSettings(fetch_concurrency=2, chart_region=None)


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_video():
    """Build provider metadata with sensible defaults"""
    def _make(video_id: str, **overrides) -> VideoMetadata:
        data = {
            "video_id": video_id,
            "channel_id": "channel_a",
            "title": f"Video {video_id}",
            "tags": [],
            "published_at": NOW - timedelta(days=2),
            "view_count": 1000,
            "like_count": 40,
            "comment_count": 10,
        }
        data.update(overrides)
        return VideoMetadata(**data)
    return _make


@pytest.fixture
def make_snapshot():
    """Build a transient VideoSnapshot; metrics derived unless given"""
    def _make(
        video_id: str,
        title: str = "",
        tags: Iterable[str] = (),
        view_count: int = 1000,
        like_count: int = 40,
        comment_count: int = 10,
        snapshot_date: datetime = NOW - timedelta(hours=1),
        published_at: datetime = NOW - timedelta(days=2),
        view_velocity: Optional[float] = None,
        engagement_rate: Optional[float] = None,
        channel_id: str = "channel_a",
    ) -> VideoSnapshot:
        velocity, engagement = compute_snapshot_metrics(
            view_count, like_count, comment_count, published_at, snapshot_date
        )
        return VideoSnapshot(
            video_id=video_id,
            channel_id=channel_id,
            view_count=view_count,
            like_count=like_count,
            comment_count=comment_count,
            title=title,
            tags=list(tags),
            published_at=published_at,
            snapshot_date=snapshot_date,
            view_velocity=velocity if view_velocity is None else view_velocity,
            engagement_rate=engagement if engagement_rate is None else engagement_rate,
        )
    return _make


@pytest.fixture
def store(session_factory):
    """Persist ORM objects into the test database"""
    def _store(*objects):
        with session_factory() as db:
            db.add_all(objects)
            db.commit()
    return _store
