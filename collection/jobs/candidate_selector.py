"""Pick a bounded, deduplicated set of video ids to snapshot this run"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import PipelineSettings
from core.db import SessionLocal
from core.models import TrackedChannel, VideoSnapshot
from core.pipeline import utc_now, as_utc
from collection.clients.provider import VideoMetadataProvider
from collection.fetching import fetch_bounded

logger = logging.getLogger(__name__)


@dataclass
class CandidateSelection:
    video_ids: List[str] = field(default_factory=list)
    trending: int = 0
    from_chart: int = 0
    from_channels: int = 0
    errors: int = 0


class CandidateSelector:
    def __init__(
        self,
        provider: VideoMetadataProvider,
        settings: Optional[PipelineSettings] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.provider = provider
        self.settings = settings or PipelineSettings()
        self.session_factory = session_factory

    def select(
        self,
        now: Optional[datetime] = None,
        channel_ids: Optional[List[str]] = None,
        trace_id: str = "select_candidates",
    ) -> CandidateSelection:
        """Union of trending snapshots, chart seed and tracked-channel uploads, capped"""
        now = as_utc(now or utc_now())
        cap = self.settings.max_candidates
        selection = CandidateSelection()

        with self.session_factory() as db:
            trending = self._trending_video_ids(db, now)
            if channel_ids is None:
                channel_ids = self._tracked_channel_ids(db)

        candidates: List[str] = list(trending)
        selection.trending = len(trending)

        if self.settings.chart_region and len(candidates) < cap:
            chart_ids = self._chart_video_ids(selection, trace_id)
            before = len(candidates)
            candidates = _merge(candidates, chart_ids)
            selection.from_chart = len(candidates) - before

        # Channel uploads are only worth the quota when trending left room
        if channel_ids and len(candidates) < cap:
            uploads = self._channel_video_ids(channel_ids, selection, trace_id)
            before = len(candidates)
            candidates = _merge(candidates, uploads)
            selection.from_channels = len(candidates) - before

        selection.video_ids = candidates[:cap]

        logger.info("Candidate selection completed", extra={
            "trace_id": trace_id,
            "job": "candidate_selector",
            "processed": len(selection.video_ids),
            "errors": selection.errors
        })
        return selection

    def _trending_video_ids(self, db: Session, now: datetime) -> List[str]:
        """Top-N recent snapshots by view velocity, deduplicated in velocity order"""
        since = now - timedelta(hours=self.settings.lookback_hours)
        rows = db.execute(
            select(VideoSnapshot.video_id)
            .where(VideoSnapshot.snapshot_date >= since)
            .order_by(VideoSnapshot.view_velocity.desc())
            .limit(self.settings.trending_top_n)
        ).scalars().all()
        return list(dict.fromkeys(rows))

    def _tracked_channel_ids(self, db: Session) -> List[str]:
        rows = db.execute(
            select(TrackedChannel.channel_id)
            .order_by(TrackedChannel.added_at.desc())
            .limit(self.settings.max_channels)
        ).scalars().all()
        return list(rows)

    def _chart_video_ids(self, selection: CandidateSelection, trace_id: str) -> List[str]:
        try:
            return self.provider.get_chart_video_ids(
                self.settings.chart_region, self.settings.max_candidates
            )
        except Exception as e:
            selection.errors += 1
            logger.warning(f"Chart fetch failed: {e}", extra={"trace_id": trace_id})
            return []

    def _channel_video_ids(
        self, channel_ids: List[str], selection: CandidateSelection, trace_id: str
    ) -> List[str]:
        channel_ids = list(dict.fromkeys(channel_ids))[:self.settings.max_channels]
        per_channel = self.settings.per_channel_uploads

        results, failures = fetch_bounded(
            lambda channel_id: self.provider.get_recent_uploads(channel_id, per_channel),
            channel_ids,
            self.settings.fetch_concurrency,
        )

        for channel_id, error in failures.items():
            selection.errors += 1
            logger.warning(f"Skipping channel uploads: {error}", extra={
                "trace_id": trace_id,
                "channel_id": channel_id
            })

        video_ids: List[str] = []
        for channel_id in channel_ids:
            video_ids.extend(results.get(channel_id, [])[:per_channel])
        return video_ids


def _merge(existing: List[str], extra: List[str]) -> List[str]:
    return list(dict.fromkeys([*existing, *extra]))
