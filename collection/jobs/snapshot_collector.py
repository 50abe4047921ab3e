import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import PipelineSettings
from core.db import SessionLocal
from core.errors import PersistenceFailure
from core.models import VideoSnapshot
from core.pipeline import StageResult, new_trace_id, utc_now, as_utc, STATUS_NO_DATA
from collection.clients.provider import VideoMetadata, VideoMetadataProvider
from collection.fetching import fetch_bounded

logger = logging.getLogger(__name__)


def compute_snapshot_metrics(
    view_count: int,
    like_count: int,
    comment_count: int,
    published_at: datetime,
    now: datetime,
) -> Tuple[float, float]:
    """
    Return (view_velocity, engagement_rate) for one capture.

    Hours since publish are floored at 1 so videos younger than an hour
    do not blow up the velocity.
    """
    view_count = max(view_count, 0)
    like_count = max(like_count, 0)
    comment_count = max(comment_count, 0)

    hours_since_publish = max(1.0, (as_utc(now) - as_utc(published_at)).total_seconds() / 3600)
    view_velocity = view_count / hours_since_publish

    if view_count > 0:
        engagement_rate = (like_count + comment_count) / view_count * 100
    else:
        engagement_rate = 0.0

    return view_velocity, engagement_rate


class SnapshotCollector:
    def __init__(
        self,
        provider: VideoMetadataProvider,
        settings: Optional[PipelineSettings] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.provider = provider
        self.settings = settings or PipelineSettings()
        self.session_factory = session_factory

    def collect(
        self,
        video_ids: List[str],
        now: Optional[datetime] = None,
        dry_run: bool = False,
        trace_id: Optional[str] = None,
    ) -> StageResult:
        """Fetch every candidate and append one snapshot row per video"""
        now = as_utc(now or utc_now())
        trace_id = trace_id or new_trace_id("collect_snapshots", now)
        result = StageResult(stage="collect", trace_id=trace_id)

        logger.info("Starting snapshot collection", extra={
            "trace_id": trace_id,
            "job": "snapshot_collector",
            "processed": len(video_ids)
        })

        if not video_ids:
            result.status = STATUS_NO_DATA
            result.message = "no candidates to collect"
            logger.warning("No candidates to collect", extra={"trace_id": trace_id})
            return result

        fetched, failures = fetch_bounded(
            self.provider.get_video, video_ids, self.settings.fetch_concurrency
        )
        result.processed = len(fetched) + len(failures)

        for video_id, error in failures.items():
            result.errors += 1
            logger.warning(f"Skipping video: {error}", extra={
                "trace_id": trace_id,
                "video_id": video_id
            })

        if dry_run:
            logger.info("Dry run mode - no database changes", extra={
                "trace_id": trace_id,
                "processed": result.processed,
                "errors": result.errors
            })
            return result

        with self.session_factory() as db:
            for video in fetched.values():
                try:
                    self._insert_snapshot(db, video, now)
                    result.created += 1
                except PersistenceFailure as e:
                    result.errors += 1
                    logger.error(e.message, extra={
                        "trace_id": trace_id,
                        "video_id": video.video_id
                    })

        logger.info("Snapshot collection completed", extra={
            "trace_id": trace_id,
            "job": "snapshot_collector",
            "processed": result.processed,
            "rows_created": result.created,
            "errors": result.errors
        })
        return result

    def _insert_snapshot(self, db: Session, video: VideoMetadata, now: datetime) -> None:
        """Append one snapshot in its own transaction; never updates existing rows"""
        view_velocity, engagement_rate = compute_snapshot_metrics(
            video.view_count, video.like_count, video.comment_count, video.published_at, now
        )
        try:
            db.add(VideoSnapshot(
                video_id=video.video_id,
                channel_id=video.channel_id or None,
                view_count=max(video.view_count, 0),
                like_count=max(video.like_count, 0),
                comment_count=max(video.comment_count, 0),
                title=video.title,
                tags=list(video.tags),
                published_at=video.published_at,
                snapshot_date=now,
                view_velocity=view_velocity,
                engagement_rate=engagement_rate
            ))
            db.commit()

        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"Failed to insert snapshot for {video.video_id}: {e}") from e
