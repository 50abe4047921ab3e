import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import PipelineSettings
from core.db import SessionLocal
from core.models import Trend, VideoSnapshot
from core.pipeline import StageResult, new_trace_id, utc_now, as_utc, STATUS_NO_DATA
from analysis.categories import categorize
from analysis.keywords import extract_keywords, tag_keywords

logger = logging.getLogger(__name__)

PERIOD_DAILY = "daily"
SEARCH_VOLUME_PER_VIDEO = 100
KEYWORD_COLUMNS = ["keyword", "video_id", "view_count", "engagement_rate"]
SUMMARY_COLUMNS = ["keyword", "video_count", "total_views", "avg_views", "avg_engagement"]


@dataclass
class TrendRow:
    keyword: str
    category: Optional[str]
    video_count: int
    avg_views: float
    avg_engagement: float
    momentum: float

    @property
    def search_volume(self) -> int:
        return self.video_count * SEARCH_VOLUME_PER_VIDEO


def latest_per_video(snapshots: Iterable[VideoSnapshot]) -> List[VideoSnapshot]:
    """Keep the most recent snapshot of each video"""
    latest: Dict[str, VideoSnapshot] = {}
    for snapshot in snapshots:
        current = latest.get(snapshot.video_id)
        if current is None or snapshot.snapshot_date > current.snapshot_date:
            latest[snapshot.video_id] = snapshot
    return list(latest.values())


def explode_keywords(snapshots: Iterable[VideoSnapshot]) -> pd.DataFrame:
    """One row per (keyword, snapshot); a keyword counts once per snapshot"""
    rows = []
    for snapshot in snapshots:
        for keyword in extract_keywords(snapshot.title, snapshot.tags):
            rows.append({
                "keyword": keyword,
                "video_id": snapshot.video_id,
                "view_count": int(snapshot.view_count or 0),
                "engagement_rate": float(snapshot.engagement_rate or 0.0),
            })
    return pd.DataFrame(rows, columns=KEYWORD_COLUMNS)


def summarize_keywords(frame: pd.DataFrame, min_videos: int) -> pd.DataFrame:
    """Per-keyword video count, views and engagement; drops thin keywords"""
    if frame.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    grouped = frame.groupby("keyword").agg(
        video_count=("video_id", "nunique"),
        total_views=("view_count", "sum"),
        avg_engagement=("engagement_rate", "mean"),
    )
    grouped = grouped[grouped["video_count"] >= min_videos].copy()
    grouped["avg_views"] = grouped["total_views"] / grouped["video_count"]
    return grouped.reset_index()[SUMMARY_COLUMNS]


def previous_average_views(prior: Sequence[VideoSnapshot], keywords: Iterable[str]) -> Dict[str, float]:
    """
    Mean view count per keyword over the comparison band.

    A prior snapshot matches when its title contains the keyword
    (case-insensitive substring, so "drones" and "drone," both count) or
    when one of its normalized tags equals the keyword.
    """
    if not prior:
        return {}

    frame = pd.DataFrame({
        "title": [(snapshot.title or "").lower() for snapshot in prior],
        "tags": [tag_keywords(snapshot.tags) for snapshot in prior],
        "view_count": [int(snapshot.view_count or 0) for snapshot in prior],
    })

    averages = {}
    for keyword in keywords:
        matched = frame["title"].str.contains(keyword, regex=False) | frame["tags"].map(lambda tags: keyword in tags)
        if matched.any():
            averages[keyword] = float(frame.loc[matched, "view_count"].mean())
    return averages


def compute_momentum(avg_views: float, previous_avg_views: Optional[float]) -> float:
    """Percent change versus the prior band; 0 when there is nothing to compare"""
    if previous_avg_views is None or not np.isfinite(previous_avg_views) or previous_avg_views <= 0:
        return 0.0
    momentum = (avg_views - previous_avg_views) / previous_avg_views * 100
    return float(momentum) if np.isfinite(momentum) else 0.0


def is_excluded(momentum: float, avg_engagement: float) -> bool:
    """Only a steep decline with weak engagement drops a keyword"""
    return momentum < -50 and avg_engagement < 1


def build_trend_rows(
    current: Sequence[VideoSnapshot],
    prior: Sequence[VideoSnapshot],
    min_videos: int = 3,
) -> List[TrendRow]:
    """Aggregate the current window into trend rows entirely in memory"""
    current = latest_per_video(current)
    summary = summarize_keywords(explode_keywords(current), min_videos)
    if summary.empty:
        return []

    previous = previous_average_views(prior, summary["keyword"])

    texts: Dict[str, Dict[str, List[str]]] = defaultdict(lambda: {"titles": [], "tags": []})
    wanted = set(summary["keyword"])
    for snapshot in current:
        for keyword in extract_keywords(snapshot.title, snapshot.tags) & wanted:
            texts[keyword]["titles"].append(snapshot.title or "")
            texts[keyword]["tags"].extend(snapshot.tags or [])

    rows = []
    for record in summary.itertuples(index=False):
        avg_views = float(record.avg_views)
        avg_engagement = float(record.avg_engagement)
        momentum = compute_momentum(avg_views, previous.get(record.keyword))

        if is_excluded(momentum, avg_engagement):
            continue

        rows.append(TrendRow(
            keyword=record.keyword,
            category=categorize(record.keyword, texts[record.keyword]["titles"], texts[record.keyword]["tags"]),
            video_count=int(record.video_count),
            avg_views=avg_views,
            avg_engagement=avg_engagement,
            momentum=momentum,
        ))

    return sorted(rows, key=lambda row: row.keyword)


class TrendAggregator:
    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.settings = settings or PipelineSettings()
        self.session_factory = session_factory

    def aggregate(self, now: Optional[datetime] = None, trace_id: Optional[str] = None) -> StageResult:
        """Compute daily keyword trends for the trailing window and upsert them"""
        now = as_utc(now or utc_now())
        trace_id = trace_id or new_trace_id("aggregate_trends", now)
        result = StageResult(stage="aggregate", trace_id=trace_id)

        window_start = now - timedelta(hours=self.settings.window_hours)
        prior_start = window_start - timedelta(days=self.settings.prior_days)

        logger.info("Starting trend aggregation", extra={
            "trace_id": trace_id,
            "job": "trend_aggregator"
        })

        with self.session_factory() as db:
            current = self._fetch_snapshots(db, window_start, now, inclusive_end=True)
            if not current:
                result.status = STATUS_NO_DATA
                result.message = "no data yet"
                logger.warning("No snapshots in window", extra={"trace_id": trace_id})
                return result

            prior = self._fetch_snapshots(db, prior_start, window_start, inclusive_end=False)
            rows = build_trend_rows(current, prior, self.settings.min_videos)
            result.processed = len(rows)

            if not rows:
                result.status = STATUS_NO_DATA
                result.message = "no data yet"
                logger.info("No keyword met the minimum video threshold", extra={"trace_id": trace_id})
                return result

            # Every keyword is computed before the first write, one upsert per key.
            trend_date = now.date()
            for row in rows:
                outcome = self._upsert_trend(db, row, trend_date, window_start, now, trace_id)
                if outcome == "created":
                    result.created += 1
                elif outcome == "updated":
                    result.updated += 1
                else:
                    result.errors += 1

        logger.info("Trend aggregation completed", extra={
            "trace_id": trace_id,
            "job": "trend_aggregator",
            "processed": result.processed,
            "rows_created": result.created,
            "rows_updated": result.updated,
            "errors": result.errors
        })
        return result

    def _fetch_snapshots(
        self, db: Session, start: datetime, end: datetime, inclusive_end: bool
    ) -> List[VideoSnapshot]:
        end_clause = VideoSnapshot.snapshot_date <= end if inclusive_end else VideoSnapshot.snapshot_date < end
        return list(db.execute(
            select(VideoSnapshot)
            .where(VideoSnapshot.snapshot_date >= start, end_clause)
            .order_by(VideoSnapshot.snapshot_date)
        ).scalars().all())

    def _upsert_trend(
        self,
        db: Session,
        row: TrendRow,
        trend_date: date,
        window_start: datetime,
        window_end: datetime,
        trace_id: str,
    ) -> Optional[str]:
        """Read by (keyword, period, day), then update or insert; retried once on a key race"""
        for _ in range(2):
            try:
                existing = db.execute(
                    select(Trend).where(
                        Trend.keyword == row.keyword,
                        Trend.period == PERIOD_DAILY,
                        Trend.trend_date == trend_date,
                    )
                ).scalar_one_or_none()

                if existing is None:
                    db.add(Trend(
                        keyword=row.keyword,
                        category=row.category,
                        period=PERIOD_DAILY,
                        trend_date=trend_date,
                        window_start=window_start,
                        window_end=window_end,
                        video_count=row.video_count,
                        avg_views=row.avg_views,
                        avg_engagement=row.avg_engagement,
                        momentum=row.momentum,
                        search_volume=row.search_volume,
                        last_updated=window_end
                    ))
                    db.commit()
                    return "created"

                existing.video_count = row.video_count
                existing.avg_views = row.avg_views
                existing.avg_engagement = row.avg_engagement
                existing.momentum = row.momentum
                existing.search_volume = row.search_volume
                existing.window_end = window_end
                existing.last_updated = window_end
                db.commit()
                return "updated"

            except IntegrityError:
                # Another writer inserted the same key first; retry as an update
                db.rollback()
                continue
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to upsert trend: {e}", extra={
                    "trace_id": trace_id,
                    "keyword": row.keyword
                })
                return None

        logger.error("Trend upsert kept conflicting", extra={
            "trace_id": trace_id,
            "keyword": row.keyword
        })
        return None
