import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

import numpy as np
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import PipelineSettings
from core.db import SessionLocal
from core.models import ContentGap, Trend
from core.pipeline import StageResult, new_trace_id, utc_now, as_utc, STATUS_NO_DATA, STATUS_FAILED
from collection.clients.provider import SearchResult, VideoMetadata, VideoMetadataProvider
from collection.fetching import fetch_bounded

logger = logging.getLogger(__name__)

# Competitors at or below this view count are treated as noise
MIN_COMPETITOR_VIEWS = 100

# Scoring weights. Only the sign of each term is fixed; magnitudes are tunable.
AVG_VIEWS_WEIGHT = 0.4
SEARCH_VOLUME_WEIGHT = 0.1
MOMENTUM_WEIGHT = 0.3
SUPPLY_WEIGHT = 0.15
COMPETITION_WEIGHT = 0.1
STALENESS_WEIGHT = 0.2


@dataclass
class TrendDemand:
    keyword: str
    category: Optional[str]
    avg_views: float
    momentum: float
    search_volume: int


@dataclass
class SupplyStats:
    video_count: int
    avg_video_age: float
    top_video_views: int


def summarize_supply(search: SearchResult, videos: List[VideoMetadata], now: datetime) -> Optional[SupplyStats]:
    """Competition for a keyword, or None when no real competitor was found"""
    video_count = max(len(search.video_ids), search.total_results)
    valid = [video for video in videos if video.view_count > MIN_COMPETITOR_VIEWS]
    if not valid or video_count == 0:
        return None

    now = as_utc(now)
    ages = [
        max((now - as_utc(video.published_at)).total_seconds() / 86400, 0.0)
        for video in valid
    ]
    return SupplyStats(
        video_count=video_count,
        avg_video_age=round(float(np.mean(ages)), 1),
        top_video_views=max(video.view_count for video in valid),
    )


def freshness_multiplier(avg_video_age: float) -> float:
    """Older existing coverage leaves more room for new content"""
    if avg_video_age > 365:
        return 1.5
    if avg_video_age > 180:
        return 1.2
    if avg_video_age > 90:
        return 1.0
    return 0.8


def compute_gap_score(
    avg_views: float,
    momentum: float,
    search_volume: int,
    video_count: int,
    avg_video_age: float,
    top_video_views: int,
) -> float:
    """
    Demand-vs-supply imbalance for one keyword.

    Non-decreasing in avg_views, momentum, search_volume and avg_video_age;
    non-increasing in video_count and top_video_views. Never negative.
    """
    momentum = momentum if np.isfinite(momentum) else 0.0

    demand = (
        AVG_VIEWS_WEIGHT * np.log10(1 + max(avg_views, 0.0))
        + SEARCH_VOLUME_WEIGHT * np.log10(1 + max(search_volume, 0))
        + MOMENTUM_WEIGHT * min(max(momentum, 0.0), 100.0) / 100
    )
    supply = (
        SUPPLY_WEIGHT * np.log10(1 + max(video_count, 0))
        + COMPETITION_WEIGHT * np.log10(1 + max(top_video_views, 0))
    )
    avg_video_age = max(avg_video_age, 0.0)
    staleness = STALENESS_WEIGHT * min(avg_video_age / 365, 2.0)

    raw = max(float(demand + staleness - supply), 0.0)
    return round(raw * freshness_multiplier(avg_video_age), 2)


class GapScorer:
    def __init__(
        self,
        provider: VideoMetadataProvider,
        settings: Optional[PipelineSettings] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.provider = provider
        self.settings = settings or PipelineSettings()
        self.session_factory = session_factory

    def score(self, now: Optional[datetime] = None, trace_id: Optional[str] = None) -> StageResult:
        """Score recent trends against existing supply and replace the gap set"""
        now = as_utc(now or utc_now())
        trace_id = trace_id or new_trace_id("score_gaps", now)
        result = StageResult(stage="score", trace_id=trace_id)

        logger.info("Starting gap scoring", extra={
            "trace_id": trace_id,
            "job": "gap_scorer"
        })

        with self.session_factory() as db:
            demands = self._latest_trends(db, now)

        if not demands:
            result.status = STATUS_NO_DATA
            result.message = "no data yet"
            logger.warning("No trends available, run aggregation first", extra={"trace_id": trace_id})
            return result

        fetched, failures = fetch_bounded(
            self._fetch_supply,
            [demand.keyword for demand in demands],
            self.settings.fetch_concurrency,
        )
        result.processed = len(demands)

        for keyword, error in failures.items():
            result.errors += 1
            logger.warning(f"Skipping supply lookup: {error}", extra={
                "trace_id": trace_id,
                "keyword": keyword
            })

        gaps = []
        for demand in demands:
            if demand.keyword not in fetched:
                continue
            stats = summarize_supply(*fetched[demand.keyword], now)
            if stats is None:
                continue
            gaps.append(ContentGap(
                keyword=demand.keyword,
                category=demand.category,
                gap_score=compute_gap_score(
                    demand.avg_views,
                    demand.momentum,
                    demand.search_volume,
                    stats.video_count,
                    stats.avg_video_age,
                    stats.top_video_views,
                ),
                search_volume=demand.search_volume,
                video_count=stats.video_count,
                avg_video_age=stats.avg_video_age,
                top_video_views=stats.top_video_views,
                trend_score=demand.momentum,
                avg_views=demand.avg_views,
                created_at=now
            ))

        if not gaps and failures:
            result.status = STATUS_FAILED
            result.message = "every supply lookup failed; previous gaps kept"
            logger.error("Gap scoring produced nothing", extra={
                "trace_id": trace_id,
                "errors": result.errors
            })
            return result

        if not self._replace_gaps(gaps, trace_id):
            result.errors += 1
            result.status = STATUS_FAILED
            return result

        result.created = len(gaps)
        if not gaps:
            result.status = STATUS_NO_DATA
            result.message = "no data yet"

        logger.info("Gap scoring completed", extra={
            "trace_id": trace_id,
            "job": "gap_scorer",
            "processed": result.processed,
            "rows_created": result.created,
            "errors": result.errors
        })
        return result

    def _latest_trends(self, db: Session, now: datetime) -> List[TrendDemand]:
        """Most recent daily row per keyword within the lookback, by momentum"""
        since = now.date() - timedelta(days=self.settings.trend_lookback_days - 1)
        trends = db.execute(
            select(Trend)
            .where(Trend.period == "daily", Trend.trend_date >= since)
            .order_by(Trend.trend_date.desc(), Trend.momentum.desc())
        ).scalars().all()

        latest = {}
        for trend in trends:
            latest.setdefault(trend.keyword, TrendDemand(
                keyword=trend.keyword,
                category=trend.category,
                avg_views=float(trend.avg_views or 0.0),
                momentum=float(trend.momentum or 0.0),
                search_volume=int(trend.search_volume or 0),
            ))

        ranked = sorted(latest.values(), key=lambda demand: demand.momentum, reverse=True)
        return ranked[:self.settings.max_keywords]

    def _fetch_supply(self, keyword: str) -> Tuple[SearchResult, List[VideoMetadata]]:
        search = self.provider.search_videos(keyword, self.settings.supply_results)
        sample = search.video_ids[:self.settings.supply_sample]
        videos = self.provider.get_videos(sample) if sample else []
        return search, videos

    def _replace_gaps(self, gaps: List[ContentGap], trace_id: str) -> bool:
        """Swap the whole gap set in one transaction"""
        with self.session_factory() as db:
            try:
                db.execute(delete(ContentGap))
                db.add_all(gaps)
                db.commit()
                return True
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to replace content gaps: {e}", extra={"trace_id": trace_id})
                return False
