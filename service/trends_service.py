"""Read-only queries over trends and content gaps"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.models import ContentGap, Trend
from service.dto import (
    NO_DATA_MESSAGE,
    ContentGapDTO,
    ContentGapListDTO,
    TrendDTO,
    TrendListDTO,
)

logger = logging.getLogger(__name__)

TREND_SORTS = ("momentum", "recent")


def list_trends(
    session: Session,
    *,
    period: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "momentum",
    limit: int = 50,
) -> TrendListDTO:
    """
    List trend rows filtered by period and category.

    Args:
        session: Database session
        period: daily/weekly/monthly, or None for all
        category: Category label, or None for all
        sort: "momentum" (highest first) or "recent" (latest day first)
        limit: Maximum rows returned

    Returns:
        TrendListDTO: Matching trends, with a "no data yet" message when empty
    """
    stmt = select(Trend)
    if period:
        stmt = stmt.where(Trend.period == period)
    if category:
        stmt = stmt.where(Trend.category == category)

    if sort == "recent":
        stmt = stmt.order_by(Trend.trend_date.desc(), Trend.last_updated.desc(), Trend.momentum.desc())
    else:
        stmt = stmt.order_by(Trend.momentum.desc(), Trend.trend_date.desc())

    rows = session.execute(stmt.limit(limit)).scalars().all()
    trends = [TrendDTO.model_validate(row) for row in rows]

    return TrendListDTO(
        trends=trends,
        total=len(trends),
        message=None if trends else NO_DATA_MESSAGE
    )


def list_gaps(
    session: Session,
    *,
    category: Optional[str] = None,
    min_score: float = 0.0,
    limit: int = 20,
) -> ContentGapListDTO:
    """
    List content gaps at or above a score threshold, best first.

    The threshold is applied here, never when gaps are stored.
    """
    stmt = select(ContentGap).where(ContentGap.gap_score >= min_score)
    if category:
        stmt = stmt.where(ContentGap.category == category)
    stmt = stmt.order_by(ContentGap.gap_score.desc(), ContentGap.keyword).limit(limit)

    rows = session.execute(stmt).scalars().all()
    gaps = [ContentGapDTO.model_validate(row) for row in rows]

    return ContentGapListDTO(
        gaps=gaps,
        total=len(gaps),
        message=None if gaps else NO_DATA_MESSAGE
    )
