import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.deps.common import get_db_session, get_trace_id
from core.models import PERIODS
from service.dto import TrendListDTO
from service.trends_service import TREND_SORTS, list_trends

logger = logging.getLogger(__name__)
router = APIRouter(tags=["trends"])


@router.get("/trends", response_model=TrendListDTO)
def get_trends(
    period: Optional[str] = Query(None, description="daily, weekly or monthly"),
    category: Optional[str] = Query(None),
    sort: str = Query("momentum", description="momentum or recent"),
    limit: int = Query(50, ge=1, le=200),
    session: Session = Depends(get_db_session),
    trace_id: str = Depends(get_trace_id)
) -> TrendListDTO:
    """List keyword trends, filterable by period and category"""
    if period is not None and period not in PERIODS:
        raise HTTPException(
            status_code=422,
            detail={"error": {"code": "INVALID_PERIOD", "message": f"period must be one of {PERIODS}", "trace_id": trace_id}}
        )
    if sort not in TREND_SORTS:
        raise HTTPException(
            status_code=422,
            detail={"error": {"code": "INVALID_SORT", "message": f"sort must be one of {TREND_SORTS}", "trace_id": trace_id}}
        )

    try:
        return list_trends(session, period=period, category=category, sort=sort, limit=limit)

    except SQLAlchemyError as e:
        logger.error("Trend query failed", extra={
            "trace_id": trace_id,
            "error_type": type(e).__name__
        })
        raise HTTPException(
            status_code=503,
            detail={"error": {"code": "DEPENDENCY_UNAVAILABLE", "message": "Trend store unavailable", "trace_id": trace_id}}
        )
