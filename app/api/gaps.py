import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.deps.common import get_db_session, get_trace_id
from service.dto import ContentGapListDTO
from service.trends_service import list_gaps

logger = logging.getLogger(__name__)
router = APIRouter(tags=["gaps"])


@router.get("/gaps", response_model=ContentGapListDTO)
def get_gaps(
    category: Optional[str] = Query(None),
    min_score: float = Query(0.0, ge=0.0),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_db_session),
    trace_id: str = Depends(get_trace_id)
) -> ContentGapListDTO:
    """List content gaps sorted by score, highest first"""
    try:
        return list_gaps(session, category=category, min_score=min_score, limit=limit)

    except SQLAlchemyError as e:
        logger.error("Gap query failed", extra={
            "trace_id": trace_id,
            "error_type": type(e).__name__
        })
        raise HTTPException(
            status_code=503,
            detail={"error": {"code": "DEPENDENCY_UNAVAILABLE", "message": "Gap store unavailable", "trace_id": trace_id}}
        )
