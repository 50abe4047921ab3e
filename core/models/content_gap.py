from sqlalchemy import Column, String, Text, BIGINT, Float, TIMESTAMP, Index
from sqlalchemy.sql import func
from core.db import Base
from core.models.types import BigIntPK

class ContentGap(Base):
    """Demand-vs-supply ranking for a keyword, regenerated wholesale each scoring run"""
    __tablename__ = "content_gaps"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    keyword = Column(Text, nullable=False, unique=True)
    category = Column(String, nullable=True)
    gap_score = Column(Float, nullable=False)
    search_volume = Column(BIGINT, nullable=False, default=0)
    video_count = Column(BIGINT, nullable=False, default=0, comment="Existing competing videos")
    avg_video_age = Column(Float, nullable=False, default=0.0, comment="Days since publish, averaged")
    top_video_views = Column(BIGINT, nullable=False, default=0)
    trend_score = Column(Float, nullable=False, default=0.0, comment="Momentum carried from Trend")
    avg_views = Column(Float, nullable=False, default=0.0, comment="Demand carried from Trend")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index("idx_content_gaps_category_score", "category", "gap_score"),
    )
