from sqlalchemy import Column, String, Text, BIGINT, Float, Date, TIMESTAMP, Index, UniqueConstraint
from sqlalchemy.sql import func
from core.db import Base
from core.models.types import BigIntPK

PERIODS = ("daily", "weekly", "monthly")

class Trend(Base):
    """Per-day aggregate of a keyword's popularity, one row per (keyword, period, day)"""
    __tablename__ = "trends"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    keyword = Column(Text, nullable=False)
    category = Column(String, nullable=True, comment="tech/gaming/entertainment/education or NULL")
    period = Column(String, nullable=False, default="daily")
    trend_date = Column(Date, nullable=False, comment="Calendar day (UTC) the row belongs to")
    window_start = Column(TIMESTAMP(timezone=True), nullable=False)
    window_end = Column(TIMESTAMP(timezone=True), nullable=False)
    video_count = Column(BIGINT, nullable=False, default=0)
    avg_views = Column(Float, nullable=False, default=0.0)
    avg_engagement = Column(Float, nullable=False, default=0.0)
    momentum = Column(Float, nullable=False, default=0.0, comment="Percent change vs prior band")
    search_volume = Column(BIGINT, nullable=False, default=0, comment="Proxy: video_count * 100")
    last_updated = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint("keyword", "period", "trend_date", name="uq_trends_keyword_period_day"),
        Index("idx_trends_period_category", "period", "category"),
        Index("idx_trends_date_momentum", "trend_date", "momentum"),
    )
