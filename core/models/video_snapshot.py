from sqlalchemy import Column, String, Text, BIGINT, Float, TIMESTAMP, Index
from sqlalchemy.sql import func
from core.db import Base
from core.models.types import BigIntPK, JsonList

class VideoSnapshot(Base):
    """Append-only capture of a video's public metrics at one point in time"""
    __tablename__ = "video_snapshots"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    video_id = Column(String, nullable=False, comment="YouTube video ID")
    channel_id = Column(String, comment="YouTube channel ID")
    view_count = Column(BIGINT, nullable=False, default=0, comment="View count at capture time")
    like_count = Column(BIGINT, nullable=False, default=0, comment="Like count at capture time")
    comment_count = Column(BIGINT, nullable=False, default=0, comment="Comment count at capture time")
    title = Column(Text, nullable=False, default="", comment="Video title at capture time")
    tags = Column(JsonList, nullable=False, default=list, comment="Video tags as JSON array")
    published_at = Column(TIMESTAMP(timezone=True), nullable=False, comment="Video publication time (UTC)")
    snapshot_date = Column(TIMESTAMP(timezone=True), nullable=False,
                           default=func.now(), comment="Snapshot capture time (UTC)")
    view_velocity = Column(Float, nullable=False, default=0.0, comment="Views per hour since publish")
    engagement_rate = Column(Float, nullable=False, default=0.0, comment="(likes + comments) / views * 100")

    __table_args__ = (
        Index("idx_video_snapshots_video_date", "video_id", "snapshot_date"),
        Index("idx_video_snapshots_date_velocity", "snapshot_date", "view_velocity"),
    )
