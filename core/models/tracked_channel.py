from sqlalchemy import Column, String, TIMESTAMP
from sqlalchemy.sql import func
from core.db import Base

class TrackedChannel(Base):
    """Channels followed by users; maintained by the social layer, read here"""
    __tablename__ = "tracked_channels"

    channel_id = Column(String, primary_key=True, comment="YouTube channel ID")
    added_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())
