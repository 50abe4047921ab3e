"""Data Transfer Objects for service layer"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

NO_DATA_MESSAGE = "no data yet"


class TrendDTO(BaseModel):
    """Read-only projection of a Trend row"""
    model_config = ConfigDict(from_attributes=True)

    keyword: str
    category: Optional[str] = None
    period: str
    trend_date: date
    window_start: datetime
    window_end: datetime
    video_count: int
    avg_views: float
    avg_engagement: float
    momentum: float
    search_volume: int
    last_updated: datetime


class TrendListDTO(BaseModel):
    trends: List[TrendDTO] = Field(default_factory=list)
    total: int = 0
    message: Optional[str] = None


class ContentGapDTO(BaseModel):
    """Read-only projection of a ContentGap row"""
    model_config = ConfigDict(from_attributes=True)

    keyword: str
    category: Optional[str] = None
    gap_score: float
    search_volume: int
    video_count: int
    avg_video_age: float
    top_video_views: int
    trend_score: float
    avg_views: float


class ContentGapListDTO(BaseModel):
    gaps: List[ContentGapDTO] = Field(default_factory=list)
    total: int = 0
    message: Optional[str] = None


class HealthResponseDTO(BaseModel):
    """Service layer DTO for health check responses"""
    ok: bool = True
    timestamp: Optional[str] = None
    version: Optional[str] = None
