"""Pipeline tunables, read from PIPELINE_* environment variables"""
from typing import Optional
from pydantic_settings import BaseSettings


class PipelineSettings(BaseSettings):
    """Per-run caps and windows for every pipeline stage"""

    # Candidate selection
    trending_top_n: int = 100
    lookback_hours: int = 24
    max_channels: int = 10
    per_channel_uploads: int = 3
    max_candidates: int = 50
    chart_region: Optional[str] = None

    # External fetches
    fetch_concurrency: int = 5

    # Trend aggregation
    window_hours: int = 24
    prior_days: int = 6
    min_videos: int = 3

    # Gap scoring
    trend_lookback_days: int = 7
    max_keywords: int = 50
    supply_results: int = 50
    supply_sample: int = 20

    class Config:
        env_file = ".env"
        env_prefix = "PIPELINE_"
        extra = "ignore"
