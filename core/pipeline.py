"""Stage result bookkeeping shared by collect/aggregate/score"""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel

STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"
STATUS_FAILED = "failed"


class StageResult(BaseModel):
    """Summary returned by every stage invocation"""
    stage: str
    trace_id: str
    status: Literal["ok", "no_data", "failed"] = STATUS_OK
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    message: Optional[str] = None


def new_trace_id(job: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{job}_{now.strftime('%Y%m%d_%H%M%S')}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
