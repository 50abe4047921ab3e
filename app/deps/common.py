"""Request-scoped dependencies for the read-only endpoints"""
import uuid
from typing import Generator

from sqlalchemy.orm import Session

from core.db import SessionLocal
from core.pipeline import new_trace_id


def get_db_session() -> Generator[Session, None, None]:
    """One session per request, closed when the response is sent"""
    with SessionLocal() as session:
        yield session


def get_trace_id() -> str:
    """
    Trace id echoed in error bodies and log lines.

    Returns:
        str: e.g. api_20250615_120000_1a2b3c4d
    """
    return f"{new_trace_id('api')}_{uuid.uuid4().hex[:8]}"
