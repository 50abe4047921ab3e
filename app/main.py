import logging
import time
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic_settings import BaseSettings

from app.api.trends import router as trends_router
from app.api.gaps import router as gaps_router
from app.api.health import router as health_router
from core.logging import setup_json_logging
from service.health_service import VERSION


class ApiSettings(BaseSettings):
    """Comma-separated browser origins allowed to read trends and gaps"""
    cors_origins: str = "http://localhost:3000"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


setup_json_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Trend Gap API", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ApiSettings().origin_list,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_request_latency(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} {response.status_code}", extra={
        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        "status": response.status_code
    })
    return response


app.include_router(health_router)  # Health at root level
app.include_router(trends_router, prefix="/api/v1")
app.include_router(gaps_router, prefix="/api/v1")
