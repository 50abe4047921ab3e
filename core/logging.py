"""JSON-lines logging for the pipeline jobs and the API"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic_settings import BaseSettings

# Copied from `extra=` onto the top level of each line
CONTEXT_FIELDS = (
    "trace_id", "job", "stage", "latency_ms",
    "video_id", "channel_id", "keyword",
    "processed", "rows_created", "rows_updated", "errors", "status",
)


class LoggingSettings(BaseSettings):
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with stage context lifted out of `extra=`"""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        })

        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)

        return json.dumps(line, ensure_ascii=False, default=str)


def setup_json_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Send all logging to stderr as JSON lines.

    stdout is reserved for the job summaries printed by the CLI. The level
    defaults to LOG_LEVEL from the environment.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level or LoggingSettings().log_level.upper())

    # httpx logs full request URLs, which include the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("JSON logging initialized", extra={"trace_id": "system_init"})
