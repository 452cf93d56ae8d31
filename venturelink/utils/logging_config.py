"""
Logging setup.

Development gets a one-line human-readable format; every other environment
gets one JSON object per line. Each request carries an id (also returned in
the X-Request-ID header) that is stamped on every log line emitted while the
request is being served.
"""
import json
import logging
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import datetime
from typing import Optional
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from venturelink.core.config import get_settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")


class StructuredFormatter(logging.Formatter):
    """JSON-formatted log formatter."""

    def __init__(self, include_stack: bool = False):
        super().__init__()
        self.include_stack = include_stack
        self.environment = get_settings().environment

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "venturelink",
            "environment": self.environment,
        }

        request_id = request_id_var.get()
        if request_id:
            log_entry["request_id"] = request_id
        user_id = user_id_var.get()
        if user_id:
            log_entry["user_id"] = user_id

        log_entry["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            exc_type, exc_value = record.exc_info[0], record.exc_info[1]
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
            }
            if self.include_stack:
                log_entry["exception"]["stack_trace"] = traceback.format_exception(*record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs start and end of every request with its duration."""

    def __init__(self, app, logger_name: str = "venturelink.api"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request_id_var.set(request_id)
        user_id_var.set("")

        start_time = time.perf_counter()
        self.logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={"extra_fields": {
                "event": "request_started",
                "method": request.method,
                "path": request.url.path,
                "query_params": str(request.query_params),
                "client_ip": request.client.host if request.client else None,
            }},
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.logger.error(
                f"Request failed: {request.method} {request.url.path} - {e}",
                extra={"extra_fields": {
                    "event": "request_failed",
                    "path": request.url.path,
                    "duration_ms": round(duration_ms, 2),
                }},
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        self.logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={"extra_fields": {
                "event": "request_completed",
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }},
        )
        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """
    Configure the root logger from settings.

    Args:
        level: Overrides settings.log_level
        json_format: Overrides settings.log_json; JSON is also used whenever
            the environment is not "development"
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_format is None:
        json_format = settings.log_json or settings.environment != "development"
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(StructuredFormatter(include_stack=settings.debug))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root_logger.addHandler(handler)

    # Quiet chatty libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    logging.info(f"Logging configured: level={level}, json_format={json_format}")
