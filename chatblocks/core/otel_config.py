"""Unified logging & OpenTelemetry setup.

Provides:
- Structured JSON logging with optional trace/span identifiers
- Environment or config-derived log level
- Standard file output (project_root/logs/app.jsonl) with APP_LOG_DIR override
- FastAPI & HTTPX instrumentation hooks
- A module tracer used to wrap model calls in spans
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        span = trace.get_current_span()
        trace_id = span_id = None
        if span and span.is_recording():
            sc = span.get_span_context()
            if sc.is_valid:
                trace_id = f"{sc.trace_id:032x}"
                span_id = f"{sc.span_id:016x}"

        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process_id": os.getpid(),
            "thread_name": record.threadName,
        }
        if trace_id:
            entry["trace_id"] = trace_id
        if span_id:
            entry["span_id"] = span_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        excluded = {
            "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module", "lineno",
            "funcName", "created", "msecs", "relativeCreated", "thread", "threadName", "processName",
            "process", "exc_info", "exc_text", "stack_info", "getMessage", "taskName",
        }
        for k, v in record.__dict__.items():
            if k not in excluded:
                entry[f"extra_{k}"] = v
        return json.dumps(entry, default=str)


class OpenTelemetryConfig:
    """Configure OpenTelemetry + structured logging."""

    def __init__(self, service_name: str = "chatblocks-backend", service_version: str = "1.0.0") -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.is_development = self._is_development()
        self.log_level = self._get_log_level()
        if os.getenv("APP_LOG_DIR"):
            self.logs_dir = Path(os.getenv("APP_LOG_DIR"))
        else:
            # chatblocks/core/otel_config.py -> project root is 2 levels up
            project_root = Path(__file__).resolve().parents[2]
            self.logs_dir = project_root / "logs"
        self.log_file = self.logs_dir / "app.jsonl"
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self._setup_telemetry()
        self._setup_logging()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _is_development(self) -> bool:
        return (
            os.getenv("DEBUG_MODE", "false").lower() == "true"
            or os.getenv("ENVIRONMENT", "production").lower() in {"dev", "development"}
        )

    def _get_log_level(self) -> int:
        from chatblocks.modules.config.config_manager import config_manager  # local import to avoid circular

        level_name = str(getattr(config_manager.app_settings, "log_level", "INFO")).upper()
        level = getattr(logging, level_name, None)
        return level if isinstance(level, int) else logging.INFO

    def _setup_telemetry(self) -> None:
        resource = Resource.create(
            {
                SERVICE_NAME: self.service_name,
                SERVICE_VERSION: self.service_version,
                "environment": "development" if self.is_development else "production",
            }
        )
        trace.set_tracer_provider(TracerProvider(resource=resource))

    def _setup_logging(self) -> None:
        root = logging.getLogger()
        for h in root.handlers[:]:
            root.removeHandler(h)

        file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(self.log_level)
        root.addHandler(file_handler)
        root.setLevel(self.log_level)

        if self.is_development:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
            console.setLevel(logging.WARNING)
            root.addHandler(console)

        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("LiteLLM").setLevel(logging.WARNING)

        LoggingInstrumentor().instrument(set_logging_format=False)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def instrument_fastapi(self, app) -> None:  # noqa: ANN001
        FastAPIInstrumentor.instrument_app(app)

    def instrument_httpx(self) -> None:
        HTTPXClientInstrumentor().instrument()


# Global instance
otel_config: Optional[OpenTelemetryConfig] = None


def setup_opentelemetry(service_name: str = "chatblocks-backend", service_version: str = "1.0.0") -> OpenTelemetryConfig:
    global otel_config
    otel_config = OpenTelemetryConfig(service_name, service_version)
    return otel_config


def get_tracer(name: str) -> trace.Tracer:
    """Tracer from the active provider (no-op until setup_opentelemetry runs)."""
    return trace.get_tracer(name)
