from __future__ import annotations

import contextvars
import json
import logging
import logging.config
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple

import yaml
from prometheus_client import REGISTRY, Counter

from .core.config import Settings

_UNSET = "-"
_REQUEST_ID: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default=_UNSET)
_THREAD_ID: contextvars.ContextVar[str] = contextvars.ContextVar("thread_id", default=_UNSET)

DEFAULT_LOG_CONFIG = Path(__file__).with_name("logging.yaml")
APP_LOGGER = "inventory_agent"
LOG_FILE_NAME = "inventory_agent.log"


def _error_counter() -> Counter:
    # create_app() may run more than once per process (tests, reloads)
    existing = getattr(REGISTRY, "_names_to_collectors", {}).get("log_errors_total")
    if existing is not None:
        return existing  # type: ignore[return-value]
    return Counter(
        "log_errors_total",
        "Log records emitted at ERROR or above",
        ["logger", "level"],
    )


LOG_ERROR_COUNTER = _error_counter()


def bind_request_context(request_id: Optional[str] = None) -> None:
    if request_id:
        _REQUEST_ID.set(request_id)


def bind_thread_context(thread_id: Optional[str]) -> Optional[contextvars.Token]:
    if thread_id:
        return _THREAD_ID.set(thread_id)
    return None


def reset_thread_context(token: Optional[contextvars.Token]) -> None:
    if token is not None:
        _THREAD_ID.reset(token)


def clear_context() -> None:
    for var in (_REQUEST_ID, _THREAD_ID):
        var.set(_UNSET)


def current_context() -> Dict[str, str]:
    return {"request_id": _REQUEST_ID.get(), "thread_id": _THREAD_ID.get()}


class ContextFilter(logging.Filter):
    """Copy the request and thread ids onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in current_context().items():
            setattr(record, key, value)
        return True


class PIIRedactingFilter(logging.Filter):
    """Mask credentials and email addresses in messages and their arguments.

    Customer messages are logged verbatim in places, so anything that looks
    like a secret or a contact address is replaced before formatting.
    """

    REPLACEMENT = "[REDACTED]"
    PATTERNS: Tuple[Pattern[str], ...] = (
        re.compile(r"sk-[a-zA-Z0-9_\-]{10,}", re.IGNORECASE),
        re.compile(r"bearer [a-z0-9\._\-]{10,}", re.IGNORECASE),
        re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    )

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self.redact(arg) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = self.redact(record.args)
        return True

    @classmethod
    def redact(cls, value: Any) -> Any:
        if isinstance(value, str):
            for pattern in cls.PATTERNS:
                value = pattern.sub(cls.REPLACEMENT, value)
            return value
        if isinstance(value, dict):
            return {key: cls.redact(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(cls.redact(item) for item in value)
        return value


class PrometheusErrorHandler(logging.Handler):
    """Count ERROR+ records per logger; emits nothing itself."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            LOG_ERROR_COUNTER.labels(logger=record.name, level=record.levelname).inc()
        except Exception:  # pragma: no cover - logging must never raise
            self.handleError(record)


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        return serialize_log_record(record)


def _select_handlers(config: Dict[str, Any], settings: Settings) -> List[str]:
    """Decide which declared handlers the application logger writes to.

    Development logs human-readable lines to the console. Other environments
    log JSON to stdout and, when enabled, to a rotating file under ``log_dir``.
    """
    handlers: Dict[str, Any] = config.setdefault("handlers", {})
    development = settings.environment.lower() == "development"

    stream = "console" if development or not settings.enable_json_logs else "json"
    selected = [stream, "error_metrics"]
    config.setdefault("root", {})["handlers"] = [stream]

    file_handler = handlers.get("file")
    if file_handler is not None:
        if not development and settings.enable_file_logging:
            settings.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler["filename"] = str(settings.log_dir / LOG_FILE_NAME)
            selected.append("file")
        else:
            # dictConfig opens every declared handler, used or not
            del handlers["file"]

    level = settings.log_level.upper()
    for name in ("console", "json"):
        if name in handlers:
            handlers[name]["level"] = level
    return selected


def setup_logging(settings: Settings) -> None:
    """Load logging.yaml and configure the application logger per environment."""

    config_path = settings.log_config_path or DEFAULT_LOG_CONFIG
    if not config_path.exists():
        raise FileNotFoundError(f"Logging configuration not found at {config_path}")

    with config_path.open("r", encoding="utf-8") as fp:
        config: Dict[str, Any] = yaml.safe_load(fp)

    config.setdefault("loggers", {})[APP_LOGGER] = {
        "handlers": _select_handlers(config, settings),
        "level": settings.log_level.upper(),
        "propagate": False,
    }
    logging.config.dictConfig(config)


def serialize_log_record(record: logging.LogRecord) -> str:
    payload: Dict[str, Any] = {
        "timestamp": record.created,
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        "context": current_context(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, ensure_ascii=False, default=str)


__all__ = [
    "bind_request_context",
    "bind_thread_context",
    "reset_thread_context",
    "clear_context",
    "current_context",
    "ContextFilter",
    "PIIRedactingFilter",
    "PrometheusErrorHandler",
    "JsonFormatter",
    "setup_logging",
    "serialize_log_record",
]
