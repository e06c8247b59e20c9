import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import logging

import pytest

from inventory_agent.core.config import Settings, get_settings
from inventory_agent.logging_utils import (
    ContextFilter,
    PIIRedactingFilter,
    bind_request_context,
    bind_thread_context,
    clear_context,
    current_context,
    serialize_log_record,
    setup_logging,
)


def make_record(msg, *args, level=logging.INFO):
    return logging.LogRecord("inventory_agent.test", level, __file__, 1, msg, args, None)


# =============================================================================
# Settings
# =============================================================================

def test_settings_defaults():
    settings = Settings()
    assert settings.agent_max_steps == 15
    assert settings.agent_temperature == 0.0
    assert settings.direct_answer_temperature == 0.3
    assert settings.backoff_max_retries == 3
    assert settings.backoff_base_delay_ms == 1000
    assert settings.backoff_max_delay_ms == 30000
    assert settings.item_lookup_default_n == 10
    assert settings.chroma_collection == "items"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LLM_API_KEY", "sk-from-env-123456")
    monkeypatch.setenv("AGENT_MAX_STEPS", "7")
    monkeypatch.setenv("CHECKPOINT_BACKEND", "redis")

    settings = Settings()

    assert settings.openai_api_key == "sk-from-env-123456"
    assert settings.agent_max_steps == 7
    assert settings.checkpoint_backend == "redis"


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()


# =============================================================================
# Log context and filters
# =============================================================================

def test_context_filter_injects_ids():
    clear_context()
    bind_request_context("req-1")
    bind_thread_context("thread-9")
    record = make_record("hello")

    assert ContextFilter().filter(record) is True
    assert record.request_id == "req-1"
    assert record.thread_id == "thread-9"

    clear_context()
    assert current_context() == {"request_id": "-", "thread_id": "-"}


def test_pii_filter_scrubs_message_and_args():
    record = make_record(
        "key sk-abcdefghijklmnop for %s",
        "jane.doe@example.com",
    )

    PIIRedactingFilter().filter(record)

    assert record.getMessage() == "key [REDACTED] for [REDACTED]"


def test_serialized_record_is_single_json_line():
    clear_context()
    bind_thread_context("thread-2")
    record = make_record("search returned %d result(s)", 3, level=logging.WARNING)

    payload = json.loads(serialize_log_record(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "search returned 3 result(s)"
    assert payload["context"]["thread_id"] == "thread-2"
    clear_context()


def test_setup_logging_development_uses_console(tmp_path):
    settings = Settings(environment="development", log_dir=tmp_path / "logs", log_level="DEBUG")

    setup_logging(settings)

    app_logger = logging.getLogger("inventory_agent")
    handler_names = {handler.name for handler in app_logger.handlers}
    assert handler_names == {"console", "error_metrics"}
    assert app_logger.level == logging.DEBUG
    assert not (tmp_path / "logs").exists()


def test_setup_logging_production_writes_json_file(tmp_path):
    settings = Settings(environment="production", log_dir=tmp_path / "logs")

    try:
        setup_logging(settings)
        app_logger = logging.getLogger("inventory_agent")
        handler_names = {handler.name for handler in app_logger.handlers}
        assert handler_names == {"json", "file", "error_metrics"}
        assert (tmp_path / "logs").is_dir()
    finally:
        setup_logging(Settings(environment="development"))


def test_setup_logging_missing_config(tmp_path):
    settings = Settings(log_config_path=tmp_path / "missing.yaml")
    with pytest.raises(FileNotFoundError):
        setup_logging(settings)
