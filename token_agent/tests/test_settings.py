from __future__ import annotations

import json
import logging
import sys

import pytest

from token_agent.config.logging_config import JsonLineFormatter, configure_logging
from token_agent.config.settings import Settings, parse_bool, parse_float, parse_int
from token_agent.tests.conftest import make_settings


def test_defaults(monkeypatch):
    for key in (
        "COINGECKO_BASE_URL",
        "COINGECKO_API_KEY",
        "PRICE_CACHE_TTL_SECONDS",
        "COIN_LIST_TTL_SECONDS",
        "COIN_LIST_MIN_SIZE",
        "PORT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)

    s = Settings.from_env()
    assert s.COINGECKO_BASE_URL == "https://api.coingecko.com/api/v3"
    assert s.COINGECKO_API_KEY is None
    assert s.PRICE_CACHE_TTL_SECONDS == 30.0
    assert s.COIN_LIST_TTL_SECONDS == 86400.0
    assert s.COIN_LIST_MIN_SIZE == 500
    assert s.PORT == 3000
    assert s.LOG_LEVEL == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PRICE_CACHE_TTL_SECONDS", "5")
    monkeypatch.setenv("COINGECKO_API_KEY", " key ")
    monkeypatch.setenv("LOG_JSON", "yes")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    s = Settings.from_env()
    assert s.PRICE_CACHE_TTL_SECONDS == 5.0
    assert s.COINGECKO_API_KEY == "key"
    assert s.LOG_JSON is True
    assert s.LOG_LEVEL == "DEBUG"


def test_parsers():
    assert parse_bool(None, True) is True
    assert parse_bool("off", True) is False
    assert parse_int("", 7) == 7
    assert parse_float(" ", 1.5) == 1.5
    with pytest.raises(ValueError):
        parse_int("abc", 1)


def test_configure_logging_json_formatter():
    configure_logging(make_settings(LOG_JSON=True, LOG_LEVEL="WARNING"))
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonLineFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_configure_logging_unknown_level_falls_back_to_info():
    configure_logging(make_settings(LOG_LEVEL="chatty"))
    assert logging.getLogger().level == logging.INFO


def test_json_line_formatter_keeps_traceback_in_one_record():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.getLogger("token_agent.answer").makeRecord(
            "token_agent.answer", logging.ERROR, __file__, 1, "refresh failed", (), sys.exc_info()
        )

    line = json.loads(JsonLineFormatter().format(record))
    assert line["level"] == "error"
    assert line["name"] == "token_agent.answer"
    assert line["msg"] == "refresh failed"
    assert "RuntimeError: boom" in line["exc"]
