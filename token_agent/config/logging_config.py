"""Root logger setup for the agent process (called once at startup)."""
from __future__ import annotations

import json
import logging
import sys

from token_agent.config.settings import Settings, get_settings

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; keeps tracebacks in a single field."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLineFormatter() if settings.LOG_JSON else logging.Formatter(PLAIN_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # httpx logs every CoinGecko request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
