# token_agent/api/health.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["health"])

APP_STARTED_AT = time.time()


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def build_ready_payload(request: Request) -> Dict[str, Any]:
    now_ts = time.time()
    directory = request.app.state.agent.directory
    return {
        "status": "ok",
        "now_iso": _iso(now_ts),
        "uptime_s": int(now_ts - APP_STARTED_AT),
        "checks": {
            "coin_directory": {
                "ok": len(directory) > 0,
                "coins": len(directory),
                "loaded_at": _iso(directory.loaded_at),
                "fresh": directory.is_fresh,
            },
            "price_cache": {"entries": len(request.app.state.agent.market.cache)},
        },
    }


@router.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Token Info Agent Backend is running"}


@router.get("/live")
async def live():
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request, response: Response):
    payload = build_ready_payload(request)
    if not payload["checks"]["coin_directory"]["ok"]:
        payload["status"] = "degraded"
        payload["degraded_reasons"] = ["coin_directory_empty"]
        response.status_code = 503
    return payload


@router.get("/health")
async def health(request: Request, response: Response):
    return await ready(request, response)
