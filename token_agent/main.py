# token_agent/main.py
from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from token_agent.api.health import router as health_router
from token_agent.api.prompt import router as prompt_router
from token_agent.config.logging_config import configure_logging
from token_agent.config.settings import get_settings
from token_agent.services.agent import build_agent
from token_agent.services.exceptions import UpstreamError

logger = logging.getLogger("token_agent")


app = FastAPI(title="Token Info Agent")

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# Routers
app.include_router(health_router)
app.include_router(prompt_router)


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    configure_logging(settings)

    app.state.agent = build_agent(settings)
    try:
        await app.state.agent.directory.load()
    except UpstreamError:
        # not fatal: the next prompt retries the load
        logger.exception("initial coin directory load failed")
    logger.info("Token Info Agent Backend running on port %s", settings.PORT)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await app.state.agent.aclose()


def run() -> None:
    settings = get_settings()
    uvicorn.run("token_agent.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
