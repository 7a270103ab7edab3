# token_agent/api/prompt.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from token_agent.schemas.prompt import OutputFormat, PromptRequest, PromptResponse
from token_agent.services.answer import AnswerGenerator

logger = logging.getLogger("token_agent.api")

router = APIRouter(tags=["prompt"])


def _error_response(
    *,
    code: str,
    message: str,
    status_code: int = 400,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=payload)


def _generator(request: Request) -> AnswerGenerator:
    return request.app.state.agent.generator


async def _answer(request: Request, prompt: str) -> Response:
    output_format = OutputFormat.from_accept(request.headers.get("accept"))
    try:
        result = await _generator(request).respond(prompt, output_format.value)
    except Exception:
        logger.exception("prompt failed | %r", prompt)
        return _error_response(code="internal_error", message="Internal server error.", status_code=500)

    if output_format is OutputFormat.JSON:
        return JSONResponse(content=PromptResponse(**result).model_dump())
    return PlainTextResponse(result, media_type=output_format.media_type)


@router.post("/prompt")
async def post_prompt(request: Request, body: PromptRequest):
    if not body.prompt:
        return _error_response(code="missing_prompt", message="Please provide prompt.")
    return await _answer(request, body.prompt)


@router.get("/prompt")
async def get_prompt(request: Request, q: str = ""):
    prompt = q.strip()
    if not prompt:
        return _error_response(code="missing_query", message="Query missing.")
    return await _answer(request, prompt)
