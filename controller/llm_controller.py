# controller/llm_controller.py
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from controller.controller_dependencies import (
    get_bearer_token,
    get_llm_service,
    rate_limiter,
)
from model.api import LLMRequest
from service.llm_service import LLMService
from util.constants import InternalURIs

llm_router = APIRouter(dependencies=[Depends(rate_limiter)])

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


@llm_router.post(InternalURIs.LLM)
async def stream_llm(
    payload: LLMRequest,
    token: Optional[str] = Depends(get_bearer_token),
    service: LLMService = Depends(get_llm_service),
):
    generator = await service.open_stream(payload, token)
    return StreamingResponse(
        generator, media_type="text/event-stream", headers=SSE_HEADERS
    )
