# controller/prompt_controller.py
from typing import Optional
from fastapi import APIRouter, Depends, status
from controller.controller_dependencies import (
    get_bearer_token,
    get_prompt_service,
    rate_limiter,
)
from model.api import OkResponse, PromptBody, PromptListResponse
from service.prompt_service import PromptService
from util.constants import InternalURIs

prompt_router = APIRouter(dependencies=[Depends(rate_limiter)])


@prompt_router.get(InternalURIs.PROMPTS, response_model=PromptListResponse)
async def list_prompts(
    token: Optional[str] = Depends(get_bearer_token),
    service: PromptService = Depends(get_prompt_service),
) -> PromptListResponse:
    return PromptListResponse(prompts=await service.list(token))


@prompt_router.put(
    InternalURIs.PROMPT, response_model=OkResponse, status_code=status.HTTP_200_OK
)
async def save_prompt(
    name: str,
    payload: PromptBody,
    token: Optional[str] = Depends(get_bearer_token),
    service: PromptService = Depends(get_prompt_service),
) -> OkResponse:
    return OkResponse(message=await service.save(token, name, payload.text))


@prompt_router.delete(InternalURIs.PROMPT, response_model=OkResponse)
async def delete_prompt(
    name: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: PromptService = Depends(get_prompt_service),
) -> OkResponse:
    return OkResponse(message=await service.delete(token, name))
