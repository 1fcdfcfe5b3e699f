# controller/batch_controller.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Form
from fastapi.responses import StreamingResponse
from controller.controller_dependencies import (
    get_batch_service,
    get_bearer_token,
    rate_limiter,
    read_uploaded_files,
)
from core.entities import SourceFile
from service.batch_service import BatchService
from util.constants import InternalURIs

batch_router = APIRouter(dependencies=[Depends(rate_limiter)])


@batch_router.post(InternalURIs.BATCHES)
async def run_batch(
    prompt: str = Form(default=""),
    provider: str = Form(default="openai"),
    modelName: Optional[str] = Form(default=None),
    files: List[SourceFile] = Depends(read_uploaded_files),
    token: Optional[str] = Depends(get_bearer_token),
    service: BatchService = Depends(get_batch_service),
):
    generator = service.open_batch(files, prompt, provider, modelName, token)
    return StreamingResponse(generator, media_type="application/x-ndjson")
