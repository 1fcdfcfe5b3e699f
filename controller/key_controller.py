# controller/key_controller.py
from typing import Optional
from fastapi import APIRouter, Body, Depends
from controller.controller_dependencies import (
    get_bearer_token,
    get_credential_service,
    rate_limiter,
)
from model.api import DeleteKeyRequest, KeyListResponse, OkResponse, SaveKeyRequest
from service.credential_service import CredentialService
from util.constants import InternalURIs

key_router = APIRouter(dependencies=[Depends(rate_limiter)])


@key_router.get(InternalURIs.KEYS, response_model=KeyListResponse)
async def list_keys(
    token: Optional[str] = Depends(get_bearer_token),
    service: CredentialService = Depends(get_credential_service),
) -> KeyListResponse:
    return KeyListResponse(keys=await service.list_keys(token))


@key_router.post(InternalURIs.KEYS, response_model=OkResponse)
async def save_key(
    payload: SaveKeyRequest,
    token: Optional[str] = Depends(get_bearer_token),
    service: CredentialService = Depends(get_credential_service),
) -> OkResponse:
    return OkResponse(
        message=await service.save_key(token, payload.provider, payload.apiKey)
    )


@key_router.delete(InternalURIs.KEYS, response_model=OkResponse)
async def delete_key(
    payload: DeleteKeyRequest = Body(...),
    token: Optional[str] = Depends(get_bearer_token),
    service: CredentialService = Depends(get_credential_service),
) -> OkResponse:
    return OkResponse(message=await service.delete_key(token, payload.provider))
