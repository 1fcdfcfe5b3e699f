# controller/config_controller.py
from fastapi import APIRouter
from config.settings import settings
from core.providers import default_models
from model.api import PublicConfigResponse
from util.constants import InternalURIs
from util.enums import ProviderId

config_router = APIRouter()


@config_router.get(InternalURIs.CONFIG, response_model=PublicConfigResponse)
async def public_config() -> PublicConfigResponse:
    # Public values only; provider keys never leave the server.
    return PublicConfigResponse(
        providers=[p.value for p in ProviderId],
        defaultModels=default_models(),
        maxOutputTokens=settings.LLM_MAX_OUTPUT_TOKENS,
    )
