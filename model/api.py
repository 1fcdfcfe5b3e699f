# model/api.py
from datetime import datetime
from pydantic import BaseModel
from util.types import EventType


class LLMRequest(BaseModel):
    # Loose on purpose: empty prompt/text and unknown providers get the
    # endpoint's own 400 messages rather than a 422.
    provider: str = ""
    prompt: str = ""
    text: str = ""
    modelName: str | None = None


class PromptBody(BaseModel):
    # Blank text is rejected by PromptService with the usual {"error"} body.
    text: str = ""


class PromptItem(BaseModel):
    name: str
    text: str
    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class PromptListResponse(BaseModel):
    prompts: list[PromptItem]


class SaveKeyRequest(BaseModel):
    provider: str = ""
    apiKey: str = ""


class DeleteKeyRequest(BaseModel):
    provider: str = ""


class KeyStatus(BaseModel):
    provider: str
    configured: bool = True
    updatedAt: datetime | None = None


class KeyListResponse(BaseModel):
    keys: list[KeyStatus]


class OkResponse(BaseModel):
    success: bool = True
    message: str


class PublicConfigResponse(BaseModel):
    providers: list[str]
    defaultModels: dict[str, str]
    maxOutputTokens: int


class BatchEvent(BaseModel):
    type: EventType
    payload: dict
