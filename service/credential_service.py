# service/credential_service.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from config.settings import settings
from core.providers import KeyResolver
from model.api import KeyStatus
from repository.user_key_repository import UserKeyRepository
from util import functions
from util.enums import ErrorMessage, ProviderId
from util.errors import AppError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedKey:
    key: str
    is_user_key: bool


def env_key(provider: ProviderId) -> Optional[str]:
    return {
        ProviderId.OPENAI: settings.OPENAI_API_KEY,
        ProviderId.ANTHROPIC: settings.ANTHROPIC_API_KEY,
        ProviderId.GEMINI: settings.GEMINI_API_KEY,
    }[provider] or None


class CredentialService:
    """
    Picks the provider key for a request: the caller's own saved key when a
    bearer credential maps to one, otherwise the deployment default.
    Also manages the saved keys.
    """

    def __init__(self, user_keys: UserKeyRepository) -> None:
        self._user_keys = user_keys

    async def resolve(
        self, provider: ProviderId, token: Optional[str]
    ) -> Optional[ResolvedKey]:
        owner = functions.owner_id(token)
        if owner:
            try:
                user_key = await self._user_keys.get(owner, provider.value)
            except Exception:
                logger.error("keys.lookup.error provider=%s", provider.value)
                user_key = None
            if user_key:
                return ResolvedKey(key=user_key, is_user_key=True)
        default = env_key(provider)
        return ResolvedKey(key=default, is_user_key=False) if default else None

    def resolver(self, token: Optional[str]) -> KeyResolver:
        async def _resolve(provider: ProviderId) -> Optional[str]:
            found = await self.resolve(provider, token)
            return found.key if found else None

        return _resolve

    @staticmethod
    def missing_key_message(provider: ProviderId, token: Optional[str]) -> str:
        hint = (
            "Add your API key in Settings."
            if token
            else "Please login and add your API key, or contact the administrator."
        )
        return f"No API key configured for {provider.value}. {hint}"

    # ---------------- Saved keys ----------------

    @staticmethod
    def _require_owner(token: Optional[str]) -> str:
        owner = functions.owner_id(token)
        if not owner:
            raise AppError(
                ErrorMessage.UNAUTHORIZED.value.message,
                ErrorMessage.UNAUTHORIZED.value.http_status,
            )
        return owner

    @staticmethod
    def _require_provider(value: str) -> ProviderId:
        provider = ProviderId.parse(value)
        if provider is None:
            raise AppError(
                ErrorMessage.INVALID_PROVIDER.value.message,
                ErrorMessage.INVALID_PROVIDER.value.http_status,
            )
        return provider

    async def list_keys(self, token: Optional[str]) -> list[KeyStatus]:
        owner = self._require_owner(token)
        configured = await self._user_keys.configured(owner)
        return [
            KeyStatus(
                provider=p,
                configured=True,
                updatedAt=datetime.fromtimestamp(ts, tz=timezone.utc) if ts else None,
            )
            for p, ts in sorted(configured.items())
        ]

    async def save_key(self, token: Optional[str], provider: str, api_key: str) -> str:
        owner = self._require_owner(token)
        if not provider or not api_key:
            raise AppError("Missing provider or apiKey")
        pid = self._require_provider(provider)
        if len(api_key.strip()) < settings.MIN_USER_KEY_LENGTH:
            raise AppError(
                ErrorMessage.INVALID_API_KEY.value.message,
                ErrorMessage.INVALID_API_KEY.value.http_status,
            )
        await self._user_keys.set(owner, pid.value, api_key.strip())
        logger.info("keys.saved provider=%s", pid.value)
        return f"{pid.value} API key saved successfully"

    async def delete_key(self, token: Optional[str], provider: str) -> str:
        owner = self._require_owner(token)
        if not provider:
            raise AppError("Missing provider")
        pid = self._require_provider(provider)
        removed = await self._user_keys.delete(owner, pid.value)
        logger.info("keys.deleted provider=%s removed=%s", pid.value, removed)
        return f"{pid.value} API key deleted"
