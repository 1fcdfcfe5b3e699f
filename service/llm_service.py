# service/llm_service.py
import logging
from contextlib import aclosing
from typing import AsyncIterator, Callable, Optional
import httpx
from core.entities import Done, StreamError
from core.providers import ProviderAdapter, build_adapter, http_timeout
from core.sse_reader import event_to_sse
from model.api import LLMRequest
from service.credential_service import CredentialService
from util.enums import ErrorMessage, ProviderId
from util.errors import AppError

logger = logging.getLogger(__name__)


class LLMService:
    """
    The streaming endpoint: validates the request, resolves exactly one
    provider key, then relays one upstream call as {chunk}/{done}/{error}
    SSE records.
    """

    def __init__(
        self,
        credentials: CredentialService,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._credentials = credentials
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=http_timeout())
        )

    async def open_stream(
        self, payload: LLMRequest, token: Optional[str]
    ) -> AsyncIterator[bytes]:
        """
        Raises AppError before any upstream call when the request cannot be
        served; otherwise returns the SSE byte stream.
        """
        if not payload.prompt or not payload.text:
            raise AppError(
                ErrorMessage.MISSING_PROMPT_OR_TEXT.value.message,
                ErrorMessage.MISSING_PROMPT_OR_TEXT.value.http_status,
            )
        provider = ProviderId.parse(payload.provider)
        if provider is None:
            raise AppError(
                ErrorMessage.INVALID_PROVIDER.value.message,
                ErrorMessage.INVALID_PROVIDER.value.http_status,
            )
        resolved = await self._credentials.resolve(provider, token)
        if resolved is None:
            logger.warning("llm.key.missing provider=%s", provider.value)
            raise AppError(self._credentials.missing_key_message(provider, token))

        logger.info(
            "llm.request provider=%s user_key=%s chars=%d",
            provider.value,
            resolved.is_user_key,
            len(payload.text),
        )
        adapter = build_adapter(provider, resolved.key)
        return self._relay(adapter, payload)

    async def _relay(
        self, adapter: ProviderAdapter, payload: LLMRequest
    ) -> AsyncIterator[bytes]:
        terminal = False
        try:
            async with self._client_factory() as client:
                async with aclosing(
                    adapter.stream(
                        client, payload.prompt, payload.text, payload.modelName
                    )
                ) as events:
                    async for event in events:
                        terminal = isinstance(event, (Done, StreamError))
                        yield event_to_sse(event)
        except Exception as e:
            logger.error("llm.relay.error err=%s", type(e).__name__)
            if not terminal:
                yield event_to_sse(StreamError(str(e) or type(e).__name__))
