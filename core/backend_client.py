# core/backend_client.py
import json
import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Optional
import httpx
from config.settings import settings
from core.entities import ProviderConfig, StreamError, StreamEvent, TextIncrement
from core.providers import http_timeout
from core.sse_reader import interpret_backend_record, iter_events

logger = logging.getLogger(__name__)

CredentialProvider = Callable[[], Awaitable[Optional[str]]]


async def no_credential() -> Optional[str]:
    return None


def static_credential(token: Optional[str]) -> CredentialProvider:
    async def _current() -> Optional[str]:
        return token or None

    return _current


def _error_detail(body: bytes, fallback: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return fallback
    if not isinstance(data, dict):
        return fallback
    # The endpoint's rejections carry `error`; FastAPI's own carry `detail`,
    # a list of {loc, msg, type} items for 422s.
    detail = data.get("error") or data.get("detail")
    if isinstance(detail, list):
        first = detail[0] if detail else None
        detail = first.get("msg") if isinstance(first, dict) else None
    if isinstance(detail, dict):
        detail = detail.get("message") or detail.get("error")
    return str(detail) if detail else fallback


class BackendStreamClient:
    """
    LLM stream that goes through the service's streaming endpoint instead
    of calling providers directly. Which key the endpoint uses is its
    business; this client only attaches the caller's bearer credential
    when there is one.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        credential: CredentialProvider = no_credential,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._url = url or settings.BACKEND_URL
        self._credential = credential
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=http_timeout())
        )

    async def _headers(self) -> dict:
        headers = {"content-type": "application/json", "accept": "text/event-stream"}
        token = await self._credential()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def __call__(
        self, prompt: str, text: str, config: ProviderConfig
    ) -> AsyncIterator[StreamEvent]:
        body = {
            "provider": config.provider.value,
            "prompt": prompt,
            "text": text,
            "modelName": config.model_override or "",
        }
        headers = await self._headers()
        received = 0
        try:
            async with self._client_factory() as client:
                async with client.stream(
                    "POST", self._url, headers=headers, json=body
                ) as resp:
                    if resp.status_code // 100 != 2:
                        detail = _error_detail(
                            await resp.aread(),
                            f"Server error: {resp.reason_phrase or resp.status_code}",
                        )
                        logger.warning(
                            "backend.rejected status=%d provider=%s",
                            resp.status_code,
                            config.provider.value,
                        )
                        yield StreamError(detail)
                        return
                    async with aclosing(
                        iter_events(resp.aiter_bytes(), interpret_backend_record)
                    ) as events:
                        async for event in events:
                            if isinstance(event, TextIncrement):
                                received += 1
                            yield event
        except httpx.HTTPError as e:
            logger.error("backend.transport.error err=%s", type(e).__name__)
            yield StreamError(str(e) or type(e).__name__)
            return
        logger.debug("backend.stream.end increments=%d", received)
