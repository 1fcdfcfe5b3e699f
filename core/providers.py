# core/providers.py
import json
import logging
from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional, Type
import httpx
from config.settings import settings
from core.entities import (
    Done,
    ProviderConfig,
    StreamError,
    StreamEvent,
    TextIncrement,
    UpstreamRequest,
)
from core.sse_reader import iter_events, parse_record, record_error
from util.enums import ProviderId
from util.timing import timed

logger = logging.getLogger(__name__)

KeyResolver = Callable[[ProviderId], Awaitable[Optional[str]]]


def _user_message(prompt: str, text: str) -> str:
    return f"{prompt}\n\n{text}"


def _rejection_message(body: bytes, fallback: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return fallback
    if isinstance(data, dict):
        msg = record_error(data) or data.get("message")
        if msg:
            return str(msg)
        return json.dumps(data)
    return fallback


class ProviderAdapter(ABC):
    """
    One upstream LLM wire protocol behind the StreamEvent contract.

    Subclasses describe the outbound request and how one decoded record
    maps to an event; `stream` owns the call, the handshake check and the
    terminal-event guarantee.
    """

    provider: ProviderId
    label: str

    def __init__(
        self,
        *,
        api_key: str,
        default_model: str,
        max_output_tokens: int | None = None,
        temperature: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._default_model = default_model
        self._max_output_tokens = (
            settings.LLM_MAX_OUTPUT_TOKENS
            if max_output_tokens is None
            else max_output_tokens
        )
        self._temperature = (
            settings.LLM_TEMPERATURE if temperature is None else temperature
        )

    def resolve_model(self, model_name: str | None) -> str:
        name = (model_name or "").strip()
        return name or self._default_model

    @abstractmethod
    def build_request(self, prompt: str, text: str, model: str) -> UpstreamRequest:
        ...

    @abstractmethod
    def interpret(self, payload: str) -> Optional[StreamEvent]:
        """Map one record payload to an event; None skips it."""

    async def stream(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        text: str,
        model_name: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        model = self.resolve_model(model_name)
        req = self.build_request(prompt, text, model)
        received = 0
        logger.info(
            "llm.call provider=%s model=%s chars=%d",
            self.provider.value,
            model,
            len(text),
        )
        try:
            with timed(logger, "llm.stream", provider=self.provider.value):
                async with client.stream(
                    "POST", req.url, headers=req.headers, json=req.body
                ) as resp:
                    if resp.status_code // 100 != 2:
                        body = await resp.aread()
                        message = _rejection_message(
                            body, resp.reason_phrase or f"HTTP {resp.status_code}"
                        )
                        logger.warning(
                            "llm.rejected provider=%s status=%d",
                            self.provider.value,
                            resp.status_code,
                        )
                        yield StreamError(f"{self.label} API error: {message}")
                        return

                    async with aclosing(
                        iter_events(resp.aiter_bytes(), self.interpret)
                    ) as events:
                        async for event in events:
                            if isinstance(event, TextIncrement):
                                received += 1
                            elif isinstance(event, StreamError):
                                logger.warning(
                                    "llm.stream.error provider=%s increments=%d",
                                    self.provider.value,
                                    received,
                                )
                            yield event
        except httpx.HTTPError as e:
            logger.error(
                "llm.transport.error provider=%s err=%s",
                self.provider.value,
                type(e).__name__,
            )
            yield StreamError(f"{self.label} API error: {str(e) or type(e).__name__}")
        finally:
            # Also reached when the consumer stops reading after Done.
            logger.info(
                "llm.stream.end provider=%s increments=%d",
                self.provider.value,
                received,
            )


class OpenAIAdapter(ProviderAdapter):
    provider = ProviderId.OPENAI
    label = "OpenAI"
    DONE_SENTINEL = "[DONE]"

    def __init__(self, *, api_key: str, api_url: str | None = None, **kw) -> None:
        super().__init__(
            api_key=api_key,
            default_model=kw.pop("default_model", settings.OPENAI_MODEL),
            **kw,
        )
        self._url = api_url or settings.OPENAI_API_URL

    def build_request(self, prompt: str, text: str, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=self._url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "content-type": "application/json",
            },
            body={
                "model": model,
                "messages": [{"role": "user", "content": _user_message(prompt, text)}],
                "temperature": self._temperature,
                "max_tokens": self._max_output_tokens,
                "stream": True,
            },
        )

    def interpret(self, payload: str) -> Optional[StreamEvent]:
        if payload == self.DONE_SENTINEL:
            return Done()
        data = parse_record(payload)
        if data is None:
            return None
        message = record_error(data)
        if message is not None:
            return StreamError(message)
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        content = (choices[0].get("delta") or {}).get("content")
        return TextIncrement(content) if content else None


class AnthropicAdapter(ProviderAdapter):
    provider = ProviderId.ANTHROPIC
    label = "Anthropic"

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str | None = None,
        api_version: str | None = None,
        **kw,
    ) -> None:
        super().__init__(
            api_key=api_key,
            default_model=kw.pop("default_model", settings.ANTHROPIC_MODEL),
            **kw,
        )
        self._url = api_url or settings.ANTHROPIC_API_URL
        self._version = api_version or settings.ANTHROPIC_VERSION

    def build_request(self, prompt: str, text: str, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=self._url,
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": self._version,
                "content-type": "application/json",
            },
            body={
                "model": model,
                "max_tokens": self._max_output_tokens,
                "temperature": self._temperature,
                "messages": [{"role": "user", "content": _user_message(prompt, text)}],
                "stream": True,
            },
        )

    def interpret(self, payload: str) -> Optional[StreamEvent]:
        data = parse_record(payload)
        if data is None:
            return None
        message = record_error(data)
        if message is not None:
            return StreamError(message)
        kind = data.get("type")
        if kind == "content_block_delta":
            content = (data.get("delta") or {}).get("text")
            return TextIncrement(content) if content else None
        if kind == "message_stop":
            return Done()
        return None


class GeminiAdapter(ProviderAdapter):
    # Gemini has no terminal record; the stream simply closes.
    provider = ProviderId.GEMINI
    label = "Gemini"

    def __init__(self, *, api_key: str, api_base: str | None = None, **kw) -> None:
        super().__init__(
            api_key=api_key,
            default_model=kw.pop("default_model", settings.GEMINI_MODEL),
            **kw,
        )
        self._base = (api_base or settings.GEMINI_API_BASE).rstrip("/")

    def build_request(self, prompt: str, text: str, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self._base}/{model}:streamGenerateContent?alt=sse",
            headers={
                "x-goog-api-key": self._api_key,
                "content-type": "application/json",
            },
            body={
                "contents": [{"parts": [{"text": _user_message(prompt, text)}]}],
                "generationConfig": {
                    "temperature": self._temperature,
                    "maxOutputTokens": self._max_output_tokens,
                },
            },
        )

    def interpret(self, payload: str) -> Optional[StreamEvent]:
        data = parse_record(payload)
        if data is None:
            return None
        message = record_error(data)
        if message is not None:
            return StreamError(message)
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        content = "".join(
            str(p.get("text") or "") for p in parts if isinstance(p, dict)
        )
        return TextIncrement(content) if content else None


ADAPTERS: Dict[ProviderId, Type[ProviderAdapter]] = {
    ProviderId.OPENAI: OpenAIAdapter,
    ProviderId.ANTHROPIC: AnthropicAdapter,
    ProviderId.GEMINI: GeminiAdapter,
}


def build_adapter(provider: ProviderId, api_key: str) -> ProviderAdapter:
    return ADAPTERS[provider](api_key=api_key)


def default_models() -> Dict[str, str]:
    return {
        ProviderId.OPENAI.value: settings.OPENAI_MODEL,
        ProviderId.ANTHROPIC.value: settings.ANTHROPIC_MODEL,
        ProviderId.GEMINI.value: settings.GEMINI_MODEL,
    }


def http_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        settings.LLM_READ_TIMEOUT_SECONDS,
        connect=settings.LLM_CONNECT_TIMEOUT_SECONDS,
    )


class ProviderGateway:
    """
    LLM stream that calls the providers directly, for server-side batches.
    `resolve_key` supplies the credential per provider; a missing key is
    reported as a StreamError, never raised.
    """

    def __init__(
        self,
        resolve_key: KeyResolver,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._resolve_key = resolve_key
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=http_timeout())
        )

    async def __call__(
        self, prompt: str, text: str, config: ProviderConfig
    ) -> AsyncIterator[StreamEvent]:
        api_key = await self._resolve_key(config.provider)
        if not api_key:
            yield StreamError(f"No API key configured for {config.provider.value}")
            return
        adapter = build_adapter(config.provider, api_key)
        async with self._client_factory() as client:
            async with aclosing(
                adapter.stream(client, prompt, text, config.model_override)
            ) as events:
                async for event in events:
                    yield event
