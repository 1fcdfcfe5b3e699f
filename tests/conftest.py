"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Dict, Iterable, List, Optional

import httpx
import pytest

from core.entities import Done, ProviderConfig, SourceFile, StreamError, StreamEvent, TextIncrement
from model.api import PromptItem
from util.enums import ProviderId
from util.errors import ExtractionError


# ---------------------------------------------------------------------------
# Byte streams
# ---------------------------------------------------------------------------

async def chunked(*parts: bytes) -> AsyncIterator[bytes]:
    """Deliver `parts` as separate transport chunks."""
    for part in parts:
        await asyncio.sleep(0)
        yield part


def sse(*records: str) -> bytes:
    return "".join(f"data: {r}\n\n" for r in records).encode("utf-8")


class TrackedBody(httpx.AsyncByteStream):
    """Response body that records whether the client released it."""

    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self.payload

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Job runner / coordinator fakes
# ---------------------------------------------------------------------------

def pdf(name: str, body: str = "") -> SourceFile:
    return SourceFile(filename=name, data=(body or f"text of {name}").encode("utf-8"), content_type="application/pdf")


def make_extractor(delays: Optional[Dict[str, float]] = None):
    """Extractor that echoes the file bytes; b'corrupt' raises ExtractionError."""
    delays = delays or {}

    async def extract(source: SourceFile) -> str:
        await asyncio.sleep(delays.get(source.filename, 0))
        if source.data == b"corrupt":
            raise ExtractionError(f"Failed to extract text from {source.filename}: corrupt PDF")
        return source.data.decode("utf-8")

    return extract


class ScriptedLLM:
    """LLM stream replaying scripted events keyed by document text."""

    def __init__(self, scripts: Dict[str, Iterable[StreamEvent]], delays: Optional[Dict[str, float]] = None) -> None:
        self.scripts = {k: list(v) for k, v in scripts.items()}
        self.delays = delays or {}
        self.calls: List[tuple] = []

    async def __call__(self, prompt: str, text: str, config: ProviderConfig) -> AsyncIterator[StreamEvent]:
        self.calls.append((prompt, text, config))
        for event in self.scripts.get(text, [Done()]):
            await asyncio.sleep(self.delays.get(text, 0))
            yield event


def summary(*chunks: str) -> List[StreamEvent]:
    return [TextIncrement(c) for c in chunks] + [Done()]


def failing(*chunks: str, message: str) -> List[StreamEvent]:
    return [TextIncrement(c) for c in chunks] + [StreamError(message)]


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(provider=ProviderId.OPENAI)


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------

class MemoryPromptRepository:
    def __init__(self) -> None:
        self.rows: Dict[Optional[str], Dict[str, PromptItem]] = {}

    async def list(self, owner: Optional[str]) -> List[PromptItem]:
        return list(self.rows.get(owner, {}).values())

    async def upsert(self, owner: Optional[str], name: str, text: str) -> bool:
        bucket = self.rows.setdefault(owner, {})
        created = name not in bucket
        bucket[name] = PromptItem(name=name, text=text)
        return created

    async def delete(self, owner: Optional[str], name: str) -> bool:
        return self.rows.get(owner, {}).pop(name, None) is not None


class MemoryUserKeyRepository:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, tuple]] = {}

    async def get(self, owner: str, provider: str) -> Optional[str]:
        row = self.rows.get(owner, {}).get(provider)
        return row[0] if row else None

    async def set(self, owner: str, provider: str, api_key: str) -> None:
        self.rows.setdefault(owner, {})[provider] = (api_key, time.time())

    async def delete(self, owner: str, provider: str) -> bool:
        return self.rows.get(owner, {}).pop(provider, None) is not None

    async def configured(self, owner: str) -> Dict[str, float]:
        return {p: ts for p, (_, ts) in self.rows.get(owner, {}).items()}
