# repository/prompt_repository.py
import json
import time
from datetime import datetime, timezone
from typing import List, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.api import PromptItem
from repository.namespaces import PROMPTS, SHARED_OWNER


def _ts(v: object) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(float(v), tz=timezone.utc)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class PromptRepository:
    """
    Flow:
    - One Redis hash per owner (signed-in caller) or the shared namespace.
    - Field = prompt name, value = {"text", "createdAt", "updatedAt"} JSON.
    - upsert overwrites by name and keeps the original createdAt, so
      list() order (oldest first) survives edits.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(owner: Optional[str]) -> str:
        return f"{PROMPTS}:{owner or SHARED_OWNER}"

    async def list(self, owner: Optional[str]) -> List[PromptItem]:
        r = await self._client()
        raw = await r.hgetall(self._key(owner))
        rows = []
        for name, value in (raw or {}).items():
            try:
                data = json.loads(value)
            except ValueError:
                # Skip malformed entries instead of failing the listing
                continue
            rows.append(
                (
                    float(data.get("createdAt") or 0),
                    PromptItem(
                        name=name.decode("utf-8") if isinstance(name, bytes) else name,
                        text=str(data.get("text") or ""),
                        createdAt=_ts(data.get("createdAt")),
                        updatedAt=_ts(data.get("updatedAt")),
                    ),
                )
            )
        rows.sort(key=lambda t: (t[0], t[1].name))
        return [item for _, item in rows]

    async def upsert(self, owner: Optional[str], name: str, text: str) -> bool:
        """Returns True when the name was new."""
        r = await self._client()
        key = self._key(owner)
        now = time.time()
        existing = await r.hget(key, name)
        created = now
        if existing is not None:
            try:
                created = float(json.loads(existing).get("createdAt") or now)
            except ValueError:
                created = now
        payload = json.dumps({"text": text, "createdAt": created, "updatedAt": now})
        await r.hset(key, name, payload.encode("utf-8"))
        return existing is None

    async def delete(self, owner: Optional[str], name: str) -> bool:
        r = await self._client()
        return bool(await r.hdel(self._key(owner), name))
