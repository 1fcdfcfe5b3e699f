# repository/user_key_repository.py
import json
import time
from typing import Dict, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from repository.namespaces import USER_KEYS


class UserKeyRepository:
    """
    Per-caller provider keys, one Redis hash per owner id.
    Values are stored as given; protecting them at rest is left to the
    Redis deployment.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(owner: str) -> str:
        return f"{USER_KEYS}:{owner}"

    async def get(self, owner: str, provider: str) -> Optional[str]:
        r = await self._client()
        raw = await r.hget(self._key(owner), provider)
        if raw is None:
            return None
        try:
            return json.loads(raw).get("key") or None
        except ValueError:
            return None

    async def set(self, owner: str, provider: str, api_key: str) -> None:
        r = await self._client()
        payload = json.dumps({"key": api_key, "updatedAt": time.time()})
        await r.hset(self._key(owner), provider, payload.encode("utf-8"))

    async def delete(self, owner: str, provider: str) -> bool:
        r = await self._client()
        return bool(await r.hdel(self._key(owner), provider))

    async def configured(self, owner: str) -> Dict[str, float]:
        """provider -> updatedAt (epoch seconds); never returns the keys."""
        r = await self._client()
        raw = await r.hgetall(self._key(owner))
        out: Dict[str, float] = {}
        for provider, value in (raw or {}).items():
            name = provider.decode("utf-8") if isinstance(provider, bytes) else provider
            try:
                out[name] = float(json.loads(value).get("updatedAt") or 0)
            except ValueError:
                continue
        return out
