import time
from typing import AsyncIterator, Optional

import redis.asyncio as redis

from approvals.core.config import get_settings

PROCESSED_UPDATE_TTL = 60 * 60          # 1 час
PENDING_TTL = 60 * 60                   # 1 час
CALLBACK_TTL = 24 * 60 * 60             # 24 часа
RESPONSE_TTL = 7 * 24 * 60 * 60         # 7 дней

PENDING_PREFIX = "pending_"


# ---------- Key scheme ----------
def processed_update_key(update_id: int | str) -> str:
    return f"processed_update_{update_id}"


def pending_key(request_id: str, national_code: str, license: str) -> str:
    return f"{PENDING_PREFIX}{request_id}_{national_code}_{license}"


def callback_key(request_id: str, national_code: str, license: str) -> str:
    return f"callback_{request_id}_{national_code}_{license}"


def response_key(national_code: str, license: str) -> str:
    return f"response_{national_code}_{license}"


def admin_queue_key(chat_id: int | str) -> str:
    # не начинается с "pending_", иначе попадёт в скан pending-записей
    return f"admin_queue_{chat_id}"


class RequestStore:
    """
    Тонкая обёртка над redis: get / set / set с TTL / set-if-absent /
    delete / скан по префиксу + очередь pending-запросов админа (sorted set).

    Атомарности между вызовами нет, каждый шаг выше по стеку должен
    переживать повторный запуск с любого места.
    """

    def __init__(self, client: "redis.Redis"):
        self.client = client

    # ===== Primitives =====
    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        await self.client.set(key, value, ex=ttl)

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        # SET NX EX: атомарно, True только у первого
        return bool(await self.client.set(key, value, ex=ttl, nx=True))

    async def exists(self, key: str) -> bool:
        return bool(await self.client.exists(key))

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def scan_prefix(self, prefix: str) -> AsyncIterator[str]:
        async for key in self.client.scan_iter(match=f"{prefix}*"):
            yield key

    # ===== Admin queue =====
    async def enqueue_for_admin(self, chat_id: int, key: str, score: float | None = None) -> None:
        queue = admin_queue_key(chat_id)
        await self.client.zadd(queue, {key: score if score is not None else time.time()})
        await self.client.expire(queue, PENDING_TTL)

    async def admin_queue(self, chat_id: int) -> list[str]:
        """Ключи pending-записей админа, самые старые первыми."""
        return list(await self.client.zrange(admin_queue_key(chat_id), 0, -1))

    async def dequeue_for_admin(self, chat_id: int, key: str) -> None:
        await self.client.zrem(admin_queue_key(chat_id), key)

    async def ping(self) -> bool:
        return bool(await self.client.ping())


_client: Optional["redis.Redis"] = None


def get_redis_client() -> "redis.Redis":
    global _client
    if _client is None:
        _client = redis.from_url(get_settings().REDIS_URL, decode_responses=True)
    return _client


def get_request_store() -> RequestStore:
    # зависимость для FastAPI
    return RequestStore(get_redis_client())


async def close_redis_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
