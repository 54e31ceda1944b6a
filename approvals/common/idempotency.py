"""Deduplication of Telegram webhook deliveries."""

import logging

from fastapi import Depends
from redis.exceptions import RedisError

from approvals.common.store import (
    PROCESSED_UPDATE_TTL,
    RequestStore,
    get_request_store,
    processed_update_key,
)

logger = logging.getLogger(__name__)


class UpdateGuard:
    """Lets each update_id through once per PROCESSED_UPDATE_TTL window."""

    def __init__(self, store: RequestStore = Depends(get_request_store)):
        self.store = store

    async def should_process(self, update_id: int) -> bool:
        first = await self.store.set_if_absent(
            processed_update_key(update_id), "true", PROCESSED_UPDATE_TTL
        )
        if not first:
            logger.info(f"[WEBHOOK] duplicate update_id={update_id}, skipped")
        return first

    async def release(self, update_id: int) -> None:
        """Снимает маркер, чтобы повторная доставка telegram снова прошла."""
        try:
            await self.store.delete(processed_update_key(update_id))
        except RedisError as e:
            # маркер сам истечёт через PROCESSED_UPDATE_TTL
            logger.warning(f"[WEBHOOK] could not release update_id={update_id}: {e}")
