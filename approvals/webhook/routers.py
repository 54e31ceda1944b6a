import logging

from aiogram.exceptions import TelegramAPIError
from aiogram.types import Update
from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from fastapi.responses import PlainTextResponse
from redis.exceptions import RedisError

from approvals.common.idempotency import UpdateGuard
from approvals.core.config import Settings, get_settings
from tgbot.core import bot, dp

router = APIRouter(tags=["telegram"])
logger = logging.getLogger(__name__)


def webhook_url(request: Request, settings: Settings) -> str:
    if settings.WEBHOOK_URL:
        return f"{settings.WEBHOOK_URL.rstrip('/')}/webhook"
    return f"https://{request.headers.get('host')}/webhook"


@router.get("/set-webhook", response_class=PlainTextResponse)
async def set_webhook(request: Request, settings: Settings = Depends(get_settings)):
    url = webhook_url(request, settings)
    try:
        await bot.set_webhook(url, allowed_updates=dp.resolve_used_update_types())
    except TelegramAPIError as e:
        logger.error(f"Failed to set webhook: {e}")
        return PlainTextResponse("Failed to set webhook", status_code=500)
    logger.info(f"Webhook set to {url}")
    return "Webhook set successfully"


async def process_update(update: Update) -> None:
    await dp.feed_update(bot, update)


async def process_update_detached(update: Update) -> None:
    # режим "сначала 200": ошибка здесь теряет апдейт без ретрая
    try:
        await process_update(update)
    except Exception:
        logger.exception(f"[WEBHOOK] update {update.update_id} failed after ack")


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    guard: UpdateGuard = Depends(),
    settings: Settings = Depends(get_settings),
):
    try:
        update = Update.model_validate(await request.json(), context={"bot": bot})
    except ValueError as e:
        logger.warning(f"[WEBHOOK] bad payload: {e}")
        return Response(status_code=200)

    claimed = False
    try:
        if not await guard.should_process(update.update_id):
            return Response(status_code=200)
        claimed = True

        if settings.WEBHOOK_ACK_FIRST:
            background_tasks.add_task(process_update_detached, update)
            return Response(status_code=200)

        await process_update(update)
    except RedisError as e:
        # telegram повторит доставку сам, маркер не должен её отсечь
        logger.error(f"[WEBHOOK] store unavailable: {e}")
        if claimed:
            await guard.release(update.update_id)
        return Response(status_code=500)
    except Exception:
        logger.exception(f"[WEBHOOK] update {update.update_id} failed")
    return Response(status_code=200)
