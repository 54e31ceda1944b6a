# approvals/main.py
import asyncio
import logging
import re

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from redis.exceptions import RedisError

from approvals.common.common import get_admin_channel
from approvals.common.store import close_redis_client, get_request_store
from approvals.core.config import get_settings
from approvals.licenses.routers import router as license_router
from approvals.licenses.services import get_license_registry
from approvals.submissions.routers import router as submission_router
from approvals.submissions.services import SubmissionService
from approvals.webhook.routers import router as webhook_router

# Telegram ядро
from tgbot.core import bot, dp
from tgbot import debug, moderation

settings = get_settings()
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = FastAPI(title=settings.APP_NAME)

# API
app.include_router(license_router)
app.include_router(submission_router)
app.include_router(webhook_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# регистрируем tg-роутеры в диспетчере; debug — последним
dp.include_router(moderation.router)
dp.include_router(debug.router)

bot_task: asyncio.Task | None = None
logger = logging.getLogger("uvicorn.error")
app_state_started = False  # защита от двойного запуска


def build_submission_service() -> SubmissionService:
    return SubmissionService(
        store=get_request_store(),
        channel=get_admin_channel(),
        registry=get_license_registry(),
        settings=settings,
    )


# === Проверка BOT_TOKEN перед запуском ===
async def verify_bot_identity():
    token = settings.TELEGRAM_BOT_TOKEN
    if not token:
        raise RuntimeError("❌ TELEGRAM_BOT_TOKEN is not set in environment variables")

    # базовая проверка формата токена
    if not re.fullmatch(r"\d{7,12}:[A-Za-z0-9_-]{35,}", token):
        raise RuntimeError("❌ TELEGRAM_BOT_TOKEN format looks invalid")

    # проверка соответствия id в токене и id из getMe()
    me = await bot.get_me()  # упадёт Unauthorized, если токен неверен
    token_bot_id = token.split(":")[0]
    if str(me.id) != token_bot_id:
        raise RuntimeError(
            f"❌ TELEGRAM_BOT_TOKEN mismatch: token bot_id={token_bot_id} but getMe.id={me.id}"
        )

    logger.info(f"✅ Bot OK: @{me.username} (id={me.id}), token_tail=...{token[-6:]}")


async def check_store():
    try:
        await get_request_store().ping()
        logger.info("✅ Redis connected")
    except RedisError as e:
        # вебхук вернёт 500, пока redis недоступен
        logger.warning(f"⚠️ Redis not available: {e}")


@app.on_event("startup")
async def startup_event():
    global bot_task, app_state_started
    if app_state_started:
        # уже инициализировали приложение/бота — выходим
        return
    app_state_started = True

    # жёсткая проверка токена до любых сетапов бота
    await verify_bot_identity()
    await check_store()

    # сервис доступен хендлерам как аргумент `submissions`
    dp["submissions"] = build_submission_service()

    if settings.BOT_MODE != "polling":
        logger.info("Webhook mode: call GET /set-webhook after deploy")
        return

    # Локально: polling фоном вместо вебхука
    async def run_bot():
        try:
            info = await bot.get_webhook_info()
            logger.info(f"Webhook before delete: url={info.url!r}, pending={info.pending_update_count}")
            await bot.delete_webhook(drop_pending_updates=True)

            used = dp.resolve_used_update_types()
            logger.info(f"ALLOWED_UPDATES = {used}")
            await dp.start_polling(bot, allowed_updates=used, handle_signals=False)
        except asyncio.CancelledError:
            logger.info("Bot polling cancelled (shutdown).")
            raise
        except Exception as e:
            logger.exception(f"Bot crashed: {e}")

    if not bot_task or bot_task.done():
        bot_task = asyncio.create_task(run_bot())


@app.on_event("shutdown")
async def shutdown_event():
    global bot_task
    if bot_task:
        bot_task.cancel()
        try:
            await bot_task
        except asyncio.CancelledError:
            pass
    await close_redis_client()
    await bot.session.close()


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Form approval bridge is running"


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="info")
