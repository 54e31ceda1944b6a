from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties

from approvals.core.config import get_settings

settings = get_settings()
bot = Bot(settings.TELEGRAM_BOT_TOKEN, default=DefaultBotProperties(parse_mode="HTML"))
dp = Dispatcher()
