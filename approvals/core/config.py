from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",  # в проде переменные приходят из окружения
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_ENV: Literal["dev", "prod"] = "dev"

    # FastAPI
    APP_NAME: str = "Form Approval Bridge"
    DEBUG: bool = False

    # CORS
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Telegram
    TELEGRAM_BOT_TOKEN: str
    ADMIN_CHAT_ID: int
    WEBHOOK_URL: Optional[str] = None
    BOT_MODE: Literal["webhook", "polling"] = "webhook"
    WEBHOOK_ACK_FIRST: bool = False
    DECISION_BUTTONS: bool = True

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Uvicorn/HTTP
    HOST: str = "0.0.0.0"
    PORT: int = 3000


@lru_cache
def get_settings() -> Settings:
    s = Settings()  # читает переменные из окружения
    if s.APP_ENV == "dev":
        s.DEBUG = True
    else:
        s.DEBUG = False
    return s
