import logging
from typing import Optional, Sequence

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, Message

logger = logging.getLogger(__name__)


class DeliveryFailed(Exception):
    """Сообщение админу не доставлено."""


def decision_kb(buttons: Sequence[tuple[str, str]]) -> InlineKeyboardMarkup:
    # кнопки решения в одну строку
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=text, callback_data=data) for text, data in buttons],
    ])


class AdminChannel:
    """Отправка сообщений в чат админа через aiogram Bot."""

    def __init__(self, bot: Bot, admin_chat_id: int):
        self.bot = bot
        self.admin_chat_id = admin_chat_id

    async def send_request(self, text: str, buttons: Optional[Sequence[tuple[str, str]]] = None) -> Message:
        kb = decision_kb(buttons) if buttons else None
        try:
            return await self.bot.send_message(self.admin_chat_id, text, reply_markup=kb)
        except TelegramAPIError as e:
            raise DeliveryFailed(str(e)) from e

    async def strip_buttons(self, chat_id: int, message_id: Optional[int]) -> None:
        if message_id is None:
            return
        try:
            await self.bot.edit_message_reply_markup(chat_id=chat_id, message_id=message_id, reply_markup=None)
        except TelegramAPIError as e:
            # кнопки не обязательны: уже убраны / удалено / сеть
            logger.info(f"[TG] strip buttons skip chat={chat_id} msg={message_id}: {e}")

    async def send_text(self, chat_id: int, text: str) -> None:
        try:
            await self.bot.send_message(chat_id, text)
        except TelegramAPIError as e:
            logger.warning(f"[TG] send to {chat_id} failed: {e}")

    async def answer_callback(self, callback_id: str, text: str) -> None:
        try:
            await self.bot.answer_callback_query(callback_id, text=text)
        except TelegramAPIError as e:
            # query is too old / уже отвечен / сеть
            logger.info(f"[TG] answer callback {callback_id} skip: {e}")
