import logging
from aiogram import Router
from aiogram.types import Message, CallbackQuery

# подключается последним: сюда попадает всё, что не принял moderation.router
router = Router()

@router.message()
async def _any_msg(m: Message):
    from_id = m.from_user.id if m.from_user else None
    logging.info(f"[MSG] ignored chat={m.chat.id} from={from_id} text={m.text!r}")

@router.callback_query()
async def _any_cb(c: CallbackQuery):
    chat_id = c.message.chat.id if c.message else None
    logging.info(f"[CB] ignored from={c.from_user.id} chat={chat_id} data={c.data!r}")
