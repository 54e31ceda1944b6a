from typing import Union

from aiogram import F, Router
from aiogram.filters import BaseFilter, Command
from aiogram.types import CallbackQuery, Message

from approvals.core.config import get_settings
from approvals.submissions.models import PendingDecision
from approvals.submissions.services import SubmissionService

router = Router()


class IsAdminChat(BaseFilter):
    """Пропускает только события из чата админа."""

    async def __call__(self, event: Union[Message, CallbackQuery]) -> bool:
        message = event.message if isinstance(event, CallbackQuery) else event
        if message is None:
            return False
        return message.chat.id == get_settings().ADMIN_CHAT_ID


router.message.filter(IsAdminChat())
router.callback_query.filter(IsAdminChat())


def format_pending_list(records: list[PendingDecision]) -> str:
    if not records:
        return "درخواست در انتظاری وجود ندارد."
    lines = [f"<b>درخواست‌های در انتظار: {len(records)}</b>"]
    for p in records:
        action = p.action.label if p.action else "-"
        lines.append(f"<code>{p.request_id}</code> کد ملی {p.national_code}، لایسنس {p.license}: {p.state.value} ({action})")
    return "\n".join(lines)


@router.callback_query()
async def on_decision(call: CallbackQuery, submissions: SubmissionService):
    await submissions.handle_decision(
        call.data,
        chat_id=call.message.chat.id,
        message_id=call.message.message_id,
        callback_id=call.id,
    )


@router.message(Command("pending"))
async def on_pending(m: Message, submissions: SubmissionService):
    records = await submissions.list_pending()
    await m.answer(format_pending_list(records))


@router.message(F.text)
async def on_admin_reply(m: Message, submissions: SubmissionService):
    await submissions.handle_admin_reply(m.chat.id, m.text)
