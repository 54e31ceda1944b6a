import logging
import secrets
from typing import Optional

from aiogram import html
from fastapi import Depends

from approvals.common.common import get_admin_channel
from approvals.common.store import (
    CALLBACK_TTL,
    PENDING_PREFIX,
    PENDING_TTL,
    RESPONSE_TTL,
    RequestStore,
    callback_key,
    get_request_store,
    pending_key,
    response_key,
)
from approvals.core.config import Settings, get_settings
from approvals.licenses.services import LicenseRegistry, get_license_registry
from approvals.submissions.models import DecisionAction, PendingDecision, RequestState
from approvals.submissions.schemas import ActionResult, SubmitFormIn
from tgbot.channel import AdminChannel, DeliveryFailed

logger = logging.getLogger(__name__)

INVALID_LICENSE_MESSAGE = "لایسنس نامعتبر است"
SUBMITTED_MESSAGE = "اطلاعات ارسال شد، منتظر تأیید باشید"
DELIVERY_FAILED_MESSAGE = "خطا در ارسال به تلگرام"
NOT_RESOLVED_MESSAGE = "هنوز پاسخی یافت نشد"

EMPTY_CALLBACK_MESSAGE = "خطای داخلی: داده‌ای دریافت نشد"
MALFORMED_CALLBACK_MESSAGE = "خطای داخلی: ساختار داده نادرست"
ALREADY_PROCESSED_MESSAGE = "این درخواست قبلاً پردازش شده است."
NO_PENDING_MESSAGE = "هیچ درخواست در انتظاری یافت نشد."

COMMAND_PREFIX = "/"
CALLBACK_FIELDS = 4


def new_request_id() -> str:
    return secrets.token_hex(8)


def build_callback_data(action: DecisionAction, national_code: str, license: str, request_id: str) -> str:
    return f"{action.value}_{national_code}_{license}_{request_id}"


def parse_callback_data(data: str) -> Optional[tuple[DecisionAction, str, str, str]]:
    """accept_<nationalCode>_<license>_<requestId> -> (action, nc, license, request_id)."""
    parts = data.split("_")
    if len(parts) != CALLBACK_FIELDS:
        return None
    action, national_code, license, request_id = parts
    try:
        action = DecisionAction(action)
    except ValueError:
        return None
    if not (national_code and license and request_id):
        return None
    return action, national_code, license, request_id


def compose_response(action: Optional[DecisionAction], text: str) -> str:
    if action is DecisionAction.accept:
        return f"درخواست شما تایید شد\nتوضیحات: {text}"
    if action is DecisionAction.reject:
        return f"درخواست شما رد شد\nتوضیحات: {text}"
    return f"پاسخ درخواست شما:\n{text}"


def format_request_message(data: SubmitFormIn, request_id: str) -> str:
    return (
        "<b>درخواست جدید</b>\n"
        f"نام: {html.quote(data.name)}\n"
        f"سن: {data.min_age} تا {data.max_age}\n"
        f"کد ملی: {data.national_code_text}\n"
        f"توضیحات: {html.quote(data.description_text)}\n"
        f"لایسنس: {html.quote(data.license)}\n"
        f"شناسه: <code>{request_id}</code>"
    )


class SubmissionService:
    """
    Жизненный цикл заявки:
    intake -> awaiting_decision -> awaiting_explanation -> resolved.

    Все переходы читают и пишут только redis; состояние процесса между
    вызовами не хранится.
    """

    def __init__(
        self,
        store: RequestStore = Depends(get_request_store),
        channel: AdminChannel = Depends(get_admin_channel),
        registry: LicenseRegistry = Depends(get_license_registry),
        settings: Settings = Depends(get_settings),
    ):
        self.store = store
        self.channel = channel
        self.registry = registry
        self.admin_chat_id = settings.ADMIN_CHAT_ID
        self.decision_buttons = settings.DECISION_BUTTONS

    # ===== Submitter side =====
    async def intake(self, data: SubmitFormIn) -> ActionResult:
        logger.info(f"Received form: name={data.name!r}, nationalCode={data.national_code}, license={data.license}")

        if self.registry.validate(data.license) is None:
            logger.info(f"Invalid license: {data.license}")
            return ActionResult(success=False, message=INVALID_LICENSE_MESSAGE)

        request_id = new_request_id()
        text = format_request_message(data, request_id)

        buttons = None
        if self.decision_buttons:
            buttons = [
                (action.label, build_callback_data(action, data.national_code, data.license, request_id))
                for action in (DecisionAction.accept, DecisionAction.reject)
            ]

        try:
            msg = await self.channel.send_request(text, buttons)
        except DeliveryFailed as e:
            logger.error(f"Failed to send request {request_id} to Telegram: {e}")
            return ActionResult(success=False, message=DELIVERY_FAILED_MESSAGE)

        # без кнопок сразу ждём текст от админа
        state = RequestState.awaiting_decision if self.decision_buttons else RequestState.awaiting_explanation
        pending = PendingDecision(
            state=state,
            chat_id=self.admin_chat_id,
            message_id=msg.message_id,
            request_id=request_id,
            national_code=data.national_code,
            license=data.license,
        )
        key = pending_key(request_id, data.national_code, data.license)
        await self.store.set(key, pending.to_json(), PENDING_TTL)
        if state is RequestState.awaiting_explanation:
            await self.store.enqueue_for_admin(self.admin_chat_id, key)

        logger.info(f"Form sent to Telegram: request_id={request_id}, state={state.value}")
        return ActionResult(success=True, message=SUBMITTED_MESSAGE)

    async def poll_response(self, national_code: str, license: str) -> Optional[str]:
        return await self.store.get(response_key(national_code, license))

    async def clear_response(self, national_code: str, license: str) -> None:
        await self.store.delete(response_key(national_code, license))

    # ===== Admin side =====
    async def handle_decision(
        self,
        data: Optional[str],
        chat_id: Optional[int],
        message_id: Optional[int],
        callback_id: str,
    ) -> None:
        if chat_id != self.admin_chat_id:
            logger.info(f"[CB] ignored from chat={chat_id}")
            return

        if not data:
            await self.channel.answer_callback(callback_id, EMPTY_CALLBACK_MESSAGE)
            return

        parsed = parse_callback_data(data)
        if parsed is None:
            logger.warning(f"[CB] malformed data={data!r}")
            await self.channel.answer_callback(callback_id, MALFORMED_CALLBACK_MESSAGE)
            return
        action, national_code, license, request_id = parsed

        marker = callback_key(request_id, national_code, license)
        if await self.store.exists(marker):
            await self.channel.answer_callback(callback_id, ALREADY_PROCESSED_MESSAGE)
            return

        # 1) pending -> awaiting_explanation
        key = pending_key(request_id, national_code, license)
        pending = PendingDecision(
            state=RequestState.awaiting_explanation,
            action=action,
            chat_id=chat_id,
            message_id=message_id,
            request_id=request_id,
            national_code=national_code,
            license=license,
        )
        await self.store.set(key, pending.to_json(), PENDING_TTL)
        await self.store.enqueue_for_admin(chat_id, key)
        logger.info(f"Stored pending action: key={key}, action={action.value}")

        # 2) убираем кнопки, 3) просим пояснение, 4) отвечаем на нажатие
        await self.channel.strip_buttons(chat_id, message_id)
        await self.channel.send_text(chat_id, f"لطفاً توضیحات برای {action.label} درخواست را وارد کنید:")
        await self.channel.answer_callback(callback_id, f"درخواست برای {action.label} ثبت شد.")

        # 5) маркер пишется последним
        await self.store.set(marker, "true", CALLBACK_TTL)

    async def next_pending_for_chat(self, chat_id: int) -> Optional[tuple[str, PendingDecision]]:
        """Самая старая запись в awaiting_explanation для этого чата."""
        for key in await self.store.admin_queue(chat_id):
            raw = await self.store.get(key)
            if raw is None:
                # истёк TTL
                await self.store.dequeue_for_admin(chat_id, key)
                continue
            pending = PendingDecision.from_json(raw)
            if pending.state is RequestState.awaiting_explanation and pending.chat_id == chat_id:
                return key, pending
        return None

    async def handle_admin_reply(self, chat_id: int, text: Optional[str]) -> None:
        if chat_id != self.admin_chat_id or not text or text.startswith(COMMAND_PREFIX):
            return

        logger.info(f"Received message from admin: {text!r}")
        found = await self.next_pending_for_chat(chat_id)
        if found is None:
            logger.info("No pending action found for text message")
            await self.channel.send_text(chat_id, NO_PENDING_MESSAGE)
            return
        key, pending = found

        response = compose_response(pending.action, text)
        await self.store.set(response_key(pending.national_code, pending.license), response, RESPONSE_TTL)
        await self.store.delete(key)
        await self.store.dequeue_for_admin(chat_id, key)
        logger.info(f"Stored response for request_id={pending.request_id}")

        await self.channel.send_text(chat_id, f"پاسخ ثبت شد: {html.quote(response)}")

    async def list_pending(self) -> list[PendingDecision]:
        records = []
        async for key in self.store.scan_prefix(PENDING_PREFIX):
            raw = await self.store.get(key)
            if raw is not None:
                records.append(PendingDecision.from_json(raw))
        return sorted(records, key=lambda p: p.created_at)
