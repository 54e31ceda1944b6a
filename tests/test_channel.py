from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import (
    TelegramBadRequest,
    TelegramForbiddenError,
    TelegramNetworkError,
    TelegramServerError,
)

from approvals.core.config import get_settings
from approvals.licenses.services import LicenseRegistry
from approvals.submissions.services import SubmissionService
from conftest import ADMIN_CHAT_ID
from tgbot.channel import AdminChannel, DeliveryFailed, decision_kb


@pytest.fixture
def tg_bot():
    bot = AsyncMock()
    bot.send_message.return_value = AsyncMock(message_id=700)
    return bot


@pytest.fixture
def admin_channel(tg_bot):
    return AdminChannel(tg_bot, ADMIN_CHAT_ID)


def test_decision_kb_is_one_row():
    kb = decision_kb([("تأیید", "accept_1_123_ab"), ("رد", "reject_1_123_ab")])

    assert len(kb.inline_keyboard) == 1
    row = kb.inline_keyboard[0]
    assert [b.text for b in row] == ["تأیید", "رد"]
    assert [b.callback_data for b in row] == ["accept_1_123_ab", "reject_1_123_ab"]


@pytest.mark.anyio
async def test_send_request_goes_to_admin_with_keyboard(admin_channel, tg_bot):
    msg = await admin_channel.send_request("hi", [("تأیید", "accept_1_123_ab")])

    assert msg.message_id == 700
    args, kwargs = tg_bot.send_message.await_args
    assert args == (ADMIN_CHAT_ID, "hi")
    assert kwargs["reply_markup"].inline_keyboard[0][0].callback_data == "accept_1_123_ab"


@pytest.mark.anyio
async def test_send_request_without_buttons(admin_channel, tg_bot):
    await admin_channel.send_request("hi")

    assert tg_bot.send_message.await_args.kwargs["reply_markup"] is None


@pytest.mark.anyio
@pytest.mark.parametrize("error", [
    TelegramForbiddenError(method=None, message="bot was blocked by the user"),
    TelegramNetworkError(method=None, message="timeout"),
])
async def test_send_request_wraps_telegram_errors(admin_channel, tg_bot, error):
    tg_bot.send_message.side_effect = error

    with pytest.raises(DeliveryFailed):
        await admin_channel.send_request("hi")


@pytest.mark.anyio
@pytest.mark.parametrize("error", [
    TelegramBadRequest(method=None, message="message is not modified"),
    TelegramNetworkError(method=None, message="timeout"),
    TelegramServerError(method=None, message="Bad Gateway"),
])
async def test_best_effort_calls_do_not_raise(admin_channel, tg_bot, error):
    tg_bot.edit_message_reply_markup.side_effect = error
    tg_bot.send_message.side_effect = error
    tg_bot.answer_callback_query.side_effect = error

    await admin_channel.strip_buttons(ADMIN_CHAT_ID, 5)
    await admin_channel.send_text(ADMIN_CHAT_ID, "x")
    await admin_channel.answer_callback("cb", "x")

    tg_bot.edit_message_reply_markup.assert_awaited_once_with(chat_id=ADMIN_CHAT_ID, message_id=5, reply_markup=None)


@pytest.mark.anyio
async def test_strip_buttons_without_message_id_is_noop(admin_channel, tg_bot):
    await admin_channel.strip_buttons(ADMIN_CHAT_ID, None)

    tg_bot.edit_message_reply_markup.assert_not_awaited()


@pytest.mark.anyio
async def test_decision_completes_when_button_removal_fails(admin_channel, tg_bot, store, redis_client):
    tg_bot.edit_message_reply_markup.side_effect = TelegramNetworkError(method=None, message="timeout")
    service = SubmissionService(store=store, channel=admin_channel, registry=LicenseRegistry(), settings=get_settings())

    await service.handle_decision("accept_1_123_abc", ADMIN_CHAT_ID, 10, "cb-1")

    assert tg_bot.send_message.await_count == 1
    tg_bot.answer_callback_query.assert_awaited_once()
    assert redis_client.data["callback_abc_1_123"] == "true"
    assert "pending_abc_1_123" in redis_client.data
