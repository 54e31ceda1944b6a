from approvals.core.config import get_settings
from tgbot.channel import AdminChannel
from tgbot.core import bot


def get_admin_channel() -> AdminChannel:
    return AdminChannel(bot, get_settings().ADMIN_CHAT_ID)
