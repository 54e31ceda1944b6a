import os
from fnmatch import fnmatch
from types import SimpleNamespace

import pytest

# Ensure required environment variables are present before settings import
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456789:AAHtestTOKENtestTOKENtestTOKENtest12345")
os.environ.setdefault("ADMIN_CHAT_ID", "1001")
os.environ.setdefault("APP_ENV", "dev")

from approvals.common.store import RequestStore  # noqa: E402
from approvals.core.config import get_settings  # noqa: E402
from approvals.licenses.services import LicenseRegistry  # noqa: E402
from approvals.submissions.services import SubmissionService  # noqa: E402
from tgbot.channel import DeliveryFailed  # noqa: E402

ADMIN_CHAT_ID = 1001


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis the store uses."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.ttls: dict[str, int] = {}
        self.writes: list[str] = []

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.writes.append(key)
        if ex is not None:
            self.ttls[key] = ex
        else:
            self.ttls.pop(key, None)
        return True

    async def exists(self, *keys):
        return sum(1 for k in keys if k in self.data or k in self.zsets)

    async def delete(self, *keys):
        removed = 0
        for k in keys:
            if self.data.pop(k, None) is not None or self.zsets.pop(k, None) is not None:
                removed += 1
            self.ttls.pop(k, None)
        return removed

    async def scan_iter(self, match=None):
        for key in list(self.data):
            if match is None or fnmatch(key, match):
                yield key

    async def zadd(self, key, mapping):
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def zrange(self, key, start, end):
        members = [m for m, _ in sorted(self.zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]))]
        return members[start:] if end == -1 else members[start:end + 1]

    async def zrem(self, key, *members):
        zset = self.zsets.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def ping(self):
        return True

    def expire_now(self, key):
        self.data.pop(key, None)
        self.ttls.pop(key, None)


class FakeAdminChannel:
    """Records everything the engine sends to the admin chat."""

    def __init__(self, admin_chat_id=ADMIN_CHAT_ID):
        self.admin_chat_id = admin_chat_id
        self.requests: list[tuple[str, list | None]] = []
        self.texts: list[tuple[int, str]] = []
        self.answers: list[tuple[str, str]] = []
        self.stripped: list[tuple[int, int]] = []
        self.fail = False
        self._next_message_id = 500

    async def send_request(self, text, buttons=None):
        if self.fail:
            raise DeliveryFailed("Forbidden: bot was blocked by the user")
        self.requests.append((text, buttons))
        self._next_message_id += 1
        return SimpleNamespace(message_id=self._next_message_id)

    async def strip_buttons(self, chat_id, message_id):
        self.stripped.append((chat_id, message_id))

    async def send_text(self, chat_id, text):
        self.texts.append((chat_id, text))

    async def answer_callback(self, callback_id, text):
        self.answers.append((callback_id, text))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def store(redis_client):
    return RequestStore(redis_client)


@pytest.fixture
def channel():
    return FakeAdminChannel()


@pytest.fixture
def make_service(store, channel):
    def _make(**overrides):
        settings = get_settings().model_copy(update=overrides)
        return SubmissionService(store=store, channel=channel, registry=LicenseRegistry(), settings=settings)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def form():
    return {
        "name": "Sara",
        "minAge": 20,
        "maxAge": 30,
        "nationalCode": "1234567890",
        "description": "ندارد",
        "license": "123",
    }
