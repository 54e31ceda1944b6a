import enum
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestState(str, enum.Enum):
    awaiting_decision = "awaiting_decision"
    awaiting_explanation = "awaiting_explanation"


class DecisionAction(str, enum.Enum):
    accept = "accept"
    reject = "reject"

    @property
    def label(self) -> str:
        return ACTION_LABELS[self]


ACTION_LABELS = {
    DecisionAction.accept: "تأیید",
    DecisionAction.reject: "رد",
}


class PendingDecision(BaseModel):
    """
    Запись pending_<requestId>_<nationalCode>_<license>.
    Состояние хранится явно в поле state, а не выводится из префикса ключа.
    """

    model_config = ConfigDict(populate_by_name=True)

    state: RequestState
    action: Optional[DecisionAction] = None
    chat_id: int = Field(alias="chatId")
    message_id: Optional[int] = Field(default=None, alias="messageId")
    request_id: str = Field(alias="requestId")
    national_code: str = Field(alias="nationalCode")
    license: str
    created_at: float = Field(default_factory=time.time, alias="createdAt")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "PendingDecision":
        return cls.model_validate_json(raw)
