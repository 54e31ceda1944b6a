from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

NONE_SENTINEL = "ندارد"
NO_NATIONAL_CODE = "0"


class SubmitFormIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    name: str = Field(min_length=1, max_length=100)
    min_age: int = Field(alias="minAge", ge=0)
    max_age: int = Field(alias="maxAge", ge=0)
    # "0" — кода нет; только цифры, чтобы "_" не ломал callback_data
    national_code: str = Field(default=NO_NATIONAL_CODE, alias="nationalCode", pattern=r"^\d{1,10}$")
    description: Optional[str] = None
    license: str = Field(min_length=1, max_length=12, pattern=r"^[^_]+$")

    @model_validator(mode="after")
    def _check_ages(self):
        if self.min_age > self.max_age:
            raise ValueError("minAge must not exceed maxAge")
        return self

    @property
    def national_code_text(self) -> str:
        return NONE_SENTINEL if self.national_code == NO_NATIONAL_CODE else self.national_code

    @property
    def description_text(self) -> str:
        text = (self.description or "").strip()
        return text if text and text != NONE_SENTINEL else NONE_SENTINEL


class ResponseLookupIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    national_code: str = Field(alias="nationalCode")
    license: str


class ActionResult(BaseModel):
    success: bool
    message: Optional[str] = None
