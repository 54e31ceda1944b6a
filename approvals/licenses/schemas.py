from typing import Optional

from pydantic import BaseModel, ConfigDict


class LicenseIn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    license: str


class LicenseOut(BaseModel):
    success: bool
    name: Optional[str] = None
    message: Optional[str] = None
