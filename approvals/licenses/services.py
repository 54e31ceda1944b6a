from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DISPLAY_NAME = "کاربر"


@dataclass(frozen=True)
class LicenseRecord:
    valid: bool
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or DEFAULT_DISPLAY_NAME


# захардкоженная таблица лицензий
LICENSES: dict[str, LicenseRecord] = {
    "123": LicenseRecord(valid=True, name="محمد"),
    "456": LicenseRecord(valid=True, name="علی"),
    "789": LicenseRecord(valid=True, name="زهرا"),
}


class LicenseRegistry:
    def __init__(self, table: Mapping[str, LicenseRecord] | None = None):
        self.table = LICENSES if table is None else table

    def validate(self, code: str) -> Optional[LicenseRecord]:
        """Запись лицензии, если она есть и действительна, иначе None."""
        record = self.table.get(code)
        if record is None or not record.valid:
            return None
        return record


def get_license_registry() -> LicenseRegistry:
    return LicenseRegistry()
