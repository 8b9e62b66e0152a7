"""Bank holiday schemas."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class BankHolidayInput(BaseModel):
    holiday_date: date
    name: str = Field(min_length=1)
    region: str = Field(min_length=1)

    def normalized(self) -> tuple[date, str, str]:
        """Return the row as trimmed values with an upper-case region."""

        return self.holiday_date, self.name.strip(), self.region.strip().upper()


class BankHolidayImport(BaseModel):
    holidays: list[BankHolidayInput] = Field(min_length=1)


class BankHolidayImportResult(BaseModel):
    received: int
    imported: int


class BankHolidayRead(BaseModel):
    id: int
    holiday_date: date
    name: str
    region: str

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "BankHolidayImport",
    "BankHolidayImportResult",
    "BankHolidayInput",
    "BankHolidayRead",
]
