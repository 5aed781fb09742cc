from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.extraction.normalize import parse_mileage, parse_money, parse_service_date


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ExtractedServiceRecord(BaseModel):
    """Pydantic schema for the JSON the model returns for a service document.

    Every field is optional and unparsable values become None, so validation
    of a JSON object never fails.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    service_date: date | None = Field(None, validation_alias="date")
    service_type: str | None = Field(
        None,
        validation_alias=AliasChoices("serviceType", "service_type", "service"),
        description="Type of service performed",
    )
    description: str | None = Field(None, description="Work done")
    parts: list[str] = Field(default_factory=list)
    labor: float | None = None
    parts_cost: float | None = Field(
        None, validation_alias=AliasChoices("partsCost", "parts_cost")
    )
    total_cost: float | None = Field(
        None, validation_alias=AliasChoices("totalCost", "total_cost", "amount")
    )
    mileage: int | None = Field(None, description="Odometer at time of service")
    next_service: str | None = Field(
        None, validation_alias=AliasChoices("nextService", "next_service")
    )
    notes: str | None = None

    @field_validator("service_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> date | None:
        return parse_service_date(value)

    @field_validator(
        "service_type", "description", "next_service", "notes", mode="before"
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return _text_or_none(value)

    @field_validator("parts", mode="before")
    @classmethod
    def _coerce_parts(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [text for item in value if (text := _text_or_none(item))]
        text = _text_or_none(value)
        return [text] if text else []

    @field_validator("labor", "parts_cost", "total_cost", mode="before")
    @classmethod
    def _coerce_money(cls, value: Any) -> float | None:
        return parse_money(value)

    @field_validator("mileage", mode="before")
    @classmethod
    def _coerce_mileage(cls, value: Any) -> int | None:
        return parse_mileage(value)

    @property
    def record_description(self) -> str | None:
        """Short label for the record: the service type, else the description."""
        return self.service_type or self.description

    @property
    def record_summary(self) -> str | None:
        """The first of description and notes not already used as the label."""
        label = self.record_description
        for candidate in (self.description, self.notes):
            if candidate is not None and candidate != label:
                return candidate
        return None
