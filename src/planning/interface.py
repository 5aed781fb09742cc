from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.extraction.normalize import parse_mileage, parse_money
from src.llm.interface import FailureKind
from src.vehicle.interface import UNKNOWN

DEFAULT_HORIZON_MILES = 60_000


@dataclass(frozen=True)
class HistoryEntry:
    service_date: date | None = None
    mileage: int | None = None
    description: str | None = None
    cost: float | None = None


@dataclass(frozen=True)
class PlanRequest:
    """Input for a projection. History is ordered most recent first."""

    current_mileage: float
    make: str = UNKNOWN
    model: str = UNKNOWN
    year: str = UNKNOWN
    history: tuple[HistoryEntry, ...] = ()
    horizon_miles: int = DEFAULT_HORIZON_MILES


class PlanEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mileage: int
    services: list[str]
    estimated_cost: float = Field(alias="estimatedCost")

    @field_validator("mileage", mode="before")
    @classmethod
    def _coerce_mileage(cls, value: Any) -> int:
        mileage = parse_mileage(value)
        if mileage is None:
            raise ValueError("mileage must be a number")
        return mileage

    @field_validator("services", mode="before")
    @classmethod
    def _coerce_services(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("estimated_cost", mode="before")
    @classmethod
    def _coerce_cost(cls, value: Any) -> float:
        cost = parse_money(value)
        if cost is None:
            raise ValueError("estimatedCost must be a number")
        return cost


@dataclass(frozen=True)
class PlanReady:
    plan: list[PlanEntry]
    raw_content: str | None = None


@dataclass(frozen=True)
class PlanFailed:
    error: str
    failure: FailureKind
    raw_content: str | None = None


PlanOutcome = PlanReady | PlanFailed


class PlanStrategy(ABC):
    @abstractmethod
    async def project(self, request: PlanRequest) -> PlanOutcome: ...
