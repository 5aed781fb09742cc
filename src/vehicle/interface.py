from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Self

import httpx

UNKNOWN = "Unknown"

DEFAULT_TELEMETRY_LOOKBACK = timedelta(days=4 * 365)


class PlatformError(Exception):
    """The vehicle data platform answered, but not with usable data."""


@dataclass(frozen=True)
class VehicleIdentity:
    token_id: int
    make: str = UNKNOWN
    model: str = UNKNOWN
    year: str = UNKNOWN
    owner: str = UNKNOWN
    definition_id: str = UNKNOWN
    minted_at: datetime | None = None
    imei: str | None = None
    vin: str | None = None


@dataclass(frozen=True)
class VehiclePage:
    total_count: int
    has_next_page: bool
    end_cursor: str | None
    vehicles: tuple[VehicleIdentity, ...] = ()


@dataclass(frozen=True)
class TelemetrySample:
    timestamp: datetime
    kilometers: float


@dataclass(frozen=True)
class VehicleTelemetry:
    """Latest VIN credential and distance samples for one vehicle."""

    vin: str | None = None
    samples: tuple[TelemetrySample, ...] = ()


class IdentityClient(ABC):
    @classmethod
    @abstractmethod
    def create(cls, client: httpx.AsyncClient, url: str) -> Self: ...

    @abstractmethod
    async def get_vehicle(self, token_id: int) -> VehicleIdentity | None: ...

    @abstractmethod
    async def list_vehicles(
        self, owner: str, after: str | None = None
    ) -> VehiclePage: ...


class TelemetryClient(ABC):
    @classmethod
    @abstractmethod
    def create(
        cls,
        client: httpx.AsyncClient,
        url: str,
        lookback: timedelta = DEFAULT_TELEMETRY_LOOKBACK,
    ) -> Self: ...

    @abstractmethod
    async def get_telemetry(
        self, token_id: int, vehicle_token: str
    ) -> VehicleTelemetry: ...


class TokenExchange(ABC):
    @classmethod
    @abstractmethod
    def create(cls, client: httpx.AsyncClient, url: str) -> Self: ...

    @abstractmethod
    async def get_vehicle_token(self, token_id: int, developer_token: str) -> str: ...
