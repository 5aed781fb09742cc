import logging
from datetime import datetime

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from src.auth import get_bearer_token
from src.base.dependencies import get_identity_client, get_telemetry_client
from src.vehicle.interface import IdentityClient, PlatformError, TelemetryClient
from src.vehicle.overview import VehicleOverview, get_vehicle_overview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles")


class VehicleResponse(BaseModel):
    model_config = {"from_attributes": True}

    token_id: int
    make: str
    model: str
    year: str
    owner: str
    definition_id: str
    minted_at: datetime | None
    imei: str | None
    vin: str | None = None


class OdometerRowResponse(BaseModel):
    timestamp: datetime
    kilometers: float
    miles: float
    delta: float | None


class VehicleOverviewResponse(BaseModel):
    vehicle: VehicleResponse
    odometer_reading: float | None
    odometer_timestamp: datetime | None
    odometer_unit: str | None
    odometer_history: list[OdometerRowResponse]
    telemetry_error: str | None


class VehiclePageResponse(BaseModel):
    total_count: int
    has_next_page: bool
    end_cursor: str | None
    vehicles: list[VehicleResponse]


def _to_response(overview: VehicleOverview) -> VehicleOverviewResponse:
    current = overview.odometer.current
    return VehicleOverviewResponse(
        vehicle=VehicleResponse.model_validate(overview.vehicle),
        odometer_reading=current.miles if current else None,
        odometer_timestamp=current.timestamp if current else None,
        odometer_unit="miles" if current else None,
        odometer_history=[
            OdometerRowResponse(
                timestamp=reading.timestamp,
                kilometers=reading.kilometers,
                miles=reading.miles,
                delta=delta,
            )
            for reading, delta in overview.odometer.rows()
        ],
        telemetry_error=overview.telemetry_error,
    )


@router.get("", response_model=VehiclePageResponse)
async def list_vehicles(
    owner: str,
    after: str | None = None,
    identity: IdentityClient = Depends(get_identity_client),
) -> VehiclePageResponse:
    try:
        page = await identity.list_vehicles(owner, after)
    except (httpx.HTTPError, PlatformError):
        logger.exception("Failed to list vehicles for %s", owner)
        raise HTTPException(status_code=502, detail="Failed to fetch vehicles")

    return VehiclePageResponse(
        total_count=page.total_count,
        has_next_page=page.has_next_page,
        end_cursor=page.end_cursor,
        vehicles=[VehicleResponse.model_validate(v) for v in page.vehicles],
    )


@router.get("/{token_id}", response_model=VehicleOverviewResponse)
async def get_vehicle(
    token_id: int,
    vehicle_token: str = Depends(get_bearer_token),
    identity: IdentityClient = Depends(get_identity_client),
    telemetry: TelemetryClient = Depends(get_telemetry_client),
) -> VehicleOverviewResponse:
    try:
        overview = await get_vehicle_overview(
            identity, telemetry, token_id, vehicle_token
        )
    except (httpx.HTTPError, PlatformError):
        logger.exception("Failed to get vehicle details for token %s", token_id)
        raise HTTPException(
            status_code=502,
            detail=f"Failed to get vehicle details for token {token_id}",
        )

    if overview is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return _to_response(overview)
