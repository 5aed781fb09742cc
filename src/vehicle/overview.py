from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

import httpx

from src.vehicle.interface import (
    IdentityClient,
    PlatformError,
    TelemetryClient,
    VehicleIdentity,
)
from src.vehicle.odometer import OdometerHistory, normalize_odometer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleOverview:
    vehicle: VehicleIdentity
    odometer: OdometerHistory
    telemetry_error: str | None = None


async def get_vehicle_overview(
    identity: IdentityClient,
    telemetry: TelemetryClient,
    token_id: int,
    vehicle_token: str,
) -> VehicleOverview | None:
    """Fetch identity and odometer history for one vehicle.

    Returns None when the identity platform does not know the vehicle.
    Identity failures propagate; telemetry failures only leave the odometer
    history empty. The VIN comes from the telemetry platform when available.
    """
    vehicle = await identity.get_vehicle(token_id)
    if vehicle is None:
        return None

    try:
        report = await telemetry.get_telemetry(token_id, vehicle_token)
    except (httpx.HTTPError, PlatformError) as exc:
        logger.exception("Telemetry fetch failed for vehicle %s", token_id)
        return VehicleOverview(
            vehicle=vehicle, odometer=OdometerHistory(), telemetry_error=str(exc)
        )

    if report.vin:
        vehicle = dataclasses.replace(vehicle, vin=report.vin)
    odometer = normalize_odometer(report.samples)
    if odometer.current is None:
        logger.info("No odometer signals for vehicle %s", token_id)
    return VehicleOverview(vehicle=vehicle, odometer=odometer)
