from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Self

import httpx

from src.vehicle.interface import (
    DEFAULT_TELEMETRY_LOOKBACK,
    UNKNOWN,
    IdentityClient,
    PlatformError,
    TelemetryClient,
    TelemetrySample,
    TokenExchange,
    VehicleIdentity,
    VehiclePage,
    VehicleTelemetry,
)

logger = logging.getLogger(__name__)

VEHICLE_CONTRACT_ADDRESS = "0xbA5738a18d83D41847dfFbDC6101d37C69c9B0cF"


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise PlatformError(f"Response from {response.url} is not JSON") from exc
    if not isinstance(payload, dict):
        raise PlatformError(f"Response from {response.url} is not a JSON object")
    return payload


async def _graphql(
    client: httpx.AsyncClient,
    url: str,
    query: str,
    variables: dict[str, Any],
    token: str | None = None,
    allow_partial: bool = False,
) -> dict[str, Any]:
    """POST a GraphQL query and return its ``data``.

    With ``allow_partial``, errors are only logged when some data came back.
    """
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    response = await client.post(
        url, json={"query": query, "variables": variables}, headers=headers
    )
    response.raise_for_status()

    payload = _json_object(response)
    data = payload.get("data")
    errors = payload.get("errors")
    if errors and not (allow_partial and isinstance(data, dict)):
        raise PlatformError(f"GraphQL errors: {errors}")
    if not isinstance(data, dict):
        raise PlatformError("GraphQL response has no data")
    if errors:
        logger.warning("Partial GraphQL response from %s: %s", url, errors)
    return data


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_token_id(token_id: int | str | None) -> str:
    """Shorten a token id for display, e.g. ``123456...7890``."""
    if not token_id:
        return "N/A"
    token = str(token_id)
    return f"{token[:6]}...{token[-4:]}"


class DimoIdentityClient(IdentityClient):
    _VEHICLE_QUERY = """
    query Vehicle($tokenId: Int!) {
      vehicle(tokenId: $tokenId) {
        id
        tokenId
        owner
        mintedAt
        definition {
          id
          make
          model
          year
        }
      }
    }
    """

    _VEHICLES_QUERY = """
    query Vehicles($owner: Address!, $first: Int!, $after: String) {
      vehicles(first: $first, after: $after, filterBy: { privileged: $owner }) {
        totalCount
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          tokenId
          mintedAt
          definition {
            id
          }
          aftermarketDevice {
            imei
          }
        }
      }
    }
    """

    PAGE_SIZE = 50

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    @classmethod
    def create(cls, client: httpx.AsyncClient, url: str) -> Self:
        return cls(client, url)

    async def get_vehicle(self, token_id: int) -> VehicleIdentity | None:
        data = await _graphql(
            self._client, self._url, self._VEHICLE_QUERY, {"tokenId": token_id}
        )
        vehicle = data.get("vehicle")
        if not vehicle:
            return None
        return self._to_identity(vehicle, token_id)

    async def list_vehicles(self, owner: str, after: str | None = None) -> VehiclePage:
        data = await _graphql(
            self._client,
            self._url,
            self._VEHICLES_QUERY,
            {"owner": owner, "first": self.PAGE_SIZE, "after": after},
        )
        vehicles = data.get("vehicles") or {}
        page_info = vehicles.get("pageInfo") or {}
        nodes = vehicles.get("nodes") or []

        return VehiclePage(
            total_count=vehicles.get("totalCount", len(nodes)),
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
            vehicles=tuple(self._to_identity(node) for node in nodes),
        )

    @staticmethod
    def _to_identity(
        vehicle: dict[str, Any], token_id: int | None = None
    ) -> VehicleIdentity:
        raw_token_id = vehicle.get("tokenId") or token_id or vehicle.get("id")
        try:
            resolved_token_id = int(raw_token_id)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise PlatformError(f"Vehicle has no usable token id: {vehicle!r}")

        definition = vehicle.get("definition") or {}
        device = vehicle.get("aftermarketDevice") or {}
        year = definition.get("year")

        return VehicleIdentity(
            token_id=resolved_token_id,
            make=definition.get("make") or UNKNOWN,
            model=definition.get("model") or UNKNOWN,
            year=str(year) if year else UNKNOWN,
            owner=vehicle.get("owner") or format_token_id(resolved_token_id),
            definition_id=definition.get("id") or UNKNOWN,
            minted_at=_parse_timestamp(vehicle.get("mintedAt")),
            imei=device.get("imei"),
        )


class DimoTelemetryClient(TelemetryClient):
    # One MAX bucket per year keeps the history short.
    _TELEMETRY_QUERY = """
    query Telemetry($tokenId: Int!, $from: Time!, $to: Time!) {
      vinVCLatest(tokenId: $tokenId) {
        vin
      }
      signals(tokenId: $tokenId, interval: "8760h", from: $from, to: $to) {
        powertrainTransmissionTravelledDistance(agg: MAX)
        timestamp
      }
    }
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        lookback: timedelta = DEFAULT_TELEMETRY_LOOKBACK,
    ) -> None:
        self._client = client
        self._url = url
        self._lookback = lookback

    @classmethod
    def create(
        cls,
        client: httpx.AsyncClient,
        url: str,
        lookback: timedelta = DEFAULT_TELEMETRY_LOOKBACK,
    ) -> Self:
        return cls(client, url, lookback)

    def _date_range(self) -> tuple[str, str]:
        end = datetime.now(timezone.utc)
        start = end - self._lookback
        return (
            f"{start.date().isoformat()}T00:00:00Z",
            f"{end.date().isoformat()}T23:59:59Z",
        )

    async def get_telemetry(
        self, token_id: int, vehicle_token: str
    ) -> VehicleTelemetry:
        start, end = self._date_range()
        # Vehicles without a VIN credential answer with an error for that field.
        data = await _graphql(
            self._client,
            self._url,
            self._TELEMETRY_QUERY,
            {"tokenId": token_id, "from": start, "to": end},
            token=vehicle_token,
            allow_partial=True,
        )
        vin_credential = data.get("vinVCLatest") or {}
        return VehicleTelemetry(
            vin=vin_credential.get("vin") or None,
            samples=tuple(self._parse_signals(data.get("signals") or [])),
        )

    @staticmethod
    def _parse_signals(signals: list[dict[str, Any]]) -> list[TelemetrySample]:
        samples: list[TelemetrySample] = []
        for signal in signals:
            distance = signal.get("powertrainTransmissionTravelledDistance")
            timestamp = _parse_timestamp(signal.get("timestamp"))
            try:
                kilometers = float(distance)
            except (TypeError, ValueError):
                kilometers = None
            if kilometers is None or timestamp is None:
                logger.debug("Skipping incomplete signal %r", signal)
                continue
            samples.append(TelemetrySample(timestamp=timestamp, kilometers=kilometers))
        return samples


class DimoTokenExchange(TokenExchange):
    _EXCHANGE_PATH = "/v1/tokens/exchange"
    _PRIVILEGES = (1,)

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url.rstrip("/")

    @classmethod
    def create(cls, client: httpx.AsyncClient, url: str) -> Self:
        return cls(client, url)

    async def get_vehicle_token(self, token_id: int, developer_token: str) -> str:
        response = await self._client.post(
            self._url + self._EXCHANGE_PATH,
            json={
                "nftContractAddress": VEHICLE_CONTRACT_ADDRESS,
                "privileges": list(self._PRIVILEGES),
                "tokenId": token_id,
            },
            headers={"Authorization": f"Bearer {developer_token}"},
        )
        response.raise_for_status()

        token = _json_object(response).get("token")
        if not token:
            raise PlatformError(f"Token exchange returned no token for {token_id}")
        return str(token)
