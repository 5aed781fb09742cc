import os
from datetime import timedelta

import httpx

from src.vehicle.dimo import DimoIdentityClient, DimoTelemetryClient, DimoTokenExchange
from src.vehicle.interface import IdentityClient, TelemetryClient, TokenExchange

IDENTITY_URL = os.environ.get(
    "ODOREPORT_IDENTITY_URL", "https://identity-api.dimo.zone/query"
)
TELEMETRY_URL = os.environ.get(
    "ODOREPORT_TELEMETRY_URL", "https://telemetry-api.dimo.zone/query"
)
TOKEN_EXCHANGE_URL = os.environ.get(
    "ODOREPORT_TOKEN_EXCHANGE_URL", "https://token-exchange-api.dimo.zone"
)
TELEMETRY_LOOKBACK_DAYS = int(
    os.environ.get("ODOREPORT_TELEMETRY_LOOKBACK_DAYS", str(4 * 365))
)


def create_identity_client(client: httpx.AsyncClient) -> IdentityClient:
    return DimoIdentityClient.create(client, IDENTITY_URL)


def create_telemetry_client(client: httpx.AsyncClient) -> TelemetryClient:
    return DimoTelemetryClient.create(
        client, TELEMETRY_URL, lookback=timedelta(days=TELEMETRY_LOOKBACK_DAYS)
    )


def create_token_exchange(client: httpx.AsyncClient) -> TokenExchange:
    return DimoTokenExchange.create(client, TOKEN_EXCHANGE_URL)
