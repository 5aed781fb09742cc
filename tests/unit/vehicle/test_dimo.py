import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from src.vehicle.dimo import (
    VEHICLE_CONTRACT_ADDRESS,
    DimoIdentityClient,
    DimoTelemetryClient,
    DimoTokenExchange,
    format_token_id,
)
from src.vehicle.interface import UNKNOWN, PlatformError

IDENTITY_URL = "https://identity.test/query"
TELEMETRY_URL = "https://telemetry.test/query"
EXCHANGE_URL = "https://exchange.test"


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _graphql_response(data: Any = None, errors: Any = None) -> httpx.Response:
    payload: dict[str, Any] = {"data": data}
    if errors is not None:
        payload["errors"] = errors
    return httpx.Response(200, json=payload)


class TestFormatTokenId:
    def test_shortens_token(self) -> None:
        assert format_token_id(12345678901234) == "123456...1234"

    def test_missing_token(self) -> None:
        assert format_token_id(None) == "N/A"


class TestDimoIdentityClient:
    async def test_get_vehicle(self) -> None:
        requests: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return _graphql_response(
                {
                    "vehicle": {
                        "id": "0xabc",
                        "tokenId": 42,
                        "owner": "0xowner",
                        "mintedAt": "2023-03-01T12:00:00Z",
                        "definition": {
                            "id": "toyota_corolla_2019",
                            "make": "Toyota",
                            "model": "Corolla",
                            "year": 2019,
                        },
                    }
                }
            )

        async with _client(handler) as http:
            vehicle = await DimoIdentityClient.create(http, IDENTITY_URL).get_vehicle(
                42
            )

        assert vehicle is not None
        assert vehicle.token_id == 42
        assert vehicle.make == "Toyota"
        assert vehicle.model == "Corolla"
        assert vehicle.year == "2019"
        assert vehicle.owner == "0xowner"
        assert vehicle.definition_id == "toyota_corolla_2019"
        assert vehicle.minted_at == datetime(2023, 3, 1, 12, tzinfo=timezone.utc)
        assert requests[0]["variables"] == {"tokenId": 42}

    async def test_missing_definition_fields_are_unknown(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _graphql_response({"vehicle": {"tokenId": 12345678901}})

        async with _client(handler) as http:
            vehicle = await DimoIdentityClient(http, IDENTITY_URL).get_vehicle(
                12345678901
            )

        assert vehicle is not None
        assert vehicle.make == UNKNOWN
        assert vehicle.model == UNKNOWN
        assert vehicle.year == UNKNOWN
        assert vehicle.owner == "123456...8901"
        assert vehicle.minted_at is None

    async def test_unknown_vehicle_returns_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _graphql_response({"vehicle": None})

        async with _client(handler) as http:
            assert await DimoIdentityClient(http, IDENTITY_URL).get_vehicle(1) is None

    async def test_graphql_errors_raise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _graphql_response(None, errors=[{"message": "bad"}])

        async with _client(handler) as http:
            with pytest.raises(PlatformError):
                await DimoIdentityClient(http, IDENTITY_URL).get_vehicle(1)

    async def test_http_errors_raise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with _client(handler) as http:
            with pytest.raises(httpx.HTTPStatusError):
                await DimoIdentityClient(http, IDENTITY_URL).get_vehicle(1)

    async def test_html_body_raises_platform_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                text="<html>maintenance</html>",
                headers={"content-type": "text/html"},
            )

        async with _client(handler) as http:
            with pytest.raises(PlatformError, match="not JSON"):
                await DimoIdentityClient(http, IDENTITY_URL).get_vehicle(1)

    async def test_json_array_body_raises_platform_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"data": {}}])

        async with _client(handler) as http:
            with pytest.raises(PlatformError, match="not a JSON object"):
                await DimoIdentityClient(http, IDENTITY_URL).get_vehicle(1)

    async def test_list_vehicles(self) -> None:
        requests: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return _graphql_response(
                {
                    "vehicles": {
                        "totalCount": 2,
                        "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
                        "nodes": [
                            {
                                "tokenId": 1,
                                "definition": {"id": "ford_f150_2020"},
                                "aftermarketDevice": {"imei": "35000"},
                            },
                            {"tokenId": 2},
                        ],
                    }
                }
            )

        async with _client(handler) as http:
            page = await DimoIdentityClient(http, IDENTITY_URL).list_vehicles(
                "0xowner", after="c0"
            )

        assert page.total_count == 2
        assert page.has_next_page is True
        assert page.end_cursor == "c1"
        assert [v.token_id for v in page.vehicles] == [1, 2]
        assert page.vehicles[0].imei == "35000"
        assert page.vehicles[0].definition_id == "ford_f150_2020"
        assert requests[0]["variables"] == {
            "owner": "0xowner",
            "first": DimoIdentityClient.PAGE_SIZE,
            "after": "c0",
        }


class TestDimoTelemetryClient:
    async def test_parses_signals_and_sends_vehicle_token(self) -> None:
        headers: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            headers.append(request.headers.get("Authorization"))
            return _graphql_response(
                {
                    "vinVCLatest": {"vin": "1HGCM82633A004352"},
                    "signals": [
                        {
                            "powertrainTransmissionTravelledDistance": 12000.5,
                            "timestamp": "2024-01-01T00:00:00Z",
                        },
                        {
                            "powertrainTransmissionTravelledDistance": None,
                            "timestamp": "2023-01-01T00:00:00Z",
                        },
                        {
                            "powertrainTransmissionTravelledDistance": "n/a",
                            "timestamp": "2022-06-01T00:00:00Z",
                        },
                        {
                            "powertrainTransmissionTravelledDistance": 8000,
                            "timestamp": "2023-01-01T00:00:00Z",
                        },
                    ],
                }
            )

        async with _client(handler) as http:
            telemetry = await DimoTelemetryClient(http, TELEMETRY_URL).get_telemetry(
                42, "vtoken"
            )

        assert headers == ["Bearer vtoken"]
        assert telemetry.vin == "1HGCM82633A004352"
        assert [s.kilometers for s in telemetry.samples] == [12000.5, 8000.0]
        assert telemetry.samples[0].timestamp == datetime(
            2024, 1, 1, tzinfo=timezone.utc
        )

    async def test_no_signals(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _graphql_response({"signals": None, "vinVCLatest": None})

        async with _client(handler) as http:
            telemetry = await DimoTelemetryClient(http, TELEMETRY_URL).get_telemetry(
                42, "vtoken"
            )

        assert telemetry.vin is None
        assert telemetry.samples == ()

    async def test_vin_error_keeps_signals(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _graphql_response(
                {
                    "vinVCLatest": None,
                    "signals": [
                        {
                            "powertrainTransmissionTravelledDistance": 500,
                            "timestamp": "2024-01-01T00:00:00Z",
                        }
                    ],
                },
                errors=[{"message": "no VIN credential", "path": ["vinVCLatest"]}],
            )

        async with _client(handler) as http:
            telemetry = await DimoTelemetryClient(http, TELEMETRY_URL).get_telemetry(
                42, "vtoken"
            )

        assert telemetry.vin is None
        assert [s.kilometers for s in telemetry.samples] == [500.0]

    async def test_errors_without_data_raise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _graphql_response(None, errors=[{"message": "unauthorized"}])

        async with _client(handler) as http:
            with pytest.raises(PlatformError):
                await DimoTelemetryClient(http, TELEMETRY_URL).get_telemetry(42, "x")

    async def test_create_applies_lookback(self) -> None:
        variables: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            variables.append(json.loads(request.content)["variables"])
            return _graphql_response({"signals": []})

        async with _client(handler) as http:
            client = DimoTelemetryClient.create(
                http, TELEMETRY_URL, lookback=timedelta(days=10)
            )
            await client.get_telemetry(42, "vtoken")

        start = datetime.fromisoformat(variables[0]["from"].replace("Z", "+00:00"))
        end = datetime.fromisoformat(variables[0]["to"].replace("Z", "+00:00"))
        assert (end.date() - start.date()).days == 10

    async def test_html_body_raises_platform_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>Bad gateway</html>")

        async with _client(handler) as http:
            with pytest.raises(PlatformError):
                await DimoTelemetryClient(http, TELEMETRY_URL).get_telemetry(42, "x")


class TestDimoTokenExchange:
    async def test_exchanges_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"token": "vehicle-jwt"})

        async with _client(handler) as http:
            token = await DimoTokenExchange.create(
                http, EXCHANGE_URL + "/"
            ).get_vehicle_token(42, "dev-jwt")

        assert token == "vehicle-jwt"
        assert str(seen[0].url) == "https://exchange.test/v1/tokens/exchange"
        assert seen[0].headers["Authorization"] == "Bearer dev-jwt"
        assert json.loads(seen[0].content) == {
            "nftContractAddress": VEHICLE_CONTRACT_ADDRESS,
            "privileges": [1],
            "tokenId": 42,
        }

    async def test_missing_token_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        async with _client(handler) as http:
            with pytest.raises(PlatformError):
                await DimoTokenExchange(http, EXCHANGE_URL).get_vehicle_token(42, "x")

    async def test_html_body_raises_platform_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>Service unavailable</html>")

        async with _client(handler) as http:
            with pytest.raises(PlatformError, match="not JSON"):
                await DimoTokenExchange(http, EXCHANGE_URL).get_vehicle_token(42, "x")
