from collections.abc import AsyncGenerator
from datetime import date
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.dependencies import get_model, get_plan_strategy, get_session
from src.extraction.documents import MAX_DOCUMENT_BYTES
from src.llm.interface import FailureKind, GenerativeModel
from src.llm.responses import ChatChoice
from src.maintenance.models import MaintenanceRecord
from src.maintenance.router import router
from src.planning.interface import (
    PlanEntry,
    PlanFailed,
    PlanReady,
    PlanRequest,
    PlanStrategy,
)

AUTH = {"Authorization": "Bearer vtoken"}

ANSWER = (
    '```json\n{"date": "2024-03-15", "serviceType": "Oil change",'
    ' "totalCost": "$89.95", "mileage": "45,120"}\n```'
)


@pytest.fixture
def model() -> AsyncMock:
    mock = AsyncMock(spec=GenerativeModel)
    mock.generate.return_value = ChatChoice(content=ANSWER)
    return mock


@pytest.fixture
def strategy() -> AsyncMock:
    mock = AsyncMock(spec=PlanStrategy)
    mock.project.return_value = PlanReady(
        plan=[
            PlanEntry(mileage=50000, services=["Oil change"], estimated_cost=90.0),
        ]
    )
    return mock


@pytest.fixture
def app(db_session: AsyncSession, model: AsyncMock, strategy: AsyncMock) -> FastAPI:
    test_app = FastAPI()
    test_app.include_router(router)

    async def override_session() -> AsyncSession:  # type: ignore[misc]
        yield db_session  # type: ignore[misc]

    test_app.dependency_overrides[get_session] = override_session
    test_app.dependency_overrides[get_model] = lambda: model
    test_app.dependency_overrides[get_plan_strategy] = lambda: strategy
    return test_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)  # type: ignore[arg-type]
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def records(db_session: AsyncSession) -> list[MaintenanceRecord]:
    rows = [
        MaintenanceRecord(
            token_id=42,
            service_date=date(2023, 5, 1),
            description="Brake pads",
            mileage=38000,
            output_text="{}",
        ),
        MaintenanceRecord(token_id=42, output_text="unreadable"),
        MaintenanceRecord(
            token_id=42,
            service_date=date(2022, 5, 1),
            description="Oil change",
            total_cost=80,
            mileage=30000,
            output_text="{}",
        ),
    ]
    db_session.add_all(rows)
    await db_session.flush()
    return rows


def _upload(
    name: str, content_type: str, data: bytes = b"%PDF-1.7"
) -> dict[str, tuple[str, bytes, str]]:
    return {"document": (name, data, content_type)}


class TestExtractMaintenance:
    async def test_extracts_and_stores(
        self, client: httpx.AsyncClient, model: AsyncMock
    ) -> None:
        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "42"},
            files=_upload("invoice.pdf", "application/pdf"),
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["content"] == ANSWER
        assert data["parsed"]["serviceType"] == "Oil change"
        assert data["record_id"] is not None

        listed = await client.get("/maintenance/42", headers=AUTH)
        [record] = listed.json()["records"]
        assert record["id"] == data["record_id"]
        assert record["total_cost"] == 89.95
        assert record["mileage"] == 45120
        assert record["service_date"] == "2024-03-15"

        (_, attachment), _ = model.generate.call_args
        assert attachment.mime_type == "application/pdf"

    async def test_image_mime_type_from_extension(
        self, client: httpx.AsyncClient, model: AsyncMock
    ) -> None:
        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "42"},
            files=_upload("receipt.png", "application/octet-stream", b"\x89PNG"),
        )

        assert resp.status_code == 200
        (_, attachment), _ = model.generate.call_args
        assert attachment.mime_type == "image/png"

    async def test_bad_token_id_still_extracts(
        self, client: httpx.AsyncClient
    ) -> None:
        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "abc"},
            files=_upload("invoice.pdf", "application/pdf"),
        )

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["record_id"] is None

    async def test_missing_document(self, client: httpx.AsyncClient) -> None:
        resp = await client.post("/maintenance/extract", data={"token_id": "42"})

        assert resp.status_code == 400

    async def test_unsupported_type(self, client: httpx.AsyncClient) -> None:
        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "42"},
            files=_upload("notes.txt", "text/plain", b"hello"),
        )

        assert resp.status_code == 415

    async def test_too_large(self, client: httpx.AsyncClient) -> None:
        oversized = b"0" * (MAX_DOCUMENT_BYTES + 1)

        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "42"},
            files=_upload("big.pdf", "application/pdf", oversized),
        )

        assert resp.status_code == 413

    async def test_upstream_failure(
        self, client: httpx.AsyncClient, model: AsyncMock
    ) -> None:
        model.generate.side_effect = RuntimeError("model overloaded")

        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "42"},
            files=_upload("invoice.pdf", "application/pdf"),
        )

        assert resp.status_code == 502
        assert resp.json()["detail"] == "model overloaded"

    async def test_not_configured(
        self, app: FastAPI, client: httpx.AsyncClient
    ) -> None:
        app.dependency_overrides[get_model] = lambda: None

        resp = await client.post(
            "/maintenance/extract",
            data={"token_id": "42"},
            files=_upload("invoice.pdf", "application/pdf"),
        )

        assert resp.status_code == 503


class TestListMaintenanceRecords:
    async def test_lists_in_service_order(
        self, client: httpx.AsyncClient, records: list[MaintenanceRecord]
    ) -> None:
        resp = await client.get("/maintenance/42", headers=AUTH)

        assert resp.status_code == 200
        data = resp.json()
        assert data["token_id"] == 42
        assert [r["description"] for r in data["records"]] == [
            "Oil change",
            "Brake pads",
            None,
        ]
        assert data["records"][0]["total_cost"] == 80.0

    async def test_requires_bearer(self, client: httpx.AsyncClient) -> None:
        resp = await client.get("/maintenance/42")

        assert resp.status_code == 401

    async def test_invalid_token_id(self, client: httpx.AsyncClient) -> None:
        resp = await client.get("/maintenance/abc", headers=AUTH)

        assert resp.status_code == 400

    async def test_no_records(self, client: httpx.AsyncClient) -> None:
        resp = await client.get("/maintenance/7", headers=AUTH)

        assert resp.status_code == 200
        assert resp.json() == {"token_id": 7, "records": []}


class TestProjectMaintenancePlan:
    async def test_returns_plan(
        self, client: httpx.AsyncClient, strategy: AsyncMock
    ) -> None:
        resp = await client.post(
            "/maintenance/plan",
            json={
                "current_mileage": 42000,
                "make": "Honda",
                "model": "Civic",
                "year": 2018,
                "history": [{"mileage": 40000, "description": "Oil change"}],
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "plan": [
                {"mileage": 50000, "services": ["Oil change"], "estimatedCost": 90.0}
            ],
        }

        [request] = strategy.project.call_args.args
        assert isinstance(request, PlanRequest)
        assert request.year == "2018"
        assert request.horizon_miles == 60000
        assert request.history[0].description == "Oil change"

    async def test_uses_stored_history(
        self,
        client: httpx.AsyncClient,
        strategy: AsyncMock,
        records: list[MaintenanceRecord],
    ) -> None:
        resp = await client.post(
            "/maintenance/plan", json={"current_mileage": 42000, "token_id": 42}
        )

        assert resp.status_code == 200
        [request] = strategy.project.call_args.args
        assert [h.description for h in request.history] == [
            "Brake pads",
            "Oil change",
            None,
        ]

    async def test_parse_failure_carries_raw_content(
        self, client: httpx.AsyncClient, strategy: AsyncMock
    ) -> None:
        strategy.project.return_value = PlanFailed(
            "Failed to parse maintenance plan",
            FailureKind.PARSE,
            raw_content="no plan here",
        )

        resp = await client.post("/maintenance/plan", json={"current_mileage": 1})

        assert resp.status_code == 502
        assert resp.json()["detail"] == {
            "error": "Failed to parse maintenance plan",
            "raw_content": "no plan here",
        }

    async def test_not_configured(
        self, client: httpx.AsyncClient, strategy: AsyncMock
    ) -> None:
        strategy.project.return_value = PlanFailed(
            "not configured", FailureKind.NOT_CONFIGURED
        )

        resp = await client.post("/maintenance/plan", json={"current_mileage": 1})

        assert resp.status_code == 503

    async def test_rejects_negative_mileage(self, client: httpx.AsyncClient) -> None:
        resp = await client.post("/maintenance/plan", json={"current_mileage": -5})

        assert resp.status_code == 422
