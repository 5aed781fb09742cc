import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import get_bearer_token
from src.base.dependencies import get_model, get_plan_strategy, get_session
from src.extraction.documents import (
    MAX_DOCUMENT_BYTES,
    SUPPORTED_MIME_TYPES,
    guess_mime_type,
    is_supported_document,
)
from src.extraction.pipeline import extract_document
from src.llm.interface import Attachment, FailureKind, GenerativeModel
from src.maintenance.models import MaintenanceRecord
from src.maintenance.store import query_by_token
from src.planning.interface import (
    DEFAULT_HORIZON_MILES,
    HistoryEntry,
    PlanEntry,
    PlanFailed,
    PlanRequest,
    PlanStrategy,
)
from src.planning.projector import history_from_records
from src.vehicle.interface import UNKNOWN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance")

FAILURE_STATUS: dict[FailureKind, int] = {
    FailureKind.NOT_CONFIGURED: 503,
    FailureKind.UPSTREAM: 502,
    FailureKind.PARSE: 502,
}


class MaintenanceRecordResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    token_id: int
    service_date: date | None
    total_cost: float | None
    description: str | None
    summary: str | None
    mileage: int | None
    output_text: str
    created_at: datetime

    @field_validator("total_cost", mode="before")
    @classmethod
    def _decimal_to_float(cls, value: Any) -> Any:
        if isinstance(value, Decimal):
            return float(value)
        return value


class MaintenanceRecordsResponse(BaseModel):
    token_id: int
    records: list[MaintenanceRecordResponse]


class ExtractionResponse(BaseModel):
    success: bool
    content: str | None
    parsed: Any | None
    record_id: int | None


class HistoryEntryBody(BaseModel):
    service_date: date | None = None
    mileage: int | None = None
    description: str | None = None
    cost: float | None = None


class PlanRequestBody(BaseModel):
    current_mileage: float = Field(ge=0)
    make: str = UNKNOWN
    model: str = UNKNOWN
    year: str | int = UNKNOWN
    horizon_miles: int = Field(DEFAULT_HORIZON_MILES, gt=0)
    history: list[HistoryEntryBody] | None = None
    token_id: int | None = None


class PlanResponse(BaseModel):
    success: bool
    plan: list[PlanEntry]


def _parse_token_id(value: str | None) -> int | None:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed token id %r", value)
        return None


@router.post("/extract", response_model=ExtractionResponse)
async def extract_maintenance(
    document: UploadFile | None = File(None),
    token_id: str | None = Form(None),
    session: AsyncSession = Depends(get_session),
    model: GenerativeModel | None = Depends(get_model),
) -> ExtractionResponse:
    if document is None:
        raise HTTPException(status_code=400, detail="No document file provided")

    filename = document.filename or "document"
    if not is_supported_document(filename, document.content_type):
        raise HTTPException(
            status_code=415, detail="Only PDF and image files are allowed"
        )

    data = await document.read()
    if len(data) > MAX_DOCUMENT_BYTES:
        raise HTTPException(status_code=413, detail="Document exceeds 10 MB limit")

    mime_type = document.content_type
    if mime_type not in SUPPORTED_MIME_TYPES or mime_type == "image/jpg":
        mime_type = guess_mime_type(filename)

    result = await extract_document(
        session,
        model,
        Attachment(filename=filename, mime_type=mime_type, data=data),
        _parse_token_id(token_id),
    )
    if not result.success:
        status = FAILURE_STATUS.get(result.failure or FailureKind.UPSTREAM, 502)
        raise HTTPException(status_code=status, detail=result.error)

    return ExtractionResponse(
        success=True,
        content=result.content,
        parsed=result.parsed,
        record_id=result.record_id,
    )


@router.post("/plan", response_model=PlanResponse)
async def project_maintenance_plan(
    body: PlanRequestBody,
    session: AsyncSession = Depends(get_session),
    strategy: PlanStrategy = Depends(get_plan_strategy),
) -> PlanResponse:
    if body.history is not None:
        history = [HistoryEntry(**entry.model_dump()) for entry in body.history]
    elif body.token_id is not None:
        history = history_from_records(await query_by_token(session, body.token_id))
    else:
        history = []

    outcome = await strategy.project(
        PlanRequest(
            current_mileage=body.current_mileage,
            make=body.make,
            model=body.model,
            year=str(body.year),
            history=tuple(history),
            horizon_miles=body.horizon_miles,
        )
    )
    if isinstance(outcome, PlanFailed):
        raise HTTPException(
            status_code=FAILURE_STATUS[outcome.failure],
            detail={"error": outcome.error, "raw_content": outcome.raw_content},
        )

    return PlanResponse(success=True, plan=outcome.plan)


@router.get("/{token_id}", response_model=MaintenanceRecordsResponse)
async def list_maintenance_records(
    token_id: str,
    _: str = Depends(get_bearer_token),
    session: AsyncSession = Depends(get_session),
) -> MaintenanceRecordsResponse:
    try:
        parsed_token_id = int(token_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid tokenId")

    try:
        records: list[MaintenanceRecord] = await query_by_token(
            session, parsed_token_id
        )
    except SQLAlchemyError:
        logger.exception("Failed to query maintenance records for %s", token_id)
        raise HTTPException(
            status_code=500, detail="Failed to query maintenance records"
        )

    return MaintenanceRecordsResponse(
        token_id=parsed_token_id,
        records=[MaintenanceRecordResponse.model_validate(r) for r in records],
    )
