import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import AliasChoices, BaseModel, Field

from src.base.dependencies import get_model
from src.extraction.documents import (
    MAX_DOCUMENT_BYTES,
    PDF_MIME_TYPE,
    SUPPORTED_MIME_TYPES,
    guess_mime_type,
    is_supported_document,
)
from src.llm.interface import (
    NOT_CONFIGURED_MESSAGE,
    Attachment,
    GenerativeModel,
    UnsupportedModelError,
)
from src.llm.prompts import build_recommendations_prompt
from src.llm.responses import output_text, parse_json_payload
from src.vehicle.interface import UNKNOWN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai")


class PromptRequest(BaseModel):
    prompt: str = Field(min_length=1)
    model: str | None = None


class PromptResponse(BaseModel):
    success: bool
    content: str


class ServiceHistoryItem(BaseModel):
    date: str | None = None
    service: str | None = None
    amount: str | float | None = None


class VehicleData(BaseModel):
    make: str = UNKNOWN
    model: str = UNKNOWN
    year: str | int = UNKNOWN
    odometer_reading: str | float | None = Field(
        None, validation_alias=AliasChoices("odometer_reading", "odometerReading")
    )
    age: str | int | None = None
    maintenance_history: list[ServiceHistoryItem] | None = Field(
        None,
        validation_alias=AliasChoices("maintenance_history", "maintenanceHistory"),
    )


class RecommendationsRequest(BaseModel):
    vehicle_data: VehicleData = Field(
        validation_alias=AliasChoices("vehicle_data", "vehicleData")
    )
    model: str | None = None


class RecommendationsResponse(BaseModel):
    success: bool
    content: str
    parsed: Any | None


def _select_model(model: GenerativeModel | None, name: str | None) -> GenerativeModel:
    if model is None:
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED_MESSAGE)
    if not name:
        return model
    try:
        return model.with_model(name)
    except UnsupportedModelError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


async def _generate(
    model: GenerativeModel, prompt: str, attachment: Attachment | None = None
) -> str:
    try:
        if attachment is None:
            response = await model.generate(prompt)
        else:
            response = await model.generate(prompt, attachment)
    except Exception as exc:
        logger.exception("Prompt processing failed")
        raise HTTPException(status_code=502, detail=str(exc))
    return output_text(response)


async def _read_attachment(upload: UploadFile | None, expect_pdf: bool) -> Attachment:
    kind = "PDF" if expect_pdf else "image"
    if upload is None:
        raise HTTPException(status_code=400, detail=f"No {kind} file provided")

    filename = upload.filename or kind.lower()
    if not is_supported_document(filename, upload.content_type):
        raise HTTPException(status_code=415, detail=f"Only {kind} files are allowed")
    mime_type = upload.content_type
    if mime_type not in SUPPORTED_MIME_TYPES or mime_type == "image/jpg":
        mime_type = guess_mime_type(filename)
    if (mime_type == PDF_MIME_TYPE) != expect_pdf:
        raise HTTPException(status_code=415, detail=f"Only {kind} files are allowed")

    data = await upload.read()
    if len(data) > MAX_DOCUMENT_BYTES:
        raise HTTPException(status_code=413, detail="Document exceeds 10 MB limit")
    return Attachment(filename=filename, mime_type=mime_type, data=data)


def _or_unknown(value: object) -> str:
    return "unknown" if value is None else str(value)


def _require_prompt(prompt: str | None) -> str:
    if not prompt or not prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")
    return prompt


@router.post("/prompt", response_model=PromptResponse)
async def run_prompt(
    body: PromptRequest,
    model: GenerativeModel | None = Depends(get_model),
) -> PromptResponse:
    selected = _select_model(model, body.model)
    content = await _generate(selected, body.prompt)
    return PromptResponse(success=True, content=content)


@router.post("/process-image", response_model=PromptResponse)
async def process_image(
    image: UploadFile | None = File(None),
    prompt: str | None = Form(None),
    model_name: str | None = Form(None, alias="model"),
    model: GenerativeModel | None = Depends(get_model),
) -> PromptResponse:
    attachment = await _read_attachment(image, expect_pdf=False)
    text = _require_prompt(prompt)
    selected = _select_model(model, model_name)
    content = await _generate(selected, text, attachment)
    return PromptResponse(success=True, content=content)


@router.post("/process-pdf", response_model=PromptResponse)
async def process_pdf(
    pdf: UploadFile | None = File(None),
    prompt: str | None = Form(None),
    model_name: str | None = Form(None, alias="model"),
    model: GenerativeModel | None = Depends(get_model),
) -> PromptResponse:
    attachment = await _read_attachment(pdf, expect_pdf=True)
    text = _require_prompt(prompt)
    selected = _select_model(model, model_name)
    content = await _generate(selected, text, attachment)
    return PromptResponse(success=True, content=content)


@router.post("/maintenance-recommendations", response_model=RecommendationsResponse)
async def recommend_maintenance(
    body: RecommendationsRequest,
    model: GenerativeModel | None = Depends(get_model),
) -> RecommendationsResponse:
    selected = _select_model(model, body.model)
    vehicle = body.vehicle_data
    prompt = build_recommendations_prompt(
        make=vehicle.make,
        model=vehicle.model,
        year=str(vehicle.year),
        mileage=_or_unknown(vehicle.odometer_reading),
        age=_or_unknown(vehicle.age),
        history=[
            (
                item.date or "Unknown date",
                item.service or "Unspecified service",
                _or_unknown(item.amount),
            )
            for item in vehicle.maintenance_history or []
        ],
    )
    content = await _generate(selected, prompt)
    return RecommendationsResponse(
        success=True, content=content, parsed=parse_json_payload(content)
    )
