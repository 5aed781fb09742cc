from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.extraction.models import ExtractedServiceRecord
from src.llm.interface import (
    NOT_CONFIGURED_MESSAGE,
    Attachment,
    FailureKind,
    GenerativeModel,
)
from src.llm.prompts import EXTRACTION_PROMPT
from src.llm.responses import output_text, parse_json_payload
from src.maintenance.store import PersistFailed, RecordDraft, insert_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    success: bool
    content: str | None = None
    parsed: Any | None = None
    error: str | None = None
    failure: FailureKind | None = None
    record_id: int | None = None


def to_record_draft(
    token_id: int | None, text: str, parsed: Any | None
) -> RecordDraft:
    """Map parsed model output onto a record draft.

    Output that is not a JSON object keeps only the raw text.
    """
    if not isinstance(parsed, dict):
        return RecordDraft(token_id=token_id, output_text=text)

    try:
        extracted = ExtractedServiceRecord.model_validate(parsed)
    except ValidationError:
        logger.warning("Model output does not match the extraction schema")
        return RecordDraft(token_id=token_id, output_text=text)

    return RecordDraft(
        token_id=token_id,
        output_text=text,
        service_date=extracted.service_date,
        total_cost=extracted.total_cost,
        description=extracted.record_description,
        summary=extracted.record_summary,
        mileage=extracted.mileage,
    )


async def extract_document(
    session: AsyncSession,
    model: GenerativeModel | None,
    document: Attachment,
    token_id: int | None,
) -> ExtractionResult:
    """
    Extract maintenance data from a service document and store it.

    Stages:
    1. Ask the model to fill the extraction schema for the document
    2. Normalize the answer to raw text, strip fences, parse JSON if possible
    3. Store a record (best effort: failures are logged, never returned)

    Unstructured answers still count as a successful extraction.
    """
    if model is None:
        return ExtractionResult(
            success=False,
            error=NOT_CONFIGURED_MESSAGE,
            failure=FailureKind.NOT_CONFIGURED,
        )

    try:
        response = await model.generate(EXTRACTION_PROMPT, document)
    except Exception as exc:
        logger.exception("Model call failed for %s", document.filename)
        return ExtractionResult(
            success=False, error=str(exc), failure=FailureKind.UPSTREAM
        )

    text = output_text(response)
    parsed = parse_json_payload(text)
    if parsed is None:
        logger.warning("Model output for %s is not JSON", document.filename)

    stored = await insert_record(session, to_record_draft(token_id, text, parsed))
    if isinstance(stored, PersistFailed):
        logger.error(
            "Failed to store maintenance record for %s: %s",
            document.filename,
            stored.error,
        )
        record_id = None
    else:
        record_id = stored.record.id

    return ExtractionResult(
        success=True, content=text, parsed=parsed, record_id=record_id
    )
