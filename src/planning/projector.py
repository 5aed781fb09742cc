from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Sequence

from pydantic import TypeAdapter, ValidationError

from src.llm.interface import NOT_CONFIGURED_MESSAGE, FailureKind, GenerativeModel
from src.llm.prompts import build_plan_prompt, format_history_line
from src.llm.responses import output_text, parse_json_payload
from src.maintenance.models import MaintenanceRecord
from src.planning.interface import (
    HistoryEntry,
    PlanEntry,
    PlanFailed,
    PlanOutcome,
    PlanReady,
    PlanRequest,
    PlanStrategy,
)

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 20
PARSE_FAILURE_MESSAGE = "Failed to parse maintenance plan"

_ENTRIES_ADAPTER = TypeAdapter(list[PlanEntry])


def parse_plan(text: str) -> PlanOutcome:
    """Parse a model answer into plan entries ordered by mileage.

    Anything other than an object with a ``plan`` list is a failure that
    carries the raw text. An empty plan is valid.
    """
    payload = parse_json_payload(text)
    if not isinstance(payload, Mapping) or not isinstance(payload.get("plan"), list):
        return PlanFailed(PARSE_FAILURE_MESSAGE, FailureKind.PARSE, raw_content=text)

    try:
        entries = _ENTRIES_ADAPTER.validate_python(payload["plan"])
    except ValidationError as exc:
        return PlanFailed(
            f"{PARSE_FAILURE_MESSAGE}: {exc.error_count()} invalid field(s)",
            FailureKind.PARSE,
            raw_content=text,
        )

    return PlanReady(plan=sorted(entries, key=lambda e: e.mileage), raw_content=text)


def history_from_records(records: Sequence[MaintenanceRecord]) -> list[HistoryEntry]:
    """Convert stored records to plan history, most recent service first."""
    oldest = datetime.min.replace(tzinfo=timezone.utc)
    ordered = sorted(
        records,
        key=lambda r: (
            r.service_date is not None,
            r.service_date.toordinal() if r.service_date else 0,
            r.created_at or oldest,
        ),
        reverse=True,
    )
    return [
        HistoryEntry(
            service_date=r.service_date,
            mileage=r.mileage,
            description=r.description or r.summary,
            cost=float(r.total_cost) if r.total_cost is not None else None,
        )
        for r in ordered
    ]


def build_history_lines(history: Sequence[HistoryEntry]) -> list[str]:
    return [
        format_history_line(
            entry.service_date.isoformat() if entry.service_date else None,
            entry.mileage,
            entry.description,
            entry.cost,
        )
        for entry in history[:MAX_HISTORY_ENTRIES]
    ]


class LLMPlanStrategy(PlanStrategy):
    """Projects a maintenance plan by asking the generative model."""

    def __init__(self, model: GenerativeModel | None) -> None:
        self._model = model

    async def project(self, request: PlanRequest) -> PlanOutcome:
        if self._model is None:
            return PlanFailed(NOT_CONFIGURED_MESSAGE, FailureKind.NOT_CONFIGURED)

        prompt = build_plan_prompt(
            make=request.make,
            model=request.model,
            year=request.year,
            current_mileage=int(request.current_mileage),
            horizon_miles=request.horizon_miles,
            history_lines=build_history_lines(request.history),
        )

        try:
            response = await self._model.generate(prompt)
        except Exception as exc:
            logger.exception("Maintenance plan request failed")
            return PlanFailed(str(exc), FailureKind.UPSTREAM)

        outcome = parse_plan(output_text(response))
        if isinstance(outcome, PlanFailed):
            logger.warning("Could not parse maintenance plan: %s", outcome.error)
        return outcome
