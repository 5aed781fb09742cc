from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.maintenance.models import MaintenanceRecord

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class RecordDraft:
    """Fields for a new MaintenanceRecord, before validation."""

    token_id: int | None
    output_text: str | None
    service_date: date | None = None
    total_cost: float | None = None
    description: str | None = None
    summary: str | None = None
    mileage: int | None = None


@dataclass(frozen=True)
class Persisted:
    record: MaintenanceRecord


@dataclass(frozen=True)
class PersistFailed:
    error: str


PersistResult = Persisted | PersistFailed


def _validate(draft: RecordDraft) -> str | None:
    if draft.output_text is None:
        return "output_text is required"
    token_id = draft.token_id
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id <= 0:
        return f"Malformed token id: {token_id!r}"
    return None


def _to_cents(amount: float | None) -> Decimal | None:
    if amount is None:
        return None
    return Decimal(str(amount)).quantize(_CENTS)


async def insert_record(session: AsyncSession, draft: RecordDraft) -> PersistResult:
    """Append one maintenance record inside a savepoint.

    Never raises for invalid drafts or database errors: the failure is
    returned so callers can treat persistence as best effort. The caller is
    responsible for committing the session.
    """
    error = _validate(draft)
    if error is not None:
        return PersistFailed(error)

    try:
        total_cost = _to_cents(draft.total_cost)
    except InvalidOperation:
        return PersistFailed(f"Total cost out of range: {draft.total_cost!r}")

    record = MaintenanceRecord(
        token_id=draft.token_id,
        service_date=draft.service_date,
        total_cost=total_cost,
        description=draft.description,
        summary=draft.summary,
        mileage=draft.mileage,
        output_text=draft.output_text,
    )

    try:
        async with session.begin_nested():
            session.add(record)
    except SQLAlchemyError as exc:
        return PersistFailed(str(exc))

    logger.info(
        "Stored maintenance record %s for vehicle %s", record.id, record.token_id
    )
    return Persisted(record)


async def query_by_token(
    session: AsyncSession, token_id: int
) -> list[MaintenanceRecord]:
    """Return a vehicle's records, oldest service first, undated last."""
    stmt = (
        select(MaintenanceRecord)
        .where(MaintenanceRecord.token_id == token_id)
        .order_by(
            MaintenanceRecord.service_date.asc().nulls_last(),
            MaintenanceRecord.created_at.desc(),
        )
    )
    return list((await session.execute(stmt)).scalars().all())
