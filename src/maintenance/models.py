from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel, UTCDateTime


class MaintenanceRecord(BaseDbModel):
    """A maintenance record extracted from an uploaded service document.

    Rows are append-only. Every field except the raw model output may be
    missing when the model omitted it.
    """

    __tablename__ = "maintenance_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_id: Mapped[int] = mapped_column(Integer, nullable=False)
    service_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    output_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        default=lambda _: datetime.now(timezone.utc),
    )
