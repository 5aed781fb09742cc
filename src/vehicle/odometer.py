from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from src.vehicle.interface import TelemetrySample

MILES_PER_KILOMETER = 0.621371


@dataclass(frozen=True)
class OdometerReading:
    timestamp: datetime
    kilometers: float
    miles: float


@dataclass(frozen=True)
class OdometerHistory:
    """Odometer readings in chronological order. Miles may go backwards."""

    readings: tuple[OdometerReading, ...] = ()

    @property
    def current(self) -> OdometerReading | None:
        if not self.readings:
            return None
        return self.readings[-1]

    def rows(self) -> list[tuple[OdometerReading, float | None]]:
        """Pair each reading with the change since the previous one."""
        rows: list[tuple[OdometerReading, float | None]] = []
        previous: OdometerReading | None = None
        for reading in self.readings:
            delta = None if previous is None else reading.miles - previous.miles
            rows.append((reading, delta))
            previous = reading
        return rows


def normalize_odometer(samples: Iterable[TelemetrySample]) -> OdometerHistory:
    """Convert distance samples to miles and order them by timestamp.

    The sort is stable, so samples sharing a timestamp keep their arrival
    order. Duplicates are kept.
    """
    readings = [
        OdometerReading(
            timestamp=sample.timestamp,
            kilometers=sample.kilometers,
            miles=sample.kilometers * MILES_PER_KILOMETER,
        )
        for sample in samples
    ]
    readings.sort(key=lambda r: r.timestamp)
    return OdometerHistory(readings=tuple(readings))
