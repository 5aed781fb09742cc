from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Sequence

from src.planning.interface import (
    HistoryEntry,
    PlanEntry,
    PlanOutcome,
    PlanReady,
    PlanRequest,
    PlanStrategy,
)


@dataclass(frozen=True)
class ServiceInterval:
    service: str
    interval_miles: int
    cost: float
    keywords: tuple[str, ...]


DEFAULT_INTERVALS: tuple[ServiceInterval, ...] = (
    ServiceInterval("Oil and filter change", 5_000, 90.0, ("oil",)),
    ServiceInterval("Tire rotation", 7_500, 50.0, ("rotation", "rotate")),
    ServiceInterval(
        "Engine air filter replacement", 15_000, 60.0, ("engine air filter",)
    ),
    ServiceInterval("Cabin air filter replacement", 20_000, 70.0, ("cabin",)),
    ServiceInterval("Brake fluid flush", 30_000, 120.0, ("brake fluid",)),
    ServiceInterval("Coolant flush", 60_000, 150.0, ("coolant", "antifreeze")),
    ServiceInterval("Spark plug replacement", 60_000, 300.0, ("spark plug",)),
    ServiceInterval("Transmission fluid service", 60_000, 200.0, ("transmission",)),
)

# Overdue services are scheduled at the next round thousand miles.
_OVERDUE_STEP = 1_000


class IntervalPlanStrategy(PlanStrategy):
    """Deterministic plan from fixed service intervals.

    A service seen in the history is next due one interval after the mileage
    it was last done at; otherwise at the next multiple of its interval.
    """

    def __init__(
        self,
        intervals: Sequence[ServiceInterval] = DEFAULT_INTERVALS,
        max_entries: int = 12,
    ) -> None:
        self._intervals = tuple(intervals)
        self._max_entries = max_entries

    async def project(self, request: PlanRequest) -> PlanOutcome:
        current = int(request.current_mileage)
        limit = current + request.horizon_miles

        due: dict[int, list[ServiceInterval]] = defaultdict(list)
        for rule in self._intervals:
            threshold = self._first_due(rule, current, request.history)
            while threshold <= limit:
                due[threshold].append(rule)
                threshold += rule.interval_miles

        plan = [
            PlanEntry(
                mileage=mileage,
                services=[rule.service for rule in rules],
                estimated_cost=sum(rule.cost for rule in rules),
            )
            for mileage, rules in sorted(due.items())
        ]
        return PlanReady(plan=plan[: self._max_entries])

    @staticmethod
    def _first_due(
        rule: ServiceInterval, current: int, history: Sequence[HistoryEntry]
    ) -> int:
        done_at = [
            entry.mileage
            for entry in history
            if entry.mileage is not None
            and entry.mileage <= current
            and any(k in (entry.description or "").lower() for k in rule.keywords)
        ]
        if not done_at:
            return (current // rule.interval_miles + 1) * rule.interval_miles

        threshold = max(done_at) + rule.interval_miles
        if threshold <= current:
            threshold = (current // _OVERDUE_STEP + 1) * _OVERDUE_STEP
        return threshold
