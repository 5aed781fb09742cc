import os

from src.llm.interface import GenerativeModel
from src.planning.interface import PlanStrategy
from src.planning.intervals import IntervalPlanStrategy
from src.planning.projector import LLMPlanStrategy

PLAN_STRATEGY = os.environ.get("ODOREPORT_PLAN_STRATEGY", "llm")


def create_plan_strategy(model: GenerativeModel | None) -> PlanStrategy:
    """Create the configured plan strategy ("llm" or "intervals")."""
    if PLAN_STRATEGY == "intervals":
        return IntervalPlanStrategy()
    return LLMPlanStrategy(model)
