from __future__ import annotations

EXTRACTION_PROMPT = """Please analyze this vehicle maintenance service document and extract the following information in JSON format:
{
  "date": "service date",
  "serviceType": "type of service performed",
  "description": "detailed description of work done",
  "parts": ["list of parts replaced"],
  "labor": "labor cost",
  "partsCost": "parts cost",
  "totalCost": "total cost",
  "mileage": "vehicle mileage at time of service",
  "nextService": "recommended next service",
  "notes": "any additional notes"
}

If any information is not available, use null for that field."""

PLAN_PROMPT_TEMPLATE = """You are an automotive service advisor. Build a forward-looking maintenance plan for this vehicle.

**Vehicle:** {year} {make} {model}
**Current mileage:** {current_mileage:,} miles
**Planning horizon:** the next {horizon_miles:,} miles (up to {limit:,} miles)

**Recent maintenance history** (most recent first, with mileage at service):
{history}

**Rules:**
- Each entry's "mileage" is an odometer threshold ahead of the current mileage and no higher than {limit:,}. Pick sensible service intervals for this vehicle; thresholds do not need to be exact multiples of a fixed interval.
- "services" lists the services due at that threshold.
- "estimatedCost" is a plain number in USD, without currency symbols or ranges.
- Return between 6 and 12 entries across the horizon.
- Do not suggest services that duplicate very recent history above.

Respond with JSON only, in exactly this shape:
{{"plan": [{{"mileage": 65000, "services": ["Oil and filter change"], "estimatedCost": 120}}]}}"""

NO_HISTORY = "No maintenance history available"


def format_history_line(
    service_date: str | None,
    mileage: int | None,
    description: str | None,
    cost: float | None,
) -> str:
    at_mileage = f"{mileage:,} miles" if mileage is not None else "unknown mileage"
    price = f"${cost:,.2f}" if cost is not None else "cost unknown"
    return (
        f"- {service_date or 'Unknown date'} at {at_mileage}: "
        f"{description or 'Unspecified service'} ({price})"
    )


def build_plan_prompt(
    *,
    make: str,
    model: str,
    year: str,
    current_mileage: int,
    horizon_miles: int,
    history_lines: list[str],
) -> str:
    """Build the maintenance plan prompt from vehicle data and history."""
    return PLAN_PROMPT_TEMPLATE.format(
        make=make,
        model=model,
        year=year,
        current_mileage=current_mileage,
        horizon_miles=horizon_miles,
        limit=current_mileage + horizon_miles,
        history="\n".join(history_lines) if history_lines else NO_HISTORY,
    )


RECOMMENDATIONS_PROMPT_TEMPLATE = """Based on the following vehicle information, provide maintenance recommendations:

Vehicle: {year} {make} {model}
Current Mileage: {mileage} miles
Vehicle Age: {age} years

Recent Maintenance History:
{history}

Please provide:
1. Immediate maintenance needs (if any)
2. Upcoming maintenance recommendations
3. Cost estimates for recommended services
4. Priority levels for each recommendation

Format the response as a structured JSON object."""


def build_recommendations_prompt(
    *,
    make: str,
    model: str,
    year: str,
    mileage: str,
    age: str,
    history: list[tuple[str, str, str]] | None,
) -> str:
    """Build the free-form recommendations prompt.

    ``history`` holds (date, service, amount) triples; None or empty means
    no known history.
    """
    lines = [
        f"- {when}: {service} (${amount})" for when, service, amount in history or []
    ]
    return RECOMMENDATIONS_PROMPT_TEMPLATE.format(
        make=make,
        model=model,
        year=year,
        mileage=mileage,
        age=age,
        history="\n".join(lines) if lines else NO_HISTORY,
    )
