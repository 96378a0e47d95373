"""Budget rules applied to generated itineraries."""
from __future__ import annotations

from typing import Iterable, List, Tuple

from app.errors import BudgetTooLowError
from app.schemas import DayPlan

MIN_DAILY_COST = 500


def minimum_budget(days: int) -> int:
    return days * MIN_DAILY_COST


def check_budget(budget: int, days: int) -> None:
    """Raise ``BudgetTooLowError`` when the trip cannot cover the daily floor."""
    minimum = minimum_budget(days)
    if budget < minimum:
        raise BudgetTooLowError(minimum, days)


def daily_cap(budget: int, days: int) -> int:
    return budget // days


def normalize_day(day: DayPlan, budget: int, days: int) -> DayPlan:
    """Return a copy of ``day`` with the daily floor and the per-day cap applied.

    The floor is enforced first by topping up the dining cost. The cap
    (an even share of the budget) is enforced second by scaling every
    sub-cost by ``cap / daily_cost`` and flooring. When the cap sits below
    ``MIN_DAILY_COST`` the cap wins, so the final value can be under the
    floor. Flooring can also leave the five sub-costs summing to slightly
    less than ``daily_cost``; that slack is kept as is.
    """
    day = day.model_copy(deep=True)
    daily_cost = day.sub_cost_total()

    if daily_cost < MIN_DAILY_COST:
        day.dining.cost += MIN_DAILY_COST - daily_cost
        daily_cost = MIN_DAILY_COST

    cap = daily_cap(budget, days)
    if daily_cost > cap:
        # integer floor of cost * cap / daily_cost
        day.morning.cost = day.morning.cost * cap // daily_cost
        day.afternoon.cost = day.afternoon.cost * cap // daily_cost
        day.evening.cost = day.evening.cost * cap // daily_cost
        day.dining.cost = day.dining.cost * cap // daily_cost
        day.hotel.price = day.hotel.price * cap // daily_cost
        daily_cost = cap

    day.daily_cost = daily_cost
    return day


def normalize_days(days: Iterable[DayPlan], budget: int, trip_days: int) -> Tuple[List[DayPlan], int]:
    """Normalize every day and return them with the recomputed total cost."""
    normalized = [normalize_day(day, budget, trip_days) for day in days]
    total = sum(day.daily_cost for day in normalized)
    return normalized, total
