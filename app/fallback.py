"""Deterministic itineraries for when the generator cannot be used.

Both the HTTP service (for degraded responses) and the client controller
(when the service is unreachable) build their stand-ins here.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from app.geocoding import DEFAULT_COORDINATES
from app.schemas import Activity, DayPlan, Dining, HotelOption, HotelStay, Itinerary

PLACEHOLDER_SUMMARY = "Your budget-friendly travel plan will appear here."


def split_daily_share(share: int) -> Tuple[int, int, int, int, int]:
    """Split one day's share into (morning, afternoon, evening, dining, hotel).

    Hotel and dining take a quarter each, morning and afternoon a fifth each,
    and the evening gets whatever is left so the parts add up to ``share``.
    """
    hotel = share // 4
    dining = share // 4
    morning = share // 5
    afternoon = share // 5
    evening = share - (hotel + dining + morning + afternoon)
    return morning, afternoon, evening, dining, hotel


def _hotel_options(destination: str, nightly: int) -> List[HotelOption]:
    return [
        HotelOption(
            name=f"{destination} Budget Inn",
            price_per_night=nightly * 3 // 4,
            description="Simple rooms close to public transport.",
            rating=3.5,
            distance_from_center="3 km",
        ),
        HotelOption(
            name=f"{destination} Central Stay",
            price_per_night=nightly,
            description="Comfortable mid-range hotel in the city centre.",
            rating=4.0,
            distance_from_center="1.5 km",
        ),
        HotelOption(
            name=f"{destination} Grand Hotel",
            price_per_night=nightly * 3 // 2,
            description="Upscale stay with breakfast included.",
            rating=4.5,
            distance_from_center="0.5 km",
        ),
    ]


def synthesize_itinerary(
    destination: str,
    budget: int,
    days: int,
    coordinates: Optional[Tuple[float, float]] = None,
) -> Itinerary:
    """Build a complete itinerary from budget, length and destination alone."""
    if days <= 0:
        raise ValueError("days must be positive")
    if budget < 0:
        raise ValueError("budget must not be negative")

    destination = destination.strip() or "your destination"
    share = budget // days
    morning, afternoon, evening, dining, hotel = split_daily_share(share)

    plans: List[DayPlan] = []
    for index in range(1, days + 1):
        plans.append(
            DayPlan(
                day=index,
                daily_cost=share,
                morning=Activity(activity=f"Explore the old town of {destination}", cost=morning),
                afternoon=Activity(activity=f"Visit a popular museum or landmark in {destination}", cost=afternoon),
                evening=Activity(activity=f"Walk through a local market in {destination}", cost=evening),
                dining=Dining(restaurant="Popular local restaurant", cuisine="Local cuisine", cost=dining),
                hotel=HotelStay(name=f"{destination} Central Stay", price=hotel),
            )
        )

    return Itinerary(
        summary=f"A {days}-day trip to {destination} planned within a budget of {budget}.",
        total_cost=sum(plan.daily_cost for plan in plans),
        city_coordinates=coordinates or DEFAULT_COORDINATES,
        hotels=_hotel_options(destination, hotel),
        itinerary=plans,
    )


def placeholder_itinerary(coordinates: Optional[Tuple[float, float]] = None) -> Itinerary:
    """The zero-valued body carried by degraded service responses."""
    return Itinerary(
        summary=PLACEHOLDER_SUMMARY,
        total_cost=0,
        city_coordinates=coordinates or DEFAULT_COORDINATES,
        hotels=[],
        itinerary=[],
    )
