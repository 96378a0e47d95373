from __future__ import annotations

import math
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def coerce_cost(value: Any) -> int:
    """Turn whatever the model produced for a price into a non-negative int.

    Accepts ints, floats, numeric strings and strings with currency noise
    ("₹1,200"). Anything unreadable counts as zero.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if not match:
            return 0
        number = float(match.group(0))
    else:
        return 0
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return 0
    return int(number)


# ------- Request models -------
class TripRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    destination: str = Field(..., validation_alias=AliasChoices("city", "destination"))
    budget: int = Field(..., gt=0)
    days: int = Field(..., gt=0)
    preferences: str = ""

    @field_validator("destination")
    @classmethod
    def strip_destination(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("destination must not be empty")
        return value

    @field_validator("preferences", mode="before")
    @classmethod
    def join_preferences(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item).strip() for item in value if str(item).strip())
        return str(value).strip()


# ------- Itinerary models -------
class _WireModel(BaseModel):
    """Shared config: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Activity(_WireModel):
    activity: str = "Explore local area"
    cost: int = 0

    @field_validator("cost", mode="before")
    @classmethod
    def parse_cost(cls, value: Any) -> int:
        return coerce_cost(value)


class Dining(_WireModel):
    restaurant: str = "Local eatery"
    cuisine: str = "Local cuisine"
    cost: int = 0

    @field_validator("cost", mode="before")
    @classmethod
    def parse_cost(cls, value: Any) -> int:
        return coerce_cost(value)


class HotelStay(_WireModel):
    name: str = "Budget hotel"
    price: int = 0

    @field_validator("price", mode="before")
    @classmethod
    def parse_price(cls, value: Any) -> int:
        return coerce_cost(value)


# Neutral labels used whenever the model leaves a slot out.
PLACEHOLDER_SLOTS: Dict[str, Dict[str, Any]] = {
    "morning": {"activity": "Explore local area", "cost": 0},
    "afternoon": {"activity": "Sightseeing", "cost": 0},
    "evening": {"activity": "Evening activity", "cost": 0},
    "dining": {"restaurant": "Local eatery", "cuisine": "Local cuisine", "cost": 0},
    "hotel": {"name": "Budget hotel", "price": 0},
}


class DayPlan(_WireModel):
    day_index: int = Field(..., ge=1, alias="day")
    daily_cost: int = 0
    morning: Activity
    afternoon: Activity
    evening: Activity
    dining: Dining
    hotel: HotelStay

    @classmethod
    def complete(cls, day_index: int, raw: Optional[Dict[str, Any]] = None) -> "DayPlan":
        """Build a fully populated day from partial model output.

        Missing or malformed slots get the zero-cost placeholders in
        ``PLACEHOLDER_SLOTS``; blank labels inside a slot are filled the same
        way. ``daily_cost`` is left at the raw sum of the five sub-costs.
        """
        raw = raw if isinstance(raw, dict) else {}
        slots: Dict[str, Any] = {}
        for slot, placeholder in PLACEHOLDER_SLOTS.items():
            value = raw.get(slot)
            merged = dict(placeholder)
            if isinstance(value, dict):
                for key, item in value.items():
                    if key not in merged or item is None:
                        continue
                    if key in ("cost", "price"):
                        merged[key] = item
                    elif str(item).strip():
                        merged[key] = str(item).strip()
            elif isinstance(value, str) and value.strip() and slot not in ("dining", "hotel"):
                merged["activity"] = value.strip()
            slots[slot] = merged
        day = cls(day=day_index, **slots)
        day.daily_cost = day.sub_cost_total()
        return day

    def sub_cost_total(self) -> int:
        return (
            self.morning.cost
            + self.afternoon.cost
            + self.evening.cost
            + self.dining.cost
            + self.hotel.price
        )


class HotelOption(_WireModel):
    name: str
    price_per_night: int = 0
    description: str = ""
    rating: float = 0.0
    distance_from_center: str = ""

    @field_validator("price_per_night", mode="before")
    @classmethod
    def parse_price(cls, value: Any) -> int:
        return coerce_cost(value)

    @field_validator("rating", mode="before")
    @classmethod
    def parse_rating(cls, value: Any) -> float:
        try:
            rating = float(value)
        except (TypeError, ValueError):
            return 0.0
        return rating if rating > 0 and not math.isnan(rating) else 0.0

    @field_validator("distance_from_center", mode="before")
    @classmethod
    def parse_distance(cls, value: Any) -> str:
        return "" if value is None else str(value)


class Itinerary(_WireModel):
    summary: str = ""
    total_cost: int = 0
    city_coordinates: Tuple[float, float]
    hotels: List[HotelOption] = Field(default_factory=list)
    itinerary: List[DayPlan] = Field(default_factory=list)


# ------- Generation results -------
class GenerationOk(BaseModel):
    kind: Literal["ok"] = "ok"
    itinerary: Itinerary

    def to_response(self) -> Dict[str, Any]:
        return self.itinerary.model_dump(mode="json", by_alias=True)


class GenerationDegraded(BaseModel):
    """A renderable stand-in plus the reason the real itinerary is missing."""

    kind: Literal["degraded"] = "degraded"
    itinerary: Itinerary
    reason: str

    def to_response(self) -> Dict[str, Any]:
        body = self.itinerary.model_dump(mode="json", by_alias=True)
        body["_fallback"] = True
        body["_error"] = self.reason
        return body


GenerationResult = Annotated[Union[GenerationOk, GenerationDegraded], Field(discriminator="kind")]
