"""Command-line stand-in for the browser form controller.

Collects the trip form, calls the generation service and renders whatever
comes back. When the service cannot be reached at all, a deterministic
itinerary is synthesized locally so there is always something to show.
"""
from __future__ import annotations

import argparse
import re
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from app.config import get_settings
from app.fallback import synthesize_itinerary
from app.logs import get_logger
from app.schemas import Itinerary

logger = get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill all required fields!"
TRANSPORT_FAILURE_MESSAGE = "Failed to generate itinerary!"
ERROR_BANNER_SECONDS = 5.0
CURRENCY = "₹"

_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


class FormError(ValueError):
    pass


@dataclass
class TripForm:
    destination: str
    budget: int
    days: int
    preferences: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "city": self.destination,
            "budget": self.budget,
            "days": self.days,
            "preferences": self.preferences,
        }


def _leading_int(value: Any) -> Optional[int]:
    # Same reading as a browser number field: leading digits win, the rest is ignored.
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT_RE.match(str(value).strip())
    return int(match.group(0)) if match else None


def validate_form(raw: Mapping[str, Any]) -> TripForm:
    """Check the form locally; raises ``FormError`` before anything is sent."""
    destination = str(raw.get("destination") or raw.get("city") or "").strip()
    budget = _leading_int(raw.get("budget"))
    days = _leading_int(raw.get("days"))
    if not destination or not budget or not days or budget < 0 or days < 0:
        raise FormError(REQUIRED_FIELDS_MESSAGE)
    preferences = str(raw.get("preferences") or "").strip()
    return TripForm(destination=destination, budget=budget, days=days, preferences=preferences)


class ErrorBanner:
    """A message that hides itself ``duration`` seconds after being shown."""

    def __init__(self, duration: float = ERROR_BANNER_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self._clock = clock
        self._message: Optional[str] = None
        self._expires_at = 0.0

    def show(self, message: str) -> None:
        self._message = message
        self._expires_at = self._clock() + self.duration

    @property
    def visible(self) -> bool:
        return self._message is not None and self._clock() < self._expires_at

    @property
    def message(self) -> Optional[str]:
        return self._message if self.visible else None


@dataclass
class Marker:
    longitude: float
    latitude: float


@dataclass
class MapView:
    center: Tuple[float, float] = (0.0, 0.0)
    zoom: float = 2
    markers: List[Marker] = field(default_factory=list)

    def show_destination(self, coordinates: Sequence[float]) -> None:
        """Fly to ``coordinates`` and replace any existing marker with a new one."""
        longitude, latitude = float(coordinates[0]), float(coordinates[1])
        self.center = (longitude, latitude)
        self.zoom = 10
        self.markers.clear()
        self.markers.append(Marker(longitude=longitude, latitude=latitude))

    @property
    def marker(self) -> Optional[Marker]:
        return self.markers[0] if self.markers else None


def render_itinerary(trip: Itinerary, currency: str = CURRENCY) -> str:
    lines: List[str] = [
        "Trip Summary",
        trip.summary,
        f"Estimated Cost: {currency}{trip.total_cost}",
    ]

    if trip.hotels:
        lines += ["", "Hotel Options"]
        for index, hotel in enumerate(trip.hotels, 1):
            lines.append(
                f"{index}. {hotel.name} - {currency}{hotel.price_per_night}/night, "
                f"rating {hotel.rating:g}, {hotel.distance_from_center or 'distance n/a'} from center"
            )
            if hotel.description:
                lines.append(f"   {hotel.description}")

    lines += ["", "Day by Day Itinerary"]
    for day in trip.itinerary:
        lines += [
            "",
            f"Day {day.day_index} ({currency}{day.daily_cost})",
            f"  Morning: {day.morning.activity} ({currency}{day.morning.cost})",
            f"  Afternoon: {day.afternoon.activity} ({currency}{day.afternoon.cost})",
            f"  Evening: {day.evening.activity} ({currency}{day.evening.cost})",
            f"  Dining: {day.dining.restaurant}, {day.dining.cuisine} ({currency}{day.dining.cost})",
            f"  Hotel: {day.hotel.name} ({currency}{day.hotel.price})",
        ]
    return "\n".join(lines)


@dataclass
class ClientResult:
    itinerary: Itinerary
    rendered: str
    server_fallback: bool = False
    local_fallback: bool = False
    error: Optional[str] = None
    debug: Optional[str] = None


class TripPlannerClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 90.0,
        banner: Optional[ErrorBanner] = None,
        map_view: Optional[MapView] = None,
    ):
        self.base_url = (base_url or get_settings().api_url).rstrip("/")
        self._http = http_client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self.banner = banner or ErrorBanner()
        self.map_view = map_view or MapView()

    def close(self) -> None:
        self._http.close()

    def fetch_map_token(self) -> str:
        try:
            response = self._http.get("/get-mapbox-token")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.error("Failed to fetch map token", exc_info=True)
            return ""
        token = data.get("token") if isinstance(data, dict) else None
        return token or ""

    def submit(self, raw_form: Mapping[str, Any]) -> Optional[ClientResult]:
        """Validate, call the service and render. Returns None if the form was rejected."""
        try:
            form = validate_form(raw_form)
        except FormError as exc:
            self.banner.show(str(exc))
            return None

        server_fallback, error, debug = False, None, None
        try:
            response = self._http.post("/generate", json=form.to_payload())
            if response.is_error:
                raise httpx.HTTPStatusError(
                    TRANSPORT_FAILURE_MESSAGE, request=response.request, response=response
                )
            body = response.json()
            trip = Itinerary.model_validate(body)
            server_fallback = bool(body.get("_fallback"))
            if server_fallback:
                error = str(body.get("_error") or "")
                self.banner.show(error or TRANSPORT_FAILURE_MESSAGE)
            local_fallback = False
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            debug = str(exc) or TRANSPORT_FAILURE_MESSAGE
            logger.warning("Generation request failed (%s); building itinerary locally", debug)
            self.banner.show(debug)
            trip = synthesize_itinerary(form.destination, form.budget, form.days)
            local_fallback = True

        if trip.city_coordinates:
            self.map_view.show_destination(trip.city_coordinates)

        return ClientResult(
            itinerary=trip,
            rendered=render_itinerary(trip),
            server_fallback=server_fallback,
            local_fallback=local_fallback,
            error=error,
            debug=debug,
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a travel itinerary.")
    parser.add_argument("--city", required=True, help="Destination city")
    parser.add_argument("--budget", required=True, help="Total budget in rupees")
    parser.add_argument("--days", required=True, help="Trip length in days")
    parser.add_argument("--preferences", default="", help="Free-text travel preferences")
    parser.add_argument("--api-url", default=None, help="Base URL of the itinerary service")
    args = parser.parse_args(argv)

    client = TripPlannerClient(args.api_url)
    try:
        result = client.submit(
            {"city": args.city, "budget": args.budget, "days": args.days, "preferences": args.preferences}
        )
    finally:
        client.close()

    if result is None:
        print(client.banner.message or REQUIRED_FIELDS_MESSAGE, file=sys.stderr)
        return 2
    print(result.rendered)
    if result.error:
        print(f"\nNote: {result.error}", file=sys.stderr)
    if result.debug:
        print(f"\nDebug: {result.debug}", file=sys.stderr)
    if client.map_view.marker:
        marker = client.map_view.marker
        print(f"\nMap marker: {marker.longitude:.4f}, {marker.latitude:.4f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
