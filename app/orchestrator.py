# app/orchestrator.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from app.budget import check_budget, normalize_days
from app.config import Settings, get_settings
from app.errors import GenerationError, InvalidTripRequest
from app.fallback import placeholder_itinerary
from app.geocoding import DEFAULT_COORDINATES, resolve_coordinates
from app.llm import build_prompt, call_llm, has_slot_content, parse_itinerary_text
from app.logs import get_logger
from app.schemas import (
    DayPlan,
    GenerationDegraded,
    GenerationOk,
    GenerationResult,
    HotelOption,
    Itinerary,
    TripRequest,
)

logger = get_logger(__name__)

MAX_HOTEL_OPTIONS = 5


def validate_request(payload: Any) -> TripRequest:
    """Turn a raw request body into a ``TripRequest`` or raise ``InvalidTripRequest``."""
    if not isinstance(payload, dict):
        raise InvalidTripRequest("Request body must be a JSON object")
    if not payload.get("budget") or not payload.get("days"):
        raise InvalidTripRequest("Missing budget or days")
    try:
        request = TripRequest.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "request"
        raise InvalidTripRequest(f"Invalid {field}: {first.get('msg')}") from exc
    check_budget(request.budget, request.days)
    return request


async def _generate_raw(request: TripRequest, settings: Settings) -> Dict[str, Any]:
    prompt = build_prompt(request)
    try:
        raw = await asyncio.wait_for(
            asyncio.to_thread(call_llm, prompt, settings),
            timeout=settings.generation_timeout,
        )
    except asyncio.TimeoutError as exc:
        raise GenerationError(
            f"Text generation timed out after {settings.generation_timeout:g}s"
        ) from exc
    return parse_itinerary_text(raw)


def _hotel_options(raw_hotels: Any) -> List[HotelOption]:
    hotels: List[HotelOption] = []
    if not isinstance(raw_hotels, list):
        return hotels
    for item in raw_hotels:
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            continue
        try:
            hotels.append(HotelOption.model_validate(item))
        except ValidationError:
            logger.debug("Dropping malformed hotel option %r", item)
        if len(hotels) >= MAX_HOTEL_OPTIONS:
            break
    return hotels


def build_itinerary(
    raw: Dict[str, Any],
    request: TripRequest,
    coordinates: Tuple[float, float],
) -> Itinerary:
    """Shape parsed model output into a normalized ``Itinerary``.

    The day list is forced to the requested length: extra days are dropped,
    missing ones are filled with placeholder days, and days are renumbered
    from 1 in order. Raises ``GenerationError`` when no day carries any
    activity, dining or hotel entry.
    """
    raw_days = [day for day in raw.get("itinerary") or [] if isinstance(day, dict)]
    if not any(has_slot_content(day) for day in raw_days):
        raise GenerationError("Text generation returned no usable days")
    if len(raw_days) != request.days:
        logger.warning(
            "Model returned %d day(s) for a %d-day trip; adjusting", len(raw_days), request.days
        )

    plans = [
        DayPlan.complete(index + 1, raw_days[index] if index < len(raw_days) else None)
        for index in range(request.days)
    ]
    plans, total_cost = normalize_days(plans, request.budget, request.days)

    summary = str(raw.get("summary") or "").strip()
    if not summary:
        summary = f"Your {request.days}-day trip to {request.destination}."

    return Itinerary(
        summary=summary,
        total_cost=total_cost,
        city_coordinates=coordinates,
        hotels=_hotel_options(raw.get("hotels")),
        itinerary=plans,
    )


async def orchestrate_itinerary(
    payload: Any,
    settings: Optional[Settings] = None,
) -> GenerationResult:
    """Validate, geocode, generate and normalize; never raises for known failures."""
    settings = settings or get_settings()

    try:
        request = validate_request(payload)
    except InvalidTripRequest as exc:
        logger.warning("Rejected trip request: %s", exc)
        return GenerationDegraded(itinerary=placeholder_itinerary(DEFAULT_COORDINATES), reason=str(exc))

    logger.info(
        "Generation start: destination=%s, days=%d, budget=%d",
        request.destination,
        request.days,
        request.budget,
    )

    # Geocoding never raises, so a failed lookup cannot cancel generation.
    coordinates, raw = await asyncio.gather(
        resolve_coordinates(request.destination, settings),
        _generate_raw(request, settings),
        return_exceptions=True,
    )
    if isinstance(coordinates, BaseException):
        logger.warning("Unexpected geocoding failure", exc_info=coordinates)
        coordinates = DEFAULT_COORDINATES

    if isinstance(raw, GenerationError):
        logger.warning("Itinerary generation failed: %s", raw)
        return GenerationDegraded(itinerary=placeholder_itinerary(coordinates), reason=str(raw))
    if isinstance(raw, Exception):
        logger.error("Unexpected itinerary generation failure", exc_info=raw)
        return GenerationDegraded(
            itinerary=placeholder_itinerary(coordinates),
            reason=f"Text generation failed: {type(raw).__name__}",
        )
    if isinstance(raw, BaseException):
        raise raw

    try:
        itinerary = build_itinerary(raw, request, coordinates)
    except GenerationError as exc:
        logger.warning("Itinerary generation failed: %s", exc)
        return GenerationDegraded(itinerary=placeholder_itinerary(coordinates), reason=str(exc))
    except Exception as exc:
        logger.exception("Could not assemble the generated itinerary")
        return GenerationDegraded(
            itinerary=placeholder_itinerary(coordinates),
            reason=f"Text generation failed: {type(exc).__name__}",
        )

    logger.info(
        "Generation finished: %d day(s), total cost %d of budget %d",
        len(itinerary.itinerary),
        itinerary.total_cost,
        request.budget,
    )
    return GenerationOk(itinerary=itinerary)
