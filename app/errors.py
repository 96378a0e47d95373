"""Exceptions raised inside the itinerary pipeline."""


class TripPlannerError(Exception):
    """Base class for every failure the generation service knows about."""


class InvalidTripRequest(TripPlannerError):
    pass


class BudgetTooLowError(InvalidTripRequest):
    def __init__(self, minimum: int, days: int):
        self.minimum = minimum
        self.days = days
        super().__init__(f"Budget too low! Minimum {minimum} needed for {days} days")


class GenerationError(TripPlannerError):
    """The text-generation collaborator failed or returned nothing usable."""


class GeocodingError(TripPlannerError):
    """Raised by the geocoder; the service always absorbs it."""
