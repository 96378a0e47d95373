import json

import httpx
import pytest

from app import client as client_module
from app.client import (
    REQUIRED_FIELDS_MESSAGE,
    ErrorBanner,
    FormError,
    MapView,
    TripPlannerClient,
    render_itinerary,
    validate_form,
)
from app.fallback import synthesize_itinerary

PARIS_FORM = {"city": "Paris", "budget": "5000", "days": "5", "preferences": "museums"}


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _client(handler, clock=None):
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://planner.test")
    return TripPlannerClient("http://planner.test", http_client=http, banner=ErrorBanner(clock=clock or FakeClock()))


def _server_body(coords=(2.35, 48.85), **extra):
    trip = synthesize_itinerary("Paris", 5000, 5, coordinates=coords)
    body = trip.model_dump(mode="json", by_alias=True)
    body["summary"] = "Server plan"
    body.update(extra)
    return body


@pytest.mark.parametrize(
    "raw",
    [
        {"city": "", "budget": "5000", "days": "5"},
        {"city": "   ", "budget": "5000", "days": "5"},
        {"city": "Paris", "budget": "", "days": "5"},
        {"city": "Paris", "budget": "abc", "days": "5"},
        {"city": "Paris", "budget": "5000", "days": "0"},
        {"city": "Paris", "budget": "5000"},
    ],
)
def test_validate_form_rejects_missing_or_non_numeric(raw):
    with pytest.raises(FormError, match=REQUIRED_FIELDS_MESSAGE):
        validate_form(raw)


def test_validate_form_parses_like_a_number_field():
    form = validate_form({"destination": " Paris ", "budget": "5000.75", "days": "5 days", "preferences": " art "})

    assert (form.destination, form.budget, form.days, form.preferences) == ("Paris", 5000, 5, "art")
    assert form.to_payload() == {"city": "Paris", "budget": 5000, "days": 5, "preferences": "art"}


def test_error_banner_dismisses_itself_after_five_seconds():
    clock = FakeClock()
    banner = ErrorBanner(clock=clock)

    banner.show("Please fill all required fields!")
    assert banner.visible
    clock.now += 4.9
    assert banner.message == "Please fill all required fields!"
    clock.now += 0.2
    assert not banner.visible
    assert banner.message is None


def test_map_view_keeps_a_single_marker():
    view = MapView()

    view.show_destination((2.35, 48.85))
    view.show_destination([139.69, 35.69])

    assert len(view.markers) == 1
    assert (view.marker.longitude, view.marker.latitude) == (139.69, 35.69)
    assert view.center == (139.69, 35.69)
    assert view.zoom == 10


def test_invalid_form_is_never_sent():
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(200, json={})

    planner = _client(handler)

    assert planner.submit({"city": "Paris", "budget": "", "days": "5"}) is None
    assert sent == []
    assert planner.banner.message == REQUIRED_FIELDS_MESSAGE


def test_submit_renders_server_itinerary():
    def handler(request):
        assert request.url.path == "/generate"
        assert json.loads(request.content) == {"city": "Paris", "budget": 5000, "days": 5, "preferences": "museums"}
        return httpx.Response(200, json=_server_body())

    planner = _client(handler)

    result = planner.submit(PARIS_FORM)

    assert not result.local_fallback
    assert not result.server_fallback
    assert result.itinerary.summary == "Server plan"
    assert "Server plan" in result.rendered
    assert planner.map_view.marker.longitude == 2.35
    assert planner.banner.message is None


def test_submit_surfaces_server_fallback_flag():
    body = _server_body(_fallback=True, _error="No content from text generation")
    body.update({"itinerary": [], "hotels": [], "totalCost": 0})
    planner = _client(lambda request: httpx.Response(200, json=body))

    result = planner.submit(PARIS_FORM)

    assert result.server_fallback
    assert not result.local_fallback
    assert result.error == "No content from text generation"
    assert planner.banner.message == "No content from text generation"


def test_network_failure_synthesizes_local_itinerary():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    planner = _client(handler)

    result = planner.submit(PARIS_FORM)

    assert result.local_fallback
    assert len(result.itinerary.itinerary) == 5
    assert result.itinerary.total_cost == 5000
    assert "connection refused" in result.debug
    assert "Day 5" in result.rendered
    assert len(planner.map_view.markers) == 1


def test_non_2xx_status_synthesizes_local_itinerary():
    planner = _client(lambda request: httpx.Response(502, text="Bad gateway"))

    result = planner.submit(PARIS_FORM)

    assert result.local_fallback
    assert result.debug == "Failed to generate itinerary!"
    assert len(result.itinerary.itinerary) == 5


def test_markers_do_not_accumulate_across_submissions():
    planner = _client(lambda request: httpx.Response(200, json=_server_body()))

    planner.submit(PARIS_FORM)
    planner.submit(PARIS_FORM)

    assert len(planner.map_view.markers) == 1


def test_fetch_map_token():
    planner = _client(lambda request: httpx.Response(200, json={"token": "pk.abc"}))
    assert planner.fetch_map_token() == "pk.abc"

    planner = _client(lambda request: httpx.Response(200, json={}))
    assert planner.fetch_map_token() == ""

    planner = _client(lambda request: httpx.Response(500))
    assert planner.fetch_map_token() == ""


def test_render_itinerary_lists_every_section():
    text = render_itinerary(synthesize_itinerary("Lisbon", 3000, 2))

    assert text.startswith("Trip Summary")
    assert "Estimated Cost: ₹3000" in text
    assert "Hotel Options" in text
    assert "Lisbon Grand Hotel" in text
    for label in ("Morning:", "Afternoon:", "Evening:", "Dining:", "Hotel:"):
        assert text.count(label) == 2
    assert "Day 2 (₹1500)" in text


def test_main_reports_form_errors(capsys):
    assert client_module.main(["--city", "Paris", "--budget", "abc", "--days", "3"]) == 2
    assert REQUIRED_FIELDS_MESSAGE in capsys.readouterr().err


def test_main_prints_local_fallback_when_service_is_down(monkeypatch, capsys):
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    monkeypatch.setattr(
        client_module,
        "TripPlannerClient",
        lambda base_url=None: _client(handler),
    )

    assert client_module.main(["--city", "Paris", "--budget", "5000", "--days", "5"]) == 0
    captured = capsys.readouterr()
    assert "Day 5" in captured.out
    assert "Debug: offline" in captured.err
