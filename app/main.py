from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.logs import get_logger
from app.orchestrator import orchestrate_itinerary

logger = get_logger(__name__)

app = FastAPI(title="Travel Itinerary Generator API")

# The browser page is usually served from a different origin than this API.
# Operators can scope this via TRIP_PLANNER_ALLOWED_ORIGINS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/generate")
async def generate(request: Request) -> Dict[str, Any]:
    """Generate an itinerary. Failures come back as 200 with ``_fallback`` set."""
    try:
        payload: Any = await request.json()
    except ValueError:
        logger.warning("Request body is not valid JSON")
        payload = None
    result = await orchestrate_itinerary(payload)
    return result.to_response()


@app.api_route(
    "/generate",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def generate_wrong_method() -> JSONResponse:
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})


@app.get("/get-mapbox-token")
async def get_mapbox_token() -> Dict[str, str]:
    """Hand the configured map token to the browser. Empty when unset."""
    return {"token": get_settings().mapbox_token}


@app.get("/health", include_in_schema=False)
async def health() -> Dict[str, str]:
    return {"status": "ok"}
