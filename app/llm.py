# app/llm.py
import json
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from app.budget import MIN_DAILY_COST
from app.config import Settings, get_settings
from app.errors import GenerationError
from app.logs import get_logger
from app.schemas import PLACEHOLDER_SLOTS, TripRequest

logger = get_logger(__name__)

DEFAULT_PREFERENCES = "sightseeing, food, culture"

SYSTEM_PROMPT = """You are a travel planning expert.
Return ONLY valid JSON. Do not wrap it in markdown.
"""

USER_TEMPLATE = """Create a {days}-day itinerary for {destination} with a total budget of ₹{budget}.
Travel preferences: {preferences}.

Output ONLY valid JSON in this format:
{{
  "summary": "",
  "totalCost": 0,
  "hotels": [
    {{"name":"","pricePerNight":0,"description":"","rating":0,"distanceFromCenter":""}}
  ],
  "itinerary": [
    {{
      "day":1,
      "dailyCost":0,
      "morning":{{"activity":"","cost":0}},
      "afternoon":{{"activity":"","cost":0}},
      "evening":{{"activity":"","cost":0}},
      "dining":{{"restaurant":"","cuisine":"","cost":0}},
      "hotel":{{"name":"","price":0}}
    }}
  ]
}}

Guidelines:
- The "itinerary" array must contain exactly {days} days.
- Allocate all costs within the total budget ₹{budget}.
- Daily activities, dining, hotels must fit realistic budget.
- Use budget-friendly options if budget is low.
- Minimum dailyCost per day: ₹{min_daily_cost}.
- Include 2-3 hotels with different price ranges.
- Use ₹ for all costs and give every cost as a plain integer.
"""


def build_prompt(request: TripRequest) -> str:
    """Format the generation prompt for a validated trip request."""
    return USER_TEMPLATE.format(
        days=request.days,
        destination=request.destination,
        budget=request.budget,
        preferences=request.preferences or DEFAULT_PREFERENCES,
        min_daily_cost=MIN_DAILY_COST,
    )


def _get_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise GenerationError("OPENAI_API_KEY environment variable not configured")
    # one attempt per call, bounded by generation_timeout
    return OpenAI(api_key=settings.openai_api_key, timeout=settings.generation_timeout, max_retries=0)


def call_llm(prompt: str, settings: Optional[Settings] = None) -> str:
    """Send ``prompt`` to the chat model and return the raw response text."""
    settings = settings or get_settings()
    logger.info("Invoking LLM model %s (max %d tokens)", settings.model, settings.max_output_tokens)
    with _get_client(settings) as client:
        try:
            resp = client.chat.completions.create(
                model=settings.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=settings.temperature,
                max_tokens=settings.max_output_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise GenerationError(f"Text generation failed: {exc}") from exc

    raw = resp.choices[0].message.content if resp.choices else None
    if not raw or not raw.strip():
        raise GenerationError("No content from text generation")
    return raw


# ---------- response parsing ----------
_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_DAY_RE = re.compile(r"^day\s*(\d+)\b", re.IGNORECASE)
_SLOT_RE = re.compile(
    r"^(morning|afternoon|evening|dining|dinner|lunch|restaurant|hotel|accommodation|stay)\s*[:\-–]\s*(.+)$",
    re.IGNORECASE,
)
_SUMMARY_RE = re.compile(r"^summary\s*[:\-–]\s*(.+)$", re.IGNORECASE)
# A cost needs a currency marker, a " - " separator or an opening parenthesis
# in front of it, so "Sector 17" stays part of the label.
_TRAILING_COST_RE = re.compile(
    r"(?:(?:₹|\brs\.?|\binr|\$|€|£)\s*|\s[-–]\s*|\(\s*)(\d[\d,]*(?:\.\d+)?)\s*\)?\s*$",
    re.IGNORECASE,
)
_SEGMENT_SPLIT_RE = re.compile(
    r"[,;]\s*(?=(?:morning|afternoon|evening|dining|dinner|lunch|restaurant|hotel|accommodation|stay)\s*[:\-–])",
    re.IGNORECASE,
)
_CUISINE_RE = re.compile(r"^(.*?)\s*\(([^()]*)\)\s*$")

_SLOT_ALIASES = {
    "dinner": "dining",
    "lunch": "dining",
    "restaurant": "dining",
    "accommodation": "hotel",
    "stay": "hotel",
}


def _split_label_and_cost(body: str) -> tuple[str, int]:
    match = _TRAILING_COST_RE.search(body)
    if not match or match.start() == 0:
        return body.strip(), 0
    label = body[: match.start()].rstrip(" -–:|(")
    cost = int(float(match.group(1).replace(",", "")))
    return label.strip(), cost


def _slot_payload(slot: str, body: str) -> Dict[str, Any]:
    label, cost = _split_label_and_cost(body)
    if slot == "dining":
        restaurant, cuisine = label, ""
        cuisine_match = _CUISINE_RE.match(label)
        if cuisine_match:
            restaurant, cuisine = cuisine_match.group(1).strip(), cuisine_match.group(2).strip()
        return {"restaurant": restaurant, "cuisine": cuisine, "cost": cost}
    if slot == "hotel":
        return {"name": label, "price": cost}
    return {"activity": label, "cost": cost}


def _consume_slots(current: Dict[str, Any], text: str) -> bool:
    """Store every ``Slot: label - cost`` segment of ``text`` on ``current``."""
    found = False
    for segment in _SEGMENT_SPLIT_RE.split(text):
        slot_match = _SLOT_RE.match(segment.strip())
        if not slot_match:
            continue
        slot = slot_match.group(1).lower()
        slot = _SLOT_ALIASES.get(slot, slot)
        current[slot] = _slot_payload(slot, slot_match.group(2))
        found = True
    return found


def parse_free_text(text: str) -> Dict[str, Any]:
    """Read a plain-text itinerary written as ``Day N`` blocks.

    Each block may carry ``Morning:``, ``Afternoon:``, ``Evening:``,
    ``Dining:`` and ``Hotel:`` entries ending in a cost, e.g.
    ``Morning: Amber Fort - ₹500``, one per line or comma separated on the
    day's own line. A ``Summary:`` line, or else the first line before any
    day header, becomes the summary.
    """
    summary = ""
    days: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None

    for raw_line in text.splitlines():
        line = raw_line.replace("**", "").strip().lstrip("#*-•").strip()
        if not line:
            continue

        summary_match = _SUMMARY_RE.match(line)
        if summary_match:
            summary = summary_match.group(1).strip()
            continue

        day_match = _DAY_RE.match(line)
        if day_match:
            current = {"day": int(day_match.group(1))}
            days.append(current)
            _consume_slots(current, line[day_match.end():].lstrip(" :-–"))
            continue

        if current is not None and _consume_slots(current, line):
            continue

        if current is None and not summary:
            summary = line

    return {"summary": summary, "hotels": [], "itinerary": days}


def _days_from_strings(entries: List[Any]) -> str:
    blocks: List[str] = []
    for index, entry in enumerate(entries, 1):
        if not isinstance(entry, str) or not entry.strip():
            continue
        block = entry.strip()
        if not _DAY_RE.match(block.replace("**", "").lstrip("#*-• ")):
            block = f"Day {index}\n{block}"
        blocks.append(block)
    return "\n".join(blocks)


def has_slot_content(day: Any) -> bool:
    return isinstance(day, dict) and any(slot in day for slot in PLACEHOLDER_SLOTS)


def parse_itinerary_text(raw: str) -> Dict[str, Any]:
    """Parse model output as JSON, or as a line-based itinerary when JSON fails.

    A JSON day list made of strings is read with the line-based parser. The
    result must hold at least one day with a morning, afternoon, evening,
    dining or hotel entry, otherwise ``GenerationError`` is raised.
    """
    text = _FENCE_RE.sub("", raw or "").strip()
    if not text:
        raise GenerationError("No content from text generation")

    data: Any = None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("LLM response was not valid JSON; trying line-based parsing")

    if isinstance(data, list):
        data = {"itinerary": data}
    if isinstance(data, dict):
        days = data.get("itinerary")
        if not isinstance(days, list):
            days = data.get("days")
        if isinstance(days, list) and any(has_slot_content(day) for day in days):
            parsed = dict(data)
            parsed["itinerary"] = days
            logger.info("LLM JSON payload parsed with %d day(s)", len(days))
            return parsed
        if isinstance(days, list):
            # days given as prose strings
            text = _days_from_strings(days)
            logger.warning("LLM JSON day list has no structured days; trying line-based parsing")
        else:
            text = ""

    parsed = parse_free_text(text)
    if any(has_slot_content(day) for day in parsed["itinerary"]):
        if isinstance(data, dict):
            if data.get("summary"):
                parsed["summary"] = str(data["summary"])
            parsed["hotels"] = data.get("hotels") or []
        logger.info("Line-based parser recovered %d day(s)", len(parsed["itinerary"]))
        return parsed
    raise GenerationError("Text generation returned an unparsable itinerary")
