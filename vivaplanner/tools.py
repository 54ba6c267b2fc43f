"""Agent tools: conference database search and event timeliness assessment."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import httpx

from vivaplanner.models import (
    ActionUrgency,
    VivatechQueryResponse,
    VivatechSource,
    current_conference_date,
)

DEFAULT_TIMEOUT_SECONDS = 30
EVENT_YEAR = 2025

_MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
_MONTH_ALTERNATION = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)
_MONTH_DAY = re.compile(rf"({_MONTH_ALTERNATION})\s+(\d{{1,2}})")
_DAY_MONTH = re.compile(rf"(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_ALTERNATION})")
_U64 = re.compile(r"\+?[0-9]+")


class VivatechApiError(Exception):
    """Failure talking to the conference search service."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Vivatech API Error: {self.message}"


class DateParseError(Exception):
    """A date could not be read from event text."""

    def __str__(self) -> str:
        return "Failed to parse date from event text"


@dataclass
class ToolDefinition:
    """Name, description and JSON parameter schema of a tool."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


@dataclass
class TimelinessResult:
    """Urgency assessment of one event."""

    source_id: str
    urgency: ActionUrgency
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "urgency": self.urgency.value,
            "description": self.description,
        }


def vivatech_api_url() -> str:
    """Return the search service URL from VIVATECH_API_URL."""
    url = os.environ.get("VIVATECH_API_URL")
    if url is None:
        raise VivatechApiError("VIVATECH_API_URL not found in environment")
    return url


def api_timeout_seconds() -> int:
    """Return API_TIMEOUT_SECONDS as an unsigned integer, or the default."""
    value = os.environ.get("API_TIMEOUT_SECONDS")
    if value is not None and _U64.fullmatch(value):
        seconds = int(value)
        if seconds < 2**64:
            return seconds
    return DEFAULT_TIMEOUT_SECONDS


def month_name_to_number(month: str) -> int | None:
    """Map an English month name, in any case, to its number."""
    return _MONTHS.get(month.lower())


def _make_date(month_name: str, day_text: str) -> date | None:
    month = month_name_to_number(month_name)
    if month is None or not day_text.isascii():
        return None
    try:
        return date(EVENT_YEAR, month, int(day_text))
    except ValueError:
        return None


def extract_date_from_text(text: str) -> date | None:
    """Find a 'June 12' or '12th June' style date in text."""
    match = _MONTH_DAY.search(text)
    if match:
        found = _make_date(match.group(1), match.group(2))
        if found is not None:
            return found
    match = _DAY_MONTH.search(text)
    if match:
        found = _make_date(match.group(2), match.group(1))
        if found is not None:
            return found
    return None


def analyze_event_urgency(text: str, current_date: date) -> tuple[ActionUrgency, str]:
    """Classify an event's urgency relative to the current date."""
    event_date = extract_date_from_text(text)
    if event_date is None:
        return ActionUrgency.NORMAL, "No specific date found - treating as normal priority."
    days = (event_date - current_date).days
    if days == 0:
        return ActionUrgency.IMMEDIATE, "This event is happening TODAY - immediate action required!"
    if days == 1:
        return ActionUrgency.SOON, "This event is happening TOMORROW - plan accordingly."
    if days > 0:
        return ActionUrgency.NORMAL, f"This event is in {days} days - normal priority."
    return ActionUrgency.NORMAL, "This event has already passed."


def _require_args(args: Any, key: str) -> Any:
    if not isinstance(args, Mapping) or key not in args:
        raise ValueError(f"missing field `{key}`")
    return args[key]


class QueryVivatechAPI:
    """Tool that searches the conference database."""

    NAME = "query_vivatech_api"

    async def definition(self, prompt: str) -> ToolDefinition:
        return ToolDefinition(
            name=self.NAME,
            description=(
                "Searches the Vivatech conference database for sessions and partners "
                "related to a query."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search term to find relevant Vivatech sessions or partners",
                    }
                },
                "required": ["query"],
            },
        )

    async def call(self, args: Mapping[str, Any]) -> list[VivatechSource]:
        query = _require_args(args, "query")
        if not isinstance(query, str):
            raise ValueError("invalid type for field `query`")
        timeout = float(api_timeout_seconds())
        url = vivatech_api_url()
        async with httpx.AsyncClient(timeout=timeout) as client:
            try:
                response = await client.post(url, json={"query": query})
            except httpx.HTTPError as exc:
                raise VivatechApiError(f"HTTP request failed: {exc}") from exc
            if not response.is_success:
                raise VivatechApiError(
                    f"API returned error status: {response.status_code} {response.reason_phrase}"
                )
            try:
                parsed = VivatechQueryResponse.from_dict(response.json())
            except (ValueError, TypeError, KeyError) as exc:
                raise VivatechApiError(f"Failed to parse JSON response: {exc}") from exc
        return parsed.sources


class AssessTimeliness:
    """Tool that ranks events by how soon they happen."""

    NAME = "assess_event_timeliness"

    async def definition(self, prompt: str) -> ToolDefinition:
        return ToolDefinition(
            name=self.NAME,
            description=(
                "Analyzes a list of Vivatech events to determine their urgency based on the "
                "current date (June 11, 2025). Use this to prioritize actions."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "events": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "id": {
                                    "type": "string",
                                    "description": "Unique identifier of the event",
                                },
                                "text_chunk": {
                                    "type": "string",
                                    "description": "Text content describing the event",
                                },
                                "source_table": {
                                    "type": "string",
                                    "description": "Type of source (e.g., sessions, partners)",
                                },
                                "score": {"type": "number", "description": "Relevance score"},
                            },
                            "required": ["id", "text_chunk"],
                        },
                        "description": "List of events to assess for timeliness",
                    }
                },
                "required": ["events"],
            },
        )

    async def call(self, args: Mapping[str, Any]) -> list[TimelinessResult]:
        raw_events = _require_args(args, "events")
        if not isinstance(raw_events, list):
            raise ValueError("invalid type for field `events`")
        events = [
            event if isinstance(event, VivatechSource) else VivatechSource.from_dict(event)
            for event in raw_events
        ]
        today = current_conference_date()
        results = []
        for event in events:
            urgency, description = analyze_event_urgency(event.text_chunk, today)
            results.append(TimelinessResult(source_id=event.id, urgency=urgency, description=description))
        return results