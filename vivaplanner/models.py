"""Data models exchanged with the conference search service and the planner API."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

VIVATECH_YEAR = 2025
CURRENT_MONTH = 6
CURRENT_DAY = 11
DEFAULT_CONFERENCE_DATE = date(VIVATECH_YEAR, CURRENT_MONTH, CURRENT_DAY)

_U32_LIMIT = 2**32
_MISSING = object()


class ActionUrgency(Enum):
    """How soon an attendee should act on an event."""

    IMMEDIATE = "Immediate"
    SOON = "Soon"
    NORMAL = "Normal"


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _field(data: Mapping[str, Any], key: str, kinds: type | tuple[type, ...], default: Any = _MISSING) -> Any:
    if key not in data:
        if default is _MISSING:
            raise ValueError(f"missing field `{key}`")
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ValueError(f"invalid type for field `{key}`")
    return value


@dataclass
class VivatechSource:
    """One search hit returned by the conference database."""

    id: str
    text_chunk: str
    source_table: str = ""
    score: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> VivatechSource:
        data = _as_mapping(data, "source")
        return cls(
            id=_field(data, "id", str),
            text_chunk=_field(data, "text_chunk", str),
            source_table=_field(data, "source_table", str, ""),
            score=float(_field(data, "score", (int, float), 0.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_table": self.source_table,
            "score": self.score,
            "text_chunk": self.text_chunk,
        }


@dataclass
class VivatechMetadata:
    """Search metadata attached to a query response."""

    search_mode: str
    sources_found: int

    @classmethod
    def from_dict(cls, data: Any) -> VivatechMetadata:
        data = _as_mapping(data, "metadata")
        sources_found = _field(data, "sources_found", int)
        if not 0 <= sources_found < _U32_LIMIT:
            raise ValueError("invalid value for field `sources_found`")
        return cls(search_mode=_field(data, "search_mode", str), sources_found=sources_found)


@dataclass
class VivatechQueryResponse:
    """Full response of the conference search service."""

    answer: str
    metadata: VivatechMetadata
    sources: list[VivatechSource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> VivatechQueryResponse:
        data = _as_mapping(data, "response")
        sources = _field(data, "sources", list)
        return cls(
            answer=_field(data, "answer", str),
            sources=[VivatechSource.from_dict(item) for item in sources],
            metadata=VivatechMetadata.from_dict(_field(data, "metadata", Mapping)),
        )


@dataclass
class GeneratePlanRequest:
    """Body of a plan generation request."""

    objective: str

    @classmethod
    def from_dict(cls, data: Any) -> GeneratePlanRequest:
        data = _as_mapping(data, "request")
        return cls(objective=_field(data, "objective", str))


def current_conference_date() -> date:
    """Return CONFERENCE_DATE (YYYY-MM-DD) from the environment, or the default day."""
    value = os.environ.get("CONFERENCE_DATE")
    if value is not None:
        try:
            return datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            pass
    return DEFAULT_CONFERENCE_DATE