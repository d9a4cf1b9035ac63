"""Transient views over Google Calendar event resources."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Union


def parse_iso8601(s: str) -> datetime:
    """Parse ISO8601 string to datetime. Handles 'Z' and offset formats."""
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


@dataclass(frozen=True)
class EventTime:
    """One endpoint of an event: either a whole date or a date-time."""

    date: date | None = None
    date_time: datetime | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any] | None) -> "EventTime":
        raw = raw or {}
        date_time = raw.get("dateTime")
        day = raw.get("date")
        return cls(
            date=date.fromisoformat(day) if day else None,
            date_time=parse_iso8601(date_time) if date_time else None,
        )

    def calendar_date(self) -> date | None:
        """Local calendar date of this endpoint."""
        if self.date_time is not None:
            if self.date_time.tzinfo is None:
                return self.date_time.date()
            return self.date_time.astimezone().date()
        return self.date


@dataclass(frozen=True)
class Event:
    id: str | None
    summary: str
    start: EventTime
    end: EventTime
    description: str | None = None
    location: str | None = None
    html_link: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Event":
        return cls(
            id=raw.get("id"),
            summary=raw.get("summary") or "",
            start=EventTime.from_api(raw.get("start")),
            end=EventTime.from_api(raw.get("end")),
            description=raw.get("description"),
            location=raw.get("location"),
            html_link=raw.get("htmlLink"),
        )


@dataclass(frozen=True)
class Task:
    """A due-dated to-do item stored as an ordinary calendar event."""

    event_id: str | None
    title: str
    priority: str
    due: date | None
    description: str | None = None
    html_link: str | None = None


CalendarItem = Union[Event, Task]
