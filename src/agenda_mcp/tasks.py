"""Tasks stored as calendar events with an encoded title.

A task titled "Pay rent" with priority "high", due 2024-03-01, is written
as the event "[HIGH] TASK: Pay rent" spanning that day from 00:00:00 to
23:59:59. Any event whose title contains "TASK:" reads back as a task, so
an ordinary event with that text in its title cannot be told apart.
"""

import re
from datetime import datetime, time

from .calendar import parse_day
from .models import CalendarItem, Event, Task

TASK_MARKER = "TASK:"
TASK_PROVENANCE = "(Created as a task)"
NO_DESCRIPTION = "No description"
DEFAULT_TITLE = "Untitled Task"
DEFAULT_PRIORITY = "None"

_DUE_START = time(0, 0, 0)
_DUE_END = time(23, 59, 59)

_PRIORITY_RE = re.compile(r"^\s*\[([^\[\]]*)\]")
_TITLE_RE = re.compile(re.escape(TASK_MARKER) + r"\s*(.*)", re.DOTALL)


def encode_task(
    title: str,
    due_date: str,
    priority: str | None = None,
    description: str | None = None,
) -> dict[str, str]:
    """Keyword arguments for CalendarEngine.create_event describing the task."""
    due = parse_day(due_date)
    # Brackets inside the priority would end the bracket group early on decode.
    priority = (priority or "").replace("[", "").replace("]", "").strip()
    prefix = f"[{priority.upper()}] " if priority else ""
    return {
        "summary": f"{prefix}{TASK_MARKER} {title}",
        "description": f"{description or NO_DESCRIPTION}\n\n{TASK_PROVENANCE}",
        "start_date_time": datetime.combine(due, _DUE_START).isoformat(),
        "end_date_time": datetime.combine(due, _DUE_END).isoformat(),
    }


def _decode_description(description: str | None) -> str | None:
    if not description:
        return None
    text = description
    if text.endswith(TASK_PROVENANCE):
        text = text[: -len(TASK_PROVENANCE)].rstrip()
    if not text or text == NO_DESCRIPTION:
        return None
    return text


def decode_task(event: Event) -> Task:
    """Read an event back as a task. Never raises; missing parts fall back to defaults."""
    summary = event.summary or ""

    priority = DEFAULT_PRIORITY
    match = _PRIORITY_RE.match(summary)
    if match and match.group(1).strip():
        priority = match.group(1).strip()

    title = ""
    match = _TITLE_RE.search(summary)
    if match:
        title = match.group(1).strip()

    return Task(
        event_id=event.id,
        title=title or DEFAULT_TITLE,
        priority=priority,
        due=event.start.calendar_date(),
        description=_decode_description(event.description),
        html_link=event.html_link,
    )


def is_task(event: Event) -> bool:
    return TASK_MARKER in (event.summary or "")


def classify(event: Event) -> CalendarItem:
    return decode_task(event) if is_task(event) else event
