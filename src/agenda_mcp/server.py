"""FastMCP server with calendar and task tools."""

import logging
import sys

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from . import errors
from .auth import CredentialManager
from .calendar import CalendarEngine, format_event, get_day_name, parse_day
from .config import Settings
from .errors import AgendaError
from .models import Event, Task
from .tasks import classify, decode_task, encode_task

logger = logging.getLogger(__name__)

mcp = FastMCP("calendar-assistant", json_response=True)

_engine: CalendarEngine | None = None


def get_engine() -> CalendarEngine:
    global _engine
    if _engine is None:
        settings = Settings.from_env()
        _engine = CalendarEngine(CredentialManager(settings), settings)
    return _engine


def _when(event: Event, endpoint: str) -> str:
    value = getattr(event, endpoint)
    if value.date_time is not None:
        return value.date_time.isoformat()
    if value.date is not None:
        return value.date.isoformat()
    return "?"


def _format_event_summary(event: Event) -> str:
    """Format event for human-readable output, including ID."""
    loc_part = f" @ {event.location}" if event.location else ""
    return (
        f"ID: {event.id or '?'} | {event.summary or '(No title)'} | "
        f"{_when(event, 'start')} - {_when(event, 'end')}{loc_part}"
    )


def _format_task(task: Task) -> str:
    due = task.due.isoformat() if task.due else "?"
    line = f"[{task.priority}] {task.title} (due {due}) | ID: {task.event_id or '?'}"
    if task.description:
        line += f"\n      {task.description}"
    return line


@mcp.tool()
def get_events(
    time_min: str | None = None,
    time_max: str | None = None,
    max_results: int = 10,
) -> str:
    """List calendar events in a time window, ordered by start time.
    time_min and time_max are ISO8601 date-times; they default to now and now + 7 days."""
    try:
        events = get_engine().list_events(time_min, time_max, max_results)
    except AgendaError as e:
        return errors.describe(e)
    except Exception as e:
        logger.exception("get_events failed")
        return errors.unexpected_failure(str(e))

    if not events:
        return "No events found in the requested window."
    lines = [f"Found {len(events)} event(s):"]
    for ev in events:
        lines.append(f"  {_format_event_summary(ev)}")
    return "\n".join(lines)


@mcp.tool()
def create_event(
    summary: str,
    description: str | None = None,
    location: str | None = None,
    start_date_time: str | None = None,
    end_date_time: str | None = None,
) -> str:
    """Create a calendar event. Start defaults to one hour from now, end to one hour after start.
    start_date_time and end_date_time are ISO8601; values without an offset use local time."""
    try:
        event = get_engine().create_event(
            summary,
            description=description,
            location=location,
            start_date_time=start_date_time,
            end_date_time=end_date_time,
        )
    except AgendaError as e:
        return errors.describe(e)
    except ValueError as e:
        return errors.unexpected_failure(f"invalid date-time: {e}")
    except Exception as e:
        logger.exception("create_event failed")
        return errors.unexpected_failure(str(e))

    result = f"Created event: {_format_event_summary(event)}"
    if event.html_link:
        result += f"\nLink: {event.html_link}"
    return result


@mcp.tool()
def get_day_summary(date: str) -> str:
    """Summarize the events of one day. date must be YYYY-MM-DD."""
    try:
        parse_day(date)
    except ValueError:
        return errors.invalid_date(date)
    try:
        events = get_engine().get_events_for_day(date)
    except AgendaError as e:
        return errors.describe(e)
    except Exception as e:
        logger.exception("get_day_summary failed")
        return errors.unexpected_failure(str(e))

    lines = [f"Summary for {get_day_name(date)}, {date}:"]
    if not events:
        lines.append("  No events scheduled")
    for ev in events:
        lines.append(f"  - {format_event(ev)}")
    return "\n".join(lines)


@mcp.tool()
def get_week_summary(start_date: str | None = None) -> str:
    """Summarize the Monday-to-Sunday week containing start_date (YYYY-MM-DD, default today)."""
    if start_date:
        try:
            parse_day(start_date)
        except ValueError:
            return errors.invalid_date(start_date)
    try:
        events_by_day = get_engine().get_events_for_week(start_date)
    except AgendaError as e:
        return errors.describe(e)
    except Exception as e:
        logger.exception("get_week_summary failed")
        return errors.unexpected_failure(str(e))

    days = list(events_by_day)
    lines = [f"Week summary {days[0]} to {days[-1]}:"]
    for day, events in events_by_day.items():
        lines.append("")
        lines.append(f"{get_day_name(day)} ({day}):")
        if not events:
            lines.append("  - No events scheduled")
        for ev in events:
            lines.append(f"  - {format_event(ev)}")
    return "\n".join(lines)


@mcp.tool()
def create_task(
    title: str,
    due_date: str,
    priority: str | None = None,
    description: str | None = None,
) -> str:
    """Create a task as a calendar entry covering due_date (YYYY-MM-DD).
    priority is free text such as high, medium or low."""
    try:
        fields = encode_task(title, due_date, priority=priority, description=description)
    except ValueError:
        return errors.invalid_date(due_date)
    try:
        event = get_engine().create_event(**fields)
    except AgendaError as e:
        return errors.describe(e)
    except Exception as e:
        logger.exception("create_task failed")
        return errors.unexpected_failure(str(e))
    return f"Created task: {_format_task(decode_task(event))}"


@mcp.tool()
def list_tasks(
    time_min: str | None = None,
    time_max: str | None = None,
    max_results: int = 50,
) -> str:
    """List tasks due in a time window (defaults: now through the next 7 days).
    Any event whose title contains "TASK:" is treated as a task."""
    try:
        events = get_engine().list_events(time_min, time_max, max_results)
    except AgendaError as e:
        return errors.describe(e)
    except Exception as e:
        logger.exception("list_tasks failed")
        return errors.unexpected_failure(str(e))

    tasks = [item for item in map(classify, events) if isinstance(item, Task)]
    if not tasks:
        return "No tasks found in the requested window."
    lines = [f"Found {len(tasks)} task(s):"]
    for task in tasks:
        lines.append(f"  {_format_task(task)}")
    return "\n".join(lines)


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting calendar MCP server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
