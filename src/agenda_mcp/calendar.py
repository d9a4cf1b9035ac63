"""Google Calendar API wrapper: event queries, creation and day/week grouping."""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .auth import CredentialManager
from .config import Settings, iana_time_zone
from .errors import UpstreamError
from .models import Event, parse_iso8601

logger = logging.getLogger(__name__)

CALENDAR_ID = "primary"
DEFAULT_MAX_RESULTS = 10
SUMMARY_MAX_RESULTS = 100
DEFAULT_WINDOW = timedelta(days=7)
DEFAULT_EVENT_OFFSET = timedelta(hours=1)
DEFAULT_EVENT_DURATION = timedelta(hours=1)

_START_OF_DAY = time(0, 0, 0)
_END_OF_DAY = time(23, 59, 59, 999000)

# Remote rejections plus failures from the HTTP stack below the discovery client.
_API_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc_string(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _local_bound(day: date, at: time) -> str:
    """RFC3339 string for a wall-clock time on ``day`` in the local timezone."""
    return datetime.combine(day, at).astimezone().isoformat(timespec="milliseconds")


def _upstream_error(action: str, e: Exception) -> UpstreamError:
    if isinstance(e, HttpError):
        return UpstreamError(f"{action} failed: {e}", status=e.resp.status)
    if isinstance(e, RefreshError):
        return UpstreamError(f"{action} failed: {e}", status=401)
    return UpstreamError(f"{action} failed: {e}")


_DAY_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string. Raises ValueError on anything else."""
    value = value.strip()
    if not _DAY_RE.fullmatch(value):
        raise ValueError(f"Expected YYYY-MM-DD, got {value!r}")
    return datetime.strptime(value, "%Y-%m-%d").date()


def week_start(anchor: date) -> date:
    """Monday of the week containing ``anchor``.

    weekday() puts Monday at 0 and Sunday at 6, so a Sunday anchor closes
    the week that began six days earlier rather than opening a new one.
    """
    return anchor - timedelta(days=anchor.weekday())


def week_days(anchor: date) -> list[date]:
    monday = week_start(anchor)
    return [monday + timedelta(days=i) for i in range(7)]


class CalendarEngine:
    """Reads and writes events on the primary calendar.

    Every operation asks the credential manager for credentials and builds a
    fresh service; nothing fetched is kept between calls. Remote and
    transport failures surface as UpstreamError and are never retried here.
    """

    def __init__(self, credentials: CredentialManager, settings: Settings | None = None):
        self.credentials = credentials
        self.settings = settings if settings is not None else credentials.settings

    def _get_service(self):
        creds = self.credentials.authorize()
        return build("calendar", "v3", credentials=creds, cache_discovery=False)

    def list_events(
        self,
        time_min: str | None = None,
        time_max: str | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[Event]:
        """Events in [time_min, time_max], ordered by start, recurring ones expanded.

        The window defaults to now through now + 7 days, evaluated per call.
        """
        service = self._get_service()
        now = _now()
        params = {
            "calendarId": CALENDAR_ID,
            "timeMin": time_min or _to_utc_string(now),
            "timeMax": time_max or _to_utc_string(now + DEFAULT_WINDOW),
            "maxResults": max_results,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        logger.debug("Listing events %s .. %s (max %d)", params["timeMin"], params["timeMax"], max_results)
        try:
            events_result = service.events().list(**params).execute()
        except _API_ERRORS as e:
            logger.error("Error fetching events: %s", e)
            raise _upstream_error("Listing events", e) from e
        return [Event.from_api(item) for item in events_result.get("items", [])]

    def _localize(self, value: str) -> datetime:
        # Naive values are read as local wall-clock time.
        return parse_iso8601(value).astimezone()

    def _endpoint(self, dt: datetime) -> dict:
        endpoint = {"dateTime": dt.isoformat()}
        time_zone = iana_time_zone(self.settings.time_zone)
        if time_zone:
            endpoint["timeZone"] = time_zone
        return endpoint

    def create_event(
        self,
        summary: str,
        description: str | None = None,
        location: str | None = None,
        start_date_time: str | None = None,
        end_date_time: str | None = None,
    ) -> Event:
        """Insert an event. Start defaults to now + 1h, end to start + 1h."""
        if start_date_time:
            start_dt = self._localize(start_date_time)
        else:
            start_dt = (_now() + DEFAULT_EVENT_OFFSET).astimezone()
        if end_date_time:
            end_dt = self._localize(end_date_time)
        else:
            end_dt = start_dt + DEFAULT_EVENT_DURATION

        event_body = {
            "summary": summary,
            "start": self._endpoint(start_dt),
            "end": self._endpoint(end_dt),
        }
        if description:
            event_body["description"] = description
        if location:
            event_body["location"] = location

        service = self._get_service()
        try:
            event = service.events().insert(calendarId=CALENDAR_ID, body=event_body).execute()
        except _API_ERRORS as e:
            logger.error("Error creating event: %s", e)
            raise _upstream_error("Creating event", e) from e
        logger.info("Created event %s", event.get("id"))
        return Event.from_api(event)

    def get_events_for_day(self, day: str) -> list[Event]:
        """Events between local 00:00:00.000 and 23:59:59.999 of a YYYY-MM-DD day."""
        target = parse_day(day)
        return self.list_events(
            _local_bound(target, _START_OF_DAY),
            _local_bound(target, _END_OF_DAY),
            SUMMARY_MAX_RESULTS,
        )

    def get_events_for_week(self, start_date: str | None = None) -> dict[str, list[Event]]:
        """Monday-to-Sunday view around ``start_date`` (default today).

        Always seven keys in date order, empty days included.
        """
        anchor = parse_day(start_date) if start_date else _now().astimezone().date()
        days = week_days(anchor)
        events = self.list_events(
            _local_bound(days[0], _START_OF_DAY),
            _local_bound(days[-1], _END_OF_DAY),
            SUMMARY_MAX_RESULTS,
        )

        events_by_day: dict[str, list[Event]] = {day.isoformat(): [] for day in days}
        for event in events:
            start_day = event.start.calendar_date()
            if start_day is None:
                continue
            bucket = events_by_day.get(start_day.isoformat())
            if bucket is not None:
                bucket.append(event)
        return events_by_day


def _short_time(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%I:%M %p")


def format_event(event: Event) -> str:
    """Render "<summary> (<start> - <end>)". All-day endpoints show as Unknown."""
    summary = event.summary or "Untitled Event"
    start = _short_time(event.start.date_time) if event.start.date_time else "Unknown"
    end = _short_time(event.end.date_time) if event.end.date_time else "Unknown"
    return f"{summary} ({start} - {end})"


def get_day_name(date_string: str) -> str:
    return parse_day(date_string).strftime("%A")
