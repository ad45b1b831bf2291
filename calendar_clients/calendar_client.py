"""
Calendar API client for the MCP server.
"""

import logging
import os
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .auth_client import AuthorizationClient
from .errors import AuthorizationError, UpstreamError, ValidationError
from .models import CreatedEvent, MeetingSummary

logger = logging.getLogger(__name__)

# Upper bound on events returned for one day; no pagination.
MAX_EVENTS_PER_DAY = 10

EVENT_UTC_OFFSET = '+06:00'
EVENT_TIME_ZONE = 'Asia/Dhaka'
DEFAULT_CALENDAR_ID = 'primary'


def get_calendar_id() -> str:
    return os.environ.get('CALENDAR_ID') or DEFAULT_CALENDAR_ID


def day_bounds(day: date):
    """Half-open UTC interval [day 00:00, day+1 00:00)."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def to_rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def build_instant(date_str: str, time_str: str) -> str:
    """Local-offset ISO-8601 instant from YYYY-MM-DD and HH:MM."""
    instant = f"{date_str}T{time_str}:00{EVENT_UTC_OFFSET}"
    try:
        datetime.fromisoformat(instant)
    except ValueError as e:
        raise ValidationError(
            "Invalid date or time format. Please use YYYY-MM-DD for date and HH:MM for time."
        ) from e
    return instant


class CalendarClient:
    def __init__(self, auth_client: AuthorizationClient):
        self.auth_client = auth_client

    def list_events_for_date(self, day: date) -> List[MeetingSummary]:
        """Get the day's events, ordered by start time."""
        start, end = day_bounds(day)

        events_result = self._execute(lambda service: service.events().list(
            calendarId=get_calendar_id(),
            timeMin=to_rfc3339(start),
            timeMax=to_rfc3339(end),
            maxResults=MAX_EVENTS_PER_DAY,
            singleEvents=True,
            orderBy='startTime'
        ))

        meetings = []
        for event in events_result.get('items', []):
            event_start = event.get('start', {})
            start_time = event_start.get('dateTime')
            if start_time:
                # the API also returns events that began earlier and overlap the day
                try:
                    start_dt = datetime.fromisoformat(start_time.replace('Z', '+00:00'))
                except ValueError as error:
                    raise UpstreamError(f"Calendar API returned a malformed start time: {start_time!r}") from error
                if not start <= start_dt < end:
                    continue
            else:
                start_time = event_start.get('date', '')

            meetings.append(MeetingSummary(
                title=event.get('summary', 'No Title'),
                start=start_time
            ))

        return meetings

    def create_event(self, summary: str, start_date: str, start_time: str,
                     end_date: str, end_time: str,
                     description: Optional[str] = None,
                     location: Optional[str] = None) -> CreatedEvent:
        """Create a new calendar event in the fixed event time zone."""
        start_instant = build_instant(start_date, start_time)
        end_instant = build_instant(end_date, end_time)

        event_body = {
            'summary': summary,
            'start': {
                'dateTime': start_instant,
                'timeZone': EVENT_TIME_ZONE,
            },
            'end': {
                'dateTime': end_instant,
                'timeZone': EVENT_TIME_ZONE,
            },
        }
        if description:
            event_body['description'] = description
        if location:
            event_body['location'] = location

        event = self._execute(lambda service: service.events().insert(
            calendarId=get_calendar_id(),
            body=event_body
        ))

        logger.info("Event created: %s", event.get('htmlLink'))
        return CreatedEvent(
            id=event.get('id', ''),
            html_link=event.get('htmlLink', ''),
            summary=event.get('summary', summary),
            start=start_instant,
            end=end_instant
        )

    def _service(self):
        return build('calendar', 'v3', credentials=self.auth_client.credentials(), cache_discovery=False)

    def _execute(self, make_request: Callable[[Any], Any]) -> Dict[str, Any]:
        """Run a request; on a 401 refresh once and retry once."""
        try:
            return self._run(make_request)
        except HttpError as error:
            if error.resp.status != 401:
                raise _upstream(error) from error
            logger.info("Calendar API rejected the access token; refreshing once")

        self.auth_client.refresh()
        try:
            return self._run(make_request)
        except HttpError as error:
            raise _upstream(error) from error

    def _run(self, make_request):
        try:
            return make_request(self._service()).execute()
        except GoogleAuthError as error:
            raise AuthorizationError(f"Could not authorize Calendar API call: {error}") from error
        except (OSError, httplib2.HttpLib2Error) as error:
            raise UpstreamError(f"Calendar API unreachable: {error}") from error


def _upstream(error: HttpError) -> UpstreamError:
    logger.error("Google API Error details: %s", getattr(error, 'reason', error))
    return UpstreamError(str(error))
