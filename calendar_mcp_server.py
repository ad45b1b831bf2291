import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from typing import Annotated, Any, Dict, Optional

# Add the script directory to Python path for reliable imports
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
if SCRIPT_DIR not in sys.path:
    sys.path.insert(0, SCRIPT_DIR)

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP
from pydantic import Field

from calendar_clients.auth_client import SCOPES, AuthorizationClient
from calendar_clients.calendar_client import CalendarClient
from calendar_clients.credential_store import CredentialStore
from calendar_clients.errors import CalendarServerError, ConfigurationError
from calendar_clients.web_auth import create_app, run_web_server

CREDENTIALS_PATH = os.path.join(SCRIPT_DIR, 'credentials.json')
TOKEN_PATH = os.path.join(SCRIPT_DIR, 'token.json')
WEB_SERVER_PORT = 3001

logger = logging.getLogger(__name__)


class CalendarTools:
    """The two Calendar tools. Failures come back as an `error` payload, never raised."""

    def __init__(self, calendar_client: CalendarClient):
        self.calendar_client = calendar_client

    async def get_my_calendar_data_by_date(
        self,
        date: Annotated[Optional[str], Field(description="Date in YYYY-MM-DD format. Defaults to today.")] = None,
    ) -> str:
        """Get the meetings on your calendar for a date."""
        if not date:
            date = datetime.now().strftime('%Y-%m-%d')
        logger.info("getMyCalendarDataByDate called with date: %s", date)

        try:
            day = datetime.strptime(date, '%Y-%m-%d').date()
        except ValueError:
            return _payload({'error': 'Invalid date format. Please provide a valid date string.'})

        try:
            meetings = await asyncio.to_thread(self.calendar_client.list_events_for_date, day)
        except CalendarServerError as e:
            logger.error("Error in getMyCalendarDataByDate: %s", e)
            return _payload({'error': str(e)})

        return _payload({'meetings': [meeting.display() for meeting in meetings]})

    async def add_calendar_event(
        self,
        summary: Annotated[str, Field(description="Summary or title of the event.")],
        startDate: Annotated[str, Field(description="Start date of the event in YYYY-MM-DD format.")],
        startTime: Annotated[str, Field(description="Start time of the event in HH:MM format (24-hour).")],
        endDate: Annotated[str, Field(description="End date of the event in YYYY-MM-DD format.")],
        endTime: Annotated[str, Field(description="End time of the event in HH:MM format (24-hour).")],
        description: Annotated[Optional[str], Field(description="Description for the event.")] = None,
        location: Annotated[Optional[str], Field(description="Location of the event.")] = None,
    ) -> str:
        """Add an event to your calendar."""
        logger.info(
            "addCalendarEvent called with: summary=%r startDate=%r startTime=%r endDate=%r endTime=%r",
            summary, startDate, startTime, endDate, endTime
        )

        required = {
            'summary': summary,
            'startDate': startDate,
            'startTime': startTime,
            'endDate': endDate,
            'endTime': endTime,
        }
        missing = [name for name, value in required.items() if not isinstance(value, str) or not value.strip()]
        if missing:
            return _payload({'error': f"Missing required fields: {', '.join(missing)}"})

        try:
            event = await asyncio.to_thread(
                self.calendar_client.create_event,
                summary, startDate, startTime, endDate, endTime,
                description=description, location=location
            )
        except CalendarServerError as e:
            logger.error("Error adding event: %s", e)
            return _payload({'error': str(e)})

        return _payload({
            'success': True,
            'eventId': event.id,
            'htmlLink': event.html_link,
            'summary': event.summary,
            'start': event.start,
            'end': event.end,
        })


def _payload(result: Dict[str, Any]) -> str:
    return json.dumps(result)


def create_server(tools: CalendarTools) -> FastMCP:
    mcp = FastMCP("My Calendar")
    mcp.add_tool(
        tools.get_my_calendar_data_by_date,
        name="getMyCalendarDataByDate",
        description="Get the meetings on your Google Calendar for a date (YYYY-MM-DD, defaults to today).",
    )
    mcp.add_tool(
        tools.add_calendar_event,
        name="addCalendarEvent",
        description="Add an event to your Google Calendar. Dates are YYYY-MM-DD, times HH:MM (24-hour, UTC+06:00).",
    )
    return mcp


def configure_logging(level: int = logging.INFO) -> None:
    # stdout carries the MCP stdio protocol
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logging.getLogger('werkzeug').setLevel(logging.ERROR)
    logging.getLogger('urllib3').setLevel(logging.ERROR)
    logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)


def main():
    load_dotenv()
    # Google may return the scopes reordered or merged with earlier grants
    os.environ.setdefault('OAUTHLIB_RELAX_TOKEN_SCOPE', '1')
    configure_logging()

    store = CredentialStore(CREDENTIALS_PATH, TOKEN_PATH)
    auth_client = AuthorizationClient(store, SCOPES)

    # Try to load the OAuth client, but don't fail if it doesn't work
    try:
        auth_client.load()
    except ConfigurationError as e:
        logger.error("Failed to initialize OAuth client: %s", e)
        logger.info("The web server will still start to allow authorization.")

    try:
        run_web_server(create_app(auth_client, store), WEB_SERVER_PORT)
    except OSError as e:
        logger.error("Could not start OAuth web server on port %d: %s", WEB_SERVER_PORT, e)

    mcp = create_server(CalendarTools(CalendarClient(auth_client)))
    logger.info("MCP server starting on stdio with tools getMyCalendarDataByDate and addCalendarEvent")
    mcp.run()


if __name__ == "__main__":
    main()
