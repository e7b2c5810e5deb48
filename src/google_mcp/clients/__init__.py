"""Thin async REST clients for the Google services behind the tool catalog."""

from google_mcp.clients.base import GoogleApiClient, create_http_client
from google_mcp.clients.calendar import CalendarClient
from google_mcp.clients.drive import DriveClient
from google_mcp.clients.gmail import GmailClient
from google_mcp.clients.meet import MeetClient
from google_mcp.clients.tasks import TasksClient

__all__ = [
    "GoogleApiClient",
    "create_http_client",
    "CalendarClient",
    "GmailClient",
    "DriveClient",
    "TasksClient",
    "MeetClient",
]
