"""Tool dispatch: validate, resolve the caller's client, run, wrap.

Every call ends in a CallToolResult. Failures of any kind become an
``Error: <message>`` result with ``isError`` set, so the protocol channel
stays open across individual tool failures.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.types import CallToolResult, TextContent

from google_mcp.clients import (
    CalendarClient,
    DriveClient,
    GmailClient,
    MeetClient,
    TasksClient,
)
from google_mcp.errors import UnknownToolError
from google_mcp.session import ServiceKind, SessionManager
from google_mcp.validation import validate_arguments

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Any], Awaitable[Any]]


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    """Wrap text in the single-block result envelope."""
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def format_result(result: Any) -> str:
    """Strings pass through; anything else is pretty-printed JSON."""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2)


class ToolDispatcher:
    """Route tool calls to service clients.

    Args:
        sessions: Resolves the client for a (service, credential) pair.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions
        self._handlers: dict[str, tuple[ServiceKind, Handler]] = {
            # Calendar
            "google_calendar_set_default": (ServiceKind.CALENDAR, self._set_default_calendar),
            "google_calendar_list_calendars": (ServiceKind.CALENDAR, self._list_calendars),
            "google_calendar_create_event": (ServiceKind.CALENDAR, self._create_event),
            "google_calendar_get_events": (ServiceKind.CALENDAR, self._get_events),
            "google_calendar_get_event": (ServiceKind.CALENDAR, self._get_event),
            "google_calendar_update_event": (ServiceKind.CALENDAR, self._update_event),
            "google_calendar_delete_event": (ServiceKind.CALENDAR, self._delete_event),
            "google_calendar_find_free_time": (ServiceKind.CALENDAR, self._find_free_time),
            # Gmail
            "google_gmail_list_labels": (ServiceKind.GMAIL, self._list_labels),
            "google_gmail_list_emails": (ServiceKind.GMAIL, self._list_emails),
            "google_gmail_get_email": (ServiceKind.GMAIL, self._get_email),
            "google_gmail_get_email_by_index": (ServiceKind.GMAIL, self._get_email_by_index),
            "google_gmail_send_email": (ServiceKind.GMAIL, self._send_email),
            "google_gmail_draft_email": (ServiceKind.GMAIL, self._draft_email),
            "google_gmail_delete_email": (ServiceKind.GMAIL, self._delete_email),
            "google_gmail_modify_labels": (ServiceKind.GMAIL, self._modify_labels),
            # Drive
            "google_drive_list_files": (ServiceKind.DRIVE, self._list_files),
            "google_drive_get_file_content": (ServiceKind.DRIVE, self._get_file_content),
            "google_drive_create_file": (ServiceKind.DRIVE, self._create_file),
            "google_drive_append_to_file": (ServiceKind.DRIVE, self._append_to_file),
            "google_drive_delete_file": (ServiceKind.DRIVE, self._delete_file),
            "google_drive_share_file": (ServiceKind.DRIVE, self._share_file),
            # Tasks
            "google_tasks_set_default_list": (ServiceKind.TASKS, self._set_default_task_list),
            "google_tasks_list_tasklists": (ServiceKind.TASKS, self._list_task_lists),
            "google_tasks_list_tasks": (ServiceKind.TASKS, self._list_tasks),
            "google_tasks_get_task": (ServiceKind.TASKS, self._get_task),
            "google_tasks_create_task": (ServiceKind.TASKS, self._create_task),
            "google_tasks_update_task": (ServiceKind.TASKS, self._update_task),
            "google_tasks_complete_task": (ServiceKind.TASKS, self._complete_task),
            "google_tasks_delete_task": (ServiceKind.TASKS, self._delete_task),
            "google_tasks_create_tasklist": (ServiceKind.TASKS, self._create_task_list),
            "google_tasks_delete_tasklist": (ServiceKind.TASKS, self._delete_task_list),
            # Meet
            "google_meet_list_meetings": (ServiceKind.MEET, self._list_meetings),
            "google_meet_get_meeting_info": (ServiceKind.MEET, self._get_meeting_info),
            "google_meet_get_transcript": (ServiceKind.MEET, self._get_transcript),
            "google_meet_search_transcripts": (ServiceKind.MEET, self._search_transcripts),
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    async def handle(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        credential: str | None = None,
    ) -> CallToolResult:
        """Run one tool call.

        Args:
            name: Tool name.
            arguments: Untyped argument bag; None means no arguments.
            credential: Caller's raw bearer token, None for the default identity.

        Returns:
            The result envelope. Never raises for tool-level failures.
        """
        entry = self._handlers.get(name)
        if entry is None:
            logger.warning("Unknown tool requested: %s", name)
            return text_result(str(UnknownToolError(name)), is_error=True)

        service, handler = entry
        logger.info("Tool call: %s", name)
        logger.debug("Arguments for %s: %s", name, arguments)

        try:
            args = validate_arguments(name, arguments)
            await self.sessions.wait_until_ready()
            client = await self.sessions.get(service, credential)
            result = await handler(client, args)
        except Exception as e:
            logger.exception("Error calling tool %s", name)
            return text_result(f"Error: {e}", is_error=True)

        return text_result(format_result(result))

    # Calendar

    async def _set_default_calendar(self, client: CalendarClient, args: Any) -> str:
        return client.set_default_calendar_id(args.calendar_id)

    async def _list_calendars(self, client: CalendarClient, args: Any) -> str:
        calendars = await client.list_calendars()
        return "\n".join(
            f"{cal['summary']}{' (Primary)' if cal['primary'] else ''} - ID: {cal['id']}"
            for cal in calendars
        )

    async def _create_event(self, client: CalendarClient, args: Any) -> dict[str, Any]:
        return await client.create_event(
            summary=args.summary,
            start=args.start,
            end=args.end,
            calendar_id=args.calendar_id,
            description=args.description,
            location=args.location,
            color_id=args.color_id,
            attendees=args.attendees,
            recurrence=args.recurrence,
        )

    async def _get_events(self, client: CalendarClient, args: Any) -> dict[str, Any]:
        return await client.get_events(
            limit=args.limit,
            calendar_id=args.calendar_id,
            time_min=args.time_min,
            time_max=args.time_max,
            q=args.q,
            show_deleted=args.show_deleted,
        )

    async def _get_event(self, client: CalendarClient, args: Any) -> dict[str, Any]:
        return await client.get_event(args.event_id, calendar_id=args.calendar_id)

    async def _update_event(self, client: CalendarClient, args: Any) -> dict[str, Any]:
        return await client.update_event(args.event_id, args.changes(), calendar_id=args.calendar_id)

    async def _delete_event(self, client: CalendarClient, args: Any) -> str:
        return await client.delete_event(args.event_id, calendar_id=args.calendar_id)

    async def _find_free_time(self, client: CalendarClient, args: Any) -> dict[str, Any]:
        return await client.find_free_time(
            args.start_date, args.end_date, args.duration, calendar_ids=args.calendar_ids
        )

    # Gmail

    async def _list_labels(self, client: GmailClient, args: Any) -> str:
        labels = await client.list_labels()
        return "\n".join(f"{label['name']} - ID: {label['id']} ({label['type']})" for label in labels)

    async def _list_emails(self, client: GmailClient, args: Any) -> dict[str, Any]:
        return await client.list_emails(
            label_ids=args.label_ids, max_results=args.max_results, query=args.query
        )

    async def _get_email(self, client: GmailClient, args: Any) -> dict[str, Any]:
        return await client.get_email(args.message_id, format=args.format)

    async def _get_email_by_index(self, client: GmailClient, args: Any) -> dict[str, Any]:
        message_id = client.get_message_id_by_index(args.index)
        return await client.get_email(message_id, format=args.format)

    async def _send_email(self, client: GmailClient, args: Any) -> dict[str, Any]:
        return await client.send_email(
            args.to, args.subject, args.body, cc=args.cc, bcc=args.bcc, is_html=args.is_html
        )

    async def _draft_email(self, client: GmailClient, args: Any) -> dict[str, Any]:
        return await client.draft_email(
            args.to, args.subject, args.body, cc=args.cc, bcc=args.bcc, is_html=args.is_html
        )

    async def _delete_email(self, client: GmailClient, args: Any) -> str:
        return await client.delete_email(args.message_id, permanently=args.permanently)

    async def _modify_labels(self, client: GmailClient, args: Any) -> dict[str, Any]:
        return await client.modify_labels(
            args.message_id,
            add_label_ids=args.add_label_ids,
            remove_label_ids=args.remove_label_ids,
        )

    # Drive

    async def _list_files(self, client: DriveClient, args: Any) -> str:
        files = await client.list_files(
            query=args.query, page_size=args.page_size, order_by=args.order_by, fields=args.fields
        )
        if not files:
            return "No files found"
        return json.dumps({"data": files, "_type": "listOfDocuments"})

    async def _get_file_content(self, client: DriveClient, args: Any) -> str:
        return await client.get_file_content(args.file_id)

    async def _create_file(self, client: DriveClient, args: Any) -> str:
        return await client.create_file(
            args.name, args.content, mime_type=args.mime_type, folder_id=args.folder_id
        )

    async def _append_to_file(self, client: DriveClient, args: Any) -> str:
        return await client.append_to_file(args.file_id, args.content, mime_type=args.mime_type)

    async def _delete_file(self, client: DriveClient, args: Any) -> str:
        return await client.delete_file(args.file_id, permanently=args.permanently)

    async def _share_file(self, client: DriveClient, args: Any) -> str:
        return await client.share_file(
            args.file_id,
            args.email_address,
            role=args.role,
            send_notification=args.send_notification,
            message=args.message,
        )

    # Tasks

    async def _set_default_task_list(self, client: TasksClient, args: Any) -> str:
        return client.set_default_task_list(args.task_list_id)

    async def _list_task_lists(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.list_task_lists()

    async def _list_tasks(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.list_tasks(args.task_list_id, show_completed=args.show_completed)

    async def _get_task(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.get_task(args.task_id, task_list_id=args.task_list_id)

    async def _create_task(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.create_task(
            args.title, notes=args.notes, due=args.due, task_list_id=args.task_list_id
        )

    async def _update_task(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.update_task(args.task_id, args.changes(), task_list_id=args.task_list_id)

    async def _complete_task(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.complete_task(args.task_id, task_list_id=args.task_list_id)

    async def _delete_task(self, client: TasksClient, args: Any) -> str:
        return await client.delete_task(args.task_id, task_list_id=args.task_list_id)

    async def _create_task_list(self, client: TasksClient, args: Any) -> dict[str, Any]:
        return await client.create_task_list(args.title)

    async def _delete_task_list(self, client: TasksClient, args: Any) -> str:
        return await client.delete_task_list(args.task_list_id)

    # Meet

    async def _list_meetings(self, client: MeetClient, args: Any) -> str:
        return await client.list_conference_records(
            filter=args.filter,
            page_size=args.page_size,
            page_token=args.page_token,
            include_availability=args.include_availability,
        )

    async def _get_meeting_info(self, client: MeetClient, args: Any) -> dict[str, Any]:
        return await client.get_meeting_info(args.conference_record_id)

    async def _get_transcript(self, client: MeetClient, args: Any) -> str:
        return await client.get_full_transcript(
            args.conference_record_id,
            include_timestamps=args.include_timestamps,
            include_participant=args.include_participant,
        )

    async def _search_transcripts(self, client: MeetClient, args: Any) -> str:
        return await client.search_transcripts(
            args.query,
            time_min=args.time_min,
            time_max=args.time_max,
            max_meetings=args.max_meetings,
        )
