"""Google Calendar client."""

import logging
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import quote

import httpx

from google_mcp.auth.credentials import AuthenticatedHandle
from google_mcp.clients.base import CALENDAR_API_BASE, GoogleApiClient
from google_mcp.errors import UpstreamOperationError

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_ID = "primary"


def normalize_to_rfc3339(value: str) -> str:
    """Normalize an ISO 8601 date or datetime to RFC 3339 with seconds precision.

    Values without an offset are read in the server's local timezone.

    Raises:
        ValueError: If the value is not an ISO 8601 date/datetime.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise ValueError("Invalid date") from e

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.replace(microsecond=0).isoformat()


def _parse_rfc3339(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _now_rfc3339() -> str:
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


def _format_event(item: dict[str, Any]) -> dict[str, Any]:
    start = item.get("start", {})
    end = item.get("end", {})
    return {
        "id": item.get("id"),
        "summary": item.get("summary"),
        "description": item.get("description"),
        "start": start.get("dateTime") or start.get("date"),
        "end": end.get("dateTime") or end.get("date"),
        "location": item.get("location"),
        "status": item.get("status"),
        "html_link": item.get("htmlLink"),
        "hangout_link": item.get("hangoutLink"),
        "attendees": [a.get("email") for a in item.get("attendees", [])],
        "recurrence": item.get("recurrence"),
    }


class CalendarClient(GoogleApiClient):
    """Calendar operations for one identity.

    Attributes:
        default_calendar_id: Calendar used when a call names none.
    """

    service = "calendar"

    def __init__(self, auth: AuthenticatedHandle, http_client: httpx.AsyncClient) -> None:
        super().__init__(auth, http_client)
        self.default_calendar_id = DEFAULT_CALENDAR_ID

    def _events_url(self, calendar_id: str | None) -> str:
        target = quote(calendar_id or self.default_calendar_id, safe="@")
        return f"{CALENDAR_API_BASE}/calendars/{target}/events"

    def set_default_calendar_id(self, calendar_id: str) -> str:
        self.default_calendar_id = calendar_id
        return f"Default calendar ID set to: {calendar_id}"

    async def list_calendars(self) -> list[dict[str, Any]]:
        """List calendars visible to the user, primary flagged."""
        url = f"{CALENDAR_API_BASE}/users/me/calendarList"
        response = await self._make_request("GET", url)

        return [
            {
                "id": item.get("id"),
                "summary": item.get("summary"),
                "description": item.get("description"),
                "access_role": item.get("accessRole"),
                "primary": item.get("primary", False),
            }
            for item in response.get("items", [])
        ]

    async def create_event(
        self,
        summary: str,
        start: str,
        end: str,
        calendar_id: str | None = None,
        description: str | None = None,
        location: str | None = None,
        color_id: str | None = None,
        attendees: list[str] | None = None,
        recurrence: str | None = None,
    ) -> dict[str, Any]:
        """Create an event.

        Args:
            summary: Event title.
            start: Start time, ISO 8601.
            end: End time, ISO 8601.
            calendar_id: Target calendar; the default calendar when omitted.
            description: Event description.
            location: Free-form location.
            color_id: Calendar color id (1-11).
            attendees: Email addresses to invite.
            recurrence: One RFC 5545 rule, e.g. ``RRULE:FREQ=WEEKLY;COUNT=10``.

        Returns:
            Created event details with id and link.
        """
        event_body: dict[str, Any] = {
            "summary": summary,
            "start": {"dateTime": normalize_to_rfc3339(start)},
            "end": {"dateTime": normalize_to_rfc3339(end)},
        }
        if description:
            event_body["description"] = description
        if location:
            event_body["location"] = location
        if color_id:
            event_body["colorId"] = color_id
        if attendees:
            event_body["attendees"] = [{"email": email} for email in attendees]
        if recurrence:
            event_body["recurrence"] = [recurrence]

        response = await self._make_request("POST", self._events_url(calendar_id), json_data=event_body)

        result = _format_event(response)
        result["status"] = "created"
        return result

    async def get_events(
        self,
        limit: int = 10,
        calendar_id: str | None = None,
        time_min: str | None = None,
        time_max: str | None = None,
        q: str | None = None,
        show_deleted: bool | None = None,
    ) -> dict[str, Any]:
        """List events, soonest first.

        Without ``time_min`` only events from now on are returned.
        """
        params: dict[str, Any] = {
            "maxResults": limit,
            "singleEvents": "true",
            "orderBy": "startTime",
            "timeMin": normalize_to_rfc3339(time_min) if time_min else _now_rfc3339(),
        }
        if time_max:
            params["timeMax"] = normalize_to_rfc3339(time_max)
        if q:
            params["q"] = q
        if show_deleted is not None:
            params["showDeleted"] = str(show_deleted).lower()

        response = await self._make_request("GET", self._events_url(calendar_id), params=params)

        events = [_format_event(item) for item in response.get("items", [])]
        return {"events": events, "count": len(events)}

    async def get_event(self, event_id: str, calendar_id: str | None = None) -> dict[str, Any]:
        url = f"{self._events_url(calendar_id)}/{quote(event_id)}"
        response = await self._make_request("GET", url)
        result = _format_event(response)
        result["organizer"] = response.get("organizer", {}).get("email")
        result["created"] = response.get("created")
        result["updated"] = response.get("updated")
        return result

    async def update_event(
        self,
        event_id: str,
        changes: dict[str, Any],
        calendar_id: str | None = None,
    ) -> dict[str, Any]:
        """Patch an event with the provided fields.

        Args:
            event_id: Event to update.
            changes: Any of summary, description, start, end, location,
                color_id, attendees, recurrence. None values are skipped.
            calendar_id: Calendar holding the event.

        Returns:
            Updated event details.
        """
        url = f"{self._events_url(calendar_id)}/{quote(event_id)}"

        update_body: dict[str, Any] = {}
        if changes.get("summary") is not None:
            update_body["summary"] = changes["summary"]
        if changes.get("description") is not None:
            update_body["description"] = changes["description"]
        if changes.get("location") is not None:
            update_body["location"] = changes["location"]
        if changes.get("color_id") is not None:
            update_body["colorId"] = changes["color_id"]
        if changes.get("start") is not None:
            update_body["start"] = {"dateTime": normalize_to_rfc3339(changes["start"])}
        if changes.get("end") is not None:
            update_body["end"] = {"dateTime": normalize_to_rfc3339(changes["end"])}
        if changes.get("attendees") is not None:
            update_body["attendees"] = [{"email": email} for email in changes["attendees"]]
        if changes.get("recurrence") is not None:
            update_body["recurrence"] = [changes["recurrence"]]

        if not update_body:
            raise ValueError("At least one field must be provided for update")

        response = await self._make_request("PATCH", url, json_data=update_body)

        result = _format_event(response)
        result["status"] = "updated"
        return result

    async def delete_event(self, event_id: str, calendar_id: str | None = None) -> str:
        url = f"{self._events_url(calendar_id)}/{quote(event_id)}"
        await self._make_delete_request(url)
        return f"Event {event_id} deleted successfully."

    async def find_free_time(
        self,
        start_date: str,
        end_date: str,
        duration: int,
        calendar_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        """Find free slots of at least ``duration`` minutes across calendars.

        Busy periods of every requested calendar are merged; the gaps
        between them inside ``[start_date, end_date]`` are the free slots.
        """
        time_min = normalize_to_rfc3339(start_date)
        time_max = normalize_to_rfc3339(end_date)
        ids = calendar_ids or [self.default_calendar_id]

        response = await self._make_request(
            "POST",
            f"{CALENDAR_API_BASE}/freeBusy",
            json_data={
                "timeMin": time_min,
                "timeMax": time_max,
                "items": [{"id": cal_id} for cal_id in ids],
            },
        )

        busy: list[tuple[datetime, datetime]] = []
        for cal_data in response.get("calendars", {}).values():
            for period in cal_data.get("busy", []):
                busy.append((_parse_rfc3339(period["start"]), _parse_rfc3339(period["end"])))
        busy.sort()

        window_start = _parse_rfc3339(time_min)
        window_end = _parse_rfc3339(time_max)
        minimum = timedelta(minutes=duration)

        free_slots = []
        cursor = window_start
        for busy_start, busy_end in busy:
            if busy_start - cursor >= minimum:
                free_slots.append((cursor, busy_start))
            cursor = max(cursor, busy_end)
        if window_end - cursor >= minimum:
            free_slots.append((cursor, window_end))

        return {
            "time_min": time_min,
            "time_max": time_max,
            "calendars": ids,
            "free_slots": [
                {
                    "start": slot_start.isoformat(),
                    "end": slot_end.isoformat(),
                    "duration_minutes": int((slot_end - slot_start).total_seconds() // 60),
                }
                for slot_start, slot_end in free_slots
            ],
            "count": len(free_slots),
        }

    async def get_event_summary_for_meet(
        self, meeting_code: str, time_min: str, time_max: str
    ) -> str | None:
        """Find the title of the event whose Meet link carries ``meeting_code``.

        Returns:
            The event summary, or None when no event matches or the lookup
            fails. Naming a meeting is best-effort.
        """
        params = {
            "timeMin": time_min,
            "timeMax": time_max,
            "singleEvents": "true",
            "maxResults": 50,
        }
        try:
            response = await self._make_request("GET", self._events_url(None), params=params)
        except UpstreamOperationError as e:
            logger.debug("Meeting name lookup for %s failed: %s", meeting_code, e)
            return None

        code = meeting_code.lower()
        for item in response.get("items", []):
            if code in (item.get("hangoutLink") or "").lower():
                return item.get("summary")
            conference = item.get("conferenceData", {})
            if (conference.get("conferenceId") or "").lower() == code:
                return item.get("summary")
            for entry in conference.get("entryPoints", []):
                if code in (entry.get("uri") or "").lower():
                    return item.get("summary")
        return None
