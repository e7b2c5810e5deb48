"""Google Meet client: conference records and transcripts.

Meeting names are not part of the Meet API. They are looked up on the
same identity's Calendar, which is why a Meet client is built with a
CalendarClient.
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any

import httpx

from google_mcp.auth.credentials import AuthenticatedHandle
from google_mcp.clients.base import MEET_API_BASE, GoogleApiClient
from google_mcp.clients.calendar import CalendarClient
from google_mcp.errors import UpstreamOperationError

logger = logging.getLogger(__name__)

CONFERENCE_RECORDS_PREFIX = "conferenceRecords/"
MAX_PAGE_SIZE = 100
MAX_AVAILABILITY_CHECKS = 15
EXCERPT_LENGTH = 200
MAX_MATCHES_PER_MEETING = 5
ONGOING = "(ongoing)"

_PARTICIPANT_RE = re.compile(r"^.*/participants/")


def normalize_conference_record_name(id_or_name: str) -> str:
    """Accept either ``abc123`` or ``conferenceRecords/abc123``."""
    if id_or_name.startswith(CONFERENCE_RECORDS_PREFIX):
        return id_or_name
    return f"{CONFERENCE_RECORDS_PREFIX}{id_or_name}"


def make_excerpt(text: str, query: str, length: int = EXCERPT_LENGTH) -> str | None:
    """Cut a window of about ``length`` characters around the first match.

    Returns:
        The excerpt with ellipses marking truncated ends, or None when
        ``query`` (already lower-cased) does not occur in ``text``.
    """
    idx = text.lower().find(query)
    if idx < 0:
        return None

    start = max(0, idx - length // 2)
    end = min(len(text), idx + len(query) + length // 2)
    prefix = "…" if start > 0 else ""
    suffix = "…" if end < len(text) else ""
    return f"{prefix}{text[start:end].strip()}{suffix}"


class MeetClient(GoogleApiClient):
    """Meet conference-record and transcript operations for one identity.

    Attributes:
        calendar: The same identity's Calendar client, used to name meetings.
    """

    service = "meet"

    def __init__(
        self,
        auth: AuthenticatedHandle,
        http_client: httpx.AsyncClient,
        calendar: CalendarClient | None = None,
    ) -> None:
        super().__init__(auth, http_client)
        self.calendar = calendar

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        return await self._make_request("GET", f"{MEET_API_BASE}/{path}", params=params or None)

    async def _get_space_info(self, space_name: str | None) -> dict[str, str] | None:
        if not space_name:
            return None
        try:
            space = await self._get(space_name)
        except UpstreamOperationError as e:
            logger.debug("Space lookup for %s failed: %s", space_name, e)
            return None

        code, uri = space.get("meetingCode"), space.get("meetingUri")
        if code and uri:
            return {"meetingCode": code, "meetingUri": uri}
        return None

    async def _resolve_meeting_name(
        self, meeting_code: str, start_time: str | None, end_time: str | None
    ) -> str | None:
        if self.calendar is None or not start_time:
            return None

        if end_time and end_time != ONGOING:
            time_max = end_time
        else:
            started = datetime.fromisoformat(start_time.replace("Z", "+00:00"))
            time_max = (started + timedelta(hours=2)).isoformat()
        return await self.calendar.get_event_summary_for_meet(meeting_code, start_time, time_max)

    async def _describe(self, record: dict[str, Any]) -> dict[str, Any]:
        info = await self._get_space_info(record.get("space"))
        name = None
        if info:
            name = await self._resolve_meeting_name(
                info["meetingCode"], record.get("startTime"), record.get("endTime")
            )
        return {
            "name": record.get("name"),
            "space": record.get("space"),
            "startTime": record.get("startTime"),
            "endTime": record.get("endTime") or ONGOING,
            "expireTime": record.get("expireTime"),
            "meetingCode": info["meetingCode"] if info else None,
            "meetingUri": info["meetingUri"] if info else None,
            "meetingName": name,
        }

    async def _availability(self, record_name: str, page_size: int = 1) -> tuple[list, list]:
        """Return (transcripts, recordings) for a record; empty on failure."""
        results = await asyncio.gather(
            self._get(f"{record_name}/transcripts", {"pageSize": page_size}),
            self._get(f"{record_name}/recordings", {"pageSize": page_size}),
            return_exceptions=True,
        )
        transcripts, recordings = [], []
        if not isinstance(results[0], BaseException):
            transcripts = results[0].get("transcripts", [])
        if not isinstance(results[1], BaseException):
            recordings = results[1].get("recordings", [])
        return transcripts, recordings

    async def list_conference_records(
        self,
        filter: str | None = None,
        page_size: int = 25,
        page_token: str | None = None,
        include_availability: bool = False,
    ) -> str:
        """List past and ongoing meetings, newest first.

        With ``include_availability`` the first MAX_AVAILABILITY_CHECKS
        meetings also report hasTranscript and hasRecording.
        """
        response = await self._get(
            "conferenceRecords",
            {"filter": filter, "pageSize": min(MAX_PAGE_SIZE, page_size), "pageToken": page_token},
        )
        records = response.get("conferenceRecords", [])
        if not records:
            return "No conference records found."

        summary = list(await asyncio.gather(*[self._describe(r) for r in records]))

        if include_availability:
            checked = records[:MAX_AVAILABILITY_CHECKS]
            availability = await asyncio.gather(*[self._availability(r["name"]) for r in checked])
            for entry, (transcripts, recordings) in zip(summary, availability, strict=False):
                entry["hasTranscript"] = bool(transcripts)
                entry["hasRecording"] = bool(recordings)

        result = json.dumps(summary, indent=2)
        if response.get("nextPageToken"):
            result += f"\n\n(nextPageToken: {response['nextPageToken']})"
        if include_availability and len(records) > MAX_AVAILABILITY_CHECKS:
            remaining = len(records) - MAX_AVAILABILITY_CHECKS
            result += (
                f"\n\n(hasTranscript/hasRecording shown for first {MAX_AVAILABILITY_CHECKS} "
                f"meetings only; remaining {remaining} not checked)"
            )
        return result

    async def get_meeting_info(self, conference_record_id: str) -> dict[str, Any]:
        """Describe one meeting, including transcript and recording links."""
        name = normalize_conference_record_name(conference_record_id)
        record, (transcripts, recordings) = await asyncio.gather(
            self._get(name), self._availability(name, page_size=10)
        )

        info = await self._describe(record)
        info["endTime"] = record.get("endTime")
        info.update(
            {
                "hasTranscript": bool(transcripts),
                "hasRecording": bool(recordings),
                "transcriptCount": len(transcripts),
                "recordingCount": len(recordings),
            }
        )

        doc_link = transcripts[0].get("docsDestination", {}).get("exportUri") if transcripts else None
        if doc_link:
            info["transcriptDocLink"] = doc_link
        playback = recordings[0].get("driveDestination", {}).get("exportUri") if recordings else None
        if playback:
            info["recordingPlaybackLink"] = playback
        return info

    async def _fetch_all_entries(self, transcript_name: str) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        page_token = None
        while True:
            response = await self._get(
                f"{transcript_name}/entries", {"pageSize": MAX_PAGE_SIZE, "pageToken": page_token}
            )
            entries.extend(response.get("transcriptEntries", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return entries

    async def _list_transcripts(self, record_name: str) -> list[dict[str, Any]]:
        response = await self._get(f"{record_name}/transcripts", {"pageSize": MAX_PAGE_SIZE})
        transcripts: list[dict[str, Any]] = response.get("transcripts", [])
        return transcripts

    async def get_full_transcript(
        self,
        conference_record_id: str,
        include_timestamps: bool = True,
        include_participant: bool = True,
    ) -> str:
        """Return every transcript entry of a meeting as readable text, in time order."""
        parent = normalize_conference_record_name(conference_record_id)
        transcripts = await self._list_transcripts(parent)
        if not transcripts:
            return "No transcripts available for this meeting."

        entries: list[dict[str, Any]] = []
        for transcript in transcripts:
            entries.extend(await self._fetch_all_entries(transcript["name"]))
        entries.sort(key=lambda e: e.get("startTime") or "")

        lines = []
        for entry in entries:
            parts = []
            if include_timestamps and entry.get("startTime"):
                parts.append(f"[{entry['startTime']}]")
            if include_participant and entry.get("participant"):
                parts.append(_PARTICIPANT_RE.sub("Participant:", entry["participant"]))
            parts.append((entry.get("text") or "").strip())
            line = " ".join(parts)
            if line.strip():
                lines.append(line)

        header = f"Transcript for conference {parent}\n{'=' * 60}\n\n"
        return header + "\n".join(lines)

    async def search_transcripts(
        self,
        query: str,
        time_min: str | None = None,
        time_max: str | None = None,
        max_meetings: int = 20,
    ) -> str:
        """Search recent meetings' transcripts for ``query`` (case-insensitive).

        Meetings whose transcripts cannot be read are skipped.
        """
        needle = query.strip().lower()
        if not needle:
            return "Please provide a non-empty search query."

        clauses = []
        if time_min:
            clauses.append(f'start_time >= "{time_min}"')
        if time_max:
            clauses.append(f'start_time <= "{time_max}"')

        response = await self._get(
            "conferenceRecords",
            {"filter": " AND ".join(clauses) or None, "pageSize": min(MAX_PAGE_SIZE, max_meetings)},
        )
        records = response.get("conferenceRecords", [])
        if not records:
            return "No meetings found in the given range."

        blocks = []
        for record in records:
            try:
                transcripts = await self._list_transcripts(record["name"])
            except UpstreamOperationError as e:
                logger.debug("Skipping %s: %s", record["name"], e)
                continue

            matches = []
            for transcript in transcripts:
                try:
                    entries = await self._fetch_all_entries(transcript["name"])
                except UpstreamOperationError as e:
                    logger.debug("Skipping %s: %s", transcript["name"], e)
                    continue
                for entry in entries:
                    excerpt = make_excerpt(entry.get("text") or "", needle)
                    if excerpt is not None:
                        stamp = f"[{entry['startTime']}] " if entry.get("startTime") else ""
                        matches.append(f"  - {stamp}{excerpt}")

            if matches:
                header = (
                    f"Meeting: {record['name']}\n"
                    f"  Start: {record.get('startTime') or 'N/A'}  End: {record.get('endTime') or 'N/A'}"
                )
                blocks.append("\n".join([header, *matches[:MAX_MATCHES_PER_MEETING]]))

        if not blocks:
            return f'No meetings found where the transcript contains "{query}".'
        return "\n\n".join(blocks)
