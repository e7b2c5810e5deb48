"""Google Drive client (with the Docs and Sheets calls Drive files need)."""

import json
import re
from typing import Any
from urllib.parse import quote

from google_mcp.clients.base import (
    DOCS_API_BASE,
    DRIVE_API_BASE,
    DRIVE_UPLOAD_BASE,
    SHEETS_API_BASE,
    GoogleApiClient,
)

GOOGLE_APPS_PREFIX = "application/vnd.google-apps"
GOOGLE_DOC = "application/vnd.google-apps.document"
GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"

DEFAULT_LIST_FIELDS = "files(id, name, mimeType, modifiedTime, size, webViewLink)"
DEFAULT_ORDER_BY = "modifiedTime desc"
TRASHED_FILTER = "trashed = false"

_OPERATOR_RE = re.compile(r"[=<>]")
_KEYWORD_RE = re.compile(r"\b(contains|in|has|not|and|or)\b", re.IGNORECASE)
_TRASHED_RE = re.compile(r"\btrashed\b", re.IGNORECASE)

_EXPORT_TYPES = {
    GOOGLE_DOC: "text/plain",
    GOOGLE_SHEET: "text/csv",
}


def build_drive_query(raw_query: str | None) -> str:
    """Turn user input into a Drive ``q`` expression that skips trashed files.

    A bare term (no operators or query keywords) becomes a name search.
    Queries that already mention ``trashed`` are left alone.
    """
    if not raw_query or not raw_query.strip():
        return TRASHED_FILTER

    trimmed = raw_query.strip()
    is_simple = not _OPERATOR_RE.search(trimmed) and not _KEYWORD_RE.search(trimmed)
    if is_simple:
        escaped = trimmed.replace("'", "\\'")
        user_query = f"name contains '{escaped}'"
    else:
        user_query = trimmed

    if _TRASHED_RE.search(user_query):
        return user_query
    return f"{user_query} and {TRASHED_FILTER}"


def _is_text_type(mime_type: str) -> bool:
    return (
        mime_type.startswith("text/")
        or mime_type == "application/json"
        or "application/javascript" in mime_type
    )


def _google_type_label(mime_type: str) -> str:
    return mime_type.rsplit(".", 1)[-1]


class DriveClient(GoogleApiClient):
    """Drive file operations for one identity."""

    service = "drive"

    def _file_url(self, file_id: str) -> str:
        return f"{DRIVE_API_BASE}/files/{quote(file_id)}"

    async def _get_metadata(self, file_id: str, fields: str = "id,name,mimeType") -> dict[str, Any]:
        return await self._make_request("GET", self._file_url(file_id), params={"fields": fields})

    async def list_files(
        self,
        query: str | None = None,
        page_size: int = 10,
        order_by: str | None = None,
        fields: str | None = None,
    ) -> list[dict[str, Any]]:
        """List non-trashed files matching ``query``, most recently modified first."""
        params = {
            "q": build_drive_query(query),
            "pageSize": page_size,
            "orderBy": order_by or DEFAULT_ORDER_BY,
            "fields": fields or DEFAULT_LIST_FIELDS,
        }
        response = await self._make_request("GET", f"{DRIVE_API_BASE}/files", params=params)
        files: list[dict[str, Any]] = response.get("files", [])
        return files

    async def get_file_content(self, file_id: str) -> str:
        """Read a file as text.

        Text files are downloaded, Google Docs and Sheets are exported as
        plain text and CSV. Other types only report their metadata.
        """
        metadata = await self._get_metadata(file_id, fields="name,mimeType")
        name = metadata.get("name")
        mime_type = metadata.get("mimeType", "")

        if _is_text_type(mime_type):
            response = await self._make_raw_request(
                "GET", self._file_url(file_id), params={"alt": "media"}
            )
            return f"File: {name}\nContent:\n\n{response.text}"

        if mime_type in _EXPORT_TYPES:
            export_type = _EXPORT_TYPES[mime_type]
            response = await self._make_raw_request(
                "GET", f"{self._file_url(file_id)}/export", params={"mimeType": export_type}
            )
            return f"File: {name}\nContent (exported as {export_type}):\n\n{response.text}"

        return (
            f"File: {name}\nType: {mime_type}\n"
            "This file type cannot be displayed as text. "
            "You can access it via Google Drive directly."
        )

    async def _upload(
        self, method: str, url: str, metadata: dict[str, Any], content: str, mime_type: str
    ) -> dict[str, Any]:
        boundary = "google_mcp_boundary"
        body = "\r\n".join(
            [
                f"--{boundary}",
                "Content-Type: application/json; charset=UTF-8",
                "",
                json.dumps(metadata),
                f"--{boundary}",
                f"Content-Type: {mime_type}",
                "",
                content,
                f"--{boundary}--",
            ]
        )
        response = await self._make_raw_request(
            method,
            url,
            params={"uploadType": "multipart", "fields": "id,name,webViewLink"},
            content=body.encode("utf-8"),
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            timeout=60.0,
        )
        result: dict[str, Any] = response.json()
        return result

    async def create_file(
        self,
        name: str,
        content: str,
        mime_type: str | None = None,
        folder_id: str | None = None,
    ) -> str:
        """Create a file.

        Google Apps types are created empty through the metadata endpoint;
        a new Google Doc then gets ``content`` inserted. Everything else is
        a multipart upload.
        """
        mime_type = mime_type or "text/plain"
        metadata: dict[str, Any] = {"name": name, "mimeType": mime_type}
        if folder_id:
            metadata["parents"] = [folder_id]

        if mime_type.startswith(GOOGLE_APPS_PREFIX):
            created = await self._make_request(
                "POST",
                f"{DRIVE_API_BASE}/files",
                params={"fields": "id,name,webViewLink"},
                json_data=metadata,
            )
            file_id = created.get("id")

            if mime_type == GOOGLE_DOC and content:
                await self._make_request(
                    "POST",
                    f"{DOCS_API_BASE}/documents/{file_id}:batchUpdate",
                    json_data={
                        "requests": [
                            {"insertText": {"text": content, "endOfSegmentLocation": {"segmentId": ""}}}
                        ]
                    },
                )

            return (
                f"Created {mime_type} with name: {name}\n"
                f"ID: {file_id}\nLink: {created.get('webViewLink')}"
            )

        created = await self._upload(
            "POST", f"{DRIVE_UPLOAD_BASE}/files", metadata, content, mime_type
        )
        return (
            f"Created file with name: {name}\n"
            f"ID: {created.get('id')}\nLink: {created.get('webViewLink') or 'N/A'}"
        )

    async def append_to_file(self, file_id: str, content: str, mime_type: str | None = None) -> str:
        """Append ``content`` to a Doc, a Sheet or a plain file.

        Docs get the text at the end (monospaced when ``mime_type`` is
        text/markdown). Sheets get one row per non-blank line. Plain files
        are rewritten with the content appended.

        Raises:
            ValueError: For Google Apps types other than Docs and Sheets.
        """
        metadata = await self._get_metadata(file_id, fields="name,mimeType")
        file_name = metadata.get("name")
        file_type = metadata.get("mimeType", "")

        if file_type == GOOGLE_DOC:
            doc_url = f"{DOCS_API_BASE}/documents/{quote(file_id)}"
            doc = await self._make_request("GET", doc_url)
            body_content = doc.get("body", {}).get("content", [])
            end_index = max(1, body_content[-1].get("endIndex", 1) - 1) if body_content else 1

            requests: list[dict[str, Any]] = [
                {"insertText": {"text": content, "endOfSegmentLocation": {"segmentId": ""}}}
            ]
            if mime_type == "text/markdown":
                requests.append(
                    {
                        "updateTextStyle": {
                            "range": {"startIndex": end_index, "endIndex": end_index + len(content)},
                            "textStyle": {
                                "weightedFontFamily": {"fontFamily": "Courier New"},
                                "fontSize": {"magnitude": 10, "unit": "PT"},
                            },
                            "fields": "weightedFontFamily,fontSize",
                        }
                    }
                )

            await self._make_request("POST", f"{doc_url}:batchUpdate", json_data={"requests": requests})
            return f"Content appended to Google Doc '{file_name}' successfully."

        if file_type == GOOGLE_SHEET:
            lines = [line for line in content.split("\n") if line.strip()]
            await self._make_request(
                "POST",
                f"{SHEETS_API_BASE}/spreadsheets/{quote(file_id)}/values/A1:append",
                params={"valueInputOption": "RAW"},
                json_data={"values": [[line] for line in lines]},
            )
            return f"{len(lines)} row(s) appended to Google Sheet '{file_name}' successfully."

        if file_type.startswith(GOOGLE_APPS_PREFIX):
            raise ValueError(
                f"Appending to Google {_google_type_label(file_type)} is not supported. "
                "Only Google Docs and Sheets are supported."
            )

        existing = await self._make_raw_request(
            "GET", self._file_url(file_id), params={"alt": "media"}
        )
        updated = await self._upload(
            "PATCH",
            f"{DRIVE_UPLOAD_BASE}/files/{quote(file_id)}",
            {},
            existing.text + content,
            file_type or "text/plain",
        )
        return f"File '{updated.get('name', file_name)}' updated successfully."

    async def delete_file(self, file_id: str, permanently: bool = False) -> str:
        if permanently:
            await self._make_delete_request(self._file_url(file_id))
            return f"File with ID {file_id} permanently deleted."

        await self._make_request("PATCH", self._file_url(file_id), json_data={"trashed": True})
        return f"File with ID {file_id} moved to trash."

    async def share_file(
        self,
        file_id: str,
        email_address: str,
        role: str = "reader",
        send_notification: bool = True,
        message: str | None = None,
    ) -> str:
        """Grant a user access to a file."""
        params: dict[str, Any] = {"sendNotificationEmail": str(send_notification).lower()}
        if message:
            params["emailMessage"] = message
        if role == "owner":
            params["transferOwnership"] = "true"

        await self._make_request(
            "POST",
            f"{self._file_url(file_id)}/permissions",
            params=params,
            json_data={"type": "user", "role": role, "emailAddress": email_address},
        )
        metadata = await self._get_metadata(file_id, fields="name")
        return f"File '{metadata.get('name')}' shared with {email_address} as {role}."
