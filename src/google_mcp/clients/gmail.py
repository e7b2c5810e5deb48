"""Gmail client."""

import asyncio
import base64
import logging
from email.mime.text import MIMEText
from typing import Any

import httpx

from google_mcp.auth.credentials import AuthenticatedHandle
from google_mcp.clients.base import GMAIL_API_BASE, GoogleApiClient

logger = logging.getLogger(__name__)

MESSAGES_URL = f"{GMAIL_API_BASE}/users/me/messages"


def _decode_body(data: str) -> str:
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")


def extract_message_body(payload: dict[str, Any]) -> str:
    """Extract the readable body of a Gmail message payload.

    Prefers text/plain, descending into nested multipart parts, and falls
    back to text/html.
    """
    if payload.get("body", {}).get("data"):
        return _decode_body(payload["body"]["data"])

    parts = payload.get("parts", [])
    for part in parts:
        mime_type = part.get("mimeType", "")
        if mime_type == "text/plain":
            data = part.get("body", {}).get("data", "")
            if data:
                return _decode_body(data)
        elif mime_type.startswith("multipart/"):
            nested = extract_message_body(part)
            if nested:
                return nested

    for part in parts:
        if part.get("mimeType") == "text/html":
            data = part.get("body", {}).get("data", "")
            if data:
                return _decode_body(data)

    return ""


def build_email_message(
    to: list[str],
    subject: str,
    body: str,
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    is_html: bool = False,
) -> str:
    """Build an RFC 2822 message and return it base64url encoded."""
    message = MIMEText(body, "html" if is_html else "plain", "utf-8")
    message["to"] = ", ".join(to)
    message["subject"] = subject
    if cc:
        message["cc"] = ", ".join(cc)
    if bcc:
        message["bcc"] = ", ".join(bcc)

    return base64.urlsafe_b64encode(message.as_bytes()).decode()


class GmailClient(GoogleApiClient):
    """Gmail operations for one identity.

    Remembers the message ids of the most recent ``list_emails`` call so
    that a follow-up can address a message by its position.
    """

    service = "gmail"

    def __init__(self, auth: AuthenticatedHandle, http_client: httpx.AsyncClient) -> None:
        super().__init__(auth, http_client)
        self.last_message_ids: list[str] = []

    async def list_labels(self) -> list[dict[str, Any]]:
        response = await self._make_request("GET", f"{GMAIL_API_BASE}/users/me/labels")
        return [
            {"id": label.get("id"), "name": label.get("name"), "type": label.get("type")}
            for label in response.get("labels", [])
        ]

    async def list_emails(
        self,
        label_ids: list[str] | None = None,
        max_results: int = 10,
        query: str | None = None,
    ) -> dict[str, Any]:
        """List messages with their headers, newest first.

        Details are fetched concurrently; a message whose detail fetch fails
        is skipped. The listed ids become the reference for
        ``get_message_id_by_index``.
        """
        params: dict[str, Any] = {"maxResults": max_results}
        if label_ids:
            params["labelIds"] = label_ids
        if query:
            params["q"] = query

        response = await self._make_request("GET", MESSAGES_URL, params=params)
        message_list = response.get("messages", [])
        self.last_message_ids = [msg["id"] for msg in message_list]

        if not message_list:
            return {"messages": [], "count": 0}

        async def fetch_message_detail(msg_id: str) -> dict[str, Any]:
            return await self._make_request(
                "GET", f"{MESSAGES_URL}/{msg_id}", params={"format": "metadata"}
            )

        details = await asyncio.gather(
            *[fetch_message_detail(msg["id"]) for msg in message_list],
            return_exceptions=True,
        )

        messages = []
        for index, (msg, detail) in enumerate(zip(message_list, details, strict=False), start=1):
            if isinstance(detail, BaseException):
                logger.warning("Failed to fetch message %s: %s", msg["id"], detail)
                continue

            headers = {h["name"]: h["value"] for h in detail.get("payload", {}).get("headers", [])}
            messages.append(
                {
                    "index": index,
                    "id": msg["id"],
                    "thread_id": msg.get("threadId"),
                    "subject": headers.get("Subject"),
                    "from": headers.get("From"),
                    "to": headers.get("To"),
                    "date": headers.get("Date"),
                    "snippet": detail.get("snippet"),
                    "labels": detail.get("labelIds", []),
                }
            )

        return {"messages": messages, "count": len(messages)}

    def get_message_id_by_index(self, index: int) -> str:
        """Resolve a 1-based position in the last listing to a message id.

        Raises:
            ValueError: If there is no listing or the index is out of range.
        """
        if not self.last_message_ids:
            raise ValueError("No email listing available. List emails first.")
        if index < 1 or index > len(self.last_message_ids):
            raise ValueError(
                f"Invalid index {index}. Must be between 1 and {len(self.last_message_ids)}."
            )
        return self.last_message_ids[index - 1]

    async def get_email(self, message_id: str, format: str = "full") -> dict[str, Any]:
        """Get one message.

        ``raw`` returns the encoded RFC 2822 source; other formats return
        headers plus, for ``full``, the decoded body.
        """
        response = await self._make_request(
            "GET", f"{MESSAGES_URL}/{message_id}", params={"format": format}
        )

        if format == "raw":
            return {"id": response.get("id"), "thread_id": response.get("threadId"), "raw": response.get("raw")}

        payload = response.get("payload", {})
        headers = {h["name"]: h["value"] for h in payload.get("headers", [])}
        result = {
            "id": response.get("id"),
            "thread_id": response.get("threadId"),
            "subject": headers.get("Subject"),
            "from": headers.get("From"),
            "to": headers.get("To"),
            "cc": headers.get("Cc"),
            "date": headers.get("Date"),
            "snippet": response.get("snippet"),
            "labels": response.get("labelIds", []),
        }
        if format == "full":
            result["body"] = extract_message_body(payload)
        return result

    async def send_email(
        self,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        is_html: bool = False,
    ) -> dict[str, Any]:
        raw_message = build_email_message(to, subject, body, cc, bcc, is_html)
        response = await self._make_request("POST", f"{MESSAGES_URL}/send", json_data={"raw": raw_message})

        return {
            "status": "sent",
            "id": response.get("id"),
            "thread_id": response.get("threadId"),
            "label_ids": response.get("labelIds", []),
        }

    async def draft_email(
        self,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        is_html: bool = False,
    ) -> dict[str, Any]:
        raw_message = build_email_message(to, subject, body, cc, bcc, is_html)
        response = await self._make_request(
            "POST", f"{GMAIL_API_BASE}/users/me/drafts", json_data={"message": {"raw": raw_message}}
        )

        return {
            "status": "draft_created",
            "id": response.get("id"),
            "message_id": response.get("message", {}).get("id"),
            "thread_id": response.get("message", {}).get("threadId"),
        }

    async def delete_email(self, message_id: str, permanently: bool = False) -> str:
        """Move a message to trash, or delete it for good."""
        if permanently:
            await self._make_delete_request(f"{MESSAGES_URL}/{message_id}")
            return f"Email {message_id} permanently deleted."

        await self._make_request("POST", f"{MESSAGES_URL}/{message_id}/trash")
        return f"Email {message_id} moved to trash."

    async def modify_labels(
        self,
        message_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if add_label_ids:
            body["addLabelIds"] = add_label_ids
        if remove_label_ids:
            body["removeLabelIds"] = remove_label_ids
        if not body:
            raise ValueError("Provide addLabelIds or removeLabelIds")

        response = await self._make_request(
            "POST", f"{MESSAGES_URL}/{message_id}/modify", json_data=body
        )
        return {
            "status": "modified",
            "id": response.get("id"),
            "labels": response.get("labelIds", []),
        }
