"""Integration tests for GmailClient against mocked Gmail REST endpoints."""

import base64
from email import message_from_bytes
from email.message import Message

import pytest

from google_mcp.clients.base import GMAIL_API_BASE
from google_mcp.clients.gmail import (
    MESSAGES_URL,
    GmailClient,
    build_email_message,
    extract_message_body,
)


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode()


def _decode_raw(raw: str) -> Message:
    return message_from_bytes(base64.urlsafe_b64decode(raw))


@pytest.fixture
def gmail(bearer_auth, http_client) -> GmailClient:
    return GmailClient(bearer_auth, http_client)


def _metadata(msg_id: str, subject: str) -> dict:
    return {
        "id": msg_id,
        "snippet": f"snippet {msg_id}",
        "labelIds": ["INBOX"],
        "payload": {
            "headers": [
                {"name": "Subject", "value": subject},
                {"name": "From", "value": "alice@example.com"},
                {"name": "To", "value": "me@example.com"},
                {"name": "Date", "value": "Wed, 2 Apr 2025 10:00:00 +0000"},
            ]
        },
    }


@pytest.mark.unit
class TestMessageHelpers:
    """Tests for body extraction and message building."""

    def test_should_read_single_part_body(self) -> None:
        """Verify a body directly on the payload is decoded."""
        assert extract_message_body({"body": {"data": _b64("hello")}}) == "hello"

    def test_should_prefer_plain_text_in_nested_multipart(self) -> None:
        """Verify text/plain is found inside nested multipart parts."""
        payload = {
            "parts": [
                {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
                {
                    "mimeType": "multipart/alternative",
                    "parts": [{"mimeType": "text/plain", "body": {"data": _b64("plain")}}],
                },
            ]
        }

        assert extract_message_body(payload) == "plain"

    def test_should_fall_back_to_html(self) -> None:
        """Verify text/html is used when no plain part exists."""
        payload = {"parts": [{"mimeType": "text/html", "body": {"data": _b64("<p>hi</p>")}}]}

        assert extract_message_body(payload) == "<p>hi</p>"

    def test_should_return_empty_string_without_body(self) -> None:
        """Verify attachment-only messages yield an empty body."""
        assert extract_message_body({"parts": [{"mimeType": "application/pdf", "body": {}}]}) == ""

    def test_should_build_message_with_all_recipients(self) -> None:
        """Verify headers and content type of a composed message."""
        raw = build_email_message(
            ["a@example.com", "b@example.com"],
            "Hello",
            "<b>Hi</b>",
            cc=["c@example.com"],
            bcc=["d@example.com"],
            is_html=True,
        )

        message = _decode_raw(raw)
        assert message["to"] == "a@example.com, b@example.com"
        assert message["cc"] == "c@example.com"
        assert message["bcc"] == "d@example.com"
        assert message["subject"] == "Hello"
        assert message.get_content_type() == "text/html"


@pytest.mark.integration
class TestListEmails:
    """Tests for GmailClient.list_emails() and index lookup."""

    @pytest.mark.asyncio
    async def test_should_list_messages_with_headers(self, gmail, google_api) -> None:
        """Verify listings carry headers and remember the ids."""
        google_api.add(
            "GET", MESSAGES_URL, {"messages": [{"id": "m1", "threadId": "t1"}, {"id": "m2", "threadId": "t2"}]}
        )
        google_api.add("GET", f"{MESSAGES_URL}/m1", _metadata("m1", "First"))
        google_api.add("GET", f"{MESSAGES_URL}/m2", _metadata("m2", "Second"))

        result = await gmail.list_emails(label_ids=["INBOX", "UNREAD"], max_results=2, query="from:alice")

        list_request = google_api.requests[0]
        assert list_request.url.params.get_list("labelIds") == ["INBOX", "UNREAD"]
        assert list_request.url.params["maxResults"] == "2"
        assert list_request.url.params["q"] == "from:alice"
        assert result["count"] == 2
        assert result["messages"][0]["index"] == 1
        assert result["messages"][0]["subject"] == "First"
        assert result["messages"][1]["thread_id"] == "t2"
        assert gmail.last_message_ids == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_should_skip_messages_whose_details_fail(self, gmail, google_api) -> None:
        """Verify a failing detail fetch drops only that message."""
        google_api.add("GET", MESSAGES_URL, {"messages": [{"id": "m1"}, {"id": "gone"}, {"id": "m3"}]})
        google_api.add("GET", f"{MESSAGES_URL}/m1", _metadata("m1", "First"))
        google_api.add("GET", f"{MESSAGES_URL}/m3", _metadata("m3", "Third"))

        result = await gmail.list_emails()

        assert [m["id"] for m in result["messages"]] == ["m1", "m3"]
        assert [m["index"] for m in result["messages"]] == [1, 3]
        assert gmail.last_message_ids == ["m1", "gone", "m3"]

    @pytest.mark.asyncio
    async def test_should_return_empty_listing(self, gmail, google_api) -> None:
        """Verify an empty mailbox clears the remembered ids."""
        gmail.last_message_ids = ["old"]
        google_api.add("GET", MESSAGES_URL, {"resultSizeEstimate": 0})

        result = await gmail.list_emails()

        assert result == {"messages": [], "count": 0}
        assert gmail.last_message_ids == []

    def test_should_resolve_index_to_message_id(self, gmail) -> None:
        """Verify positions are 1-based."""
        gmail.last_message_ids = ["m1", "m2"]

        assert gmail.get_message_id_by_index(2) == "m2"

    def test_should_require_prior_listing(self, gmail) -> None:
        """Verify index lookup fails before any listing."""
        with pytest.raises(ValueError, match="List emails first"):
            gmail.get_message_id_by_index(1)

    @pytest.mark.parametrize("index", [0, 3])
    def test_should_reject_out_of_range_index(self, gmail, index: int) -> None:
        """Verify the valid range is reported."""
        gmail.last_message_ids = ["m1", "m2"]

        with pytest.raises(ValueError, match="Must be between 1 and 2"):
            gmail.get_message_id_by_index(index)


@pytest.mark.integration
class TestGetEmail:
    """Tests for GmailClient.get_email()."""

    @pytest.mark.asyncio
    async def test_should_include_body_for_full_format(self, gmail, google_api) -> None:
        """Verify full format decodes the message body."""
        detail = _metadata("m1", "First")
        detail["threadId"] = "t1"
        detail["payload"]["body"] = {"data": _b64("Body text")}
        google_api.add("GET", f"{MESSAGES_URL}/m1", detail)

        result = await gmail.get_email("m1")

        assert google_api.last().url.params["format"] == "full"
        assert result["subject"] == "First"
        assert result["from"] == "alice@example.com"
        assert result["cc"] is None
        assert result["body"] == "Body text"

    @pytest.mark.asyncio
    async def test_should_omit_body_for_metadata_format(self, gmail, google_api) -> None:
        """Verify metadata format returns headers only."""
        google_api.add("GET", f"{MESSAGES_URL}/m1", _metadata("m1", "First"))

        result = await gmail.get_email("m1", format="metadata")

        assert "body" not in result
        assert result["labels"] == ["INBOX"]

    @pytest.mark.asyncio
    async def test_should_return_raw_source(self, gmail, google_api) -> None:
        """Verify raw format returns the encoded source untouched."""
        google_api.add("GET", f"{MESSAGES_URL}/m1", {"id": "m1", "threadId": "t1", "raw": "UkFX"})

        result = await gmail.get_email("m1", format="raw")

        assert result == {"id": "m1", "thread_id": "t1", "raw": "UkFX"}


@pytest.mark.integration
class TestGmailWrites:
    """Tests for sending, drafting, deleting and labelling."""

    @pytest.mark.asyncio
    async def test_should_send_email(self, gmail, google_api) -> None:
        """Verify the raw RFC 2822 message is posted."""
        google_api.add("POST", f"{MESSAGES_URL}/send", {"id": "s1", "threadId": "t1", "labelIds": ["SENT"]})

        result = await gmail.send_email(["a@example.com"], "Hi", "Hello there")

        message = _decode_raw(google_api.body(google_api.last())["raw"])
        assert message["to"] == "a@example.com"
        assert message["subject"] == "Hi"
        assert message.get_content_type() == "text/plain"
        assert result == {"status": "sent", "id": "s1", "thread_id": "t1", "label_ids": ["SENT"]}

    @pytest.mark.asyncio
    async def test_should_create_draft(self, gmail, google_api) -> None:
        """Verify drafts wrap the raw message."""
        google_api.add(
            "POST",
            f"{GMAIL_API_BASE}/users/me/drafts",
            {"id": "d1", "message": {"id": "m9", "threadId": "t9"}},
        )

        result = await gmail.draft_email(["a@example.com"], "Draft", "")

        assert "raw" in google_api.body(google_api.last())["message"]
        assert result == {"status": "draft_created", "id": "d1", "message_id": "m9", "thread_id": "t9"}

    @pytest.mark.asyncio
    async def test_should_trash_by_default(self, gmail, google_api) -> None:
        """Verify delete_email moves to trash unless told otherwise."""
        google_api.add("POST", f"{MESSAGES_URL}/m1/trash", {"id": "m1"})

        assert await gmail.delete_email("m1") == "Email m1 moved to trash."
        assert google_api.last().method == "POST"

    @pytest.mark.asyncio
    async def test_should_delete_permanently(self, gmail, google_api) -> None:
        """Verify permanent deletion issues a DELETE."""
        google_api.add("DELETE", f"{MESSAGES_URL}/m1", status_code=204)

        assert await gmail.delete_email("m1", permanently=True) == "Email m1 permanently deleted."

    @pytest.mark.asyncio
    async def test_should_modify_labels(self, gmail, google_api) -> None:
        """Verify only supplied label changes are sent."""
        google_api.add("POST", f"{MESSAGES_URL}/m1/modify", {"id": "m1", "labelIds": ["STARRED"]})

        result = await gmail.modify_labels("m1", add_label_ids=["STARRED"])

        assert google_api.body(google_api.last()) == {"addLabelIds": ["STARRED"]}
        assert result == {"status": "modified", "id": "m1", "labels": ["STARRED"]}

    @pytest.mark.asyncio
    async def test_should_refuse_empty_label_change(self, gmail, google_api) -> None:
        """Verify a no-op modification is rejected locally."""
        with pytest.raises(ValueError, match="addLabelIds or removeLabelIds"):
            await gmail.modify_labels("m1")

        assert google_api.requests == []

    @pytest.mark.asyncio
    async def test_should_list_labels(self, gmail, google_api) -> None:
        """Verify labels are reduced to id, name and type."""
        google_api.add(
            "GET",
            f"{GMAIL_API_BASE}/users/me/labels",
            {"labels": [{"id": "INBOX", "name": "INBOX", "type": "system", "color": {}}]},
        )

        assert await gmail.list_labels() == [{"id": "INBOX", "name": "INBOX", "type": "system"}]
