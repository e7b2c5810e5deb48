"""Integration tests for DriveClient against mocked Drive, Docs and Sheets endpoints."""

import httpx
import pytest

from google_mcp.clients.base import DOCS_API_BASE, DRIVE_API_BASE, DRIVE_UPLOAD_BASE, SHEETS_API_BASE
from google_mcp.clients.drive import GOOGLE_DOC, GOOGLE_SHEET, DriveClient, build_drive_query

FILE_URL = f"{DRIVE_API_BASE}/files/f1"


@pytest.fixture
def drive(bearer_auth, http_client) -> DriveClient:
    return DriveClient(bearer_auth, http_client)


def _file_route(google_api, metadata: dict, media: str = "") -> None:
    """Serve metadata for ``fields`` requests and ``media`` for downloads on one URL."""

    def respond(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("alt") == "media":
            return httpx.Response(200, text=media)
        return httpx.Response(200, json=metadata)

    google_api.add_handler("GET", FILE_URL, respond)


@pytest.mark.unit
class TestBuildDriveQuery:
    """Tests for build_drive_query()."""

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_should_exclude_trash_for_empty_query(self, raw) -> None:
        """Verify an empty query still hides trashed files."""
        assert build_drive_query(raw) == "trashed = false"

    def test_should_turn_bare_term_into_name_search(self) -> None:
        """Verify plain words search file names."""
        assert build_drive_query(" budget ") == "name contains 'budget' and trashed = false"

    def test_should_escape_quotes_in_bare_term(self) -> None:
        """Verify single quotes cannot break out of the name literal."""
        assert build_drive_query("bob's") == "name contains 'bob\\'s' and trashed = false"

    def test_should_pass_through_drive_expressions(self) -> None:
        """Verify queries with operators are kept verbatim."""
        assert (
            build_drive_query("mimeType = 'text/plain'")
            == "mimeType = 'text/plain' and trashed = false"
        )

    def test_should_respect_explicit_trashed_clause(self) -> None:
        """Verify callers can ask for trashed files."""
        assert build_drive_query("trashed = true") == "trashed = true"


@pytest.mark.integration
class TestDriveReads:
    """Tests for listing and reading files."""

    @pytest.mark.asyncio
    async def test_should_list_files_with_defaults(self, drive, google_api) -> None:
        """Verify default ordering and fields are requested."""
        google_api.add("GET", f"{DRIVE_API_BASE}/files", {"files": [{"id": "f1", "name": "notes.txt"}]})

        files = await drive.list_files(query="notes")

        params = google_api.last().url.params
        assert params["q"] == "name contains 'notes' and trashed = false"
        assert params["pageSize"] == "10"
        assert params["orderBy"] == "modifiedTime desc"
        assert params["fields"].startswith("files(")
        assert files == [{"id": "f1", "name": "notes.txt"}]

    @pytest.mark.asyncio
    async def test_should_honor_custom_listing_options(self, drive, google_api) -> None:
        """Verify order and fields overrides are forwarded."""
        google_api.add("GET", f"{DRIVE_API_BASE}/files", {})

        files = await drive.list_files(page_size=50, order_by="name", fields="files(id)")

        params = google_api.last().url.params
        assert params["pageSize"] == "50"
        assert params["orderBy"] == "name"
        assert params["fields"] == "files(id)"
        assert files == []

    @pytest.mark.asyncio
    async def test_should_download_text_files(self, drive, google_api) -> None:
        """Verify text files are fetched with alt=media."""
        _file_route(google_api, {"name": "notes.txt", "mimeType": "text/plain"}, media="line one")

        content = await drive.get_file_content("f1")

        assert content == "File: notes.txt\nContent:\n\nline one"

    @pytest.mark.asyncio
    async def test_should_export_google_docs_as_text(self, drive, google_api) -> None:
        """Verify Docs are exported rather than downloaded."""
        _file_route(google_api, {"name": "Plan", "mimeType": GOOGLE_DOC})
        google_api.add("GET", f"{FILE_URL}/export", text="Exported text")

        content = await drive.get_file_content("f1")

        assert google_api.last().url.params["mimeType"] == "text/plain"
        assert content == "File: Plan\nContent (exported as text/plain):\n\nExported text"

    @pytest.mark.asyncio
    async def test_should_export_sheets_as_csv(self, drive, google_api) -> None:
        """Verify Sheets are exported as CSV."""
        _file_route(google_api, {"name": "Budget", "mimeType": GOOGLE_SHEET})
        google_api.add("GET", f"{FILE_URL}/export", text="a,b\n1,2")

        content = await drive.get_file_content("f1")

        assert "exported as text/csv" in content
        assert content.endswith("a,b\n1,2")

    @pytest.mark.asyncio
    async def test_should_describe_binary_files(self, drive, google_api) -> None:
        """Verify non-text files only report metadata."""
        _file_route(google_api, {"name": "photo.png", "mimeType": "image/png"})

        content = await drive.get_file_content("f1")

        assert "Type: image/png" in content
        assert "cannot be displayed as text" in content
        assert len(google_api.requests) == 1


@pytest.mark.integration
class TestDriveWrites:
    """Tests for creating, appending, deleting and sharing files."""

    @pytest.mark.asyncio
    async def test_should_upload_plain_file_as_multipart(self, drive, google_api) -> None:
        """Verify regular files go through the upload endpoint."""
        google_api.add(
            "POST",
            f"{DRIVE_UPLOAD_BASE}/files",
            {"id": "new1", "name": "a.md", "webViewLink": "https://drive.google.com/new1"},
        )

        result = await drive.create_file("a.md", "# Title", mime_type="text/markdown", folder_id="folder9")

        request = google_api.last()
        assert request.url.params["uploadType"] == "multipart"
        assert request.headers["Content-Type"].startswith("multipart/related; boundary=")
        body = request.content.decode()
        assert '"parents": ["folder9"]' in body
        assert "# Title" in body
        assert result == "Created file with name: a.md\nID: new1\nLink: https://drive.google.com/new1"

    @pytest.mark.asyncio
    async def test_should_create_google_doc_and_insert_content(self, drive, google_api) -> None:
        """Verify Docs are created empty and then filled."""
        google_api.add(
            "POST", f"{DRIVE_API_BASE}/files", {"id": "doc1", "webViewLink": "https://docs.google.com/doc1"}
        )
        google_api.add("POST", f"{DOCS_API_BASE}/documents/doc1:batchUpdate", {})

        result = await drive.create_file("Plan", "Hello", mime_type=GOOGLE_DOC)

        create_body = google_api.body(google_api.requests[0])
        insert_body = google_api.body(google_api.requests[1])
        assert create_body == {"name": "Plan", "mimeType": GOOGLE_DOC}
        assert insert_body["requests"][0]["insertText"]["text"] == "Hello"
        assert result.startswith(f"Created {GOOGLE_DOC} with name: Plan\nID: doc1")

    @pytest.mark.asyncio
    async def test_should_not_fill_empty_google_doc(self, drive, google_api) -> None:
        """Verify no batchUpdate is sent for empty content."""
        google_api.add("POST", f"{DRIVE_API_BASE}/files", {"id": "doc1"})

        await drive.create_file("Plan", "", mime_type=GOOGLE_DOC)

        assert len(google_api.requests) == 1

    @pytest.mark.asyncio
    async def test_should_append_to_google_doc(self, drive, google_api) -> None:
        """Verify markdown appends are styled monospace from the old end index."""
        _file_route(google_api, {"name": "Plan", "mimeType": GOOGLE_DOC})
        google_api.add("GET", f"{DOCS_API_BASE}/documents/f1", {"body": {"content": [{"endIndex": 12}]}})
        google_api.add("POST", f"{DOCS_API_BASE}/documents/f1:batchUpdate", {})

        result = await drive.append_to_file("f1", "more", mime_type="text/markdown")

        requests = google_api.body(google_api.last("POST"))["requests"]
        assert requests[0]["insertText"]["text"] == "more"
        assert requests[1]["updateTextStyle"]["range"] == {"startIndex": 11, "endIndex": 15}
        assert result == "Content appended to Google Doc 'Plan' successfully."

    @pytest.mark.asyncio
    async def test_should_append_rows_to_sheet(self, drive, google_api) -> None:
        """Verify each non-blank line becomes one row."""
        _file_route(google_api, {"name": "Budget", "mimeType": GOOGLE_SHEET})
        google_api.add("POST", f"{SHEETS_API_BASE}/spreadsheets/f1/values/A1:append", {})

        result = await drive.append_to_file("f1", "a\n\nb\n")

        request = google_api.last("POST")
        assert request.url.params["valueInputOption"] == "RAW"
        assert google_api.body(request) == {"values": [["a"], ["b"]]}
        assert result == "2 row(s) appended to Google Sheet 'Budget' successfully."

    @pytest.mark.asyncio
    async def test_should_refuse_other_google_apps_types(self, drive, google_api) -> None:
        """Verify Slides and similar types cannot be appended to."""
        _file_route(google_api, {"name": "Deck", "mimeType": "application/vnd.google-apps.presentation"})

        with pytest.raises(ValueError, match="Google presentation is not supported"):
            await drive.append_to_file("f1", "x")

    @pytest.mark.asyncio
    async def test_should_rewrite_plain_file_with_appended_content(self, drive, google_api) -> None:
        """Verify plain files are downloaded and re-uploaded."""
        _file_route(google_api, {"name": "log.txt", "mimeType": "text/plain"}, media="old\n")
        google_api.add("PATCH", f"{DRIVE_UPLOAD_BASE}/files/f1", {"id": "f1", "name": "log.txt"})

        result = await drive.append_to_file("f1", "new\n")

        assert "old\nnew\n" in google_api.last("PATCH").content.decode()
        assert result == "File 'log.txt' updated successfully."

    @pytest.mark.asyncio
    async def test_should_trash_file_by_default(self, drive, google_api) -> None:
        """Verify delete_file patches trashed rather than deleting."""
        google_api.add("PATCH", FILE_URL, {"id": "f1", "trashed": True})

        result = await drive.delete_file("f1")

        assert google_api.body(google_api.last()) == {"trashed": True}
        assert result == "File with ID f1 moved to trash."

    @pytest.mark.asyncio
    async def test_should_delete_file_permanently(self, drive, google_api) -> None:
        """Verify permanent deletion issues a DELETE."""
        google_api.add("DELETE", FILE_URL, status_code=204)

        assert await drive.delete_file("f1", permanently=True) == "File with ID f1 permanently deleted."

    @pytest.mark.asyncio
    async def test_should_share_file(self, drive, google_api) -> None:
        """Verify permission body and notification parameters."""
        google_api.add("POST", f"{FILE_URL}/permissions", {"id": "perm1"})
        _file_route(google_api, {"name": "Plan"})

        result = await drive.share_file(
            "f1", "bob@example.com", role="writer", send_notification=False, message="FYI"
        )

        request = google_api.last("POST")
        assert google_api.body(request) == {"type": "user", "role": "writer", "emailAddress": "bob@example.com"}
        assert request.url.params["sendNotificationEmail"] == "false"
        assert request.url.params["emailMessage"] == "FYI"
        assert "transferOwnership" not in request.url.params
        assert result == "File 'Plan' shared with bob@example.com as writer."

    @pytest.mark.asyncio
    async def test_should_request_ownership_transfer(self, drive, google_api) -> None:
        """Verify sharing as owner transfers ownership."""
        google_api.add("POST", f"{FILE_URL}/permissions", {"id": "perm1"})
        _file_route(google_api, {"name": "Plan"})

        await drive.share_file("f1", "bob@example.com", role="owner")

        assert google_api.last("POST").url.params["transferOwnership"] == "true"
