"""Shared plumbing for the per-service Google API clients."""

import logging
import time
from typing import Any

import httpx

from google_mcp.auth.credentials import AuthenticatedHandle
from google_mcp.errors import UpstreamOperationError

logger = logging.getLogger(__name__)

# Google API base URLs
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
DOCS_API_BASE = "https://docs.googleapis.com/v1"
SHEETS_API_BASE = "https://sheets.googleapis.com/v4"
TASKS_API_BASE = "https://tasks.googleapis.com/tasks/v1"
MEET_API_BASE = "https://meet.googleapis.com/v2"


def create_http_client() -> httpx.AsyncClient:
    """Create the pooled HTTP/2 client shared by every service client."""
    return httpx.AsyncClient(
        http2=True,
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        timeout=httpx.Timeout(30.0, connect=10.0),
    )


def _google_error_message(response: httpx.Response) -> str:
    """Pull Google's human-readable message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return payload.get("error_description") or error

    return response.text or f"HTTP {response.status_code}"


class GoogleApiClient:
    """Authenticated REST access to one Google service for one identity.

    Subclasses add the service's operations. Per-instance state (default
    calendar, default task list, last email listing) belongs to exactly
    one identity, which is why instances are cached per identity.

    Attributes:
        service: ServiceKind value this client serves.
        auth: Handle producing the bearer token for every call.
    """

    service = ""

    def __init__(self, auth: AuthenticatedHandle, http_client: httpx.AsyncClient) -> None:
        self.auth = auth
        self._http_client = http_client

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        access_token = await self.auth.get_access_token()
        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)

        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout

        started = time.perf_counter()
        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                content=content,
                headers=request_headers,
                **kwargs,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamOperationError(
                _google_error_message(e.response), status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamOperationError(f"{method} {url} failed: {e}") from e
        finally:
            logger.debug(
                "%s %s took %.0fms", method, url, (time.perf_counter() - started) * 1000
            )

        return response

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated JSON request.

        Returns:
            Decoded JSON body, or an empty dict for empty (204) responses.

        Raises:
            UpstreamOperationError: If Google rejects the call or the
                transport fails.
        """
        response = await self._send(
            method,
            url,
            params=params,
            json_data=json_data,
            headers={"Accept": "application/json"},
        )
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    async def _make_delete_request(self, url: str, params: dict[str, Any] | None = None) -> None:
        """Make an authenticated DELETE request, discarding the body."""
        await self._send("DELETE", url, params=params)

    async def _make_raw_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        """Make an authenticated request and return the raw response.

        Used for media downloads, exports and multipart uploads.
        """
        return await self._send(
            method, url, params=params, content=content, headers=headers, timeout=timeout
        )
