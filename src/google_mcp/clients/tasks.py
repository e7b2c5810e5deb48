"""Google Tasks client."""

from typing import Any
from urllib.parse import quote

import httpx

from google_mcp.auth.credentials import AuthenticatedHandle
from google_mcp.clients.base import TASKS_API_BASE, GoogleApiClient

DEFAULT_TASK_LIST = "@default"


def _format_task(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": item.get("id"),
        "title": item.get("title"),
        "notes": item.get("notes"),
        "status": item.get("status"),
        "due": item.get("due"),
        "completed": item.get("completed"),
        "parent": item.get("parent"),
        "position": item.get("position"),
        "updated": item.get("updated"),
    }


class TasksClient(GoogleApiClient):
    """Tasks operations for one identity.

    Attributes:
        default_task_list: Task list used when a call names none.
    """

    service = "tasks"

    def __init__(self, auth: AuthenticatedHandle, http_client: httpx.AsyncClient) -> None:
        super().__init__(auth, http_client)
        self.default_task_list = DEFAULT_TASK_LIST

    def _tasks_url(self, task_list_id: str | None) -> str:
        return f"{TASKS_API_BASE}/lists/{quote(task_list_id or self.default_task_list, safe='@')}/tasks"

    def set_default_task_list(self, task_list_id: str) -> str:
        self.default_task_list = task_list_id
        return f"Default task list ID set to: {task_list_id}"

    async def list_task_lists(self) -> dict[str, Any]:
        response = await self._make_request(
            "GET", f"{TASKS_API_BASE}/users/@me/lists", params={"maxResults": 100}
        )
        task_lists = [
            {"id": item.get("id"), "title": item.get("title"), "updated": item.get("updated")}
            for item in response.get("items", [])
        ]
        return {"task_lists": task_lists, "count": len(task_lists)}

    async def list_tasks(
        self, task_list_id: str | None = None, show_completed: bool = True
    ) -> dict[str, Any]:
        params = {
            "maxResults": 100,
            "showCompleted": str(show_completed).lower(),
            # completed tasks are hidden unless showHidden is also set
            "showHidden": str(show_completed).lower(),
        }
        response = await self._make_request("GET", self._tasks_url(task_list_id), params=params)
        tasks = [_format_task(item) for item in response.get("items", [])]
        return {"tasks": tasks, "count": len(tasks)}

    async def get_task(self, task_id: str, task_list_id: str | None = None) -> dict[str, Any]:
        response = await self._make_request("GET", f"{self._tasks_url(task_list_id)}/{quote(task_id)}")
        return _format_task(response)

    async def create_task(
        self,
        title: str,
        notes: str | None = None,
        due: str | None = None,
        task_list_id: str | None = None,
    ) -> dict[str, Any]:
        """Create a task in the given (or default) list.

        Args:
            title: Task title.
            notes: Free-form description.
            due: Due date, RFC 3339. Google keeps only the date part.
            task_list_id: Target list.

        Returns:
            Created task details.
        """
        task_body: dict[str, Any] = {"title": title}
        if notes:
            task_body["notes"] = notes
        if due:
            task_body["due"] = due

        response = await self._make_request("POST", self._tasks_url(task_list_id), json_data=task_body)
        result = _format_task(response)
        result["result"] = "created"
        return result

    async def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        task_list_id: str | None = None,
    ) -> dict[str, Any]:
        """Patch a task; None values in ``changes`` are skipped."""
        update_body = {
            key: value
            for key, value in changes.items()
            if key in ("title", "notes", "due", "status") and value is not None
        }
        if not update_body:
            raise ValueError("At least one of title, notes, due or status must be provided")

        response = await self._make_request(
            "PATCH", f"{self._tasks_url(task_list_id)}/{quote(task_id)}", json_data=update_body
        )
        result = _format_task(response)
        result["result"] = "updated"
        return result

    async def complete_task(self, task_id: str, task_list_id: str | None = None) -> dict[str, Any]:
        response = await self._make_request(
            "PATCH",
            f"{self._tasks_url(task_list_id)}/{quote(task_id)}",
            json_data={"status": "completed"},
        )
        result = _format_task(response)
        result["result"] = "completed"
        return result

    async def delete_task(self, task_id: str, task_list_id: str | None = None) -> str:
        await self._make_delete_request(f"{self._tasks_url(task_list_id)}/{quote(task_id)}")
        return f"Task {task_id} deleted successfully."

    async def create_task_list(self, title: str) -> dict[str, Any]:
        response = await self._make_request(
            "POST", f"{TASKS_API_BASE}/users/@me/lists", json_data={"title": title}
        )
        return {
            "result": "created",
            "id": response.get("id"),
            "title": response.get("title"),
            "updated": response.get("updated"),
        }

    async def delete_task_list(self, task_list_id: str) -> str:
        await self._make_delete_request(f"{TASKS_API_BASE}/users/@me/lists/{quote(task_list_id)}")
        if task_list_id == self.default_task_list:
            self.default_task_list = DEFAULT_TASK_LIST
        return f"Task list {task_list_id} deleted successfully."
