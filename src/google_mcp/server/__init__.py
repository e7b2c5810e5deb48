"""MCP server for Google Workspace.

Provides 36 tools across Calendar, Gmail, Drive, Tasks and Meet:

Calendar Tools (8):
- Set the default calendar, list calendars
- Create, get, update and delete events
- Find free time across calendars

Gmail Tools (8):
- List labels and emails, get an email by id or listing position
- Send and draft emails
- Trash or delete emails, modify labels

Drive Tools (6):
- List files, read file content
- Create, append to, delete and share files

Tasks Tools (10):
- Manage task lists and the default list
- Create, update, complete and delete tasks

Meet Tools (4):
- List meetings, get meeting details
- Read and search transcripts

Transports: stdio (single-tenant) and streamable HTTP (single- or multi-tenant)
Authentication: stored OAuth token with automatic refresh, or the caller's bearer token
"""

from google_mcp.server.google_mcp_server import GoogleMcpServer, main


def create_server(settings=None) -> GoogleMcpServer:
    """Create and configure a Google MCP server.

    Returns:
        GoogleMcpServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return GoogleMcpServer(settings)


__all__ = ["create_server", "GoogleMcpServer", "main"]
