"""google-mcp: Google Workspace tools behind a single MCP server.

Exposes Calendar, Gmail, Drive, Tasks and Meet operations as MCP tools.
In multi-tenant mode every caller brings its own bearer credential and
gets an isolated, cached set of per-service API clients.
"""

from google_mcp.__version__ import __version__

__all__ = ["__version__"]
