"""Error taxonomy for tool dispatch.

Every error raised below the dispatcher is one of these (or a plain
exception from a collaborator). The dispatcher turns all of them into an
``Error: <message>`` result, so none of them ever reaches the transport.
"""


class GoogleMcpError(Exception):
    """Base class for errors raised by google-mcp."""


class ValidationError(GoogleMcpError):
    """Tool arguments failed their schema check.

    Attributes:
        tool_name: Name of the tool whose arguments were rejected.
        violations: One ``"<field>: <problem>"`` entry per failed check.
    """

    def __init__(self, tool_name: str, violations: list[str]) -> None:
        self.tool_name = tool_name
        self.violations = list(violations)
        detail = "; ".join(self.violations) if self.violations else "malformed arguments"
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")


class AuthInitializationError(GoogleMcpError):
    """A credential could not be turned into an authenticated client."""


class UnknownToolError(GoogleMcpError):
    """The requested tool is not part of the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class UpstreamOperationError(GoogleMcpError):
    """A Google API call failed (quota, not found, permission denied...).

    Attributes:
        status_code: HTTP status returned by Google, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
