"""KDM timesheet service client, session and MCP server."""

from .kdm_client import AuthenticationError, Credentials, KdmClient
from .session import DaySession, NotLoggedIn

__all__ = [
    "AuthenticationError",
    "Credentials",
    "DaySession",
    "KdmClient",
    "NotLoggedIn",
]
