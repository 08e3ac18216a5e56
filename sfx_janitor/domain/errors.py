"""
Janitor Errors

Architectural Intent:
- One exception family for every failure the janitor can report
- None of these are recoverable; the CLI logs them and exits non-zero
"""

from typing import Optional


class JanitorError(Exception):
    """Base class for janitor failures."""


class ConfigurationError(JanitorError):
    """Missing or invalid configuration (env vars, flags, task name)."""


class TransportError(JanitorError):
    """The HTTP request could not be completed."""


class ResponseDecodeError(JanitorError):
    """The response body was not the JSON document we expected."""


class ApiStatusError(JanitorError):
    """The API answered with a status code other than the expected one."""

    def __init__(self, message: str, status: int, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class IncidentResolutionError(JanitorError):
    """Clearing an incident failed; remaining incidents were not processed."""

    def __init__(self, incident_id: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"error resolving incident {incident_id}: {cause}")
        self.incident_id = incident_id
        self.cause = cause
