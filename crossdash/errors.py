"""
Error taxonomy for a routing session.

Location and resolution errors end the session; routing errors are logged and
leave the session where it was.
"""
from __future__ import annotations

import enum

from .const import (
    MESSAGE_PERMISSION_DENIED,
    MESSAGE_POSITION_UNAVAILABLE,
    MESSAGE_RESOLUTION_FAILED,
    MESSAGE_TIMEOUT,
    MESSAGE_UNKNOWN,
    MESSAGE_UNSUPPORTED,
)


class LocationFailure(enum.Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"


class ResolutionFailure(enum.Enum):
    NETWORK_FAILURE = "network_failure"
    MALFORMED_RESPONSE = "malformed_response"


class RoutingFailure(enum.Enum):
    NO_ROUTE_FOUND = "no_route_found"
    PROVIDER_ERROR = "provider_error"


_LOCATION_MESSAGES = {
    LocationFailure.PERMISSION_DENIED: MESSAGE_PERMISSION_DENIED,
    LocationFailure.POSITION_UNAVAILABLE: MESSAGE_POSITION_UNAVAILABLE,
    LocationFailure.TIMEOUT: MESSAGE_TIMEOUT,
    LocationFailure.UNSUPPORTED: MESSAGE_UNSUPPORTED,
}


class CrossDashError(Exception):
    """Base class for all classified session errors."""

    def __init__(self, reason: enum.Enum, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        message = reason.value if detail is None else f"{reason.value}: {detail}"
        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Message shown to the user when this error ends the session."""
        return MESSAGE_UNKNOWN


class LocationError(CrossDashError):
    """Raised when the user's position could not be acquired."""

    reason: LocationFailure

    @property
    def user_message(self) -> str:
        return _LOCATION_MESSAGES.get(self.reason, MESSAGE_UNKNOWN)


class ResolutionError(CrossDashError):
    """Raised when the resolver could not turn a coordinate into facilities."""

    reason: ResolutionFailure

    @property
    def user_message(self) -> str:
        return MESSAGE_RESOLUTION_FAILED


class RoutingError(CrossDashError):
    """Raised when no driving route could be computed."""

    reason: RoutingFailure


class ConfigError(Exception):
    """Raised when the runtime configuration does not validate."""
