from __future__ import annotations

from dataclasses import dataclass

TRANSPORT_FAILURE_MESSAGE = "Network error. Please try again."


@dataclass
class EditorError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationError(EditorError):
    """Local rejection of a value or ordering. Never reaches the gateway."""

    field: str | None = None


@dataclass
class SessionStateError(EditorError):
    """Command issued in a session state that does not accept it."""

    state: str | None = None


@dataclass
class GatewayError(EditorError):
    operation: str | None = None


@dataclass
class GatewayRejection(GatewayError):
    """Gateway answered with success=false (stale data, concurrent change, ...)."""


@dataclass
class TransportFailure(GatewayError):
    """Request could not complete: host unreachable, timeout, 5xx, bad payload."""

    message: str = TRANSPORT_FAILURE_MESSAGE
