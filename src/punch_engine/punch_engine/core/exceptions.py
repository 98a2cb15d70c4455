from __future__ import annotations

from typing import Any, Optional

from .enums import PunchFailure


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data or configuration violates domain rules."""


class PunchError(DomainError):
    """A failure kind the punch flow reports back to the UI.

    Every subclass carries its `kind` and a human-readable, non-technical
    default message.
    """

    kind: PunchFailure = PunchFailure.UNEXPECTED
    default_message = "Something went wrong while recording your punch."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class LocationUnavailableError(PunchError):
    kind = PunchFailure.LOCATION_UNAVAILABLE
    default_message = "Unable to get location. Please enable location services."


class OutOfRangeError(PunchError):
    kind = PunchFailure.OUT_OF_RANGE

    def __init__(self, distance_meters: float, radius_meters: float):
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters
        super().__init__(
            f"You are {round(distance_meters)}m away. "
            f"Must be within {round(radius_meters)}m of office to punch in/out"
        )


class InvalidTransitionError(PunchError):
    kind = PunchFailure.INVALID_TRANSITION
    default_message = "This punch is not allowed right now."


class AlreadyInProgressError(PunchError):
    kind = PunchFailure.ALREADY_IN_PROGRESS
    default_message = "A punch is already being recorded."


class AuthExpiredError(PunchError):
    kind = PunchFailure.AUTH_EXPIRED
    default_message = "Session expired. Please login again."


class NetworkUnavailableError(PunchError):
    kind = PunchFailure.NETWORK_UNAVAILABLE
    default_message = "Network error. Please check your internet connection."


class ServerRejectedError(PunchError):
    """Non-2xx response other than the handled 401."""

    kind = PunchFailure.SERVER_REJECTED

    def __init__(self, status_code: int, body: Any, message: str, payload: Any = None):
        self.status_code = status_code
        self.body = body
        self.payload = payload
        super().__init__(message)
