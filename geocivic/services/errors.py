"""
Typed errors raised by the lifecycle, ledger, assignment and collaborator layers.

Every error except ReportCorrupted is locally recoverable: the caller is
expected to re-prompt the actor (re-acquire GPS, retry the upload, pick
another staff member) rather than treat it as fatal. The HTTP layer maps
each class to a status code in geocivic.main.
"""

from typing import Optional


class GeoCivicError(Exception):
    """Base class for all domain errors."""

    code = "GEOCIVIC_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class WrongActor(GeoCivicError):
    """Actor role or identity does not match what the transition requires."""

    code = "WRONG_ACTOR"


class InvalidStateForTransition(GeoCivicError):
    code = "INVALID_STATE_FOR_TRANSITION"

    def __init__(self, report_id: str, current_status: str, transition: str):
        super().__init__(
            f"Cannot {transition} report {report_id} while it is {current_status}"
        )
        self.report_id = report_id
        self.current_status = current_status
        self.transition = transition


class GeofenceViolation(GeoCivicError):
    """Actor is farther from the issue than the geofence allows."""

    code = "GEOFENCE_VIOLATION"

    def __init__(self, distance_meters: float, threshold_meters: float):
        super().__init__(
            f"You are {distance_meters:.0f}m away from the issue; "
            f"you must be within {threshold_meters:.0f}m"
        )
        self.distance_meters = distance_meters
        self.threshold_meters = threshold_meters

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["distance_meters"] = round(self.distance_meters, 2)
        payload["threshold_meters"] = self.threshold_meters
        return payload


class MissingEvidence(GeoCivicError):
    code = "MISSING_EVIDENCE"


class MissingLocation(GeoCivicError):
    """GPS coordinates required for the transition were not supplied."""

    code = "MISSING_LOCATION"


class InvalidCoordinate(GeoCivicError):
    code = "INVALID_COORDINATE"


class InvalidReport(GeoCivicError):
    code = "INVALID_REPORT"


class ReportNotFound(GeoCivicError):
    code = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class UserNotFound(GeoCivicError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class StaffNotFound(GeoCivicError):
    code = "STAFF_NOT_FOUND"

    def __init__(self, staff_id: str):
        super().__init__(f"Staff member {staff_id} not found")
        self.staff_id = staff_id


class InsufficientBalance(GeoCivicError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, user_id: str, balance: int, requested: int):
        super().__init__(
            f"Insufficient civic coins: balance {balance}, requested {requested}"
        )
        self.user_id = user_id
        self.balance = balance
        self.requested = requested


class StorageUnavailable(GeoCivicError):
    code = "STORAGE_UNAVAILABLE"


class NotificationDeliveryFailed(GeoCivicError):
    code = "NOTIFICATION_DELIVERY_FAILED"

    def __init__(self, recipient_id: str, attempts: int, cause: Optional[Exception] = None):
        super().__init__(
            f"Notification to {recipient_id} failed after {attempts} attempt(s): {cause}"
        )
        self.recipient_id = recipient_id
        self.attempts = attempts
        self.cause = cause


class ReportCorrupted(GeoCivicError):
    """
    A stored report violates the model invariants.

    Never reachable through the lifecycle; indicates a serialization bug or
    an out-of-band write. Not recoverable by the caller.
    """

    code = "REPORT_CORRUPTED"


class DuplicateVote(GeoCivicError):
    code = "DUPLICATE_VOTE"

    def __init__(self, report_id: str, user_id: str):
        super().__init__(f"You have already voted for report {report_id}")
        self.report_id = report_id
        self.user_id = user_id
