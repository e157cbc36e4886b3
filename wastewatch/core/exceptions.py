"""
WasteWatch - Error Taxonomy
Domain errors raised by the report lifecycle core.

Every error is recoverable: callers either surface it to the user or
continue without the affected optional feature.
"""

from typing import Any, Dict, Optional


class WasteWatchError(Exception):
    """Base class for all domain errors."""

    error_code: str = "SERVER_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        return data


class ClassificationUnavailable(WasteWatchError):
    """The classification service failed or timed out."""
    error_code = "CLASSIFICATION_UNAVAILABLE"
    default_message = "Classification service is unavailable"


class LowConfidenceOrNoWaste(WasteWatchError):
    """Classification succeeded but did not meet the acceptance threshold."""
    error_code = "NO_WASTE_DETECTED"
    default_message = (
        "No significant waste was detected, or confidence is too low. "
        "Please try another image."
    )


class EmptySubmission(WasteWatchError):
    """A submission carried neither an image nor a description."""
    error_code = "EMPTY_SUBMISSION"
    default_message = "A report needs an image or a description"


class NoPendingConfirmation(WasteWatchError):
    """confirm() was called with no submission awaiting confirmation."""
    error_code = "NO_PENDING_CONFIRMATION"
    default_message = "There is no submission awaiting confirmation"


class InvalidTransition(WasteWatchError):
    """A report status change not permitted by the state machine."""
    error_code = "INVALID_TRANSITION"
    default_message = "Report status transition is not permitted"


class InvalidToken(WasteWatchError):
    """A verification token does not resolve to an actionable report."""
    error_code = "INVALID_TOKEN"
    default_message = "Verification token is invalid"


class ReportNotFound(WasteWatchError):
    """No report exists with the requested id."""
    error_code = "NOT_FOUND"
    default_message = "Report not found"


class GeolocationUnavailable(WasteWatchError):
    """The position source could not provide a fix."""
    error_code = "GEOLOCATION_UNAVAILABLE"
    default_message = "Location is unavailable"
