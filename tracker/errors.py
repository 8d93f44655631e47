from typing import Any, Dict, Optional


class TrackerError(Exception):
    """Base class for errors raised by the service layer.

    ``detail`` is the same dict shape the validators return on the Left
    side: {"error": <code>, "message": <text>, ...}.
    """

    code = "tracker_error"

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.detail = detail or {"error": self.code, "message": message}


class ValidationError(TrackerError):
    code = "invalid_input"

    @classmethod
    def from_detail(cls, detail: Dict[str, Any]) -> "ValidationError":
        return cls(detail.get("message", "invalid input"), detail)


class NotFoundError(TrackerError):
    code = "not_found"


class ConflictError(TrackerError):
    code = "conflict"
