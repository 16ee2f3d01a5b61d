"""
Request-level errors raised around the dashboard engine.

The engine itself never raises for odd data. These cover the boundary:
a malformed case id is the caller's fault, a failing data source is ours.
"""

from typing import Any, Dict, Optional


class DebriefError(Exception):
    """Base error carrying an HTTP-equivalent status and a stable code."""

    status_code: int = 500
    error_code: str = "DEBRIEF_ERROR"

    def __init__(self, detail: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.detail, "error_code": self.error_code, **self.extra}


class InvalidCaseIdError(DebriefError):
    status_code = 400
    error_code = "INVALID_CASE_ID"

    def __init__(self, case_id: Any):
        super().__init__(
            "Missing case_id" if not case_id else f"Invalid case_id '{case_id}'",
            extra={"case_id": case_id},
        )


class CaseNotFoundError(DebriefError):
    status_code = 404
    error_code = "CASE_NOT_FOUND"

    def __init__(self, case_id: str):
        super().__init__(f"Case '{case_id}' not found", extra={"case_id": case_id})


class DataSourceError(DebriefError):
    status_code = 500
    error_code = "DATA_SOURCE_ERROR"

    def __init__(self, operation: str, details: Optional[str] = None):
        super().__init__(
            f"Failed to load dashboard data: {operation}",
            extra={"operation": operation, "details": details},
        )
