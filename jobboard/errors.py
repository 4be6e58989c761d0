"""
Error taxonomy for the job board UI.

Four kinds of failure reach a view:
- configuration errors block the whole application from rendering
- authentication errors redirect protected pages to sign-in
- form validation errors are caught before anything is sent
- backend errors are caught per request and shown as a notification

Also provides error_message(), which turns a backend error payload into the
message shown to the user.
"""

from typing import Any, Dict, List, Mapping, Optional

DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again."


class ConfigurationError(Exception):
    """Raised when a required environment value is missing or malformed."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = list(missing or [])
        super().__init__(message)


class AuthenticationError(Exception):
    """Raised when a protected operation runs without a usable session."""


class FormValidationError(Exception):
    """
    Raised by a form when local validation fails.

    Attributes:
        errors: Mapping of field name to message ("__all__" for cross-field rules)
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))

    @property
    def message(self) -> str:
        """First error, used for the toast."""
        return next(iter(self.errors.values()), "Invalid input")


class ApiError(Exception):
    """
    Raised for a non-2xx backend response.

    Attributes:
        status_code: HTTP status returned by the backend
        payload: Parsed JSON body (empty dict when the body was not JSON)
        message: User-visible message composed from the payload
    """

    def __init__(self, status_code: int, message: str, payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}
        super().__init__(f"HTTP {status_code}: {message}")

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)


class BackendUnavailable(ApiError):
    """Raised when the backend times out (504) or refuses the connection (503)."""


def _format_details(details: Any) -> str:
    if isinstance(details, str):
        return details.strip()

    if isinstance(details, Mapping):
        lines = []
        for field, problem in details.items():
            if field == "_errors":
                messages = problem if isinstance(problem, list) else [problem]
                if messages:
                    lines.append(", ".join(str(m) for m in messages))
                continue
            if isinstance(problem, Mapping):
                messages = problem.get("_errors") or []
                if not isinstance(messages, list):
                    messages = [messages]
                text = ", ".join(str(m) for m in messages)
            elif isinstance(problem, list):
                text = ", ".join(str(m) for m in problem)
            else:
                text = str(problem)
            if text:
                lines.append(f"{field}: {text}")
        return "\n".join(lines)

    if isinstance(details, list):
        parts = []
        for item in details:
            if isinstance(item, Mapping):
                # [{"path": ["salaryMin"], "message": "..."}]
                path = item.get("path") or item.get("field")
                if isinstance(path, list):
                    path = ".".join(str(p) for p in path)
                msg = item.get("message") or item.get("msg") or ""
                parts.append(f"{path}: {msg}" if path else str(msg))
            else:
                parts.append(str(item))
        return "\n".join(p for p in parts if p)

    return ""


def error_message(payload: Any, fallback: str = DEFAULT_ERROR_MESSAGE) -> str:
    """
    Compose the user-visible message for a backend error payload.

    Prefers the most specific field present: details, then message, then error.

    Example:
        >>> error_message({"error": "Bad", "details": {"title": {"_errors": ["Required"]}}})
        'title: Required'
    """
    if not isinstance(payload, Mapping):
        return fallback

    details = payload.get("details")
    if details:
        text = _format_details(details)
        if text:
            return text

    for key in ("message", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    return fallback
