"""Error types raised by the API client and their conversion to display messages."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Something went wrong. Please try again."

TRANSPORT_MESSAGES = {
    "FETCH_ERROR": "Cannot reach the server. Please check your connection and try again.",
    "PARSING_ERROR": "Received an unexpected response from the server.",
    "TIMEOUT_ERROR": "The request timed out. Please try again.",
}

WRONG_PASSWORD_MESSAGE = "Password is wrong."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."

STATUS_MESSAGES = {
    400: "Please check the highlighted fields.",
    422: "Please check the highlighted fields.",
    403: "You do not have permission to perform this action.",
    404: "Requested resource was not found.",
    409: "A conflicting record already exists.",
}
SERVER_ERROR_MESSAGE = "Server error. Please try again later."


class ApiErrorKind(str, Enum):
    """Classification of failures that never produced an HTTP status."""

    FETCH_ERROR = "FETCH_ERROR"
    PARSING_ERROR = "PARSING_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    CUSTOM_ERROR = "CUSTOM_ERROR"


class ApiError(Exception):
    """Failed call to the dashboard API.

    Attributes:
        status: HTTP status code, or the transport classification
        data: Decoded response body, if any
        error: Free-form error text for transport and custom failures
    """

    def __init__(
        self,
        status: int | ApiErrorKind,
        data: Any = None,
        error: str | None = None,
    ) -> None:
        self.status = status
        self.data = data
        self.error = error
        super().__init__(f"API error {status.value if isinstance(status, ApiErrorKind) else status}")


@dataclass(frozen=True)
class ExtractedApiError:
    """User-facing error message with optional per-field messages.

    Attributes:
        message: Non-empty message for a banner or toast
        field_errors: Messages keyed by form field, None if the backend sent none
    """

    message: str
    field_errors: dict[str, str] | None = None


def extract_api_error(error: Any) -> ExtractedApiError:
    """Convert a failed remote call into a displayable error.

    Accepts an ApiError, a mapping with the same ``status``/``data``/``error``
    keys, or any other exception or object.

    Args:
        error: The raised error

    Returns:
        ExtractedApiError with a non-empty message
    """
    if isinstance(error, ApiError):
        return _from_status(error.status, error.data, error.error)

    if isinstance(error, Mapping):
        if error.get("status") is not None:
            return _from_status(error.get("status"), error.get("data"), error.get("error"))
        if isinstance(error.get("error"), str) and error["error"]:
            return ExtractedApiError(message=error["error"])
        if error.get("data"):
            message, field_errors = _from_body(error["data"])
            return ExtractedApiError(message=message or FALLBACK_MESSAGE, field_errors=field_errors)
        return ExtractedApiError(message=FALLBACK_MESSAGE)

    if isinstance(error, BaseException) and str(error):
        return ExtractedApiError(message=str(error))

    return ExtractedApiError(message=FALLBACK_MESSAGE)


def _from_status(status: Any, data: Any, error_text: str | None) -> ExtractedApiError:
    kind = status.value if isinstance(status, ApiErrorKind) else status

    if kind in TRANSPORT_MESSAGES:
        return ExtractedApiError(message=TRANSPORT_MESSAGES[kind])

    if kind == ApiErrorKind.CUSTOM_ERROR.value:
        return ExtractedApiError(message=error_text or FALLBACK_MESSAGE)

    if isinstance(kind, bool) or not isinstance(kind, int):
        logger.debug(f"Unrecognized API error status: {kind!r}")
        return ExtractedApiError(message=FALLBACK_MESSAGE)

    message, field_errors = _from_body(data)

    if kind == 401:
        body = data if isinstance(data, Mapping) else {}
        backend_code = body.get("code") or body.get("error") or ""
        password_specific = backend_code == "INVALID_PASSWORD" or bool(
            field_errors and field_errors.get("password")
        )
        message = WRONG_PASSWORD_MESSAGE if password_specific else INVALID_CREDENTIALS_MESSAGE
    elif message is None:
        if kind in STATUS_MESSAGES:
            message = STATUS_MESSAGES[kind]
        elif kind >= 500:
            message = SERVER_ERROR_MESSAGE

    return ExtractedApiError(message=message or FALLBACK_MESSAGE, field_errors=field_errors)


def _from_body(data: Any) -> tuple[str | None, dict[str, str] | None]:
    """Pull the top-level message and field-level messages out of an error body."""
    if not isinstance(data, Mapping):
        return None, None

    message = None
    if isinstance(data.get("message"), str):
        message = data["message"]
    elif isinstance(data.get("error"), str):
        message = data["error"]

    errors = data.get("errors")
    field_errors: dict[str, str] = {}

    if isinstance(errors, list):
        for item in errors:
            entry = item if isinstance(item, Mapping) else {}
            field = _field_name(entry.get("field") or entry.get("path") or entry.get("param"))
            text = entry.get("message") or entry.get("msg") or entry.get("error") or str(item)
            if field:
                field_errors[field] = str(text)
    elif isinstance(errors, Mapping):
        for key, value in errors.items():
            if isinstance(value, str):
                field_errors[key] = value
            elif isinstance(value, list) and value:
                field_errors[key] = str(value[0])
            elif isinstance(value, Mapping) and isinstance(value.get("message"), str):
                field_errors[key] = value["message"]

    return message or None, field_errors or None


def _field_name(name: Any) -> str | None:
    if not name:
        return None
    if isinstance(name, str):
        return name
    if isinstance(name, list):
        return str(name[0])
    return None
