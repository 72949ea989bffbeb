"""SDK-specific exceptions."""

from __future__ import annotations

import math
from typing import Mapping

from pydantic import ValidationError

from .models import ErrorDetail, ErrorResponse
from .security import parse_retry_after


class AsanaError(Exception):
    """Base exception for all Asana SDK failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: object = None,
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers) if headers is not None else {}
        self.request_id = request_id
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        if self.status_code is None:
            return str(self.args[0])
        return f"{self.status_code} {type(self).__name__}: {self.args[0]}"


class AsanaConfigurationError(AsanaError):
    """Raised when the dispatcher is used without a required collaborator."""


class AsanaTransportError(AsanaError):
    """Raised when no usable response came back: network, redirect or decoding failures."""


class AsanaTimeoutError(AsanaTransportError):
    """Raised when a single attempt exceeds the configured timeout."""


def _parse_error_details(body: object) -> list[ErrorDetail]:
    if not isinstance(body, Mapping):
        return []
    try:
        return ErrorResponse.model_validate(body).errors
    except ValidationError:
        return []


class AsanaHTTPError(AsanaError):
    """Base class for errors classified from an HTTP status code.

    Subclasses that represent a specific status declare it in ``status``; the
    classifier indexes them by that value.
    """

    status: int | None = None
    default_message = "Request failed"

    def __init__(
        self,
        body: object = None,
        *,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
    ) -> None:
        self.errors = _parse_error_details(body)
        message = self.errors[0].message if self.errors and self.errors[0].message else self.default_message
        super().__init__(
            message,
            status_code=status_code if status_code is not None else self.status,
            body=body,
            headers=headers,
            request_id=request_id,
        )


class InvalidRequest(AsanaHTTPError):
    """Raised for HTTP 400 responses."""

    status = 400
    default_message = "Invalid Request"


class NoAuthorization(AsanaHTTPError):
    """Raised for HTTP 401 responses; may be recovered by reauthorizing."""

    status = 401
    default_message = "No Authorization"


class PremiumOnly(AsanaHTTPError):
    status = 402
    default_message = "Payment Required"


class Forbidden(AsanaHTTPError):
    status = 403
    default_message = "Forbidden"


class NotFound(AsanaHTTPError):
    status = 404
    default_message = "Not Found"


class RateLimitEnforced(AsanaHTTPError):
    """Raised for HTTP 429 responses.

    ``retry_after_seconds`` is how long the server asked us to wait before
    trying again. The body's ``retry_after_seconds`` or ``retry_after``
    field wins over the ``Retry-After`` header; non-finite values are ignored.
    """

    status = 429
    default_message = "Rate Limit Enforced"

    def __init__(
        self,
        body: object = None,
        *,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(body, status_code=status_code, headers=headers, request_id=request_id)
        self.retry_after_seconds = _retry_after_seconds(body, self.headers)


class ServerError(AsanaHTTPError):
    """Raised for HTTP 500 responses, the generic server-side failure."""

    status = 500
    default_message = "Server Error"


def _retry_after_seconds(body: object, headers: Mapping[str, str]) -> float:
    if isinstance(body, Mapping):
        for key in ("retry_after_seconds", "retry_after"):
            try:
                seconds = float(body.get(key))
            except (TypeError, ValueError):
                continue
            if math.isfinite(seconds):
                return max(0.0, seconds)
    for key, value in headers.items():
        if key.lower() == "retry-after":
            parsed = parse_retry_after(value)
            if parsed is not None:
                return parsed
    return 0.0


HTTP_ERRORS: tuple[type[AsanaHTTPError], ...] = (
    InvalidRequest,
    NoAuthorization,
    PremiumOnly,
    Forbidden,
    NotFound,
    RateLimitEnforced,
    ServerError,
)
