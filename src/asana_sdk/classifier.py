"""Map HTTP status codes onto typed errors."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from .exceptions import HTTP_ERRORS, AsanaHTTPError


class ErrorClassifier:
    """Read-only lookup from status code to the error kind that represents it.

    Error kinds without a ``status`` are not indexed. Status codes missing
    from the table are not errors as far as the dispatcher is concerned.
    """

    def __init__(self, table: Mapping[int, type[AsanaHTTPError]]) -> None:
        self._table = MappingProxyType(dict(table))

    @classmethod
    def from_errors(cls, errors: Iterable[type[AsanaHTTPError]]) -> "ErrorClassifier":
        table: dict[int, type[AsanaHTTPError]] = {}
        for error_cls in errors:
            if error_cls.status is not None:
                table[error_cls.status] = error_cls
        return cls(table)

    @property
    def table(self) -> Mapping[int, type[AsanaHTTPError]]:
        return self._table

    def classify(self, status_code: int) -> type[AsanaHTTPError] | None:
        return self._table.get(status_code)

    def build(
        self,
        status_code: int,
        body: object,
        headers: Mapping[str, str] | None = None,
    ) -> AsanaHTTPError | None:
        """Instantiate the error for ``status_code``, or return None if unmapped."""
        error_cls = self.classify(status_code)
        if error_cls is None:
            return None
        request_id = None
        if headers is not None:
            request_id = next((v for k, v in headers.items() if k.lower() == "x-request-id"), None)
        return error_cls(body, status_code=status_code, headers=headers, request_id=request_id)


DEFAULT_CLASSIFIER = ErrorClassifier.from_errors(HTTP_ERRORS)
