from __future__ import annotations

import pytest

from asana_sdk import (
    DEFAULT_CLASSIFIER,
    AsanaHTTPError,
    ErrorClassifier,
    Forbidden,
    InvalidRequest,
    NoAuthorization,
    NotFound,
    PremiumOnly,
    RateLimitEnforced,
    ServerError,
)


def test_default_table_indexes_every_status_kind() -> None:
    assert dict(DEFAULT_CLASSIFIER.table) == {
        400: InvalidRequest,
        401: NoAuthorization,
        402: PremiumOnly,
        403: Forbidden,
        404: NotFound,
        429: RateLimitEnforced,
        500: ServerError,
    }


def test_kinds_without_status_are_skipped() -> None:
    classifier = ErrorClassifier.from_errors([AsanaHTTPError, NotFound])
    assert dict(classifier.table) == {404: NotFound}


def test_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        DEFAULT_CLASSIFIER.table[418] = ServerError  # type: ignore[index]


@pytest.mark.parametrize("status_code", [200, 201, 204, 302, 418, 502, 503])
def test_unmapped_status_builds_nothing(status_code: int) -> None:
    assert DEFAULT_CLASSIFIER.classify(status_code) is None
    assert DEFAULT_CLASSIFIER.build(status_code, {"data": {}}) is None


def test_build_uses_first_error_message() -> None:
    body = {"errors": [{"message": "task: Not a recognized ID", "help": "See docs"}]}
    error = DEFAULT_CLASSIFIER.build(404, body, {"X-Request-Id": "req-1"})

    assert isinstance(error, NotFound)
    assert error.status_code == 404
    assert error.body is body
    assert error.errors[0].help == "See docs"
    assert error.request_id == "req-1"
    assert str(error) == "404 NotFound: task: Not a recognized ID"


def test_build_falls_back_to_default_message() -> None:
    error = DEFAULT_CLASSIFIER.build(403, "<html>denied</html>")

    assert isinstance(error, Forbidden)
    assert error.errors == []
    assert error.args[0] == "Forbidden"


def test_malformed_error_list_is_ignored() -> None:
    error = DEFAULT_CLASSIFIER.build(400, {"errors": "nope"})

    assert isinstance(error, InvalidRequest)
    assert error.errors == []


def test_rate_limit_reads_retry_after_from_body() -> None:
    error = RateLimitEnforced({"retry_after": "12"})
    assert error.retry_after_seconds == 12.0


def test_rate_limit_reads_retry_after_header() -> None:
    error = RateLimitEnforced({}, headers={"retry-after": "4"})
    assert error.retry_after_seconds == 4.0


def test_rate_limit_without_hint_waits_zero() -> None:
    assert RateLimitEnforced(None).retry_after_seconds == 0.0


def test_rate_limit_prefers_retry_after_seconds_field() -> None:
    error = RateLimitEnforced({"retry_after_seconds": 2, "retry_after": 9}, headers={"retry-after": "30"})
    assert error.retry_after_seconds == 2.0


def test_rate_limit_skips_non_finite_hints() -> None:
    error = RateLimitEnforced({"retry_after_seconds": float("inf"), "retry_after": "nan"}, headers={"Retry-After": "5"})
    assert error.retry_after_seconds == 5.0
