from __future__ import annotations

import asyncio
import base64

import pytest

from asana_sdk import (
    AsanaConfigurationError,
    AsanaError,
    BasicAuthenticator,
    RequestSpec,
    TokenAuthenticator,
)


def _request() -> RequestSpec:
    return RequestSpec(method="GET", url="https://app.asana.test/api/1.0/users/me")


def test_basic_authenticator_sets_header() -> None:
    request = _request()
    BasicAuthenticator("0/abc123").authenticate_request(request)

    expected = base64.b64encode(b"0/abc123:").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


def test_basic_authenticator_cannot_refresh() -> None:
    authenticator = BasicAuthenticator("key")
    assert authenticator.refresh_credentials() is False
    assert asyncio.run(authenticator.arefresh_credentials()) is False
    assert authenticator.establish_credentials() is None


def test_basic_authenticator_requires_key() -> None:
    with pytest.raises(AsanaConfigurationError):
        BasicAuthenticator("")


def test_token_authenticator_without_token_leaves_request_alone() -> None:
    request = _request()
    TokenAuthenticator().authenticate_request(request)
    assert "Authorization" not in request.headers


def test_token_refresh_stores_new_token() -> None:
    authenticator = TokenAuthenticator("old", refresh=lambda: "new")

    assert authenticator.refresh_credentials() is True
    request = _request()
    authenticator.authenticate_request(request)
    assert request.headers["Authorization"] == "Bearer new"


def test_token_refresh_returning_nothing_keeps_old_token() -> None:
    authenticator = TokenAuthenticator("old", refresh=lambda: None)

    assert authenticator.refresh_credentials() is False
    assert authenticator.access_token == "old"


def test_async_refresher_needs_async_refresh() -> None:
    async def refresh() -> str:
        return "new"

    authenticator = TokenAuthenticator("old", refresh=refresh)

    with pytest.raises(TypeError):
        authenticator.refresh_credentials()
    assert asyncio.run(authenticator.arefresh_credentials()) is True
    assert authenticator.access_token == "new"


def test_establish_without_any_source_is_a_configuration_error() -> None:
    with pytest.raises(AsanaConfigurationError):
        TokenAuthenticator().establish_credentials()
    with pytest.raises(AsanaConfigurationError):
        asyncio.run(TokenAuthenticator().aestablish_credentials())


def test_establish_fails_when_refresh_yields_nothing() -> None:
    with pytest.raises(AsanaError, match="Unable to establish"):
        TokenAuthenticator(refresh=lambda: None).establish_credentials()


def test_establish_is_noop_with_token() -> None:
    calls: list[int] = []
    authenticator = TokenAuthenticator("held", refresh=lambda: calls.append(1))

    authenticator.establish_credentials()
    assert calls == []
