"""Authenticators that decorate outgoing requests with credentials.

A dispatcher only relies on the ``Authenticator`` interface: it calls
``authenticate_request`` before every attempt, ``establish_credentials`` from
``authorize()`` and ``refresh_credentials`` when a request comes back
unauthorized. Each credential method has an ``a``-prefixed coroutine twin used
by :class:`~asana_sdk.dispatcher.AsyncDispatcher`; by default it defers to
the blocking version.
"""

from __future__ import annotations

import base64
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from .exceptions import AsanaConfigurationError, AsanaError
from .request_spec import RequestSpec

logger = logging.getLogger(__name__)

TokenRefresher = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class Authenticator(ABC):
    """Core authentication interface."""

    @abstractmethod
    def authenticate_request(self, request: RequestSpec) -> None:
        """Add credentials to ``request`` in place."""

    def establish_credentials(self) -> None:
        """Make sure credentials are available, raising if that is impossible."""
        return None

    def refresh_credentials(self) -> bool:
        """Try to obtain fresh credentials.

        :return: True if the credentials changed and a request is worth retrying.
        """
        return False

    async def aestablish_credentials(self) -> None:
        self.establish_credentials()

    async def arefresh_credentials(self) -> bool:
        return self.refresh_credentials()


class BasicAuthenticator(Authenticator):
    """Authenticate with an API key (or personal access token) over basic auth."""

    def __init__(self, api_key: str) -> None:
        if not api_key:
            raise AsanaConfigurationError("api_key is required")
        self.api_key = api_key

    def authenticate_request(self, request: RequestSpec) -> None:
        encoded = base64.b64encode(f"{self.api_key}:".encode()).decode("ascii")
        request.headers["Authorization"] = f"Basic {encoded}"


class TokenAuthenticator(Authenticator):
    """Authenticate with a bearer token.

    ``refresh`` is an optional callable returning a new access token (or None
    when no token could be obtained). It may be a coroutine function, in which
    case only the async credential methods can use it.
    """

    def __init__(self, access_token: str | None = None, *, refresh: TokenRefresher | None = None) -> None:
        self.access_token = access_token
        self.refresh = refresh

    def authenticate_request(self, request: RequestSpec) -> None:
        if self.access_token:
            request.headers["Authorization"] = f"Bearer {self.access_token}"

    def _store_token(self, token: str | None) -> bool:
        if not token:
            return False
        self.access_token = token
        return True

    def _check_can_establish(self) -> None:
        if self.refresh is None:
            raise AsanaConfigurationError("No access token and no way to refresh one")

    def establish_credentials(self) -> None:
        if self.access_token:
            return
        self._check_can_establish()
        if not self.refresh_credentials():
            raise AsanaError("Unable to establish credentials")

    async def aestablish_credentials(self) -> None:
        if self.access_token:
            return
        self._check_can_establish()
        if not await self.arefresh_credentials():
            raise AsanaError("Unable to establish credentials")

    def refresh_credentials(self) -> bool:
        if self.refresh is None:
            return False
        token = self.refresh()
        if inspect.isawaitable(token):
            if inspect.iscoroutine(token):
                token.close()
            raise TypeError("refresh returned an awaitable; use arefresh_credentials")
        refreshed = self._store_token(token)
        logger.debug("Access token refresh %s", "succeeded" if refreshed else "returned nothing")
        return refreshed

    async def arefresh_credentials(self) -> bool:
        if self.refresh is None:
            return False
        token = self.refresh()
        if inspect.isawaitable(token):
            token = await token
        refreshed = self._store_token(token)
        logger.debug("Access token refresh %s", "succeeded" if refreshed else "returned nothing")
        return refreshed
