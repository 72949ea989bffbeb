"""Synchronous and asynchronous dispatchers for the Asana API.

A dispatcher turns one logical call (``get``, ``post``, ``put``, ``delete``)
into one or more HTTP attempts. Between attempts it may wait out a rate limit
or ask for fresh credentials; everything else either resolves the call with
the response payload or raises a single typed error.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
import os
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, TypeVar, Union

import httpx

from .auth import Authenticator
from .classifier import DEFAULT_CLASSIFIER, ErrorClassifier
from .diagnostics import CLIENT_LIB_HEADER, DiagnosticsCollector, RuntimeDiagnostics, VersionInfo
from .exceptions import (
    AsanaConfigurationError,
    AsanaTimeoutError,
    AsanaTransportError,
    NoAuthorization,
    RateLimitEnforced,
)
from .request_options import DispatchOptions
from .request_spec import RequestSpec
from .security import sanitize_headers, validate_base_url

logger = logging.getLogger(__name__)

UnauthorizedHandler = Callable[[], Union[bool, Awaitable[bool]]]

_USE_DEFAULT_HANDLER: Any = object()

_D = TypeVar("_D", bound="_BaseDispatcher")


class AttemptState(enum.Enum):
    """Where one call's attempt loop stands.

    ATTEMPTING is the state while an exchange is in flight; every pass through
    the loop starts there and ``_classify`` moves it to one of the others.
    """

    ATTEMPTING = "attempting"
    RATE_LIMIT_WAIT = "rate_limit_wait"
    REAUTH_PENDING = "reauth_pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _coerce_query_params(query: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if query is None:
        return None
    normalized: dict[str, Any] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized[key] = ["" if v is None else v for v in value]
            continue
        if isinstance(value, datetime):
            normalized[key] = value.isoformat()
            continue
        normalized[key] = value
    return normalized


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(key): str(value) for key, value in headers.items()}


def _parse_payload(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    content_type = response.headers.get("content-type", "").lower()
    if "json" not in content_type:
        return response.text
    try:
        return response.json()
    except ValueError:
        return response.text


class _BaseDispatcher:
    API_PATH = "api/1.0"
    default_base_url = "https://app.asana.com/"
    # Added to the server's retry-after so we don't come back a moment early.
    rate_limit_margin = 0.5

    def __init__(
        self,
        *,
        authenticator: Authenticator | None = None,
        base_url: str | None = None,
        retry_on_rate_limit: bool = False,
        default_headers: Mapping[str, str] | None = None,
        handle_unauthorized: UnauthorizedHandler | None = _USE_DEFAULT_HANDLER,
        request_timeout: float | None = None,
        default_proxy: str | None = None,
        diagnostics: DiagnosticsCollector | None = None,
        classifier: ErrorClassifier | None = None,
        allow_http: bool = False,
        base_url_env_var: str = "ASANA_BASE_URL",
    ) -> None:
        base_url = base_url or os.getenv(base_url_env_var) or self.default_base_url
        validate_base_url(base_url, allow_http=allow_http)
        self.base_url = base_url.rstrip("/") + "/"
        self.authenticator = authenticator
        self.retry_on_rate_limit = retry_on_rate_limit
        self.default_headers = _normalize_headers(default_headers)
        if handle_unauthorized is _USE_DEFAULT_HANDLER:
            handle_unauthorized = self.maybe_reauthorize
        self.handle_unauthorized = handle_unauthorized
        self.request_timeout = request_timeout
        self.default_proxy = default_proxy
        self.diagnostics = diagnostics or RuntimeDiagnostics()
        self.classifier = classifier or DEFAULT_CLASSIFIER
        self._cached_version_info: VersionInfo | None = None

        self._client_kwargs: dict[str, Any] = {
            "timeout": request_timeout,
            "follow_redirects": True,
            "trust_env": False,
        }
        if default_proxy:
            self._client_kwargs["proxy"] = default_proxy

    def _note_injected_client(self, httpx_client: object | None) -> None:
        if httpx_client is not None and self.default_proxy:
            logger.debug(
                "Ignoring default_proxy %s: the injected httpx client keeps its own proxy settings",
                self.default_proxy,
            )

    def maybe_reauthorize(self) -> Union[bool, Awaitable[bool]]:
        raise NotImplementedError

    def url(self, path: str) -> str:
        return self.base_url + self.API_PATH + path

    def set_authenticator(self: _D, authenticator: Authenticator | None) -> _D:
        self.authenticator = authenticator
        return self

    def _require_authenticator(self) -> Authenticator:
        if self.authenticator is None:
            raise AsanaConfigurationError("No authenticator configured for dispatcher")
        return self.authenticator

    @property
    def version_info(self) -> VersionInfo:
        if self._cached_version_info is None:
            self._cached_version_info = self.diagnostics.collect()
        return self._cached_version_info

    def _get_request(self, path: str, query: Mapping[str, Any] | None) -> RequestSpec:
        return RequestSpec(
            method="GET",
            url=self.url(path),
            headers={"Accept": "application/json"},
            params=_coerce_query_params(query),
        )

    def _body_request(self, method: str, path: str, data: Any) -> RequestSpec:
        return RequestSpec(
            method=method,
            url=self.url(path),
            headers={"Accept": "application/json"},
            json={"data": data},
        )

    def _delete_request(self, path: str) -> RequestSpec:
        return RequestSpec(method="DELETE", url=self.url(path), headers={"Accept": "application/json"})

    def _apply_defaults(self, request: RequestSpec) -> None:
        if self.request_timeout is not None:
            request.timeout = self.request_timeout

    def _prepare_attempt(self, request: RequestSpec, options: DispatchOptions, attempt: int) -> None:
        if self.authenticator is not None:
            self.authenticator.authenticate_request(request)
        headers = dict(request.headers)
        headers.update(self.default_headers)
        headers.update(_normalize_headers(options.headers))
        headers[CLIENT_LIB_HEADER] = self.version_info.header_value()
        request.headers = headers
        logger.debug(
            "Attempt %d: %s %s headers=%s",
            attempt,
            request.method,
            request.url,
            sanitize_headers(request.headers),
        )

    @staticmethod
    def _request_kwargs(request: RequestSpec) -> dict[str, Any]:
        return {
            "method": request.method,
            "url": request.url,
            "headers": request.headers,
            "params": request.params,
            "json": request.json,
            "content": request.content,
            "timeout": request.timeout if request.timeout is not None else httpx.USE_CLIENT_DEFAULT,
        }

    @staticmethod
    def _transport_error(exc: httpx.RequestError) -> AsanaTransportError:
        if isinstance(exc, httpx.TimeoutException):
            return AsanaTimeoutError("Request timed out", cause=exc)
        return AsanaTransportError(f"Transport error: {exc}", cause=exc)

    def _classify(self, response: httpx.Response) -> tuple[AttemptState, Any]:
        """Decide what the attempt loop does next with ``response``.

        Returns the next state with either the payload (SUCCEEDED) or the
        classified error that caused every other state.
        """
        payload = _parse_payload(response)
        error = self.classifier.build(response.status_code, payload, response.headers)
        if error is None:
            if response.status_code >= 400:
                logger.warning(
                    "Status %d for %s %s has no error mapping; returning the payload as a success",
                    response.status_code,
                    response.request.method,
                    response.request.url,
                )
            return AttemptState.SUCCEEDED, payload
        if isinstance(error, RateLimitEnforced) and self.retry_on_rate_limit:
            return AttemptState.RATE_LIMIT_WAIT, error
        if isinstance(error, NoAuthorization) and self.handle_unauthorized:
            return AttemptState.REAUTH_PENDING, error
        return AttemptState.FAILED, error

    def _rate_limit_delay(self, error: RateLimitEnforced) -> float:
        wait = error.retry_after_seconds + self.rate_limit_margin
        logger.info("Rate limited; retrying in %.2f seconds", wait)
        return wait

    @staticmethod
    def _log_handler_failure() -> None:
        logger.warning("Unauthorized handler failed; raising the original error", exc_info=True)


class Dispatcher(_BaseDispatcher):
    """Blocking dispatcher backed by ``httpx.Client``."""

    def __init__(
        self,
        *,
        authenticator: Authenticator | None = None,
        base_url: str | None = None,
        retry_on_rate_limit: bool = False,
        default_headers: Mapping[str, str] | None = None,
        handle_unauthorized: UnauthorizedHandler | None = _USE_DEFAULT_HANDLER,
        request_timeout: float | None = None,
        default_proxy: str | None = None,
        diagnostics: DiagnosticsCollector | None = None,
        classifier: ErrorClassifier | None = None,
        httpx_client: httpx.Client | None = None,
        allow_http: bool = False,
    ) -> None:
        super().__init__(
            authenticator=authenticator,
            base_url=base_url,
            retry_on_rate_limit=retry_on_rate_limit,
            default_headers=default_headers,
            handle_unauthorized=handle_unauthorized,
            request_timeout=request_timeout,
            default_proxy=default_proxy,
            diagnostics=diagnostics,
            classifier=classifier,
            allow_http=allow_http,
        )
        self._note_injected_client(httpx_client)
        self._httpx = httpx_client or httpx.Client(**self._client_kwargs)

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._httpx.close()

    def maybe_reauthorize(self) -> bool:
        """Ask the authenticator for fresh credentials, if there is one."""
        if self.authenticator is None:
            return False
        return self.authenticator.refresh_credentials()

    def authorize(self) -> None:
        self._require_authenticator().establish_credentials()

    def dispatch(self, request: RequestSpec, options: DispatchOptions | None = None) -> Any:
        options = options or DispatchOptions()
        self._apply_defaults(request)

        attempt = 0
        while True:
            attempt += 1
            self._prepare_attempt(request, options, attempt)
            try:
                response = self._httpx.request(**self._request_kwargs(request))
            except httpx.RequestError as exc:
                raise self._transport_error(exc) from exc

            state, outcome = self._classify(response)
            logger.debug("Attempt %d: %s -> %s", attempt, AttemptState.ATTEMPTING.name, state.name)
            if state is AttemptState.SUCCEEDED:
                return outcome
            if state is AttemptState.RATE_LIMIT_WAIT:
                time.sleep(self._rate_limit_delay(outcome))
                continue
            if state is AttemptState.REAUTH_PENDING and self._reauthorize():
                continue
            raise outcome

    def _reauthorize(self) -> bool:
        try:
            result = self.handle_unauthorized()
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise TypeError("handle_unauthorized returned an awaitable; use AsyncDispatcher")
            return bool(result)
        except Exception:
            self._log_handler_failure()
            return False

    def get(self, path: str, query: Mapping[str, Any] | None = None, options: DispatchOptions | None = None) -> Any:
        return self.dispatch(self._get_request(path, query), options)

    def post(self, path: str, data: Any, options: DispatchOptions | None = None) -> Any:
        return self.dispatch(self._body_request("POST", path, data), options)

    def put(self, path: str, data: Any, options: DispatchOptions | None = None) -> Any:
        return self.dispatch(self._body_request("PUT", path, data), options)

    def delete(self, path: str, options: DispatchOptions | None = None) -> Any:
        return self.dispatch(self._delete_request(path), options)


class AsyncDispatcher(_BaseDispatcher):
    """Asynchronous dispatcher backed by ``httpx.AsyncClient``.

    Any number of calls may run concurrently; each has its own attempt loop
    and its own RequestSpec.
    """

    def __init__(
        self,
        *,
        authenticator: Authenticator | None = None,
        base_url: str | None = None,
        retry_on_rate_limit: bool = False,
        default_headers: Mapping[str, str] | None = None,
        handle_unauthorized: UnauthorizedHandler | None = _USE_DEFAULT_HANDLER,
        request_timeout: float | None = None,
        default_proxy: str | None = None,
        diagnostics: DiagnosticsCollector | None = None,
        classifier: ErrorClassifier | None = None,
        httpx_client: httpx.AsyncClient | None = None,
        allow_http: bool = False,
    ) -> None:
        super().__init__(
            authenticator=authenticator,
            base_url=base_url,
            retry_on_rate_limit=retry_on_rate_limit,
            default_headers=default_headers,
            handle_unauthorized=handle_unauthorized,
            request_timeout=request_timeout,
            default_proxy=default_proxy,
            diagnostics=diagnostics,
            classifier=classifier,
            allow_http=allow_http,
        )
        self._note_injected_client(httpx_client)
        self._httpx = httpx_client or httpx.AsyncClient(**self._client_kwargs)

    async def __aenter__(self) -> "AsyncDispatcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._httpx.aclose()

    async def maybe_reauthorize(self) -> bool:
        """Ask the authenticator for fresh credentials, if there is one."""
        if self.authenticator is None:
            return False
        return await self.authenticator.arefresh_credentials()

    def authorize(self) -> Awaitable[None]:
        """Return an awaitable that establishes credentials.

        Raises AsanaConfigurationError right away, without creating the
        awaitable, when no authenticator is configured.
        """
        return self._require_authenticator().aestablish_credentials()

    async def dispatch(self, request: RequestSpec, options: DispatchOptions | None = None) -> Any:
        options = options or DispatchOptions()
        self._apply_defaults(request)

        attempt = 0
        while True:
            attempt += 1
            self._prepare_attempt(request, options, attempt)
            try:
                response = await self._httpx.request(**self._request_kwargs(request))
            except httpx.RequestError as exc:
                raise self._transport_error(exc) from exc

            state, outcome = self._classify(response)
            logger.debug("Attempt %d: %s -> %s", attempt, AttemptState.ATTEMPTING.name, state.name)
            if state is AttemptState.SUCCEEDED:
                return outcome
            if state is AttemptState.RATE_LIMIT_WAIT:
                await asyncio.sleep(self._rate_limit_delay(outcome))
                continue
            if state is AttemptState.REAUTH_PENDING and await self._reauthorize():
                continue
            raise outcome

    async def _reauthorize(self) -> bool:
        try:
            result = self.handle_unauthorized()
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception:
            self._log_handler_failure()
            return False

    async def get(self, path: str, query: Mapping[str, Any] | None = None, options: DispatchOptions | None = None) -> Any:
        return await self.dispatch(self._get_request(path, query), options)

    async def post(self, path: str, data: Any, options: DispatchOptions | None = None) -> Any:
        return await self.dispatch(self._body_request("POST", path, data), options)

    async def put(self, path: str, data: Any, options: DispatchOptions | None = None) -> Any:
        return await self.dispatch(self._body_request("PUT", path, data), options)

    async def delete(self, path: str, options: DispatchOptions | None = None) -> Any:
        return await self.dispatch(self._delete_request(path), options)
