"""Python client for the Asana REST API."""

from .auth import Authenticator, BasicAuthenticator, TokenAuthenticator
from .classifier import DEFAULT_CLASSIFIER, ErrorClassifier
from .diagnostics import MinimalDiagnostics, RuntimeDiagnostics, VersionInfo
from .dispatcher import AsyncDispatcher, AttemptState, Dispatcher
from .exceptions import (
    AsanaConfigurationError,
    AsanaError,
    AsanaHTTPError,
    AsanaTimeoutError,
    AsanaTransportError,
    Forbidden,
    InvalidRequest,
    NoAuthorization,
    NotFound,
    PremiumOnly,
    RateLimitEnforced,
    ServerError,
)
from .request_options import DispatchOptions
from .request_spec import RequestSpec
from .version import VERSION

__version__ = VERSION

__all__ = [
    "AsanaConfigurationError",
    "AsanaError",
    "AsanaHTTPError",
    "AsanaTimeoutError",
    "AsanaTransportError",
    "AsyncDispatcher",
    "AttemptState",
    "Authenticator",
    "BasicAuthenticator",
    "DEFAULT_CLASSIFIER",
    "DispatchOptions",
    "Dispatcher",
    "ErrorClassifier",
    "Forbidden",
    "InvalidRequest",
    "MinimalDiagnostics",
    "NoAuthorization",
    "NotFound",
    "PremiumOnly",
    "RateLimitEnforced",
    "RequestSpec",
    "RuntimeDiagnostics",
    "ServerError",
    "TokenAuthenticator",
    "VersionInfo",
]
