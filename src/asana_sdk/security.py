"""Helpers that keep credentials safe and interpret server hints."""

from __future__ import annotations

import datetime as _dt
import math
from email.utils import parsedate_to_datetime
from typing import Mapping
from urllib.parse import urlparse


CREDENTIAL_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy ``headers`` with credential values masked, for debug logging."""
    return {key: "[REDACTED]" if key.lower() in CREDENTIAL_HEADERS else value for key, value in headers.items()}


def validate_base_url(url: str, *, allow_http: bool = False) -> None:
    """Refuse an Asana base URL we should not send credentials to.

    Plain http is only accepted for loopback hosts (a local mock of the API)
    or when the caller opts in with ``allow_http``.
    """
    if "\x00" in url:
        raise ValueError("Asana base URL contains a NUL byte")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"Asana base URL must be an absolute http(s) URL, got {url!r}")
    if parsed.scheme == "https" or allow_http:
        return
    if (parsed.hostname or "").lower() not in LOOPBACK_HOSTS:
        raise ValueError("Non-HTTPS Asana base URL requires allow_http=True")


def parse_retry_after(raw: str | None) -> float | None:
    """Seconds to wait according to a ``Retry-After`` header.

    Accepts delta-seconds or an HTTP date; returns None when the value is
    missing, unparseable or not finite.
    """
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()

    try:
        seconds = float(raw)
    except ValueError:
        try:
            when = parsedate_to_datetime(raw)
        except (ValueError, TypeError, OverflowError):
            return None
        if when is None:
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=_dt.timezone.utc)
        seconds = (when - _dt.datetime.now(_dt.timezone.utc)).total_seconds()

    if not math.isfinite(seconds):
        return None
    return max(0.0, seconds)
