from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestSpec:
    """Everything needed to send one HTTP request to the API.

    A RequestSpec belongs to a single call. The attempt loop rewrites its
    headers (credentials, defaults, diagnostics) before every attempt, so it
    must not be shared between concurrent calls.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json: Any | None = None
    content: bytes | str | None = None
    timeout: float | None = None
