"""Per-call overrides for the Asana dispatchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class DispatchOptions:
    """Options for handling one dispatched call.

    Only ``headers`` is honoured; they take precedence over the dispatcher's
    default headers for this call and are not remembered afterwards.
    """

    headers: Mapping[str, str] | None = None
