"""Client library diagnostics sent with every request."""

from __future__ import annotations

import platform
from dataclasses import asdict, dataclass
from typing import Protocol
from urllib.parse import urlencode

from .version import VERSION

CLIENT_LIB_HEADER = "X-Asana-Client-Lib"


@dataclass(frozen=True)
class VersionInfo:
    version: str
    language: str
    language_version: str | None = None
    os: str | None = None
    os_version: str | None = None

    def header_value(self) -> str:
        """Query-string encode the populated fields, in declaration order."""
        return urlencode({key: value for key, value in asdict(self).items() if value})


class DiagnosticsCollector(Protocol):
    def collect(self) -> VersionInfo: ...


class RuntimeDiagnostics:
    """Report the interpreter and operating system we are running on."""

    def collect(self) -> VersionInfo:
        return VersionInfo(
            version=VERSION,
            language="Python",
            language_version=platform.python_version(),
            os=platform.system(),
            os_version=platform.release(),
        )


class MinimalDiagnostics:
    """Report only the library version, for sandboxed runtimes like Pyodide."""

    def collect(self) -> VersionInfo:
        return VersionInfo(version=VERSION, language="Python")
