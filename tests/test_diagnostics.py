from __future__ import annotations

import platform
from urllib.parse import parse_qs

import httpx

from asana_sdk import Dispatcher, MinimalDiagnostics, RuntimeDiagnostics, VersionInfo
from asana_sdk.diagnostics import CLIENT_LIB_HEADER
from asana_sdk.version import VERSION


def test_runtime_diagnostics_reports_platform(monkeypatch) -> None:
    monkeypatch.setattr(platform, "python_version", lambda: "3.12.1")
    monkeypatch.setattr(platform, "system", lambda: "Linux")
    monkeypatch.setattr(platform, "release", lambda: "6.1.0")

    info = RuntimeDiagnostics().collect()

    assert info == VersionInfo(
        version=VERSION,
        language="Python",
        language_version="3.12.1",
        os="Linux",
        os_version="6.1.0",
    )
    assert info.header_value() == f"version={VERSION}&language=Python&language_version=3.12.1&os=Linux&os_version=6.1.0"


def test_minimal_diagnostics_omits_runtime_fields() -> None:
    assert MinimalDiagnostics().collect().header_value() == f"version={VERSION}&language=Python"


def test_header_value_is_query_encoded() -> None:
    info = VersionInfo(version="1.0", language="Python", os="Windows NT", os_version="10.0/22H2")
    assert parse_qs(info.header_value())["os"] == ["Windows NT"]
    assert "os=Windows+NT" in info.header_value()


class CountingDiagnostics:
    def __init__(self) -> None:
        self.calls = 0

    def collect(self) -> VersionInfo:
        self.calls += 1
        return VersionInfo(version="9.9.9", language="Python")


def test_version_info_is_collected_once_per_dispatcher() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    diagnostics = CountingDiagnostics()
    dispatcher = Dispatcher(
        base_url="https://app.asana.test/",
        diagnostics=diagnostics,
        httpx_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    dispatcher.get("/users/me")
    dispatcher.delete("/tasks/1")

    assert diagnostics.calls == 1
    assert [request.headers[CLIENT_LIB_HEADER] for request in seen] == ["version=9.9.9&language=Python"] * 2
