"""
Shared fixtures: in-memory stand-ins for the browser session and the Alexa API.
"""
from typing import Any, Optional

import pytest

from services.browser import FetchResult
from services.remote import RemoteResponse


class FakeBrowser:
    """Records every page operation instead of driving Chromium."""

    def __init__(self, *, captcha: bool = False, cookies: Optional[dict] = None):
        self.captcha = captcha
        self.cookies = cookies or {}
        self.navigations: list[str] = []
        self.submissions: list[tuple[str, dict]] = []
        self.captures: list[tuple[Any, str]] = []
        self.fetches: list[dict] = []
        self.fetch_result = FetchResult(status=200, headers={}, text="", url="")
        self.current_url = ""

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)

    async def has_selector(self, selector: str) -> bool:
        return self.captcha and selector == "#auth-captcha-guess"

    async def capture_selector(self, path, selector: str) -> None:
        self.captures.append((path, selector))
        path.write_bytes(b"\x89PNG\r\n\x1a\n")

    async def submit_form(self, selector: str, fields: dict) -> bool:
        self.submissions.append((selector, dict(fields)))
        return True

    async def cookie(self, name: str) -> Optional[str]:
        return self.cookies.get(name)

    async def fetch(self, method, url, *, data=None, headers=None, timeout=None) -> FetchResult:
        self.fetches.append({"method": method, "url": url, "data": data, "headers": headers, "timeout": timeout})
        return self.fetch_result


class FakeRemote:
    """Scripted RemoteCaller: maps (method, path) to canned responses."""

    def __init__(self):
        self.calls: list[dict] = []
        self.routes: dict[tuple[str, str], Any] = {}

    def reply(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    async def call(self, method, path, body=None, variables=None) -> RemoteResponse:
        self.calls.append({"method": method, "path": path, "body": body, "variables": variables})
        response = self.routes.get((method, path))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(body, variables)
        if response is None:
            return RemoteResponse(status=404, text="not found", content_type="text/plain")
        return response


def json_response(data: Any, status: int = 200, url: str = "") -> RemoteResponse:
    return RemoteResponse(status=status, text="", content_type="application/json", data=data, url=url)


SAMPLE_DEVICES = [
    {"accountName": "Living Room Echo", "serialNumber": "G090LF1", "deviceType": "A7WXQPH584YP"},
    {"accountName": "Kitchen!! Dot#2", "serialNumber": "G090LF2", "deviceType": "A3S5BH2HU6VAYF"},
]


@pytest.fixture
def fake_browser():
    return FakeBrowser()


@pytest.fixture
def fake_remote():
    return FakeRemote()
