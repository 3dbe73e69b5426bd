"""
Unit tests for the remote call executor.
"""
import json

import pytest

from services.browser import FetchResult
from services.errors import AuthenticationRequired, RemoteUnavailable
from services.remote import RemoteCaller, parse_body, render

from conftest import FakeBrowser


def make_caller(browser, authenticated=True):
    return RemoteCaller(
        browser=browser,
        api_url="https://pitangui.amazon.com",
        app_url="https://alexa.amazon.com/",
        is_authenticated=lambda: authenticated,
        auth_error=lambda: AuthenticationRequired(human_url="http://localhost:2539/human"),
        timeout=30,
    )


class TestRender:
    def test_substitutes_placeholders(self):
        url = render("/api/np/player?deviceSerialNumber={{serialNumber}}&deviceType={{ deviceType }}", {
            "serialNumber": "G090LF1",
            "deviceType": "A7WXQPH584YP",
        })
        assert url == "/api/np/player?deviceSerialNumber=G090LF1&deviceType=A7WXQPH584YP"

    def test_without_variables_returns_template(self):
        assert render("/api/{{x}}", None) == "/api/{{x}}"

    def test_unknown_name_renders_empty(self):
        assert render("/a?b={{missing}}", {}) == "/a?b="


class TestParseBody:
    def test_json_content_type(self):
        assert parse_body('{"a": 1}', "application/json;charset=UTF-8") == {"a": 1}

    def test_invalid_json_is_text_only(self):
        assert parse_body("<html>", "application/json") is None

    def test_other_content_type(self):
        assert parse_body('{"a": 1}', "text/html") is None


class TestRemoteCaller:
    def test_resolves_relative_and_absolute_urls(self):
        caller = make_caller(FakeBrowser())
        assert caller.resolve_url("/api/devices/device") == "https://pitangui.amazon.com/api/devices/device"
        assert caller.resolve_url("api/bootstrap") == "https://pitangui.amazon.com/api/bootstrap"
        assert caller.resolve_url("https://example.com/x") == "https://example.com/x"

    @pytest.mark.asyncio
    async def test_get_returns_parsed_json(self):
        browser = FakeBrowser()
        browser.fetch_result = FetchResult(
            status=200,
            headers={"content-type": "application/json"},
            text='{"devices": []}',
            url="https://pitangui.amazon.com/api/devices/device",
        )
        response = await make_caller(browser).call("get", "/api/devices/device")

        assert response.status == 200
        assert response.data == {"devices": []}
        assert response.content_type == "application/json"
        assert browser.fetches[0]["method"] == "GET"
        assert browser.fetches[0]["url"] == "https://pitangui.amazon.com/api/devices/device"
        assert browser.fetches[0]["timeout"] == 30

    @pytest.mark.asyncio
    async def test_post_serializes_body_and_sends_csrf(self):
        browser = FakeBrowser(cookies={"csrf": "12345"})
        browser.fetch_result = FetchResult(status=200, headers={"content-type": "text/plain"}, text="", url="")
        await make_caller(browser).call(
            "POST",
            "/api/np/command?deviceSerialNumber={{serialNumber}}",
            body={"type": "PlayCommand"},
            variables={"serialNumber": "G090LF1"},
        )

        sent = browser.fetches[0]
        assert sent["url"] == "https://pitangui.amazon.com/api/np/command?deviceSerialNumber=G090LF1"
        assert json.loads(sent["data"]) == {"type": "PlayCommand"}
        assert sent["headers"]["csrf"] == "12345"
        assert sent["headers"]["Content-Type"].startswith("application/json")
        assert sent["headers"]["Origin"] == "https://alexa.amazon.com"

    @pytest.mark.asyncio
    async def test_text_response_has_no_data(self):
        browser = FakeBrowser()
        browser.fetch_result = FetchResult(status=500, headers={"content-type": "text/html"}, text="oops", url="")
        response = await make_caller(browser).call("GET", "/api/x")
        assert response.status == 500
        assert response.text == "oops"
        assert not response.has_data

    @pytest.mark.asyncio
    async def test_fails_fast_when_not_authenticated(self):
        browser = FakeBrowser()
        with pytest.raises(AuthenticationRequired):
            await make_caller(browser, authenticated=False).call("GET", "/api/devices/device")
        assert browser.fetches == []

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self):
        class DownBrowser(FakeBrowser):
            async def fetch(self, *args, **kwargs):
                raise RemoteUnavailable("GET https://pitangui.amazon.com/api/x failed: net::ERR_TIMED_OUT")

        with pytest.raises(RemoteUnavailable):
            await make_caller(DownBrowser()).call("GET", "/api/x")
