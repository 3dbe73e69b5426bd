from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional
from urllib.parse import quote, urlparse

from services.errors import AuthenticationRequired


log = logging.getLogger("alexa-api")

_TEMPLATE_RE = re.compile(r"\{\{\s*(.+?)\s*\}\}")
_ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class RemoteResponse:
    status: int
    text: str
    content_type: Optional[str] = None
    data: Any = None
    url: str = ""

    @property
    def has_data(self) -> bool:
        return self.data is not None


def render(template: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Replace ``{{ name }}`` placeholders; unknown names render empty."""
    if not isinstance(variables, Mapping):
        return template

    def _sub(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else quote(str(value), safe="")

    return _TEMPLATE_RE.sub(_sub, template)


def parse_body(text: str, content_type: Optional[str]) -> Any:
    if not content_type or "json" not in content_type.lower() or not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class RemoteCaller:
    """Raw transport to the Alexa web API through the signed-in browser context.

    No caching, no retries and no interpretation of status codes; callers
    get whatever the remote answered.
    """

    def __init__(
        self,
        *,
        browser: Any,
        api_url: str,
        app_url: str,
        is_authenticated: Callable[[], bool],
        auth_error: Callable[[], AuthenticationRequired],
        timeout: Optional[float] = 30.0,
    ) -> None:
        self._browser = browser
        self._api_url = api_url.rstrip("/")
        self._app_url = app_url
        self._is_authenticated = is_authenticated
        self._auth_error = auth_error
        self._timeout = timeout
        parsed = urlparse(app_url)
        self._origin = f"{parsed.scheme}://{parsed.netloc}" if parsed.netloc else app_url.rstrip("/")

    @property
    def api_url(self) -> str:
        return self._api_url

    def resolve_url(self, path: str, variables: Optional[Mapping[str, Any]] = None) -> str:
        url = path if _ABSOLUTE_URL_RE.match(path) else f"{self._api_url}{path if path.startswith('/') else '/' + path}"
        if variables:
            url = render(url, variables)
        return url

    async def _headers(self, has_json_body: bool) -> dict[str, str]:
        headers = {
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "Referer": f"{self._origin}/spa/index.html",
            "Origin": self._origin,
        }
        if has_json_body:
            headers["Content-Type"] = "application/json; charset=UTF-8"
        csrf = await self._browser.cookie("csrf")
        if csrf:
            headers["csrf"] = csrf
        return headers

    async def call(
        self,
        method: str,
        path: str,
        body: Any = None,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> RemoteResponse:
        if not self._is_authenticated():
            raise self._auth_error()

        method = (method or "GET").upper()
        url = self.resolve_url(path, variables)
        data: Any = body
        if isinstance(body, (dict, list)):
            data = json.dumps(body)
        log.debug("%s %s", method, url)

        result = await self._browser.fetch(
            method,
            url,
            data=data,
            headers=await self._headers(isinstance(body, (dict, list))),
            timeout=self._timeout,
        )
        content_type = result.headers.get("content-type")
        return RemoteResponse(
            status=result.status,
            text=result.text,
            content_type=content_type,
            data=parse_body(result.text, content_type),
            url=result.url,
        )
