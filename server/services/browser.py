from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from services.errors import PageLoadFailed, RemoteUnavailable


log = logging.getLogger("alexa-api")

LoadHandler = Callable[[str, bool], Awaitable[None]]

_FILL_FORM_SCRIPT = """([selector, fields]) => {
    const form = document.querySelector(selector);
    if (!form) {
        return false;
    }
    for (const [name, value] of Object.entries(fields)) {
        const input = form.querySelector(`[name="${name}"]`);
        if (!input) {
            continue;
        }
        if (input.type === "checkbox" || input.type === "radio") {
            input.checked = !!value;
        } else {
            input.value = value;
        }
    }
    form.submit();
    return true;
}"""


@dataclass(frozen=True)
class FetchResult:
    status: int
    headers: dict[str, str]
    text: str
    url: str


class BrowserSession:
    """The one authenticated browser context shared by the whole process.

    Every page operation and every context-bound fetch runs under a single
    lock: the context has one cookie jar and one navigation state, so two
    operations in flight would corrupt each other.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: Optional[str] = None,
        viewport: Optional[dict] = None,
        load_images: bool = True,
        javascript_enabled: bool = True,
    ) -> None:
        self._headless = bool(headless)
        self._user_agent = user_agent
        self._viewport = dict(viewport) if viewport else None
        self._load_images = bool(load_images)
        self._javascript_enabled = bool(javascript_enabled)
        self._lock = asyncio.Lock()
        self._load_handlers: list[LoadHandler] = []
        self._last_navigation_status: Optional[int] = None
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None

    @property
    def started(self) -> bool:
        return self._page is not None

    @property
    def current_url(self) -> str:
        return self._page.url if self._page is not None else ""

    def on_load(self, handler: LoadHandler) -> None:
        self._load_handlers.append(handler)

    async def start(self) -> None:
        if self.started:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        context_options: dict[str, Any] = {"java_script_enabled": self._javascript_enabled}
        if self._user_agent:
            context_options["user_agent"] = self._user_agent
        if self._viewport:
            context_options["viewport"] = self._viewport
        self._context = await self._browser.new_context(**context_options)
        page = await self._context.new_page()
        if not self._load_images:
            await page.route("**/*", self._block_images)
        page.on("console", self._handle_console)
        page.on("response", self._handle_response)
        page.on("load", self._handle_load)
        self._page = page
        log.info("Browser session started (headless=%s)", self._headless)

    async def stop(self) -> None:
        page, context, browser, playwright = self._page, self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        for closer in (
            page.close if page else None,
            context.close if context else None,
            browser.close if browser else None,
            playwright.stop if playwright else None,
        ):
            if closer is None:
                continue
            try:
                await closer()
            except PlaywrightError as exc:
                log.debug("Browser shutdown step failed: %s", exc)

    @staticmethod
    async def _block_images(route: Any, request: Any) -> None:
        if request.resource_type == "image":
            await route.abort()
        else:
            await route.continue_()

    def _handle_console(self, message: Any) -> None:
        log.debug("[browser] %s", message.text)

    def _handle_response(self, response: Any) -> None:
        page = self._page
        if page is None or response.frame != page.main_frame:
            return
        if response.request.is_navigation_request():
            self._last_navigation_status = response.status

    async def _handle_load(self, page: Any) -> None:
        status = self._last_navigation_status
        ok = status is None or status < 400
        url = page.url
        log.debug("Page loaded: %s (status=%s)", url, status)
        for handler in list(self._load_handlers):
            try:
                await handler(url, ok)
            except Exception:
                log.exception("Page load handler failed for %s", url)

    def _require_page(self) -> Any:
        if self._page is None:
            raise PageLoadFailed("Browser session is not running")
        return self._page

    async def navigate(self, url: str) -> None:
        """Start a navigation; completion arrives through the load handlers."""
        page = self._require_page()
        async with self._lock:
            self._last_navigation_status = None
            try:
                await page.goto(url, wait_until="commit")
            except PlaywrightError as exc:
                raise PageLoadFailed(f"Navigation to {url} failed: {exc}") from exc

    async def has_selector(self, selector: str) -> bool:
        page = self._require_page()
        async with self._lock:
            try:
                return await page.query_selector(selector) is not None
            except PlaywrightError as exc:
                raise PageLoadFailed(f"Could not inspect page for {selector}: {exc}") from exc

    async def capture_selector(self, path: Path, selector: str) -> None:
        page = self._require_page()
        async with self._lock:
            try:
                await page.locator(selector).first.screenshot(path=str(path))
            except PlaywrightError as exc:
                raise PageLoadFailed(f"Could not capture {selector}: {exc}") from exc

    async def submit_form(self, selector: str, fields: dict[str, Any]) -> bool:
        page = self._require_page()
        async with self._lock:
            self._last_navigation_status = None
            try:
                return bool(await page.evaluate(_FILL_FORM_SCRIPT, [selector, fields]))
            except PlaywrightError as exc:
                raise PageLoadFailed(f"Could not submit {selector}: {exc}") from exc

    async def cookie(self, name: str) -> Optional[str]:
        if self._context is None:
            return None
        for entry in await self._context.cookies():
            if entry.get("name") == name:
                return entry.get("value")
        return None

    async def fetch(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        """Issue one request with the context's cookies; blocks until it completes."""
        if self._context is None:
            raise RemoteUnavailable("Browser session is not running")
        options: dict[str, Any] = {"method": method.upper(), "headers": headers or {}}
        if data is not None:
            options["data"] = data
        if timeout is not None:
            options["timeout"] = float(timeout) * 1000
        async with self._lock:
            try:
                response = await self._context.request.fetch(url, **options)
                text = await response.text()
            except PlaywrightError as exc:
                raise RemoteUnavailable(f"{method.upper()} {url} failed: {exc}") from exc
        return FetchResult(
            status=response.status,
            headers={k.lower(): v for k, v in response.headers.items()},
            text=text,
            url=response.url,
        )
