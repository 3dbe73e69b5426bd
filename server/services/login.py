from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from services.errors import AuthenticationRequired, CaptchaRequired, PageLoadFailed


log = logging.getLogger("alexa-api")

SIGNIN_MARKER = "www.amazon.com/ap/signin"
LANDING_MARKER = "www.amazon.com/spa/index.html"
APP_MARKER = "alexa.amazon.com/spa/"

SIGNIN_FORM = 'form[name="signIn"]'
CAPTCHA_FIELD = "#auth-captcha-guess"
CAPTCHA_IMAGE = "#auth-captcha-image"


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CHECKING_CAPTCHA = "checking_captcha"
    CAPTCHA_PENDING = "captcha_pending"
    LOGIN_SUBMITTED = "login_submitted"
    AUTHENTICATED = "authenticated"


class LoginFlow:
    """Drives the Amazon sign-in form from observed page loads.

    Navigations and form submissions are only signals to the browser; the
    next state is decided when the resulting page finishes loading. When the
    form shows a captcha the flow parks in ``CAPTCHA_PENDING`` until a human
    answers it through ``/human``.
    """

    def __init__(
        self,
        *,
        browser: Any,
        username: str,
        password: str,
        screenshot_path: Path,
        human_url: str,
        app_url: str = "https://alexa.amazon.com/",
    ) -> None:
        self._browser = browser
        self._username = username
        self._password = password
        self._screenshot_path = Path(screenshot_path)
        self._human_url = human_url
        self._app_url = app_url
        self._state = SessionState.UNAUTHENTICATED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def human_url(self) -> str:
        return self._human_url

    @property
    def screenshot_path(self) -> Path:
        return self._screenshot_path

    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def auth_error(self) -> AuthenticationRequired:
        if self._state is SessionState.CAPTCHA_PENDING:
            return CaptchaRequired(human_url=self._human_url)
        return AuthenticationRequired(human_url=self._human_url)

    async def start(self) -> None:
        async with self._lock:
            self._state = SessionState.UNAUTHENTICATED
            await self._navigate(self._app_url)

    async def reauthenticate(self) -> None:
        async with self._lock:
            if self._state is not SessionState.AUTHENTICATED:
                log.debug("Login already in progress (%s); not restarting", self._state.value)
                return
            log.warning("Alexa session lost; signing in again")
            self._state = SessionState.UNAUTHENTICATED
            await self._navigate(self._app_url)

    async def handle_page_load(self, url: str, ok: bool) -> None:
        if not ok:
            log.error("Load failed: %s", url)
            return
        async with self._lock:
            if SIGNIN_MARKER in url:
                await self._check_captcha()
            elif LANDING_MARKER in url:
                log.info("Signed in; opening %s", self._app_url)
                self._state = SessionState.AUTHENTICATED
                await self._navigate(self._app_url)
            elif APP_MARKER in url:
                if self._state is not SessionState.AUTHENTICATED:
                    log.info("Alexa session authenticated")
                self._state = SessionState.AUTHENTICATED

    async def submit_guess(self, guess: str) -> bool:
        async with self._lock:
            if self._state is not SessionState.CAPTCHA_PENDING:
                log.warning("Ignoring captcha guess; login state is %s", self._state.value)
                return False
            self._remove_screenshot()
            await self._submit_login(guess)
            return True

    async def _check_captcha(self) -> None:
        self._state = SessionState.CHECKING_CAPTCHA
        try:
            requires_captcha = await self._browser.has_selector(CAPTCHA_FIELD)
        except PageLoadFailed as exc:
            log.error("%s", exc.detail)
            return
        if not requires_captcha:
            await self._submit_login(None)
            return

        self._state = SessionState.CAPTCHA_PENDING
        log.warning("Anti-robot feature has been detected on the login form.")
        log.warning("Please open this URL in your browser to enter the captcha code:")
        log.warning("  %s", self._human_url)
        try:
            await self._browser.capture_selector(self._screenshot_path, CAPTCHA_IMAGE)
        except PageLoadFailed as exc:
            log.error("%s", exc.detail)

    async def _submit_login(self, guess: Optional[str]) -> None:
        fields: dict[str, Any] = {
            "email": self._username,
            "password": self._password,
            "rememberMe": True,
        }
        if guess:
            fields["guess"] = guess
        self._state = SessionState.LOGIN_SUBMITTED
        try:
            submitted = await self._browser.submit_form(SIGNIN_FORM, fields)
        except PageLoadFailed as exc:
            log.error("%s", exc.detail)
            return
        if not submitted:
            log.error("Sign-in form not found on %s", getattr(self._browser, "current_url", ""))

    async def _navigate(self, url: str) -> None:
        try:
            await self._browser.navigate(url)
        except PageLoadFailed as exc:
            log.error("%s", exc.detail)

    def _remove_screenshot(self) -> None:
        try:
            self._screenshot_path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("Could not remove %s: %s", self._screenshot_path, exc)
