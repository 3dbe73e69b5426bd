from __future__ import annotations

from typing import Optional


class ConfigError(Exception):
    pass


class AlexaApiError(Exception):
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class DeviceNotFound(AlexaApiError):
    status_code = 404

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Unknown device: {device_id}")
        self.device_id = device_id


class RemoteUnavailable(AlexaApiError):
    status_code = 502


class PageLoadFailed(AlexaApiError):
    status_code = 502


class AuthenticationRequired(AlexaApiError):
    """The browser session is not (or no longer) signed in.

    Callers should retry once the login flow has completed; ``human_url``
    points at the captcha form when a human has to step in.
    """

    status_code = 503

    def __init__(self, detail: str = "Alexa session is not authenticated", *, human_url: Optional[str] = None) -> None:
        super().__init__(detail)
        self.human_url = human_url


class CaptchaRequired(AuthenticationRequired):
    def __init__(self, human_url: Optional[str] = None) -> None:
        super().__init__("Alexa login is waiting for a captcha answer", human_url=human_url)
