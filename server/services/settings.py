from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from services.errors import ConfigError


log = logging.getLogger("alexa-api")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_12_5) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/59.0.3071.115 Safari/537.36"
)

DEFAULTS: dict = {
    "amazon": {},
    "server": {
        "host": "0.0.0.0",
        "port": 2539,
        "screenshot": "captcha.png",
    },
    "api": {
        "url": "https://pitangui.amazon.com",
        "app_url": "https://alexa.amazon.com/",
        "cache_lifetime": 30 * 60,
        "timeout": 30,
    },
    "browser": {
        "headless": True,
        "load_images": True,
        "javascript_enabled": True,
        "user_agent": DEFAULT_USER_AGENT,
        "viewport": {"width": 1280, "height": 720},
    },
}

# env var -> (section, key, cast)
ENV_OVERRIDES = {
    "ALEXA_USERNAME": ("amazon", "username", str),
    "ALEXA_PASSWORD": ("amazon", "password", str),
    "ALEXA_HOST": ("server", "host", str),
    "ALEXA_PORT": ("server", "port", int),
    "ALEXA_SCREENSHOT": ("server", "screenshot", str),
    "ALEXA_HEADLESS": ("browser", "headless", lambda raw: raw.strip().lower() not in {"0", "false", "no"}),
}


def merge_settings(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict:
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = merge_settings(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError:
        log.warning("%s is invalid; ignoring", path)
        return {}
    if not isinstance(data, dict):
        log.warning("%s must contain a JSON object; ignoring", path)
        return {}
    return data


def load_settings(path: Path, environ: Optional[Mapping[str, str]] = None) -> dict:
    """Merge defaults, the JSON config file and environment overrides."""
    env = os.environ if environ is None else environ
    settings = merge_settings(DEFAULTS, _read_config_file(path))
    for name, (section, key, cast) in ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw is None or not raw.strip():
            continue
        try:
            settings.setdefault(section, {})[key] = cast(raw)
        except ValueError:
            log.warning("Ignoring invalid %s=%r", name, raw)
    return settings


def require_credentials(settings: Mapping[str, Any]) -> tuple[str, str]:
    amazon = settings.get("amazon") or {}
    username = str(amazon.get("username") or "").strip()
    password = str(amazon.get("password") or "")
    if not username or not password:
        raise ConfigError("Amazon credentials not set")
    return username, password


def remote_timeout(settings: Mapping[str, Any]) -> float:
    """Seconds allowed for one Alexa API request; must be positive."""
    raw = (settings.get("api") or {}).get("timeout", DEFAULTS["api"]["timeout"])
    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"api.timeout must be a number, got {raw!r}") from None
    if timeout <= 0:
        raise ConfigError(f"api.timeout must be positive, got {raw!r}")
    return timeout
