import logging
import os
from pathlib import Path

from fastapi import FastAPI

from api.devices import create_devices_router
from api.errors import register_exception_handlers
from api.health import create_health_router
from api.human import create_human_router
from api.proxy import create_proxy_router
from services.browser import BrowserSession
from services.commands import AlexaCommands
from services.login import LoginFlow
from services.remote import RemoteCaller
from services.settings import load_settings, remote_timeout, require_credentials


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
log = logging.getLogger("alexa-api")

CONFIG_PATH = Path(os.getenv("CONFIG_PATH", "config.json"))
SETTINGS = load_settings(CONFIG_PATH)

SERVER_HOST = str(SETTINGS["server"]["host"])
SERVER_PORT = int(SETTINGS["server"]["port"])
SCREENSHOT_PATH = Path(SETTINGS["server"]["screenshot"])
API_URL = str(SETTINGS["api"]["url"])
APP_URL = str(SETTINGS["api"]["app_url"])
CACHE_LIFETIME = float(SETTINGS["api"]["cache_lifetime"])
REMOTE_TIMEOUT = remote_timeout(SETTINGS)
HUMAN_URL = f"http://{SERVER_HOST}:{SERVER_PORT}/human"

BROWSER_SETTINGS = SETTINGS["browser"]

browser = BrowserSession(
    headless=BROWSER_SETTINGS.get("headless", True),
    user_agent=BROWSER_SETTINGS.get("user_agent"),
    viewport=BROWSER_SETTINGS.get("viewport"),
    load_images=BROWSER_SETTINGS.get("load_images", True),
    javascript_enabled=BROWSER_SETTINGS.get("javascript_enabled", True),
)
login_flow = LoginFlow(
    browser=browser,
    username=str(SETTINGS["amazon"].get("username") or ""),
    password=str(SETTINGS["amazon"].get("password") or ""),
    screenshot_path=SCREENSHOT_PATH,
    human_url=HUMAN_URL,
    app_url=APP_URL,
)
browser.on_load(login_flow.handle_page_load)
remote = RemoteCaller(
    browser=browser,
    api_url=API_URL,
    app_url=APP_URL,
    is_authenticated=login_flow.is_authenticated,
    auth_error=login_flow.auth_error,
    timeout=REMOTE_TIMEOUT,
)
commands = AlexaCommands(
    remote=remote,
    reauthenticate=login_flow.reauthenticate,
    human_url=HUMAN_URL,
    cache_lifetime=CACHE_LIFETIME,
)

app = FastAPI(title="Alexa API Server", version="0.1.0")
register_exception_handlers(app)


@app.on_event("startup")
async def _startup_events() -> None:
    # Raises ConfigError, which aborts startup.
    require_credentials(SETTINGS)
    await browser.start()
    log.info("Starting webserver at http://%s:%s/", SERVER_HOST, SERVER_PORT)
    await login_flow.start()


@app.on_event("shutdown")
async def _shutdown_events() -> None:
    await browser.stop()


app.include_router(create_health_router(session_state=lambda: login_flow.state.value))
app.include_router(create_human_router(submit_guess=login_flow.submit_guess, screenshot_path=SCREENSHOT_PATH))
app.include_router(create_devices_router(commands=commands))
# Catch-all; must stay last.
app.include_router(create_proxy_router(commands=commands))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
