from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from services.errors import AlexaApiError, AuthenticationRequired


log = logging.getLogger("alexa-api")


async def alexa_error_handler(_: Request, exc: AlexaApiError) -> JSONResponse:
    content = {"detail": exc.detail}
    if isinstance(exc, AuthenticationRequired) and exc.human_url:
        content["human_url"] = exc.human_url
    if exc.status_code >= 500:
        log.warning("%s: %s", type(exc).__name__, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AlexaApiError, alexa_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
