from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response


log = logging.getLogger("alexa-api")

PASSTHROUGH_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _request_body(request: Request) -> Any:
    content_type = (request.headers.get("content-type") or "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        # Uploaded files have no JSON form; only text fields are forwarded.
        return {key: value for key, value in form.items() if isinstance(value, str)} or None
    raw = await request.body()
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    if "json" in content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


def create_proxy_router(*, commands: Any) -> APIRouter:
    """Catch-all that forwards unmatched requests to the Alexa API. Include it last."""
    router = APIRouter()

    @router.api_route("/{path:path}", methods=PASSTHROUGH_METHODS, include_in_schema=False)
    async def passthrough(path: str, request: Request) -> Response:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        log.debug("%s %s", request.method, target)
        body = await _request_body(request)
        result = await commands.passthrough(request.method, target, body)
        if result.has_data:
            response: Response = JSONResponse(result.data, status_code=result.status)
            if result.content_type:
                response.headers["content-type"] = result.content_type
            return response
        return Response(
            content=result.text,
            status_code=result.status,
            media_type=result.content_type or "text/plain",
        )

    return router
