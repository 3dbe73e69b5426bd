from __future__ import annotations

import os
from pathlib import Path
from typing import Awaitable, Callable

from fastapi import APIRouter, Form, HTTPException
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse


CAPTCHA_FORM = (
    '<form method="post" action="/human">'
    '<div><img src="/captcha.png"></div>'
    '<div><input type="text" autocomplete="off" placeholder="Type the characters above" '
    'name="guess" autocorrect="off" autocapitalize="off" size="35"></div>'
    '<div><input type="submit" value="Submit"></div>'
    "</form>"
)


def create_human_router(
    *,
    submit_guess: Callable[[str], Awaitable[bool]],
    screenshot_path: Path,
) -> APIRouter:
    router = APIRouter()

    @router.get("/human", include_in_schema=False)
    async def human_form() -> HTMLResponse:
        return HTMLResponse(CAPTCHA_FORM, headers={"Cache-Control": "no-store"})

    @router.post("/human", include_in_schema=False)
    async def human_submit(guess: str = Form("")) -> PlainTextResponse:
        guess = guess.strip()
        if not guess:
            raise HTTPException(status_code=400, detail="guess is required")
        if not await submit_guess(guess):
            raise HTTPException(status_code=409, detail="No captcha is waiting for an answer")
        return PlainTextResponse("Thanks! You can close this window now.")

    @router.get("/captcha.png", include_in_schema=False)
    async def captcha_image() -> FileResponse:
        path = Path(screenshot_path)
        if not path.is_file() or not os.access(path, os.R_OK):
            raise HTTPException(status_code=404, detail="No captcha available")
        return FileResponse(path, media_type="image/png", headers={"Cache-Control": "no-store"})

    return router
