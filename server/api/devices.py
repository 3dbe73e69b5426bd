from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Path
from fastapi.responses import RedirectResponse


DEVICE_ID_PATTERN = r"^[a-z0-9-]+$"


def create_devices_router(*, commands: Any) -> APIRouter:
    router = APIRouter()

    @router.get("/", include_in_schema=False)
    async def root_redirect() -> RedirectResponse:
        return RedirectResponse("/devices", status_code=302)

    @router.get("/devices")
    async def list_devices(refresh: bool = False) -> dict:
        return await commands.list_devices(force_update=refresh)

    @router.get("/device/{device_id}")
    async def get_device(device_id: str = Path(pattern=DEVICE_ID_PATTERN)) -> dict:
        return await commands.get_device(device_id)

    @router.get("/device/{device_id}/status")
    async def device_status(device_id: str = Path(pattern=DEVICE_ID_PATTERN)) -> dict:
        return await commands.player_state(device_id)

    @router.get("/device/{device_id}/play")
    async def device_play(device_id: str = Path(pattern=DEVICE_ID_PATTERN)) -> dict:
        return await commands.play(device_id)

    @router.get("/device/{device_id}/pause")
    async def device_pause(device_id: str = Path(pattern=DEVICE_ID_PATTERN)) -> dict:
        return await commands.pause(device_id)

    @router.get("/device/{device_id}/volume")
    async def device_volume(device_id: str = Path(pattern=DEVICE_ID_PATTERN)) -> Any:
        return await commands.volume(device_id)

    @router.get("/device/{device_id}/volume/{level}")
    async def device_set_volume(
        device_id: str = Path(pattern=DEVICE_ID_PATTERN),
        level: int = Path(ge=0, le=100),
    ) -> Any:
        return await commands.set_volume(device_id, level)

    return router
