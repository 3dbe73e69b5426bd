from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from services.devices import DeviceDirectory
from services.errors import AuthenticationRequired, DeviceNotFound, RemoteUnavailable
from services.remote import RemoteCaller, RemoteResponse


log = logging.getLogger("alexa-api")

DEVICES_PATH = "/api/devices/device"
PLAYER_PATH = "/api/np/player?deviceSerialNumber={{serialNumber}}&deviceType={{deviceType}}"
COMMAND_PATH = "/api/np/command?deviceSerialNumber={{serialNumber}}&deviceType={{deviceType}}"

SIGNIN_MARKER = "/ap/signin"


class AlexaCommands:
    """Device and playback operations exposed by the REST routers."""

    def __init__(
        self,
        *,
        remote: RemoteCaller,
        reauthenticate: Callable[[], Awaitable[None]],
        human_url: Optional[str] = None,
        cache_lifetime: float = 30 * 60,
    ) -> None:
        self._remote = remote
        self._reauthenticate = reauthenticate
        self._human_url = human_url
        self._reauth_task: Optional[asyncio.Task] = None
        self.directory = DeviceDirectory(fetch_devices=self._fetch_devices, ttl=cache_lifetime)

    @staticmethod
    def is_auth_failure(response: RemoteResponse) -> bool:
        return response.status in {401, 403} or SIGNIN_MARKER in (response.url or "")

    def _schedule_reauth(self) -> None:
        if self._reauth_task and not self._reauth_task.done():
            return

        async def _run() -> None:
            try:
                await self._reauthenticate()
            except Exception:
                log.exception("Re-authentication failed to start")

        self._reauth_task = asyncio.create_task(_run())

    def _checked(self, response: RemoteResponse, what: str, *, expect_data: bool = True) -> RemoteResponse:
        if self.is_auth_failure(response):
            self._schedule_reauth()
            raise AuthenticationRequired("Alexa session expired; signing in again", human_url=self._human_url)
        if response.status >= 400:
            raise RemoteUnavailable(f"{what} failed with HTTP {response.status}")
        if expect_data and not isinstance(response.data, dict):
            raise RemoteUnavailable(f"{what} returned an unexpected response")
        return response

    async def _fetch_devices(self) -> list[dict]:
        response = self._checked(await self._remote.call("GET", DEVICES_PATH), "Device list")
        devices = response.data.get("devices")
        if not isinstance(devices, list):
            raise RemoteUnavailable("Device list returned an unexpected response")
        return devices

    async def list_devices(self, force_update: bool = False) -> dict[str, dict]:
        return await self.directory.devices(force_update)

    async def get_device(self, device_id: str, force_update: bool = False) -> dict:
        device = await self.directory.device(device_id, force_update)
        if device is None:
            raise DeviceNotFound(device_id)
        return device

    async def player_state(self, device_id: str) -> dict:
        device = await self.get_device(device_id)
        response = self._checked(await self._remote.call("GET", PLAYER_PATH, variables=device), "Player status")
        info = response.data.get("playerInfo")
        return info if isinstance(info, dict) else {}

    async def command(self, device_id: str, payload: dict) -> RemoteResponse:
        device = await self.get_device(device_id)
        log.info("%s -> %s", payload.get("type"), device_id)
        response = await self._remote.call("POST", COMMAND_PATH, body=payload, variables=device)
        return self._checked(response, str(payload.get("type") or "Command"), expect_data=False)

    async def play(self, device_id: str) -> dict:
        await self.command(device_id, {"type": "PlayCommand"})
        return await self.player_state(device_id)

    async def pause(self, device_id: str) -> dict:
        await self.command(device_id, {"type": "PauseCommand"})
        return await self.player_state(device_id)

    async def volume(self, device_id: str) -> Any:
        return (await self.player_state(device_id)).get("volume")

    async def set_volume(self, device_id: str, level: int) -> Any:
        await self.command(device_id, {"type": "VolumeLevelCommand", "volumeLevel": int(level)})
        return await self.volume(device_id)

    async def passthrough(self, method: str, path: str, body: Any = None) -> RemoteResponse:
        response = await self._remote.call(method, path, body=body)
        if self.is_auth_failure(response):
            self._schedule_reauth()
        return response
