from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, Optional


log = logging.getLogger("alexa-api")

_INVALID_ID_CHARS = re.compile(r"[^a-z0-9\-]")


def slugify(name: str) -> str:
    return _INVALID_ID_CHARS.sub("", (name or "").lower().replace(" ", "-"))


class DeviceDirectory:
    """Device descriptors keyed by slugified account name, refreshed after ``ttl`` seconds.

    The mapping is rebuilt off to the side and swapped in with a single
    assignment, so readers see either the previous directory or the new one.
    Only one refresh runs at a time; callers that queued behind it reuse its
    result instead of fetching again.
    """

    def __init__(
        self,
        *,
        fetch_devices: Callable[[], Awaitable[list[dict]]],
        ttl: float = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_devices = fetch_devices
        self._ttl = float(ttl)
        self._clock = clock
        self._devices: dict[str, dict] = {}
        self._fetched_at: Optional[float] = None
        self._epoch = 0
        self._refresh_lock = asyncio.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def fetched_at(self) -> Optional[float]:
        return self._fetched_at

    def expires_in(self) -> float:
        if self._fetched_at is None:
            return 0.0
        return max(0.0, self._ttl - (self._clock() - self._fetched_at))

    def is_stale(self) -> bool:
        return not self._devices or self.expires_in() <= 0

    async def devices(self, force_update: bool = False) -> dict[str, dict]:
        if not force_update and not self.is_stale():
            log.debug("Using device cache. Device cache expires in %.0f seconds.", self.expires_in())
            return self._devices

        epoch = self._epoch
        async with self._refresh_lock:
            # Someone refreshed while we waited for the lock.
            if self._epoch != epoch and not self.is_stale():
                return self._devices
            return await self._refresh()

    async def device(self, device_id: str, force_update: bool = False) -> Optional[dict]:
        return (await self.devices(force_update)).get(device_id)

    async def _refresh(self) -> dict[str, dict]:
        entries = await self._fetch_devices()
        directory: dict[str, dict] = {}
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            device_id = slugify(str(entry.get("accountName") or ""))
            if not device_id:
                log.debug("Skipping device without a usable name: %s", entry.get("serialNumber"))
                continue
            if device_id in directory:
                log.warning(
                    "Device id %s is shared by %s and %s; keeping the latter",
                    device_id,
                    directory[device_id].get("serialNumber"),
                    entry.get("serialNumber"),
                )
            directory[device_id] = entry
        self._devices = directory
        self._fetched_at = self._clock()
        self._epoch += 1
        log.info("Device directory refreshed (%d devices)", len(directory))
        return directory
