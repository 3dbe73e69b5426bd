from __future__ import annotations

from typing import Callable

from fastapi import APIRouter
from pydantic import BaseModel


class HealthStatus(BaseModel):
    status: str = "ok"
    session: str


def create_health_router(*, session_state: Callable[[], str]) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health", response_model=HealthStatus)
    async def health() -> HealthStatus:
        return HealthStatus(session=session_state())

    return router
