# campus_portal/api/v1/realtime.py
from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from campus_portal.core.auth_deps import principal_from_token, get_optional_principal
from campus_portal.core.realtime import EVENTS_TOPIC, SseHub, user_topic
from campus_portal.policies.rbac import Principal

KEEPALIVE_SECONDS = 15.0


async def sse_messages(request: Request, hub: SseHub, topic: str) -> AsyncIterator[str]:
    queue = hub.open(topic)
    try:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                yield await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
    finally:
        hub.close(topic, queue)


def _stream(request: Request, hub: SseHub, topic: str) -> StreamingResponse:
    return StreamingResponse(
        sse_messages(request, hub, topic),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def build_realtime_router(hub: SseHub) -> APIRouter:
    router = APIRouter(prefix="/realtime")

    @router.get("/events")
    async def stream_events(request: Request):
        return _stream(request, hub, EVENTS_TOPIC)

    @router.get("/me")
    async def stream_my_notifications(
        request: Request,
        token: Optional[str] = Query(default=None),
        principal: Optional[Principal] = Depends(get_optional_principal),
    ):
        # EventSource cannot set headers, so ?token= is accepted as well
        if principal is None and token:
            principal = principal_from_token(token)
        if principal is None:
            raise HTTPException(status_code=401, detail="Authentication required.")
        return _stream(request, hub, user_topic(principal.user_id))

    return router
