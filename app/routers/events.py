# app/routers/events.py
"""
Live notifications — Server-Sent Events.
GET /events — `connected` on open, then one frame per published event:
  event: <name>
  data: {"event": <name>, "data": <payload>, "ts": <epoch ms>}
A keep-alive comment is sent when the stream has been idle for 15s.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.dependencies import get_event_bus
from app.errors import ServiceUnavailable
from app.services.event_bus import EventBus
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

KEEPALIVE_SECONDS = 15.0


def format_sse(event: str, data) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


async def event_stream(request: Request, bus: EventBus, keepalive: float = KEEPALIVE_SECONDS):
    sub = bus.subscribe()
    try:
        yield format_sse("connected", {"ok": True})
        while not sub.closed:
            if await request.is_disconnected():
                break
            message = await sub.get(timeout=keepalive)
            if message is None:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(message["event"], message)
    finally:
        sub.close()


@router.get("/events", summary="Live event stream (SSE)")
async def events(request: Request, bus: EventBus = Depends(get_event_bus)):
    if bus is None:
        raise ServiceUnavailable("Event stream not ready", reason="events_unavailable")
    return StreamingResponse(
        event_stream(request, bus),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )
