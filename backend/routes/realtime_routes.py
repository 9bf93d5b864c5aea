"""
Realtime routes — change notifications as a server-sent-event stream.

    GET /realtime/v1/{table}?filter=user_id=eq.<id>

Emits `event: SUBSCRIBED` once, then one event per change (INSERT / UPDATE /
DELETE) with no row payload. The subscription is torn down when the client
disconnects.
"""
import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from auth import get_stream_user
from config import REALTIME_HEARTBEAT_SECONDS
from models import TABLES
from services.change_hub import change_hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime/v1", tags=["Realtime"])


def format_event(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def owner_from_filter(expr: str | None, identity: str) -> str:
    """Resolve `user_id=eq.<id>` to an owner; only the caller's own rows may be watched."""
    if not expr:
        return identity
    column, _, rest = expr.partition("=")
    op, _, value = rest.partition(".")
    if column not in ("user_id", "id") or op != "eq" or not value:
        raise HTTPException(status_code=400, detail=f"Unsupported filter {expr}")
    if value != identity:
        raise HTTPException(status_code=403, detail="permission denied")
    return value


@router.get("/{table}")
async def subscribe(
    table: str,
    request: Request,
    filter: str | None = Query(None),
    user_id: str = Depends(get_stream_user),
):
    if table not in TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown table {table}")
    owner_id = owner_from_filter(filter, user_id)
    subscription = change_hub.subscribe(table, owner_id)

    async def stream():
        try:
            yield format_event("SUBSCRIBED", {"table": table})
            while not subscription.closed:
                if await request.is_disconnected():
                    break
                try:
                    signal = await asyncio.wait_for(subscription.get(), timeout=REALTIME_HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if signal is None:
                    break
                yield format_event(signal.event, {"table": signal.table})
        finally:
            subscription.close()
            logger.debug("realtime stream closed for %s/%s", table, owner_id)

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
