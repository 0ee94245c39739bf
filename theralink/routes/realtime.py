"""
Server-Sent Events (SSE) Router - Live views over the change feed

GET /realtime/{view} opens a live view for the current user and streams:
  - snapshot: the full view model, re-sent after every matching change
  - error: the view could not be loaded (last good snapshot stays valid)
  - toast: a notification raised for the user
  - heartbeat: keep-alive while nothing happens
  - closed: the user signed out; the stream ends

Views: notifications, messages, appointments
"""

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from ..auth import AuthContext, get_auth_context
from ..config import SSE_HEARTBEAT_SECONDS
from ..database import SessionLocal
from ..domain.appointments.schemas import AppointmentView
from ..domain.appointments.service import AppointmentService
from ..domain.messages.router import load_conversations
from ..domain.notifications.router import load_notifications
from ..models import Profile, utcnow
from ..services.change_feed import TOAST, TOASTS_TABLE, ChangeEvent, get_subscription_registry
from ..services.live_view import LiveView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])


@dataclass
class ViewDefinition:
    table: str
    column: Callable[[Profile], str]
    load: Callable[[Any, Profile], Any]
    # Further columns of the same table that also refresh the view
    extra_columns: tuple = ()


def _load_appointments(db, user: Profile) -> list:
    return [
        AppointmentView.model_validate(a).model_dump(mode="json")
        for a in AppointmentService(db).list_appointments(user)
    ]


VIEWS = {
    "notifications": ViewDefinition(
        table="notifications",
        column=lambda user: "user_id",
        load=lambda db, user: load_notifications(db, user.id).model_dump(mode="json"),
    ),
    "messages": ViewDefinition(
        table="messages",
        column=lambda user: "receiver_id",
        load=load_conversations,
        extra_columns=("sender_id",),
    ),
    "appointments": ViewDefinition(
        table="appointments",
        column=lambda user: "therapist_id" if user.role == "therapist" else "client_id",
        load=_load_appointments,
    ),
}


def format_sse(event: str, data: Any) -> str:
    """Format one SSE message"""
    lines = [
        f"id: {uuid.uuid4()}",
        f"event: {event}",
        f"data: {json.dumps(data, default=str)}",
    ]
    return "\n".join(lines) + "\n\n"


def make_loader(view: ViewDefinition, user_id: str, role: str) -> Callable[[], Any]:
    """Loader with its own session; runs in the threadpool on every refresh"""

    def load():
        db = SessionLocal()
        try:
            user = Profile(id=user_id, role=role)
            return view.load(db, user)
        finally:
            db.close()

    return load


async def _event_stream(
    request: Request,
    view: LiveView,
    queue: asyncio.Queue,
) -> AsyncGenerator[str, None]:
    registry = view.registry
    try:
        while True:
            if await request.is_disconnected():
                break
            if registry.active(view.owner, view.table, view.user_id) is None:
                yield format_sse("closed", {"reason": "signed_out"})
                break
            try:
                name, payload = await asyncio.wait_for(queue.get(), timeout=SSE_HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield format_sse("heartbeat", {"timestamp": utcnow().isoformat()})
                continue
            yield format_sse(name, payload)
    finally:
        view.close()
        registry.close_owner(view.owner)
        logger.info(f"🔌 Realtime stream '{view.name}' ended for user {view.user_id}")


@router.get("/{view_name}")
async def stream_view(
    view_name: str,
    request: Request,
    ctx: AuthContext = Depends(get_auth_context),
):
    """Stream a live view of the current user's data"""
    view_def = VIEWS.get(view_name)
    if view_def is None:
        raise HTTPException(status_code=404, detail=f"Unknown view: {view_name}")

    user_id, role = ctx.user_id, ctx.role
    registry = get_subscription_registry()
    owner = f"sse:{view_name}:{uuid.uuid4()}"
    queue: asyncio.Queue = asyncio.Queue()
    loop = asyncio.get_running_loop()

    view = LiveView(
        name=view_name,
        user_id=user_id,
        loader=make_loader(view_def, user_id, role),
        registry=registry,
        table=view_def.table,
        column=view_def.column(ctx.profile),
        owner=owner,
        extra_columns=view_def.extra_columns,
    )
    view.add_listener(lambda name, payload: queue.put_nowait((name, payload)))

    def on_toast(change: ChangeEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, ("toast", change.record))

    registry.open(owner, TOASTS_TABLE, "user_id", user_id, on_toast, {TOAST})
    await view.open()

    return StreamingResponse(
        _event_stream(request, view, queue),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
