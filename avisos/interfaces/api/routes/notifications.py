"""Websocket handler for realtime notifications and inbox actions."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from avisos.application.use_cases.notifications import inbox
from avisos.domain.entities import User
from avisos.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from avisos.infrastructure.database import SessionLocal
from avisos.infrastructure.notifications import notification_manager
from avisos.infrastructure.notifications.message_builder import serialize_notification
from avisos.infrastructure.repositories import (
    NotificationRepository,
    PushSubscriptionRepository,
)
from avisos.interfaces.api.dependencies import resolve_current_user, websocket_token
from avisos.interfaces.api.schemas import (
    NotificationIdRequest,
    NotificationListRequest,
    NotificationMarkReadRequest,
    NotificationPurgeRequest,
    PushSubscribeRequest,
    PushUnsubscribeRequest,
    WebSocketMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

POLICY_VIOLATION = 1008
ERROR_EVENT = "notifications.error"

Reply = tuple[str, dict[str, Any]]
Handler = Callable[[Session, User, dict[str, Any]], Awaitable[Reply]]


async def _list(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = NotificationListRequest.model_validate(data)
    page = inbox.list_page(
        session,
        user.id,
        page=request.page,
        page_size=request.page_size,
        kind=request.kind,
        read=request.read,
    )
    return "notifications.page", {
        "items": [serialize_notification(item) for item in page.items],
        "total": page.total,
        "unread_count": page.unread,
        "page": page.page,
        "page_size": page.page_size,
        "pages": page.pages,
    }


async def _mark_read(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = NotificationIdRequest.model_validate(data)
    notification = await inbox.mark_read(session, notification_manager, user.id, request.id)
    return "notifications.updated", {"notification": serialize_notification(notification)}


async def _mark_many_read(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = NotificationMarkReadRequest.model_validate(data)
    count = await inbox.mark_many_read(
        session, notification_manager, user.id, request.unique_ids()
    )
    return "notifications.marked", {"count": count}


async def _mark_all_read(session: Session, user: User, data: dict[str, Any]) -> Reply:
    count = await inbox.mark_all_read(session, notification_manager, user.id)
    return "notifications.marked", {"count": count}


async def _delete(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = NotificationIdRequest.model_validate(data)
    await inbox.delete_notification(session, notification_manager, user.id, request.id)
    return "notifications.removed", {"id": request.id}


async def _purge_old(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = NotificationPurgeRequest.model_validate(data)
    count = await inbox.purge_old(session, notification_manager, user.id, request.days)
    return "notifications.purged", {"count": count}


async def _push_subscribe(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = PushSubscribeRequest.model_validate(data)
    subscription = PushSubscriptionRepository(session).register(
        user_id=user.id,
        endpoint=request.endpoint,
        p256dh=request.keys.p256dh,
        auth=request.keys.auth,
        user_agent=request.user_agent,
    )
    return "push.subscribed", {"id": subscription.id}


async def _push_unsubscribe(session: Session, user: User, data: dict[str, Any]) -> Reply:
    request = PushUnsubscribeRequest.model_validate(data)
    if not PushSubscriptionRepository(session).deactivate_by_endpoint(user.id, request.endpoint):
        raise NotFoundError("Suscripción no encontrada")
    return "push.unsubscribed", {"endpoint": request.endpoint}


HANDLERS: dict[str, Handler] = {
    "notifications.list": _list,
    "notifications.mark_read": _mark_read,
    "notifications.mark_many_read": _mark_many_read,
    "notifications.mark_all_read": _mark_all_read,
    "notifications.delete": _delete,
    "notifications.purge_old": _purge_old,
    "push.subscribe": _push_subscribe,
    "push.unsubscribe": _push_unsubscribe,
}


def _error(message: str) -> dict[str, Any]:
    return {"type": ERROR_EVENT, "data": {"message": message}}


def _describe_schema_error(exc: SchemaValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "valor inválido")
    return f"Solicitud inválida: {location}: {detail}" if location else f"Solicitud inválida: {detail}"


async def _handle_message(user: User, raw: Any) -> dict[str, Any]:
    """Run one client request and return the reply for the requesting connection."""

    try:
        message = WebSocketMessage.model_validate(raw)
    except SchemaValidationError:
        return _error("Mensaje inválido")

    if message.type == "ping":
        return {"type": "pong"}

    handler = HANDLERS.get(message.type)
    if handler is None:
        return _error(f"Tipo de mensaje no soportado: {message.type}")

    with SessionLocal() as session:
        try:
            reply_type, data = await handler(session, user, message.data)
        except SchemaValidationError as exc:
            return _error(_describe_schema_error(exc))
        except (ValidationError, NotFoundError) as exc:
            return _error(str(exc))
        except PersistenceError as exc:
            logger.error("Request %s of user %s failed: %s", message.type, user.id, exc)
            return _error(str(exc))
    return {"type": reply_type, "data": data}


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket_token(websocket)
    if not token:
        await websocket.close(code=POLICY_VIOLATION)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
        unread = NotificationRepository(session).count_unread(user.id)
    except HTTPException:
        await websocket.close(code=POLICY_VIOLATION)
        return
    finally:
        session.close()

    connection_id = await notification_manager.connect(user.id, websocket)
    try:
        await notification_manager.send_to_connection(
            connection_id, {"type": inbox.EVENT_COUNT, "data": {"unread_count": unread}}
        )
        while True:
            try:
                raw = await websocket.receive_json()
            except ValueError:
                await notification_manager.send_to_connection(connection_id, _error("Mensaje inválido"))
                continue
            reply = await _handle_message(user, raw)
            await notification_manager.send_to_connection(connection_id, reply)
    except WebSocketDisconnect:
        pass
    finally:
        notification_manager.disconnect(user.id, connection_id)
