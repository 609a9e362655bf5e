from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from jose import JWTError
from sqlalchemy.orm import Session

from app.api.deps import get_current_faculty, get_db
from app.core.exceptions import AuthorizationError
from app.core.security import decode_token
from app.models.notification import NotificationStatus
from app.schemas.notification import (
    NotificationOut,
    NotificationReject,
    NotificationResolutionOut,
    NotificationSummaryOut,
)
from app.services import notifications
from app.services.identity import CallerIdentity, resolve_faculty
from app.services.notification_hub import notification_hub

router = APIRouter()


def _resolution(notification, assignment) -> NotificationResolutionOut:
    return NotificationResolutionOut(
        notification=NotificationOut.model_validate(notification),
        assignment_id=assignment.id,
        assignment_status=assignment.status,
    )


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    status: NotificationStatus | None = Query(default=None),
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    return notifications.list_notifications(
        db,
        caller,
        status=status,
        is_read=is_read,
        limit=limit,
        offset=offset,
    )


@router.get("/notifications/pending", response_model=list[NotificationOut])
def list_pending_notifications(
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    return notifications.list_notifications(db, caller, status=NotificationStatus.pending)


@router.get("/notifications/summary", response_model=NotificationSummaryOut)
def notification_summary(
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> NotificationSummaryOut:
    return notifications.notification_summary(db, caller)


@router.get("/notifications/unread-count")
def unread_count(
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> dict[str, int]:
    return {"unread": notifications.unread_count(db, caller)}


@router.post("/notifications/read-all")
def mark_all_notifications_read(
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> dict[str, int]:
    return {"updated": notifications.mark_all_read(db, caller)}


@router.get("/notifications/{notification_id}", response_model=NotificationOut)
def get_notification(
    notification_id: str,
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> NotificationOut:
    return notifications.get_notification(db, caller, notification_id)


@router.post("/notifications/{notification_id}/accept", response_model=NotificationResolutionOut)
def accept_notification(
    notification_id: str,
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> NotificationResolutionOut:
    return _resolution(*notifications.accept_notification(db, caller, notification_id))


@router.post("/notifications/{notification_id}/reject", response_model=NotificationResolutionOut)
def reject_notification(
    notification_id: str,
    payload: NotificationReject | None = None,
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> NotificationResolutionOut:
    reason = payload.reason if payload is not None else None
    return _resolution(*notifications.reject_notification(db, caller, notification_id, reason))


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: str,
    caller: CallerIdentity = Depends(get_current_faculty),
    db: Session = Depends(get_db),
) -> NotificationOut:
    return notifications.mark_read(db, caller, notification_id)


def _extract_ws_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token

    auth_header = websocket.headers.get("authorization")
    if not auth_header:
        return None
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


@router.websocket("/notifications/ws")
async def notifications_websocket(
    websocket: WebSocket,
    db: Session = Depends(get_db),
) -> None:
    token = _extract_ws_token(websocket)
    if not token:
        await websocket.close(code=1008)
        return

    try:
        caller = resolve_faculty(db, decode_token(token))
    except (JWTError, AuthorizationError):
        await websocket.close(code=1008)
        return

    await notification_hub.connect(caller.faculty_id, websocket)
    try:
        await websocket.send_json({"event": "connected", "faculty_id": caller.faculty_id})
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await notification_hub.disconnect(caller.faculty_id, websocket)
