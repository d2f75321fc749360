# hackmate/notification/notification_router.py

from fastapi import APIRouter, Depends, HTTPException

from hackmate.auth.identity_provider import AuthUser
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store
from hackmate.notification.notification_service import (
    COLLECTION,
    create_notification,
    mark_notification_read,
    subscribe_to_notifications,
)
from hackmate.schemas.notification_schema import NotificationCreate, TeamNotification
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore
from hackmate.sync import first_snapshot

router = APIRouter(tags=["notifications"])


# =============================
#   MY NOTIFICATIONS IN A PROJECT
# =============================
@router.get("/projects/{project_id}/notifications", response_model=list[TeamNotification])
async def get_my_notifications(
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await first_snapshot(
        lambda cb: subscribe_to_notifications(store, project.project_id, user.uid, cb),
        FETCH_TIMEOUT_SECONDS,
        [],
    )


# =============================
#   NOTIFY A TEAMMATE
# =============================
@router.post("/projects/{project_id}/notifications", status_code=201)
async def notify_member(
    data: NotificationCreate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    if data.user_id not in project.members:
        raise HTTPException(400, "Recipient is not a project member")
    notification_id = await create_notification(store, project.project_id, data)
    return {"notification_id": notification_id}


# =============================
#   MARK AS READ
# =============================
@router.post("/notifications/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    snapshot = await store.get(COLLECTION, notification_id)
    if not snapshot.exists:
        raise HTTPException(404, "Notification not found")
    if snapshot.get("user_id") != user.uid:
        raise HTTPException(403, "Not your notification")

    await mark_notification_read(store, notification_id)
    return {"notification_id": notification_id, "read": True}
