from __future__ import annotations

from typing import Callable, List

from hackmate.schemas.notification_schema import NotificationCreate, TeamNotification
from hackmate.store.document_store import SERVER_TIMESTAMP, UNSET, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection

COLLECTION = "team_notifications"


async def create_notification(store: DocumentStore, project_id: str, data: NotificationCreate) -> str:
    notification_id = store.new_id()
    await store.set(
        COLLECTION,
        notification_id,
        {
            "notification_id": notification_id,
            "project_id": project_id,
            "user_id": data.user_id,
            "type": data.type,
            "title": data.title,
            "message": data.message,
            "read": False,
            "action_url": data.action_url if data.action_url is not None else UNSET,
            "created_at": SERVER_TIMESTAMP,
        },
    )
    return notification_id


async def mark_notification_read(store: DocumentStore, notification_id: str) -> None:
    # only the read flag changes
    await store.update(COLLECTION, notification_id, {"read": True})


def subscribe_to_notifications(
    store: DocumentStore,
    project_id: str,
    user_id: str,
    callback: Callable[[List[TeamNotification]], None],
) -> Unsubscribe:
    return subscribe_collection(
        store,
        COLLECTION,
        [where("project_id", "==", project_id), where("user_id", "==", user_id)],
        TeamNotification.model_validate,
        callback,
        timestamp_fields=("created_at",),
        sort_key=lambda n: n.created_at,
        descending=True,
    )
