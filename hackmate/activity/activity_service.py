from __future__ import annotations

from typing import Callable, List

from hackmate.schemas.activity_schema import ActivityCreate, LiveActivity
from hackmate.store.document_store import SERVER_TIMESTAMP, UNSET, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection

COLLECTION = "live_activities"

# the feed only ever shows the most recent entries
FEED_LIMIT = 50


async def add_activity(store: DocumentStore, project_id: str, user_id: str, activity: ActivityCreate) -> str:
    activity_id = store.new_id()
    await store.set(
        COLLECTION,
        activity_id,
        {
            "activity_id": activity_id,
            "project_id": project_id,
            "user_id": user_id,
            "type": activity.type,
            "description": activity.description,
            "metadata": activity.metadata if activity.metadata is not None else UNSET,
            "timestamp": SERVER_TIMESTAMP,
        },
    )
    return activity_id


def subscribe_to_activities(
    store: DocumentStore, project_id: str, callback: Callable[[List[LiveActivity]], None]
) -> Unsubscribe:
    return subscribe_collection(
        store,
        COLLECTION,
        [where("project_id", "==", project_id)],
        LiveActivity.model_validate,
        callback,
        timestamp_fields=("timestamp",),
        sort_key=lambda a: a.timestamp,
        descending=True,
        limit=FEED_LIMIT,
    )
