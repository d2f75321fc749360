from __future__ import annotations

import logging
from typing import Callable, List, Optional

from hackmate.schemas.schedule_schema import (
    ScheduleEvent,
    ScheduleEventCreate,
    ScheduleEventUpdate,
    WellnessSettings,
    WellnessSettingsSave,
)
from hackmate.store.document_store import SERVER_TIMESTAMP, UNSET, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection, to_model

logger = logging.getLogger("hackmate.schedule")

EVENTS = "schedule_events"
WELLNESS = "wellness_settings"


# ==========================
#  SCHEDULE EVENTS
# ==========================
async def create_schedule_event(
    store: DocumentStore, project_id: str, user_id: str, event: ScheduleEventCreate
) -> str:
    event_id = store.new_id()
    fields = {k: (UNSET if v is None else v) for k, v in event.model_dump().items()}
    await store.set(
        EVENTS,
        event_id,
        {
            **fields,
            "event_id": event_id,
            "project_id": project_id,
            "user_id": user_id,
            "created_at": SERVER_TIMESTAMP,
        },
    )
    return event_id


async def update_schedule_event(store: DocumentStore, event_id: str, updates: ScheduleEventUpdate) -> None:
    await store.update(EVENTS, event_id, updates.model_dump(exclude_unset=True))


async def delete_schedule_event(store: DocumentStore, event_id: str) -> None:
    await store.delete(EVENTS, event_id)


def subscribe_to_schedule_events(
    store: DocumentStore,
    project_id: str,
    user_id: str,
    callback: Callable[[List[ScheduleEvent]], None],
) -> Unsubscribe:
    return subscribe_collection(
        store,
        EVENTS,
        [where("project_id", "==", project_id), where("user_id", "==", user_id)],
        ScheduleEvent.model_validate,
        callback,
        timestamp_fields=("start_time", "end_time", "created_at"),
        sort_key=lambda e: e.start_time,
    )


# ==========================
#  WELLNESS SETTINGS
# ==========================
def wellness_id(project_id: str, user_id: str) -> str:
    return f"{project_id}_{user_id}"


async def save_wellness_settings(
    store: DocumentStore, project_id: str, user_id: str, settings: WellnessSettingsSave
) -> None:
    # upsert: one record per (project, user)
    await store.set(
        WELLNESS,
        wellness_id(project_id, user_id),
        {
            **settings.model_dump(),
            "project_id": project_id,
            "user_id": user_id,
            "created_at": SERVER_TIMESTAMP,
        },
    )


async def get_wellness_settings(store: DocumentStore, project_id: str, user_id: str) -> Optional[WellnessSettings]:
    try:
        snapshot = await store.get(WELLNESS, wellness_id(project_id, user_id))
    except Exception as exc:
        logger.error("Error getting wellness settings: %s", exc)
        return None
    return to_model(snapshot, WellnessSettings.model_validate, ("created_at",))
