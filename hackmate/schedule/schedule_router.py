# hackmate/schedule/schedule_router.py

from fastapi import APIRouter, Depends, HTTPException

from hackmate.auth.identity_provider import AuthUser
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store
from hackmate.schedule import schedule_service
from hackmate.schemas.project_schema import Project
from hackmate.schemas.schedule_schema import (
    ScheduleEvent,
    ScheduleEventCreate,
    ScheduleEventUpdate,
    WellnessSettings,
    WellnessSettingsSave,
)
from hackmate.store.document_store import DocumentStore
from hackmate.sync import first_snapshot

router = APIRouter(prefix="/projects/{project_id}", tags=["schedule"])


async def _own_event(store: DocumentStore, event_id: str, project_id: str, user: AuthUser) -> None:
    snapshot = await store.get(schedule_service.EVENTS, event_id)
    if not snapshot.exists or snapshot.get("project_id") != project_id or snapshot.get("user_id") != user.uid:
        raise HTTPException(404, "Event not found")


# ==========================
#  PERSONAL SCHEDULE
# ==========================
@router.get("/schedule", response_model=list[ScheduleEvent])
async def get_my_schedule(
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await first_snapshot(
        lambda cb: schedule_service.subscribe_to_schedule_events(store, project.project_id, user.uid, cb),
        FETCH_TIMEOUT_SECONDS,
        [],
    )


@router.post("/schedule", status_code=201)
async def create_event(
    event: ScheduleEventCreate,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    event_id = await schedule_service.create_schedule_event(store, project.project_id, user.uid, event)
    return {"event_id": event_id}


@router.patch("/schedule/{event_id}")
async def update_event(
    event_id: str,
    updates: ScheduleEventUpdate,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await _own_event(store, event_id, project.project_id, user)
    await schedule_service.update_schedule_event(store, event_id, updates)
    return {"event_id": event_id, **updates.model_dump(exclude_unset=True)}


@router.delete("/schedule/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await _own_event(store, event_id, project.project_id, user)
    await schedule_service.delete_schedule_event(store, event_id)


# ==========================
#  WELLNESS SETTINGS
# ==========================
@router.get("/wellness", response_model=WellnessSettings)
async def get_wellness(
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    settings = await schedule_service.get_wellness_settings(store, project.project_id, user.uid)
    if not settings:
        raise HTTPException(404, "No wellness settings saved")
    return settings


@router.put("/wellness")
async def save_wellness(
    settings: WellnessSettingsSave,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await schedule_service.save_wellness_settings(store, project.project_id, user.uid, settings)
    return settings
