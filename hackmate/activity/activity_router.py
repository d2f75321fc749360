# hackmate/activity/activity_router.py

from fastapi import APIRouter, Depends

from hackmate.activity.activity_service import add_activity, subscribe_to_activities
from hackmate.auth.identity_provider import AuthUser
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store
from hackmate.schemas.activity_schema import ActivityCreate, LiveActivity
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore
from hackmate.sync import first_snapshot

router = APIRouter(prefix="/projects/{project_id}/activities", tags=["activities"])


@router.get("/", response_model=list[LiveActivity])
async def get_activity_feed(
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    return await first_snapshot(
        lambda cb: subscribe_to_activities(store, project.project_id, cb),
        FETCH_TIMEOUT_SECONDS,
        [],
    )


@router.post("/", status_code=201)
async def post_activity(
    activity: ActivityCreate,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    activity_id = await add_activity(store, project.project_id, user.uid, activity)
    return {"activity_id": activity_id}
