# hackmate/milestone/milestone_router.py

from fastapi import APIRouter, Depends

from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_member_project, get_store, require_in_project
from hackmate.milestone import milestone_service
from hackmate.schemas.milestone_schema import Milestone, MilestoneCreate, MilestoneUpdate
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore
from hackmate.sync import first_snapshot

router = APIRouter(prefix="/projects/{project_id}/milestones", tags=["milestones"])


@router.get("/", response_model=list[Milestone])
async def get_milestones(
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    return await first_snapshot(
        lambda cb: milestone_service.subscribe_to_milestones(store, project.project_id, cb),
        FETCH_TIMEOUT_SECONDS,
        [],
    )


@router.post("/", status_code=201)
async def create_milestone(
    data: MilestoneCreate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    milestone_id = await milestone_service.create_milestone(store, project.project_id, data)
    return {"milestone_id": milestone_id}


@router.patch("/{milestone_id}")
async def update_milestone(
    milestone_id: str,
    updates: MilestoneUpdate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    await require_in_project(store, milestone_service.COLLECTION, milestone_id, project.project_id)
    await milestone_service.update_milestone(store, milestone_id, updates)
    return {"milestone_id": milestone_id, **updates.model_dump(exclude_unset=True)}


@router.delete("/{milestone_id}", status_code=204)
async def delete_milestone(
    milestone_id: str,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    await require_in_project(store, milestone_service.COLLECTION, milestone_id, project.project_id)
    await milestone_service.delete_milestone(store, milestone_id)
