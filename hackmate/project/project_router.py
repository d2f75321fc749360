# hackmate/project/project_router.py

from fastapi import APIRouter, Depends, HTTPException

from hackmate.auth.identity_provider import AuthUser
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store
from hackmate.member.member_service import get_project_members
from hackmate.project import project_service
from hackmate.schemas.member_schema import ProjectMember
from hackmate.schemas.project_schema import (
    DemoModeUpdate,
    IdeaUpdate,
    JoinProjectRequest,
    Project,
    ProjectCreate,
    ProjectStatusUpdate,
    ProjectUrlsUpdate,
)
from hackmate.store.document_store import DocumentStore
from hackmate.sync import with_timeout

router = APIRouter(prefix="/projects", tags=["projects"])


async def _require_admin(store: DocumentStore, project: Project, user: AuthUser) -> None:
    # the creator stays admin even when the role record never landed
    if project.created_by == user.uid:
        return
    role = await project_service.get_user_role(store, project.project_id, user.uid)
    if role != "admin":
        raise HTTPException(403, "Only the project admin can do this")


# ==========================
#  CREATE / LIST / JOIN
# ==========================
@router.post("/", status_code=201)
async def create_project(
    data: ProjectCreate,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    project_id = await project_service.create_project(store, data.name, data.duration, user.uid)
    return {"project_id": project_id}


@router.get("/", response_model=list[Project])
async def get_my_projects(
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return await project_service.get_user_projects(store, user.uid)


@router.post("/join")
async def join_project(
    request: JoinProjectRequest,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    project_id = await project_service.join_project_by_code(store, request.join_code, user.uid)
    if not project_id:
        raise HTTPException(404, "Invalid join code")
    return {"project_id": project_id}


# ==========================
#  GET PROJECT BY ID
# ==========================
@router.get("/{project_id}", response_model=Project)
async def get_project(project: Project = Depends(get_member_project)):
    return project


@router.get("/{project_id}/role")
async def get_my_role(
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    role = await project_service.get_user_role(store, project.project_id, user.uid)
    return {"role": role}


@router.get("/{project_id}/members", response_model=list[ProjectMember])
async def get_members(
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    return await with_timeout(get_project_members(store, project.members), FETCH_TIMEOUT_SECONDS, [])


# ==========================
#  UPDATES (PATCH)
# ==========================
@router.patch("/{project_id}/idea")
async def update_idea(
    request: IdeaUpdate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    await project_service.update_project_idea(store, project.project_id, request.idea)
    return {"message": "Idea saved"}


@router.patch("/{project_id}/status")
async def update_status(
    request: ProjectStatusUpdate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    await project_service.update_project_status(store, project.project_id, request.status)
    return {"status": request.status}


@router.patch("/{project_id}/urls")
async def update_urls(
    request: ProjectUrlsUpdate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    urls = request.model_dump(exclude_unset=True)
    if urls:
        await project_service.update_project_urls(store, project.project_id, urls)
    return urls


@router.patch("/{project_id}/demo")
async def update_demo(
    request: DemoModeUpdate,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    await project_service.update_demo_mode(store, project.project_id, request.enabled)
    return {"demo_mode": request.enabled}


# ==========================
#  DELETE / MEMBERSHIP
# ==========================
@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await _require_admin(store, project, user)
    await project_service.delete_project(store, project.project_id)


@router.delete("/{project_id}/members/{member_id}", status_code=204)
async def remove_member(
    member_id: str,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    # anyone may leave; removing someone else takes the admin role
    if member_id != user.uid:
        await _require_admin(store, project, user)
    if member_id not in project.members:
        raise HTTPException(404, "Member not found")
    await project_service.remove_member_from_project(store, project.project_id, member_id)
