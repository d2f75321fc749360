# hackmate/deps.py
"""FastAPI dependencies shared by the routers."""

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer

from hackmate.auth.identity_provider import AuthUser, IdentityProvider
from hackmate.errors import AuthError, StoreUnavailableError
from hackmate.project.project_service import get_project
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_store(request: Request) -> DocumentStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailableError("Document store is not available")
    return store


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity),
) -> AuthUser:
    try:
        return await identity.verify_token(token)
    except AuthError:
        raise HTTPException(401, "Invalid or expired token")


async def get_member_project(
    project_id: str,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> Project:
    project = await get_project(store, project_id)
    if not project:
        raise HTTPException(404, "Project not found")
    if user.uid not in project.members:
        raise HTTPException(403, "Not a member of this project")
    return project


async def require_in_project(store: DocumentStore, collection: str, doc_id: str, project_id: str) -> None:
    """404 unless `collection/doc_id` exists and belongs to `project_id`."""
    snapshot = await store.get(collection, doc_id)
    if not snapshot.exists or snapshot.get("project_id") != project_id:
        raise HTTPException(404, "Not found")
