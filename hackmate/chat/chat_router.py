# hackmate/chat/chat_router.py

from fastapi import APIRouter, Depends

from hackmate.auth.identity_provider import AuthUser
from hackmate.chat.message_service import AI_SENDER, send_message, subscribe_to_messages
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store
from hackmate.schemas.message_schema import ChatMessage, MessageCreate
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore
from hackmate.sync import first_snapshot

router = APIRouter(prefix="/projects/{project_id}/messages", tags=["chat"])


@router.get("/", response_model=list[ChatMessage])
async def get_messages(
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    return await first_snapshot(
        lambda cb: subscribe_to_messages(store, project.project_id, cb),
        FETCH_TIMEOUT_SECONDS,
        [],
    )


@router.post("/", status_code=201)
async def post_message(
    request: MessageCreate,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    # AI replies are stored under the assistant's name, not the caller's
    sender = AI_SENDER if request.sender_type == "ai" else user.uid
    message_id = await send_message(store, project.project_id, sender, request.content, request.sender_type)
    return {"message_id": message_id}
