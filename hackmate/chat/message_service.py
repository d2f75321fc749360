from __future__ import annotations

from typing import Callable, List

from hackmate.schemas.message_schema import ChatMessage
from hackmate.store.document_store import SERVER_TIMESTAMP, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection

COLLECTION = "messages"
AI_SENDER = "AI Assistant"


async def send_message(
    store: DocumentStore,
    project_id: str,
    sender: str,
    content: str,
    sender_type: str = "user",
) -> str:
    message_id = store.new_id()
    await store.set(
        COLLECTION,
        message_id,
        {
            "message_id": message_id,
            "project_id": project_id,
            "sender": sender,
            "sender_type": sender_type,
            "content": content,
            "timestamp": SERVER_TIMESTAMP,
        },
    )
    return message_id


def subscribe_to_messages(
    store: DocumentStore, project_id: str, callback: Callable[[List[ChatMessage]], None]
) -> Unsubscribe:
    return subscribe_collection(
        store,
        COLLECTION,
        [where("project_id", "==", project_id)],
        ChatMessage.model_validate,
        callback,
        timestamp_fields=("timestamp",),
        sort_key=lambda m: m.timestamp,
    )
