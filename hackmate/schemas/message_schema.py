# hackmate/schemas/message_schema.py

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SenderType = Literal["user", "ai"]


class ChatMessage(BaseModel):
    message_id: str
    project_id: str
    sender: str
    sender_type: SenderType = "user"
    content: str
    timestamp: datetime


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    sender_type: SenderType = "user"
