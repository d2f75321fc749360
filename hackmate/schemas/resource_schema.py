# hackmate/schemas/resource_schema.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

ResourceType = Literal["file", "link", "note", "image", "document"]


class SharedResource(BaseModel):
    resource_id: str
    project_id: str
    name: str
    type: ResourceType
    uploaded_by: str
    created_at: datetime
    tags: List[str] = []
    url: Optional[str] = None
    content: Optional[str] = None
    size: Optional[int] = None
    file_type: Optional[str] = None
    original_name: Optional[str] = None


class ResourceCreate(BaseModel):
    name: str
    type: ResourceType
    tags: List[str] = []
    url: Optional[str] = None
    content: Optional[str] = None
    size: Optional[int] = None
    file_type: Optional[str] = None
    original_name: Optional[str] = None
