# hackmate/schemas/ai_schema.py

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from hackmate.schemas.task_schema import Effort, Priority


class AIRequest(BaseModel):
    action: str
    data: Dict[str, Any] = {}


class TaskDraft(BaseModel):
    """A task proposed by the model, before it gets an id."""

    title: str
    description: str = ""
    effort: Effort = "Medium"
    priority: Priority = "Medium"


class DocsRequest(BaseModel):
    project_name: str = Field(..., min_length=1)
    tech_stack: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    features: List[str] = []
    context: Optional[str] = None


class DocsExportRequest(BaseModel):
    project_name: str = Field(..., min_length=1)
    content: str
