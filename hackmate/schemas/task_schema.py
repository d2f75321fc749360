# hackmate/schemas/task_schema.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Effort = Literal["Low", "Medium", "High"]
TaskStatus = Literal["ToDo", "InProgress", "Done"]
Priority = Literal["Low", "Medium", "High", "Critical"]


# --------- Stored document ---------
class Task(BaseModel):
    task_id: str
    project_id: str
    title: str
    description: str = ""
    effort: Effort = "Medium"
    status: TaskStatus = "ToDo"
    assigned_to: Optional[str] = None
    last_updated: datetime
    created_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    priority: Priority = "Medium"
    time_spent: int = 0  # minutes
    dependencies: List[str] = []
    tags: List[str] = []


# --------- For CREATE ----------
class TaskCreate(BaseModel):
    project_id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    effort: Effort = "Medium"
    status: TaskStatus = "ToDo"
    assigned_to: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None


class TaskBulkCreate(BaseModel):
    tasks: List[TaskCreate]


# --------- For UPDATE (PATCH) ----------
# only fields the caller actually sent are written (exclude_unset),
# so an explicit null unassigns a task
class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    effort: Optional[Effort] = None
    status: Optional[TaskStatus] = None
    assigned_to: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    time_spent: Optional[int] = None
    dependencies: Optional[List[str]] = None
    tags: Optional[List[str]] = None
