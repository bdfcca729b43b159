from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class TaskCreate(BaseModel):
    # status/priority stay plain strings: they are checked after membership,
    # so non-members get 403 whatever they send
    title: str
    description: Optional[str] = ""
    project_id: int
    status: str = "todo"
    priority: str = "medium"
    assigned_to: Optional[int] = None


class TaskUpdate(BaseModel):
    """Only the fields the client actually sent are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[int] = None
    # accepted only so that a lane or position change is rejected with 422
    # instead of silently dropped; reordering goes through /tasks/reorder
    status: Optional[str] = None
    position: Optional[int] = None


class TaskMove(BaseModel):
    task_id: int
    new_status: str
    new_position: int = Field(..., description="Zero-based slot in the target lane; out-of-range values are clamped")


class TaskOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = ""
    project_id: int
    status: str
    position: int
    priority: str
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = None
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BoardOut(BaseModel):
    todo: List[TaskOut] = []
    in_progress: List[TaskOut] = []
    done: List[TaskOut] = []
