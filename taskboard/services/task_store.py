"""Row-level storage for tasks.

The store never decides ordering: callers pass positions explicitly and
``delete`` leaves the lane gap for ``LaneEngine`` to close. Nothing here
commits; the caller owns the transaction.
"""
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from taskboard.errors import NotFound
from taskboard.models.task import Task, TaskStatus, TaskPriority


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


@dataclass
class TaskPatch:
    """Partial update: every field is either ``UNSET`` (leave alone) or a value.

    ``None`` is a real value, so ``TaskPatch(assigned_to=None)`` unassigns.
    """

    title: Any = UNSET
    description: Any = UNSET
    priority: Any = UNSET
    assigned_to: Any = UNSET
    status: Any = UNSET
    position: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "TaskPatch":
        return cls(**data)

    def present(self) -> Dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {k: v for k, v in values.items() if v is not UNSET}

    def is_empty(self) -> bool:
        return not self.present()

    def touches_order(self) -> bool:
        return self.status is not UNSET or self.position is not UNSET


class TaskStore:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        project_id: int,
        title: str,
        status: TaskStatus,
        position: int,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        assigned_to: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> Task:
        task = Task(
            project_id=project_id,
            title=title,
            description=description,
            status=status,
            position=position,
            priority=priority,
            assigned_to=assigned_to,
            created_by=created_by,
        )
        self.db.add(task)
        # flush assigns the id and timestamps
        self.db.flush()
        return task

    def get(self, task_id: int, for_update: bool = False) -> Task:
        query = self.db.query(Task).filter(Task.id == task_id).populate_existing()
        if for_update:
            query = query.with_for_update()
        task = query.first()
        if task is None:
            raise NotFound("Task not found")
        return task

    def update(self, task: Task, patch: TaskPatch) -> Task:
        for name, value in patch.present().items():
            setattr(task, name, value)
        self.db.flush()
        return task

    def delete(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    def list_by_project(self, project_id: int) -> List[Task]:
        return (
            self.db.query(Task)
            .filter(Task.project_id == project_id)
            .order_by(Task.status, Task.position)
            .all()
        )

    def list_by_lane(self, project_id: int, status: TaskStatus, for_update: bool = False) -> List[Task]:
        query = (
            self.db.query(Task)
            .filter(Task.project_id == project_id, Task.status == status)
            .order_by(Task.position)
        )
        if for_update:
            query = query.with_for_update()
        return query.all()

    def count_lane(self, project_id: int, status: TaskStatus) -> int:
        return (
            self.db.query(func.count(Task.id))
            .filter(Task.project_id == project_id, Task.status == status)
            .scalar()
        )

    def shift(self, project_id: int, status: TaskStatus, delta: int, lo: Optional[int] = None, hi: Optional[int] = None) -> int:
        """Add ``delta`` to every position in ``[lo, hi]`` of one lane. Returns rows touched."""
        query = self.db.query(Task).filter(Task.project_id == project_id, Task.status == status)
        if lo is not None:
            query = query.filter(Task.position >= lo)
        if hi is not None:
            query = query.filter(Task.position <= hi)
        return query.update({Task.position: Task.position + delta}, synchronize_session=False)
