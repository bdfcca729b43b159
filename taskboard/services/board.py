import logging
from typing import Dict, List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased
from taskboard.errors import StorageFailure, ValidationError
from taskboard.models.task import Task, TaskStatus
from taskboard.models.user import User
from taskboard.services.access import AccessGate
from taskboard.services.lanes import check_task_fields
from taskboard.services.task_store import TaskStore, TaskPatch, UNSET

logger = logging.getLogger(__name__)

Assignee = aliased(User)
Creator = aliased(User)

_TASK_FIELDS = (
    "id", "title", "description", "project_id", "status", "position", "priority",
    "assigned_to", "created_by", "created_at", "updated_at",
)


def _row(task: Task, assignee_name, creator_name) -> dict:
    data = {name: getattr(task, name) for name in _TASK_FIELDS}
    data["status"] = task.status.value
    data["priority"] = task.priority.value
    data["assigned_to_name"] = assignee_name
    data["created_by_name"] = creator_name
    return data


class BoardService:
    """Read side of the board plus non-positional task edits.

    Names are joined at read time so a renamed assignee shows up immediately.
    """

    def __init__(self, db: Session):
        self.db = db
        self.gate = AccessGate(db)
        self.store = TaskStore(db)

    def _with_names(self):
        return (
            self.db.query(Task, Assignee.name, Creator.name)
            .outerjoin(Assignee, Task.assigned_to == Assignee.id)
            .outerjoin(Creator, Task.created_by == Creator.id)
        )

    def get_board(self, user_id: int, project_id: int) -> Dict[str, List[dict]]:
        self.gate.require_access(user_id, project_id)
        board: Dict[str, List[dict]] = {status.value: [] for status in TaskStatus}
        rows = (
            self._with_names()
            .filter(Task.project_id == project_id)
            .order_by(Task.status, Task.position)
            .all()
        )
        for task, assignee_name, creator_name in rows:
            board[task.status.value].append(_row(task, assignee_name, creator_name))
        return board

    def get_task(self, user_id: int, task_id: int) -> dict:
        task = self.store.get(task_id)
        self.gate.require_access(user_id, task.project_id)
        task, assignee_name, creator_name = self._with_names().filter(Task.id == task_id).one()
        return _row(task, assignee_name, creator_name)

    def update_task(self, user_id: int, task_id: int, patch: TaskPatch) -> dict:
        """Apply a title/description/priority/assignee patch. Lane and position stay put."""
        task = self.store.get(task_id)
        self.gate.require_access(user_id, task.project_id)
        if patch.touches_order():
            raise ValidationError.single("status", "use the reorder operation to change lane or position")
        if patch.is_empty():
            raise ValidationError.single("body", "no updates provided")

        clean = check_task_fields(
            self.gate, task.project_id,
            title=patch.title, priority=patch.priority, assigned_to=patch.assigned_to,
        )
        if patch.description is not UNSET:
            clean["description"] = patch.description or ""

        changes = TaskPatch(**clean)
        try:
            self.store.update(task, changes)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("update of task %s failed", task_id, exc_info=True)
            raise StorageFailure("Storage unavailable, the change was not applied") from exc
        logger.info("task %s updated: %s", task_id, ", ".join(sorted(changes.present())))
        return self.get_task(user_id, task_id)
