"""Lane ordering engine.

Every (project, status) lane keeps its positions dense: exactly ``0..n-1``.
``insert_at``, ``remove_at`` and ``move_to`` are the only operations that
change a task's lane or position. Each runs while holding the project's
lock, reads the affected lane rows ``FOR UPDATE`` and commits the shifts
together with the primary row change, or rolls everything back.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from taskboard.errors import StorageFailure, ValidationError
from taskboard.models.task import Task, TaskStatus, TaskPriority
from taskboard.services.access import AccessGate
from taskboard.services.locks import ProjectLocks, project_locks
from taskboard.services.task_store import TaskStore, TaskPatch, UNSET

logger = logging.getLogger(__name__)


def _enum_or_error(enum_cls, value, field: str, errors: List[Dict[str, str]]):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        errors.append({"field": field, "message": f"must be one of: {allowed}"})
        return None


def check_task_fields(
    gate: AccessGate,
    project_id: int,
    *,
    title: Any = UNSET,
    priority: Any = UNSET,
    assigned_to: Any = UNSET,
    errors: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    """Normalize editable task fields, collecting every violation.

    Returns the cleaned values for the fields that were given. Raises
    ``ValidationError`` listing all bad fields at once.
    """
    errors = [] if errors is None else errors
    clean: Dict[str, Any] = {}
    if title is not UNSET:
        if title is None or not str(title).strip():
            errors.append({"field": "title", "message": "title cannot be empty"})
        else:
            clean["title"] = str(title).strip()
    if priority is not UNSET:
        clean["priority"] = _enum_or_error(TaskPriority, priority, "priority", errors)
    if assigned_to is not UNSET:
        if assigned_to is not None and not gate.is_member(assigned_to, project_id):
            errors.append({"field": "assigned_to", "message": "assignee is not a member of this project"})
        clean["assigned_to"] = assigned_to
    if errors:
        raise ValidationError(errors)
    return clean


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(value, hi))


class LaneEngine:
    def __init__(self, db: Session, locks: Optional[ProjectLocks] = None):
        self.db = db
        self.store = TaskStore(db)
        self.gate = AccessGate(db)
        self.locks = locks or project_locks

    @contextmanager
    def _atomic(self, project_id: int):
        with self.locks.hold(project_id):
            try:
                yield
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("lane update on project %s failed", project_id, exc_info=True)
                raise StorageFailure("Storage unavailable, the change was not applied") from exc
            except BaseException:
                self.db.rollback()
                raise

    def insert_at(
        self,
        user_id: int,
        project_id: int,
        title: str,
        description: Optional[str] = "",
        status: Any = TaskStatus.TODO,
        priority: Any = TaskPriority.MEDIUM,
        assigned_to: Optional[int] = None,
    ) -> Task:
        """Create a task at the tail of its lane."""
        self.gate.require_access(user_id, project_id)
        errors: List[Dict[str, str]] = []
        lane = _enum_or_error(TaskStatus, status, "status", errors)
        fields = check_task_fields(
            self.gate, project_id,
            title=title, priority=priority, assigned_to=assigned_to, errors=errors,
        )

        with self._atomic(project_id):
            self.store.list_by_lane(project_id, lane, for_update=True)
            position = self.store.count_lane(project_id, lane)
            task = self.store.create(
                project_id=project_id,
                status=lane,
                position=position,
                description=description or "",
                created_by=user_id,
                **fields,
            )
        logger.info("task %s created in project %s lane %s at %d", task.id, project_id, lane.value, position)
        return task

    def remove_at(self, user_id: int, task_id: int) -> None:
        """Delete a task and close the gap it leaves in its lane."""
        task = self.store.get(task_id)
        project_id = task.project_id
        self.gate.require_access(user_id, project_id)

        with self._atomic(project_id):
            # re-read under the lock; a concurrent move may have changed it
            task = self.store.get(task_id, for_update=True)
            lane, position = task.status, task.position
            self.store.list_by_lane(project_id, lane, for_update=True)
            self.store.delete(task)
            self.store.shift(project_id, lane, -1, lo=position + 1)
        logger.info("task %s removed from project %s lane %s at %d", task_id, project_id, lane.value, position)

    def move_to(self, user_id: int, task_id: int, new_status: Any, new_position: Any) -> Task:
        """Reorder within a lane or move across lanes.

        ``new_position`` is clamped into the valid range for the target lane
        rather than rejected, so a client working from a stale board still
        lands the task at the nearest sensible slot.
        """
        task = self.store.get(task_id)
        project_id = task.project_id
        self.gate.require_access(user_id, project_id)

        errors: List[Dict[str, str]] = []
        target_lane = _enum_or_error(TaskStatus, new_status, "new_status", errors)
        if isinstance(new_position, bool) or not isinstance(new_position, int):
            errors.append({"field": "new_position", "message": "must be an integer"})
        if errors:
            raise ValidationError(errors)

        with self._atomic(project_id):
            task = self.store.get(task_id, for_update=True)
            old_lane, old_position = task.status, task.position
            self.store.list_by_lane(project_id, old_lane, for_update=True)

            if old_lane == target_lane:
                size = self.store.count_lane(project_id, old_lane)
                target = _clamp(new_position, 0, size - 1)
                if target == old_position:
                    return task
                if old_position < target:
                    self.store.shift(project_id, old_lane, -1, lo=old_position + 1, hi=target)
                else:
                    self.store.shift(project_id, old_lane, +1, lo=target, hi=old_position - 1)
            else:
                self.store.list_by_lane(project_id, target_lane, for_update=True)
                size = self.store.count_lane(project_id, target_lane)
                target = _clamp(new_position, 0, size)
                self.store.shift(project_id, old_lane, -1, lo=old_position + 1)
                self.store.shift(project_id, target_lane, +1, lo=target)

            self.store.update(task, TaskPatch(status=target_lane, position=target))

        logger.info(
            "task %s moved in project %s: %s[%d] -> %s[%d]",
            task_id, project_id, old_lane.value, old_position, target_lane.value, target,
        )
        return task
