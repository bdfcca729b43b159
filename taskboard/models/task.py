import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from taskboard.database import Base
from taskboard.models.user import utcnow


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _values(e):
    return [m.value for m in e]


class Task(Base):
    __tablename__ = "tasks"
    # lane listing; positions are only unique per (project, status)
    __table_args__ = (Index("ix_tasks_lane", "project_id", "status", "position"),)

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(TaskStatus, values_callable=_values), nullable=False, default=TaskStatus.TODO)
    position = Column(Integer, nullable=False, default=0)
    priority = Column(Enum(TaskPriority, values_callable=_values), nullable=False, default=TaskPriority.MEDIUM)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="tasks")
