import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, Enum
from sqlalchemy.orm import relationship
from taskboard.database import Base
from taskboard.models.user import utcnow


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    MEMBER = "member"


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan", passive_deletes=True)
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan", passive_deletes=True)


class ProjectMember(Base):
    __tablename__ = "project_members"

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    role = Column(Enum(MemberRole, values_callable=lambda e: [m.value for m in e]), nullable=False, default=MemberRole.MEMBER)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="members")
    user = relationship("User")
