import logging
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from taskboard.errors import NotFound, StorageFailure, ValidationError
from taskboard.models.project import Project, ProjectMember, MemberRole
from taskboard.models.user import User
from taskboard.services.access import AccessGate
from taskboard.services.locks import ProjectLocks, project_locks

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, db: Session, locks: Optional[ProjectLocks] = None):
        self.db = db
        self.gate = AccessGate(db)
        self.locks = locks or project_locks

    def _commit(self, what: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("%s failed", what, exc_info=True)
            raise StorageFailure("Storage unavailable, the change was not applied") from exc

    def list_for_user(self, user_id: int) -> List[Project]:
        return (
            self.db.query(Project)
            .outerjoin(ProjectMember, ProjectMember.project_id == Project.id)
            .filter(or_(Project.owner_id == user_id, ProjectMember.user_id == user_id))
            .distinct()
            .order_by(Project.created_at.desc(), Project.id.desc())
            .all()
        )

    def get(self, user_id: int, project_id: int) -> Project:
        return self.gate.require_access(user_id, project_id)

    def create(self, user_id: int, name: str, description: Optional[str] = "") -> Project:
        if not name or not name.strip():
            raise ValidationError.single("name", "name cannot be empty")
        project = Project(name=name.strip(), description=description or "", owner_id=user_id)
        project.members.append(ProjectMember(user_id=user_id, role=MemberRole.OWNER))
        self.db.add(project)
        self._commit("project create")
        self.db.refresh(project)
        logger.info("project %s created by user %s", project.id, user_id)
        return project

    def update(self, user_id: int, project_id: int, name=None, description=None) -> Project:
        project = self.gate.require_owner(user_id, project_id)
        if name is None and description is None:
            raise ValidationError.single("body", "no updates provided")
        if name is not None:
            if not name.strip():
                raise ValidationError.single("name", "name cannot be empty")
            project.name = name.strip()
        if description is not None:
            project.description = description
        self._commit("project update")
        self.db.refresh(project)
        return project

    def delete(self, user_id: int, project_id: int) -> None:
        """Remove the project together with its tasks and memberships."""
        project = self.gate.require_owner(user_id, project_id)
        with self.locks.hold(project_id):
            self.db.delete(project)
            self._commit("project delete")
            self.locks.discard(project_id)
        logger.info("project %s deleted by user %s", project_id, user_id)

    def add_member(self, user_id: int, project_id: int, email: str) -> ProjectMember:
        self.gate.require_owner(user_id, project_id)
        user = self.db.query(User).filter(User.email == email).first()
        if user is None:
            raise NotFound("User not found")
        if self.db.get(ProjectMember, (project_id, user.id)) is not None:
            raise ValidationError.single("email", "user is already a member")
        member = ProjectMember(project_id=project_id, user_id=user.id, role=MemberRole.MEMBER)
        self.db.add(member)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError.single("email", "user is already a member")
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("adding member to project %s failed", project_id, exc_info=True)
            raise StorageFailure("Storage unavailable, the change was not applied") from exc
        logger.info("user %s added to project %s", user.id, project_id)
        self.db.refresh(member)
        return member

    def members(self, project: Project) -> List[dict]:
        rows = (
            self.db.query(ProjectMember, User)
            .join(User, ProjectMember.user_id == User.id)
            .filter(ProjectMember.project_id == project.id)
            .order_by(ProjectMember.joined_at, User.id)
            .all()
        )
        return [
            {"user_id": user.id, "email": user.email, "name": user.name, "role": member.role.value}
            for member, user in rows
        ]
