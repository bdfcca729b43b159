import logging
from typing import Optional
from sqlalchemy.orm import Session
from taskboard.errors import AccessDenied, NotFound
from taskboard.models.project import Project, ProjectMember, MemberRole

logger = logging.getLogger(__name__)


class AccessGate:
    """Decides whether a user may read/write a project's tasks.

    Access is granted to the project owner and to any user holding a
    ``project_members`` row for the project. Missing projects are reported
    as ``NotFound``, existing projects the user cannot see as ``AccessDenied``.
    """

    def __init__(self, db: Session):
        self.db = db

    def _membership(self, user_id: int, project_id: int) -> Optional[ProjectMember]:
        return self.db.get(ProjectMember, (project_id, user_id))

    def can_access(self, user_id: int, project_id: int) -> bool:
        project = self.db.get(Project, project_id)
        if project is None:
            return False
        if project.owner_id == user_id:
            return True
        return self._membership(user_id, project_id) is not None

    def require_access(self, user_id: int, project_id: int) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFound("Project not found")
        if project.owner_id != user_id and self._membership(user_id, project_id) is None:
            logger.warning("user %s denied access to project %s", user_id, project_id)
            raise AccessDenied("Access denied")
        return project

    def require_owner(self, user_id: int, project_id: int) -> Project:
        project = self.require_access(user_id, project_id)
        if project.owner_id != user_id:
            membership = self._membership(user_id, project_id)
            if membership is None or membership.role != MemberRole.OWNER:
                raise AccessDenied("Only the project owner may do this")
        return project

    def is_member(self, user_id: int, project_id: int) -> bool:
        # same rule as can_access; used for assignee checks
        return self.can_access(user_id, project_id)
