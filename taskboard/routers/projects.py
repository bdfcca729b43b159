from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskboard.database import get_db
from taskboard.schemas.project import ProjectCreate, ProjectUpdate, ProjectOut, ProjectDetail, MemberAdd, MemberOut
from taskboard.services.projects import ProjectService
from taskboard.utils.auth import get_current_user

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/", response_model=List[ProjectOut])
def list_projects(db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    return ProjectService(db).list_for_user(user_id)


@router.post("/", response_model=ProjectOut, status_code=201)
def create_project(data: ProjectCreate, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    return ProjectService(db).create(user_id, data.name, data.description)


@router.get("/{project_id}", response_model=ProjectDetail)
def get_project(project_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    service = ProjectService(db)
    project = service.get(user_id, project_id)
    base = ProjectOut.model_validate(project).model_dump()
    return ProjectDetail(**base, members=[MemberOut(**m) for m in service.members(project)])


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(project_id: int, data: ProjectUpdate, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    return ProjectService(db).update(user_id, project_id, name=data.name, description=data.description)


@router.delete("/{project_id}")
def delete_project(project_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    ProjectService(db).delete(user_id, project_id)
    return {"detail": "deleted"}


@router.post("/{project_id}/members", response_model=MemberOut, status_code=201)
def add_member(project_id: int, data: MemberAdd, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    service = ProjectService(db)
    member = service.add_member(user_id, project_id, data.email)
    return MemberOut(user_id=member.user_id, email=member.user.email, name=member.user.name, role=member.role.value)
