from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskboard.database import get_db
from taskboard.schemas.task import TaskCreate, TaskUpdate, TaskMove, TaskOut, BoardOut
from taskboard.services.board import BoardService
from taskboard.services.lanes import LaneEngine
from taskboard.services.task_store import TaskPatch
from taskboard.utils.auth import get_current_user

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/project/{project_id}", response_model=BoardOut)
def get_board(project_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    """Tasks of one project grouped by lane, each lane in position order."""
    return BoardService(db).get_board(user_id, project_id)


@router.post("/reorder", response_model=BoardOut)
def reorder_task(move: TaskMove, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    task = LaneEngine(db).move_to(user_id, move.task_id, move.new_status, move.new_position)
    return BoardService(db).get_board(user_id, task.project_id)


@router.post("/", response_model=TaskOut, status_code=201)
def create_task(task: TaskCreate, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    new = LaneEngine(db).insert_at(
        user_id,
        task.project_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        assigned_to=task.assigned_to,
    )
    return BoardService(db).get_task(user_id, new.id)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    return BoardService(db).get_task(user_id, task_id)


@router.put("/{task_id}", response_model=TaskOut)
def update_task(task_id: int, changes: TaskUpdate, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    patch = TaskPatch.from_mapping(changes.model_dump(exclude_unset=True))
    return BoardService(db).update_task(user_id, task_id, patch)


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user)):
    LaneEngine(db).remove_at(user_id, task_id)
    return {"detail": "deleted"}
