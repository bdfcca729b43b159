"""Board controller for API clients.

Keeps a local copy of one project's board, applies moves optimistically and
then reconciles with what the server says. Works with any ``httpx.Client``,
including FastAPI's ``TestClient``.
"""
import logging
from typing import Any, Dict, List, Optional
import httpx
from taskboard.errors import (
    AccessDenied, ConflictError, NotAuthenticated, NotFound, StorageFailure, TaskBoardError,
    ValidationError,
)

logger = logging.getLogger(__name__)

LANES = ("todo", "in_progress", "done")

_BY_STATUS = {
    401: NotAuthenticated,
    403: AccessDenied,
    404: NotFound,
    409: ConflictError,
    503: StorageFailure,
}


def error_from_response(response: httpx.Response) -> TaskBoardError:
    try:
        body = response.json()
    except ValueError:
        body = {"detail": response.text}
    detail = body.get("detail", "") if isinstance(body, dict) else str(body)

    if response.status_code in (400, 422):
        errors = body.get("errors") if isinstance(body, dict) else None
        if errors is None and isinstance(detail, list):
            # FastAPI request validation: [{"loc": [...], "msg": ...}, ...]
            errors = [{"field": str(e.get("loc", ["body"])[-1]), "message": e.get("msg", "")} for e in detail]
        if errors is None:
            errors = [{"field": "body", "message": str(detail)}]
        return ValidationError(errors)
    cls = _BY_STATUS.get(response.status_code, TaskBoardError)
    return cls(str(detail) or f"HTTP {response.status_code}")


class BoardController:
    def __init__(self, http: httpx.Client, project_id: int, token: str):
        self.http = http
        self.project_id = project_id
        self._headers = {"Authorization": f"Bearer {token}"}
        self.board: Dict[str, List[dict]] = {lane: [] for lane in LANES}

    def _send(self, method: str, url: str, **kwargs) -> Any:
        response = self.http.request(method, url, headers=self._headers, **kwargs)
        if response.status_code >= 400:
            raise error_from_response(response)
        return response.json()

    def load(self) -> Dict[str, List[dict]]:
        """Replace the local board with the authoritative one."""
        self.board = self._send("GET", f"/tasks/project/{self.project_id}")
        return self.board

    def lane_ids(self, lane: str) -> List[int]:
        return [t["id"] for t in self.board.get(lane, [])]

    def create(self, title: str, **fields) -> dict:
        task = self._send("POST", "/tasks/", json={"title": title, "project_id": self.project_id, **fields})
        self.load()
        return task

    def delete(self, task_id: int) -> None:
        self._send("DELETE", f"/tasks/{task_id}")
        self.load()

    def move(self, task_id: int, new_status: str, new_position: int) -> Dict[str, List[dict]]:
        """Move a task, showing the result locally before the server confirms.

        The server's board always wins: on success it replaces the local
        guess, on failure the board is reloaded and the error re-raised.
        """
        self._apply_locally(task_id, new_status, new_position)
        try:
            board = self._send(
                "POST", "/tasks/reorder",
                json={"task_id": task_id, "new_status": new_status, "new_position": new_position},
            )
        except TaskBoardError as exc:
            logger.warning("move of task %s rejected (%s), reloading board", task_id, exc.detail)
            self._reload_after_failure()
            raise
        except httpx.HTTPError as exc:
            # the request may or may not have reached the server
            logger.warning("move of task %s failed in transport (%s), reloading board", task_id, exc)
            self._reload_after_failure()
            raise StorageFailure(f"Transport failure: {exc}") from exc
        self.board = board
        return self.board

    def _reload_after_failure(self) -> None:
        try:
            self.load()
        except (TaskBoardError, httpx.HTTPError):
            # keep the caller's original error; an unreadable board is dropped
            logger.warning("could not reload board for project %s", self.project_id, exc_info=True)
            self.board = {lane: [] for lane in LANES}

    def _apply_locally(self, task_id: int, new_status: str, new_position: int) -> Optional[dict]:
        if new_status not in self.board:
            return None
        moved = None
        for lane in self.board.values():
            for i, task in enumerate(lane):
                if task["id"] == task_id:
                    moved = lane.pop(i)
                    break
            if moved is not None:
                break
        if moved is None:
            return None

        target = self.board[new_status]
        index = max(0, min(new_position, len(target)))
        moved = dict(moved, status=new_status)
        target.insert(index, moved)
        for lane in self.board.values():
            for position, task in enumerate(lane):
                task["position"] = position
        return moved
