import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict
import taskboard.config as _cfg
from taskboard.errors import ConflictError

logger = logging.getLogger(__name__)


class ProjectLocks:
    """One mutual-exclusion region per project id.

    Acquisition is bounded: ``LOCK_RETRIES`` attempts share
    ``LOCK_TIMEOUT_SECONDS`` with an exponential backoff between them, after
    which ``ConflictError`` is raised. Different projects never contend.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def _lock_for(self, project_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = self._locks[project_id] = threading.Lock()
            return lock

    def acquire(self, project_id: int) -> threading.Lock:
        # read at call-time so tests can shrink the window
        retries = max(1, _cfg.LOCK_RETRIES)
        per_attempt = _cfg.LOCK_TIMEOUT_SECONDS / retries
        lock = self._lock_for(project_id)
        for attempt in range(retries):
            if lock.acquire(timeout=per_attempt):
                return lock
            logger.warning("project %s lock busy (attempt %d/%d)", project_id, attempt + 1, retries)
            if attempt + 1 < retries:
                time.sleep(_cfg.LOCK_BACKOFF_SECONDS * (2 ** attempt))
        raise ConflictError(f"Project {project_id} is busy, retry the operation")

    @contextmanager
    def hold(self, project_id: int):
        lock = self.acquire(project_id)
        try:
            yield
        finally:
            lock.release()

    def discard(self, project_id: int) -> None:
        with self._guard:
            self._locks.pop(project_id, None)


project_locks = ProjectLocks()
