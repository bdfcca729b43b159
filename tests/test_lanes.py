import random
import concurrent.futures
import pytest
from sqlalchemy.exc import OperationalError
import taskboard.config
from taskboard.database import SessionLocal
from taskboard.errors import ConflictError, NotFound, StorageFailure, ValidationError
from taskboard.services.lanes import LaneEngine
from taskboard.services.locks import project_locks
from taskboard.services.task_store import TaskStore


def _ids(rows):
    return [task_id for task_id, _ in rows]


def _assert_dense(snap):
    for lane, rows in snap.items():
        assert [pos for _, pos in rows] == list(range(len(rows))), lane


def test_insert_appends_at_lane_tail(lanes, owner, project, seed, snapshot):
    t1, t2 = seed("todo", "T1", "T2")
    t3 = lanes.insert_at(owner.id, project.id, "T3")
    (d1,) = seed("done", "D1")

    snap = snapshot()
    assert snap["todo"] == [(t1, 0), (t2, 1), (t3.id, 2)]
    assert snap["done"] == [(d1, 0)]
    assert t3.position == 2
    assert t3.created_by == owner.id


def test_same_lane_move_down(lanes, owner, seed, snapshot):
    t1, t2, t3 = seed("todo", "T1", "T2", "T3")

    lanes.move_to(owner.id, t1, "todo", 2)

    assert snapshot()["todo"] == [(t2, 0), (t3, 1), (t1, 2)]


def test_same_lane_move_up(lanes, owner, seed, snapshot):
    t1, t2, t3, t4 = seed("todo", "T1", "T2", "T3", "T4")

    lanes.move_to(owner.id, t4, "todo", 1)

    assert snapshot()["todo"] == [(t1, 0), (t4, 1), (t2, 2), (t3, 3)]


def test_cross_lane_move(lanes, owner, seed, snapshot):
    t1, t2 = seed("todo", "T1", "T2")
    (t3,) = seed("in_progress", "T3")

    lanes.move_to(owner.id, t1, "in_progress", 0)

    snap = snapshot()
    assert snap["todo"] == [(t2, 0)]
    assert snap["in_progress"] == [(t1, 0), (t3, 1)]


def test_move_to_current_slot_changes_nothing(db, lanes, owner, project, seed, snapshot):
    seed("todo", "T1", "T2", "T3")
    seed("done", "D1", "D2")
    before = snapshot()
    stamps = {t.id: t.updated_at for t in TaskStore(db).list_by_project(project.id)}

    lanes.move_to(owner.id, before["todo"][1][0], "todo", 1)

    assert snapshot() == before
    assert {t.id: t.updated_at for t in TaskStore(db).list_by_project(project.id)} == stamps


@pytest.mark.parametrize("target", [0, 1, 2, 3])
def test_cross_lane_conservation(lanes, owner, seed, snapshot, target):
    todo = seed("todo", "A1", "A2", "A3")
    progress = seed("in_progress", "B1", "B2", "B3")
    done = seed("done", "C1", "C2")

    lanes.move_to(owner.id, todo[1], "in_progress", target)

    snap = snapshot()
    _assert_dense(snap)
    assert len(snap["todo"]) == 2
    assert len(snap["in_progress"]) == 4
    assert _ids(snap["in_progress"])[target] == todo[1]
    assert snap["done"] == [(done[0], 0), (done[1], 1)]
    assert [i for i in _ids(snap["in_progress"]) if i != todo[1]] == progress


def test_position_beyond_tail_is_clamped(lanes, owner, seed, snapshot):
    t1, t2, t3 = seed("todo", "T1", "T2", "T3")
    (d1,) = seed("done", "D1")

    lanes.move_to(owner.id, t1, "todo", 99)
    lanes.move_to(owner.id, t2, "done", 42)

    snap = snapshot()
    assert snap["todo"] == [(t3, 0), (t1, 1)]
    assert snap["done"] == [(d1, 0), (t2, 1)]


def test_negative_position_is_clamped_to_head(lanes, owner, seed, snapshot):
    t1, t2 = seed("todo", "T1", "T2")

    moved = lanes.move_to(owner.id, t2, "todo", -5)

    assert moved.position == 0
    assert snapshot()["todo"] == [(t2, 0), (t1, 1)]


def test_move_into_empty_lane(lanes, owner, seed, snapshot):
    (t1,) = seed("todo", "T1")

    lanes.move_to(owner.id, t1, "done", 3)

    snap = snapshot()
    assert snap["todo"] == []
    assert snap["done"] == [(t1, 0)]


def test_move_rejects_unknown_status(lanes, owner, seed, snapshot):
    (t1,) = seed("todo", "T1")

    with pytest.raises(ValidationError) as exc:
        lanes.move_to(owner.id, t1, "blocked", 0)

    assert exc.value.errors[0]["field"] == "new_status"
    assert snapshot()["todo"] == [(t1, 0)]


def test_move_reports_every_bad_field(lanes, owner, seed):
    (t1,) = seed("todo", "T1")

    with pytest.raises(ValidationError) as exc:
        lanes.move_to(owner.id, t1, "blocked", "first")

    assert {e["field"] for e in exc.value.errors} == {"new_status", "new_position"}


def test_move_missing_task(lanes, owner, project):
    with pytest.raises(NotFound):
        lanes.move_to(owner.id, 12345, "todo", 0)


def test_remove_compacts_lane(lanes, owner, seed, snapshot):
    t1, t2, t3 = seed("todo", "T1", "T2", "T3")
    (p1,) = seed("in_progress", "P1")

    lanes.remove_at(owner.id, t2)

    snap = snapshot()
    assert snap["todo"] == [(t1, 0), (t3, 1)]
    assert snap["in_progress"] == [(p1, 0)]


def test_remove_head_of_lane(lanes, owner, seed, snapshot):
    t1, t2, t3, t4 = seed("done", "T1", "T2", "T3", "T4")

    lanes.remove_at(owner.id, t1)

    assert snapshot()["done"] == [(t2, 0), (t3, 1), (t4, 2)]


def test_remove_missing_task(lanes, owner, project):
    with pytest.raises(NotFound):
        lanes.remove_at(owner.id, 999)


def test_lanes_of_other_projects_are_untouched(db, lanes, owner, seed, snapshot):
    from taskboard.services.projects import ProjectService

    other = ProjectService(db).create(owner.id, "Gemini")
    o1 = lanes.insert_at(owner.id, other.id, "O1").id
    o2 = lanes.insert_at(owner.id, other.id, "O2").id
    t1, t2 = seed("todo", "T1", "T2")

    lanes.move_to(owner.id, t2, "todo", 0)
    lanes.remove_at(owner.id, t1)

    assert snapshot(other.id)["todo"] == [(o1, 0), (o2, 1)]


def test_density_holds_over_random_operations(lanes, owner, member, project, seed, snapshot):
    rng = random.Random(1234)
    statuses = ["todo", "in_progress", "done"]
    seed("todo", *[f"T{i}" for i in range(4)])

    for step in range(60):
        snap = snapshot()
        all_ids = [task_id for rows in snap.values() for task_id, _ in rows]
        op = rng.choice(["insert", "move", "move", "remove"]) if all_ids else "insert"
        actor = rng.choice([owner, member])
        if op == "insert":
            lanes.insert_at(actor.id, project.id, f"step {step}", status=rng.choice(statuses))
        elif op == "move":
            lanes.move_to(actor.id, rng.choice(all_ids), rng.choice(statuses), rng.randint(-1, 6))
        else:
            lanes.remove_at(actor.id, rng.choice(all_ids))
        _assert_dense(snapshot())


def test_busy_project_raises_conflict(monkeypatch, lanes, owner, project, seed, snapshot):
    (t1, t2) = seed("todo", "T1", "T2")
    monkeypatch.setattr(taskboard.config, "LOCK_TIMEOUT_SECONDS", 0.06)
    monkeypatch.setattr(taskboard.config, "LOCK_RETRIES", 2)
    monkeypatch.setattr(taskboard.config, "LOCK_BACKOFF_SECONDS", 0.01)

    lock = project_locks.acquire(project.id)
    try:
        with pytest.raises(ConflictError) as exc:
            lanes.move_to(owner.id, t1, "todo", 1)
        assert exc.value.retryable
    finally:
        lock.release()

    assert snapshot()["todo"] == [(t1, 0), (t2, 1)]
    lanes.move_to(owner.id, t1, "todo", 1)
    assert snapshot()["todo"] == [(t2, 0), (t1, 1)]


def test_failed_write_rolls_back_every_shift(monkeypatch, lanes, owner, seed, snapshot):
    t1, t2 = seed("todo", "T1", "T2")
    (p1,) = seed("in_progress", "P1")

    def broken_update(task, patch):
        raise OperationalError("UPDATE tasks", {}, Exception("disk I/O error"))

    monkeypatch.setattr(lanes.store, "update", broken_update)

    with pytest.raises(StorageFailure):
        lanes.move_to(owner.id, t1, "in_progress", 0)

    snap = snapshot()
    assert snap["todo"] == [(t1, 0), (t2, 1)]
    assert snap["in_progress"] == [(p1, 0)]


def test_concurrent_moves_keep_lanes_dense(owner, project, seed, snapshot):
    owner_id = owner.id
    todo = seed("todo", *[f"T{i}" for i in range(6)])
    progress = seed("in_progress", *[f"P{i}" for i in range(4)])
    rng = random.Random(42)
    moves = [
        (rng.choice(todo + progress), rng.choice(["todo", "in_progress", "done"]), rng.randint(0, 8))
        for _ in range(24)
    ]

    def move(args):
        session = SessionLocal()
        try:
            return LaneEngine(session).move_to(owner_id, *args).id
        finally:
            session.close()

    with concurrent.futures.ThreadPoolExecutor(max_workers=6) as executor:
        results = list(executor.map(move, moves))

    assert len(results) == len(moves)
    snap = snapshot()
    _assert_dense(snap)
    assert sum(len(rows) for rows in snap.values()) == 10
