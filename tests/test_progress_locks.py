from __future__ import annotations

import threading
import time
from datetime import UTC, datetime

import pytest


def test_advisory_lock_key_is_stable_and_distinct() -> None:
    from questlog_api.locks import advisory_lock_key

    a1 = advisory_lock_key(name="user_progress:user_demo")
    a2 = advisory_lock_key(name="user_progress:user_demo")
    b = advisory_lock_key(name="user_progress:guest_1")

    assert isinstance(a1, int)
    assert a1 == a2
    assert a1 != b


def test_user_progress_lock_serializes_per_user(seeded_db) -> None:
    from questlog_api import locks
    from questlog_api.db import SessionLocal

    with SessionLocal() as session:
        with locks.user_progress_lock(session, user_id="user_demo"):
            entry = locks._LOCAL_LOCKS["user_progress:user_demo"]
            assert entry.lock.locked()
            assert entry.holders == 1
            assert "user_progress:someone_else" not in locks._LOCAL_LOCKS


def test_user_progress_lock_forgets_released_users(seeded_db) -> None:
    from questlog_api import locks
    from questlog_api.db import SessionLocal

    with SessionLocal() as session:
        for i in range(50):
            with locks.user_progress_lock(session, user_id=f"guest_churn_{i}"):
                pass
        assert locks._LOCAL_LOCKS == {}

        with pytest.raises(RuntimeError):
            with locks.user_progress_lock(session, user_id="guest_churn_err"):
                raise RuntimeError("boom")
        assert locks._LOCAL_LOCKS == {}


def test_concurrent_grants_do_not_lose_xp(seeded_db) -> None:
    from questlog_api.core.config import Settings
    from questlog_api.db import SessionLocal
    from questlog_api.locks import user_progress_lock
    from questlog_api.models import User
    from questlog_api.progression import grant_xp, load_user_rpg, save_user_rpg
    from questlog_rpg import create_initial_rpg_state

    settings = Settings()
    user_id = "user_lock_race"
    now = datetime.now(UTC)
    with SessionLocal() as session:
        user = User(
            id=user_id,
            username=None,
            display_name="Racer",
            is_guest=True,
            created_at=now,
            updated_at=now,
        )
        save_user_rpg(user, create_initial_rpg_state(), now=now)
        session.add(user)
        session.commit()

    errors: list[BaseException] = []

    def worker() -> None:
        try:
            for _ in range(5):
                with SessionLocal() as session:
                    with user_progress_lock(session, user_id=user_id):
                        user = session.get(User, user_id)
                        grant_xp(
                            session,
                            user=user,
                            amount=3,
                            reason="xp_gain",
                            settings=settings,
                        )
                        session.commit()
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with SessionLocal() as session:
        rpg = load_user_rpg(session.get(User, user_id), settings=settings)
    assert rpg["xp"] == 60
    assert len(rpg["xp_log"]) == 20


def _make_player_with_task(user_id: str) -> tuple[int, int]:
    from questlog_api.db import SessionLocal
    from questlog_api.models import Subtask, Task, User
    from questlog_api.progression import save_user_rpg
    from questlog_rpg import create_initial_rpg_state

    now = datetime.now(UTC)
    with SessionLocal() as session:
        user = User(
            id=user_id,
            username=None,
            display_name="Twin Clicker",
            is_guest=True,
            created_at=now,
            updated_at=now,
        )
        save_user_rpg(user, create_initial_rpg_state(), now=now)
        session.add(user)
        task = Task(
            owner_id=user_id,
            description="Close the gate",
            priority="medium",
            task_level=1,
            status="todo",
            rpg_json="{}",
            created_at=now,
            updated_at=now,
        )
        session.add(task)
        session.flush()
        subtask = Subtask(
            task_id=task.id,
            description="Find the key",
            priority=None,
            weight=None,
            status="todo",
            xp_awarded=False,
            last_reward_at=None,
            created_at=now,
            updated_at=now,
        )
        session.add(subtask)
        session.commit()
        return int(task.id), int(subtask.id)


def _run_while_locked(user_id: str, target) -> list[BaseException]:
    """Start two workers while the user's lock is held so both read the rows first."""
    from questlog_api.db import SessionLocal
    from questlog_api.locks import user_progress_lock

    errors: list[BaseException] = []

    def worker() -> None:
        try:
            with SessionLocal() as session:
                target(session)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    with SessionLocal() as holder:
        with user_progress_lock(holder, user_id=user_id):
            for t in threads:
                t.start()
            time.sleep(0.3)
    for t in threads:
        t.join()
    return errors


def test_simultaneous_task_completions_award_once(seeded_db) -> None:
    from questlog_api.core.config import Settings
    from questlog_api.db import SessionLocal
    from questlog_api.models import Task, User
    from questlog_api.progression import load_task_rpg, load_user_rpg
    from questlog_api.routers.tasks import StatusUpdateIn, update_task_status

    settings = Settings()
    user_id = "user_double_done"
    task_id, _ = _make_player_with_task(user_id)

    def complete(session) -> None:
        update_task_status(
            task_id,
            StatusUpdateIn(status="done"),
            None,
            user_id=user_id,
            db=session,
            settings=settings,
        )

    assert _run_while_locked(user_id, complete) == []

    with SessionLocal() as session:
        rpg = load_user_rpg(session.get(User, user_id), settings=settings)
        task_rpg = load_task_rpg(session.get(Task, task_id))
    assert rpg["xp"] == 50
    assert rpg["counters"]["tasks_completed"] == 1
    assert len(rpg["xp_log"]) == 1
    assert len(task_rpg["history"]) == 1


def test_simultaneous_subtask_completions_award_once(seeded_db) -> None:
    from questlog_api.core.config import Settings
    from questlog_api.db import SessionLocal
    from questlog_api.models import User
    from questlog_api.progression import load_user_rpg
    from questlog_api.routers.tasks import StatusUpdateIn, update_subtask_status

    settings = Settings()
    user_id = "user_double_sub"
    task_id, subtask_id = _make_player_with_task(user_id)

    def complete(session) -> None:
        update_subtask_status(
            task_id,
            subtask_id,
            StatusUpdateIn(status="done"),
            None,
            user_id=user_id,
            db=session,
            settings=settings,
        )

    assert _run_while_locked(user_id, complete) == []

    with SessionLocal() as session:
        rpg = load_user_rpg(session.get(User, user_id), settings=settings)
    assert rpg["xp"] == 18
    assert rpg["counters"]["subtasks_completed"] == 1
    assert len(rpg["xp_log"]) == 1
