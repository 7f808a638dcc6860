from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.orm import Session

from questlog_api.core.config import Settings
from questlog_api.models import Event, Subtask, Task, User
from questlog_api.progression import save_user_rpg
from questlog_rpg import create_initial_rpg_state


DEMO_USER_ID = "user_demo"

# (description, priority, task_level, subtasks)
DEMO_TASKS: list[tuple[str, str, int, list[tuple[str, str | None, float | None]]]] = [
    (
        "Slay the inbox dragon",
        "high",
        3,
        [("Archive newsletters", None, 0.5), ("Answer the king", "high", None)],
    ),
    ("Forge the quarterly report", "medium", 2, [("Gather the numbers", None, None)]),
    ("Water the herb garden", "low", 1, []),
]


def _ensure_user(
    session: Session,
    *,
    user_id: str,
    username: str,
    display_name: str,
    settings: Settings,
    now: datetime,
) -> User:
    user = session.get(User, user_id)
    if user is not None:
        return user
    user = User(
        id=user_id,
        username=username,
        display_name=display_name,
        is_guest=False,
        created_at=now,
        updated_at=now,
    )
    save_user_rpg(user, create_initial_rpg_state(config=settings.xp_config()), now=now)
    session.add(user)
    return user


def seed_demo(
    session: Session,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
    reset: bool = False,
) -> User:
    settings = settings or Settings()
    now_dt = now or datetime.now(UTC)

    if reset:
        task_ids = [t.id for t in session.query(Task).filter(Task.owner_id == DEMO_USER_ID)]
        if task_ids:
            session.execute(delete(Subtask).where(Subtask.task_id.in_(task_ids)))
        session.execute(delete(Task).where(Task.owner_id == DEMO_USER_ID))
        session.execute(delete(Event).where(Event.user_id == DEMO_USER_ID))
        demo_row = session.get(User, DEMO_USER_ID)
        if demo_row:
            session.delete(demo_row)
        session.flush()

    demo = _ensure_user(
        session,
        user_id=DEMO_USER_ID,
        username="demo",
        display_name="Sir Demo",
        settings=settings,
        now=now_dt,
    )
    session.flush()

    if session.query(Task).filter(Task.owner_id == demo.id).count() == 0:
        for description, priority, level, subtasks in DEMO_TASKS:
            task = Task(
                owner_id=demo.id,
                description=description,
                priority=priority,
                task_level=level,
                status="todo",
                rpg_json="{}",
                created_at=now_dt,
                updated_at=now_dt,
            )
            session.add(task)
            session.flush()
            for sub_description, sub_priority, weight in subtasks:
                session.add(
                    Subtask(
                        task_id=task.id,
                        description=sub_description,
                        priority=sub_priority,
                        weight=weight,
                        status="todo",
                        xp_awarded=False,
                        last_reward_at=None,
                        created_at=now_dt,
                        updated_at=now_dt,
                    )
                )

    session.commit()
    return demo
