from __future__ import annotations

import contextlib
import hashlib
import threading
from dataclasses import dataclass, field
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session


@dataclass
class _LocalLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


# Entries live only while some thread holds or waits on them.
_LOCAL_LOCKS: dict[str, _LocalLock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()


def advisory_lock_key(*, name: str) -> int:
    raw = f"questlog:{str(name)}".encode("utf-8")
    digest = hashlib.sha256(raw).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=True)


def _is_postgres(session: Session) -> bool:
    try:
        bind = session.get_bind()
        return bool(getattr(getattr(bind, "dialect", None), "name", "") == "postgresql")
    except Exception:  # noqa: BLE001
        return False


def _checkout_local_lock(name: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(name)
        if entry is None:
            entry = _LocalLock()
            _LOCAL_LOCKS[name] = entry
        entry.holders += 1
        return entry.lock


def _return_local_lock(name: str) -> None:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(name)
        if entry is None:
            return
        entry.holders -= 1
        if entry.holders <= 0:
            del _LOCAL_LOCKS[name]


@contextlib.contextmanager
def user_progress_lock(session: Session, *, user_id: str) -> Iterator[None]:
    """Serialize read-modify-write cycles on one user's progression record.

    Within a process a per-user mutex orders requests. On PostgreSQL a
    transaction-scoped advisory lock also orders workers; it is released when
    the caller commits or rolls back. SQLite serializes writers itself.

    Rows read before entering must be refreshed inside the block.
    """
    name = f"user_progress:{user_id}"
    lock = _checkout_local_lock(name)
    try:
        with lock:
            if _is_postgres(session):
                session.execute(
                    text("SELECT pg_advisory_xact_lock(:k)"),
                    {"k": advisory_lock_key(name=name)},
                )
            yield
    finally:
        _return_local_lock(name)
