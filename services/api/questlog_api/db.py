from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from questlog_api.core.config import Settings


class Base(DeclarativeBase):
    pass


def _engine_kwargs(db_url: str) -> dict[str, Any]:
    if db_url.startswith("sqlite"):
        # Sessions are opened and closed on different threadpool workers.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


settings = Settings()
engine = create_engine(settings.db_url, future=True, **_engine_kwargs(settings.db_url))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def create_schema() -> None:
    """Create tables directly. Local dev and tests only; deployments use alembic."""
    from questlog_api import models  # noqa: F401

    Base.metadata.create_all(engine)
