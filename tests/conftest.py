from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

import pytest


_TEST_ROOT = Path(tempfile.mkdtemp(prefix="questlog_test_"))
_DB_PATH = _TEST_ROOT / "questlog_test.db"

os.environ["QUESTLOG_DB_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["QUESTLOG_AUTH_JWT_SECRET"] = "test-secret"
os.environ["QUESTLOG_DEBUG_ROUTES_ENABLED"] = "1"


@pytest.fixture(scope="session")
def seeded_db() -> None:
    from questlog_api.db import SessionLocal, create_schema
    from questlog_api.seed import seed_demo

    create_schema()
    with SessionLocal() as session:
        seed_demo(session, now=datetime.now(UTC))


@pytest.fixture()
def api_client(seeded_db):
    from fastapi.testclient import TestClient

    from questlog_api.main import app

    return TestClient(app)


@pytest.fixture()
def guest_headers(api_client) -> dict[str, str]:
    res = api_client.post("/api/auth/guest", json={})
    assert res.status_code == 200
    token = res.json()["access_token"]
    assert token
    return {"Authorization": f"Bearer {token}"}
