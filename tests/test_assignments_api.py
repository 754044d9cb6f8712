from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studyplanner.api.deps import get_clock
from studyplanner.core.clock import FixedClock
from studyplanner.db.deps import get_db
from studyplanner.db.models.assignment import Assignment
from studyplanner.db.models.user import User
from studyplanner.main import app


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Assignment.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    clock = FixedClock(datetime(2026, 1, 8, 12, 0, tzinfo=timezone.utc))
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client, clock
    app.dependency_overrides.clear()


def _create(test_client: TestClient, user_id: UUID, title: str, due: str, **extra) -> dict:
    payload = {"user_id": str(user_id), "title": title, "subject": "Chemistry", "due_date": due}
    payload.update(extra)
    response = test_client.post("/assignments", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_derives_priority_from_due_date(client):
    test_client, _ = client
    user_id = uuid4()

    overdue = _create(test_client, user_id, "Overdue quiz", "2026-01-07T12:00:00Z")
    soon = _create(test_client, user_id, "Lab", "2026-01-10T12:00:00Z", topics=["Titration"], estimated_hours=4)
    later = _create(test_client, user_id, "Project", "2026-02-20T12:00:00Z")

    assert overdue["priority"] == "urgent"
    assert soon["priority"] == "high"
    assert soon["days_remaining"] == 2
    assert soon["hours_remaining"] == 48
    assert soon["topics"] == ["Titration"]
    assert soon["estimated_hours"] == 4
    assert soon["status"] == "pending"
    assert later["priority"] == "low"
    assert later["estimated_hours"] == 2


def test_list_orders_by_due_date_and_filters(client):
    test_client, _ = client
    user_id = uuid4()
    _create(test_client, user_id, "Project", "2026-02-20T12:00:00Z")
    _create(test_client, user_id, "Lab", "2026-01-10T12:00:00Z", subject="Physics")
    _create(test_client, uuid4(), "Someone else", "2026-01-09T12:00:00Z")

    listed = test_client.get("/assignments", params={"user_id": str(user_id)})
    assert listed.status_code == 200
    body = listed.json()
    assert body["count"] == 2
    assert [item["title"] for item in body["assignments"]] == ["Lab", "Project"]

    high = test_client.get("/assignments", params={"user_id": str(user_id), "priority": "high"}).json()
    assert [item["title"] for item in high["assignments"]] == ["Lab"]

    physics = test_client.get("/assignments", params={"user_id": str(user_id), "subject": "Physics"}).json()
    assert physics["count"] == 1

    bad = test_client.get("/assignments", params={"user_id": str(user_id), "status": "done"})
    assert bad.status_code == 422


def test_moving_the_due_date_recomputes_priority(client):
    test_client, _ = client
    user_id = uuid4()
    created = _create(test_client, user_id, "Lab", "2026-01-10T12:00:00Z")

    response = test_client.put(
        f"/assignments/{created['id']}",
        json={"user_id": str(user_id), "due_date": "2026-01-30T12:00:00Z", "title": "Lab write-up"},
    )

    assert response.status_code == 200
    body = response.json()
    assert set(body["changed_fields"]) == {"title", "due_date", "priority"}
    assert body["assignment"]["priority"] == "low"
    assert body["assignment"]["title"] == "Lab write-up"
    assert body["assignment"]["subject"] == "Chemistry"


def test_completion_updates_user_stats_once(client):
    test_client, _ = client
    user_id = uuid4()
    created = _create(test_client, user_id, "Lab", "2026-01-10T12:00:00Z")
    url = f"/assignments/{created['id']}/status"

    done = test_client.patch(url, json={"user_id": str(user_id), "status": "completed", "actual_hours": 3.5})
    assert done.status_code == 200
    assert done.json()["status"] == "completed"
    assert done.json()["completed_at"] is not None
    assert done.json()["actual_hours"] == 3.5

    again = test_client.patch(url, json={"user_id": str(user_id), "status": "completed"})
    assert again.status_code == 200

    profile = test_client.get(f"/users/{user_id}/profile").json()
    assert profile["stats"] == {"assignments_completed": 1, "total_study_time": 3.5}

    reopened = test_client.patch(url, json={"user_id": str(user_id), "status": "in-progress"})
    assert reopened.json()["status"] == "in-progress"
    assert reopened.json()["completed_at"] is None
    profile = test_client.get(f"/users/{user_id}/profile").json()
    assert profile["stats"] == {"assignments_completed": 0, "total_study_time": 0}

    redone = test_client.patch(url, json={"user_id": str(user_id), "status": "completed", "actual_hours": 3.5})
    assert redone.json()["status"] == "completed"
    profile = test_client.get(f"/users/{user_id}/profile").json()
    assert profile["stats"] == {"assignments_completed": 1, "total_study_time": 3.5}


def test_ownership_and_delete(client):
    test_client, _ = client
    user_id = uuid4()
    created = _create(test_client, user_id, "Lab", "2026-01-10T12:00:00Z")

    foreign = test_client.get(f"/assignments/{created['id']}", params={"user_id": str(uuid4())})
    assert foreign.status_code == 403

    missing = test_client.get(f"/assignments/{uuid4()}", params={"user_id": str(user_id)})
    assert missing.status_code == 404

    deleted = test_client.delete(f"/assignments/{created['id']}", params={"user_id": str(user_id)})
    assert deleted.status_code == 204
    gone = test_client.get(f"/assignments/{created['id']}", params={"user_id": str(user_id)})
    assert gone.status_code == 404
