from __future__ import annotations


def _create_task(api_client, headers, **fields) -> dict:
    payload = {"description": "Defeat the backlog", **fields}
    r = api_client.post("/api/tasks", json=payload, headers=headers)
    assert r.status_code == 201
    return r.json()


def test_task_completion_awards_xp_once(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers, task_level=3, priority="high")
    assert task["xp_reward"] == 85
    assert task["rpg"] == {"xp_awarded": False, "last_reward_at": None, "history": []}

    r = api_client.patch(
        f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=guest_headers
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "done"
    [ev] = body["xp_events"]
    assert ev["amount"] == 85
    assert ev["reason"] == "task_complete"
    assert ev["message"] == "Quest complete +85 XP"
    assert ev["metadata"] == {"task_id": task["id"], "task_level": 3, "priority": "high"}
    assert body["player_rpg"]["xp"] == 85
    assert body["player_rpg"]["counters"]["tasks_completed"] == 1
    assert body["rpg"]["xp_awarded"] is True
    assert body["rpg"]["last_reward_at"] == ev["at"]
    assert len(body["rpg"]["history"]) == 1

    api_client.patch(
        f"/api/tasks/{task['id']}/status", json={"status": "todo"}, headers=guest_headers
    )
    again = api_client.patch(
        f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=guest_headers
    )
    assert again.status_code == 200
    assert again.json()["xp_events"] is None

    state = api_client.get("/api/rpg", headers=guest_headers).json()["player_rpg"]
    assert state["xp"] == 85
    assert state["counters"]["tasks_completed"] == 1


def test_non_completing_status_change_awards_nothing(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers)
    r = api_client.patch(
        f"/api/tasks/{task['id']}/status",
        json={"status": "in_progress"},
        headers=guest_headers,
    )
    assert r.status_code == 200
    assert r.json()["xp_events"] is None
    assert api_client.get("/api/rpg", headers=guest_headers).json()["player_rpg"]["xp"] == 0


def test_subtask_completion_uses_weight_floor(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers, task_level=1, priority="medium")
    r = api_client.post(
        f"/api/tasks/{task['id']}/subtasks",
        json={"description": "Sharpen the pencil", "weight": 0.01},
        headers=guest_headers,
    )
    assert r.status_code == 201
    [sub] = r.json()["sub_tasks"]
    assert sub["xp_awarded"] is False

    done = api_client.patch(
        f"/api/tasks/{task['id']}/subtasks/{sub['id']}/status",
        json={"status": "done"},
        headers=guest_headers,
    )
    assert done.status_code == 200
    body = done.json()
    [ev] = body["xp_events"]
    assert ev["amount"] == 6
    assert ev["reason"] == "subtask_complete"
    assert ev["metadata"]["subtask_id"] == sub["id"]
    assert ev["metadata"]["weight"] == 0.01
    assert body["player_rpg"]["counters"]["subtasks_completed"] == 1
    assert body["sub_tasks"][0]["xp_awarded"] is True
    assert body["rpg"]["history"][0]["subtask_id"] == sub["id"]
    assert body["rpg"]["xp_awarded"] is False

    repeat = api_client.patch(
        f"/api/tasks/{task['id']}/subtasks/{sub['id']}/status",
        json={"status": "done"},
        headers=guest_headers,
    )
    assert repeat.json()["xp_events"] is None


def test_subtask_inherits_parent_priority(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers, priority="high")
    sub = api_client.post(
        f"/api/tasks/{task['id']}/subtasks",
        json={"description": "Scout ahead"},
        headers=guest_headers,
    ).json()["sub_tasks"][0]
    done = api_client.patch(
        f"/api/tasks/{task['id']}/subtasks/{sub['id']}/status",
        json={"status": "done"},
        headers=guest_headers,
    ).json()
    assert done["xp_events"][0]["amount"] == 21
    assert done["xp_events"][0]["metadata"]["priority"] == "high"


def test_task_reward_history_is_bounded(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers)
    for i in range(12):
        sub = api_client.post(
            f"/api/tasks/{task['id']}/subtasks",
            json={"description": f"Step {i}"},
            headers=guest_headers,
        ).json()["sub_tasks"][-1]
        api_client.patch(
            f"/api/tasks/{task['id']}/subtasks/{sub['id']}/status",
            json={"status": "done"},
            headers=guest_headers,
        )
    listed = api_client.get("/api/tasks", headers=guest_headers).json()["tasks"]
    mine = next(t for t in listed if t["id"] == task["id"])
    assert len(mine["rpg"]["history"]) == 10
    assert len(mine["sub_tasks"]) == 12


def test_tasks_are_private(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers)
    other = api_client.post("/api/auth/guest", json={"display_name": "Rival"}).json()
    other_headers = {"Authorization": f"Bearer {other['access_token']}"}
    r = api_client.patch(
        f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=other_headers
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "task_not_found"

    missing = api_client.patch(
        f"/api/tasks/{task['id']}/subtasks/999999/status",
        json={"status": "done"},
        headers=guest_headers,
    )
    assert missing.status_code == 404
    assert missing.json()["detail"] == "subtask_not_found"


def test_invalid_status_is_rejected(api_client, guest_headers) -> None:
    task = _create_task(api_client, guest_headers)
    r = api_client.patch(
        f"/api/tasks/{task['id']}/status", json={"status": "finished"}, headers=guest_headers
    )
    assert r.status_code == 422
