"""End-to-end tests for the cooking session endpoints."""

import pytest

BASE = "/api/cooking"


def add(client, name, temperature, minutes, shake=False):
    resp = client.post(f"{BASE}/session/items", json={
        "name": name,
        "temperature": temperature,
        "time_minutes": minutes,
        "shake_halfway": shake,
    })
    assert resp.status_code == 201
    return resp.json()


def test_ready(client):
    resp = client.get("/api/ready")
    assert resp.status_code == 200
    assert resp.json()["db_ok"] is True


def test_no_active_session(client):
    assert client.get(f"{BASE}/session").status_code == 404
    assert client.post(f"{BASE}/session/optimize").status_code == 404
    assert client.delete(f"{BASE}/session").status_code == 404


def test_full_cooking_flow(client):
    resp = client.post(f"{BASE}/session")
    assert resp.status_code == 200
    session_id = resp.json()["id"]
    assert resp.json()["status"] == "planning"

    add(client, "chicken", 200, 25)
    add(client, "potatoes", 200, 20, shake=True)
    resp = client.post(f"{BASE}/session/items/from-recipe", json={
        "recipe_id": "r-42",
        "name": "broccoli",
        "temperature": 180,
        "time_minutes": 8,
    })
    assert resp.status_code == 201
    assert resp.json()["source_recipe_id"] == "r-42"

    # Optimize
    resp = client.post(f"{BASE}/session/optimize")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "optimized"
    assert len(data["phases"]) == 2
    assert data["total_estimated_minutes"] == 33
    events = data["phases"][0]["events"]
    assert [e["event_type"] for e in events] == [
        "preheat_start", "add_item", "add_item", "shake_reminder", "remove_item", "phase_complete",
    ]
    assert events[4]["instruction"] == "Remove: chicken, potatoes"

    # Start
    resp = client.post(f"{BASE}/session/start")
    assert resp.status_code == 200
    assert resp.json()["status"] == "in_progress"

    # Editing is locked now
    resp = client.post(f"{BASE}/session/items", json={"name": "x", "temperature": 200, "time_minutes": 5})
    assert resp.status_code == 409

    # Step through
    resp = client.post(f"{BASE}/session/phases/0/events/0/complete")
    assert resp.status_code == 200
    assert resp.json()["current_event_index"] == 1
    assert resp.json()["phases"][0]["events"][0]["completed"] is True

    resp = client.post(f"{BASE}/session/phases/0/complete")
    assert resp.status_code == 200
    assert resp.json()["current_phase_index"] == 1

    resp = client.get(f"{BASE}/session/progress")
    assert resp.json() == {"current_phase": 2, "total_phases": 2, "percent_complete": 50}

    resp = client.get(f"{BASE}/session/phases/current")
    assert resp.json()["target_temperature"] == 180

    # Finish
    resp = client.post(f"{BASE}/session/complete")
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"
    assert client.get(f"{BASE}/session").status_code == 404

    resp = client.get(f"{BASE}/sessions/recent")
    assert [s["id"] for s in resp.json()] == [session_id]

    resp = client.get(f"{BASE}/sessions/{session_id}")
    assert resp.status_code == 200
    assert resp.json()["phases"][0]["completed_at"] is not None


def test_edit_after_optimize_returns_to_planning(client):
    client.post(f"{BASE}/session")
    item = add(client, "fries", 200, 15)
    client.post(f"{BASE}/session/optimize")

    resp = client.patch(f"{BASE}/session/items/{item['id']}", json={"time_minutes": 18})
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "planning"
    assert data["phases"] == []
    assert data["items"][0]["time_minutes"] == 18
    assert data["items"][0]["phase_id"] is None


def test_start_before_optimize_conflicts(client):
    client.post(f"{BASE}/session")
    add(client, "fries", 200, 15)
    resp = client.post(f"{BASE}/session/start")
    assert resp.status_code == 409
    assert "planning" in resp.json()["detail"]


@pytest.mark.parametrize("body", [
    {"name": "fries", "temperature": 200, "time_minutes": 0},
    {"name": "fries", "temperature": 500, "time_minutes": 10},
    {"name": "", "temperature": 200, "time_minutes": 10},
])
def test_item_validation(client, body):
    client.post(f"{BASE}/session")
    assert client.post(f"{BASE}/session/items", json=body).status_code == 422


def test_manual_batching_flow(client):
    client.post(f"{BASE}/session")
    wings = add(client, "wings", 200, 20)
    veg = add(client, "veg", 170, 10)

    resp = client.get(f"{BASE}/session/batches/suggestion")
    assert len(resp.json()) == 2
    assert client.get(f"{BASE}/session").json()["batches"] == []

    resp = client.post(f"{BASE}/session/batches")
    assert resp.status_code == 201
    batch = resp.json()

    resp = client.post(f"{BASE}/session/batches/{batch['id']}/items", json={"item_id": wings["id"]})
    assert resp.status_code == 200
    resp = client.post(f"{BASE}/session/items/{veg['id']}/move", json={"to_batch_id": batch["id"]})
    assert resp.json()["batches"][0]["item_ids"] == [wings["id"], veg["id"]]

    resp = client.get(f"{BASE}/session/batches/hints")
    assert resp.json()[0]["hint"]["severity"] == "mismatch"

    resp = client.patch(f"{BASE}/session/batches/{batch['id']}", json={"user_notes": "all together"})
    assert resp.json()["batches"][0]["user_notes"] == "all together"

    resp = client.post(f"{BASE}/session/optimize")
    phases = resp.json()["phases"]
    assert len(phases) == 1
    assert phases[0]["id"] == batch["id"]
    assert phases[0]["target_temperature"] == 185

    resp = client.delete(f"{BASE}/session/batches/items/{veg['id']}")
    assert resp.json()["status"] == "planning"
    assert [i["id"] for i in client.get(f"{BASE}/session/items/unassigned").json()] == [veg["id"]]

    resp = client.delete(f"{BASE}/session/batches/{batch['id']}")
    assert resp.json()["batches"] == []

    resp = client.put(f"{BASE}/session/manual-batching", json={"enabled": False})
    assert resp.json()["use_manual_batching"] is False


def test_apply_suggestion_endpoint(client):
    client.post(f"{BASE}/session")
    add(client, "wings", 200, 20)
    add(client, "veg", 170, 10)

    suggestion = client.get(f"{BASE}/session/batches/suggestion").json()
    resp = client.post(f"{BASE}/session/batches/suggestion", json={"batches": suggestion})
    assert resp.status_code == 200
    assert resp.json()["use_manual_batching"] is True
    assert len(resp.json()["batches"]) == 2


def test_cancel_in_progress_keeps_history(client):
    resp = client.post(f"{BASE}/session")
    session_id = resp.json()["id"]
    add(client, "fries", 200, 15)
    client.post(f"{BASE}/session/optimize")
    client.post(f"{BASE}/session/start")

    assert client.delete(f"{BASE}/session").status_code == 204
    assert client.get(f"{BASE}/sessions/{session_id}").json()["status"] == "cancelled"

    # Resume into the active slot, then delete from history
    resp = client.post(f"{BASE}/sessions/{session_id}/load")
    assert resp.status_code == 200
    assert client.delete(f"{BASE}/sessions/{session_id}").status_code == 204
    assert client.get(f"{BASE}/sessions/{session_id}").status_code == 404


def test_storage_failure_is_retryable(client, service, broken_store):
    client.post(f"{BASE}/session")
    add(client, "fries", 200, 15)
    client.post(f"{BASE}/session/optimize")

    working_store = service.store
    service.store = broken_store
    resp = client.post(f"{BASE}/session/start")
    assert resp.status_code == 503
    assert client.get(f"{BASE}/session").json()["status"] == "optimized"

    service.store = working_store
    resp = client.post(f"{BASE}/session/start")
    assert resp.status_code == 200
    assert resp.json()["status"] == "in_progress"
