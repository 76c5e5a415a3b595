import pytest


async def create(client, headers, **payload):
    resp = await client.post("/api/goals", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["goal"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"


@pytest.mark.asyncio
async def test_goals_require_authentication(client):
    resp = await client.get("/api/goals")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Not authenticated"}

    resp = await client.get("/api/goals", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid token"


@pytest.mark.asyncio
async def test_create_and_fetch_goal_uses_camel_case(client, register):
    headers = await register()
    goal = await create(client, headers, title="Launch MVP", priority="HIGH", dueDate="2025-10-30",
                        subtasks=[{"title": "Design", "estimatedHours": 4}, {"title": "Build"}])

    assert goal["status"] == "ACTIVE"
    assert goal["dueDate"] == "2025-10-30"
    assert goal["subtasks"][0]["estimatedHours"] == 4
    assert "ownerId" in goal and "createdAt" in goal

    resp = await client.get(f"/api/goals/{goal['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": {"goal": goal}}


@pytest.mark.asyncio
async def test_create_goal_body_errors(client, register):
    headers = await register()

    resp = await client.post("/api/goals", json={"title": "   "}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["success"] is False
    assert resp.json()["detail"] == "Validation Error"

    resp = await client.post("/api/goals", json={"title": "X", "status": "COMPLETED", "subtasks": [{"title": "open"}]},
                             headers=headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_toggle_flow_updates_goal_status(client, register):
    headers = await register()
    goal = await create(client, headers, title="Launch MVP", subtasks=[{"title": "Design"}, {"title": "Build"}])

    for subtask in goal["subtasks"]:
        resp = await client.put(f"/api/goals/subtasks/{subtask['id']}/toggle", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["subtask"]["completed"] is True

    resp = await client.get(f"/api/goals/{goal['id']}", headers=headers)
    assert resp.json()["data"]["goal"]["status"] == "COMPLETED"

    build = goal["subtasks"][1]
    resp = await client.put(f"/api/goals/{goal['id']}/subtasks/{build['id']}", json={"completed": False},
                            headers=headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/goals/{goal['id']}", headers=headers)
    assert resp.json()["data"]["goal"]["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_partial_update_and_delete(client, register):
    headers = await register()
    goal = await create(client, headers, title="Tidy up", dueDate="2025-05-01", subtasks=[{"title": "Desk"}])

    resp = await client.put(f"/api/goals/{goal['id']}", json={"priority": "LOW"}, headers=headers)
    assert resp.status_code == 200
    updated = resp.json()["data"]["goal"]
    assert updated["priority"] == "LOW"
    assert updated["title"] == "Tidy up"
    assert updated["dueDate"] == "2025-05-01"
    assert updated["subtasks"] == goal["subtasks"]

    resp = await client.delete(f"/api/goals/{goal['id']}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/goals/{goal['id']}", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Goal not found"}


@pytest.mark.asyncio
async def test_subtask_routes(client, register):
    headers = await register()
    goal = await create(client, headers, title="Garden")

    resp = await client.post(f"/api/goals/{goal['id']}/subtasks", json={"title": "Dig", "completed": True},
                             headers=headers)
    assert resp.status_code == 201
    subtask = resp.json()["data"]["subtask"]
    assert subtask["completed"] is False
    assert subtask["goalId"] == goal["id"]

    resp = await client.delete(f"/api/goals/{goal['id']}/subtasks/{subtask['id']}", headers=headers)
    assert resp.status_code == 200
    resp = await client.put(f"/api/goals/subtasks/{subtask['id']}/toggle", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Subtask not found"


@pytest.mark.asyncio
async def test_other_users_goals_are_not_found(client, register):
    alice = await register("alice@example.com")
    bob = await register("bob@example.com")
    goal = await create(client, alice, title="Private", subtasks=[{"title": "Secret"}])

    assert (await client.get(f"/api/goals/{goal['id']}", headers=bob)).status_code == 404
    assert (await client.put(f"/api/goals/{goal['id']}", json={"title": "Mine"}, headers=bob)).status_code == 404
    assert (await client.delete(f"/api/goals/{goal['id']}", headers=bob)).status_code == 404
    toggle = await client.put(f"/api/goals/subtasks/{goal['subtasks'][0]['id']}/toggle", headers=bob)
    assert toggle.status_code == 404

    resp = await client.get("/api/goals", headers=bob)
    assert resp.json()["data"]["goals"] == []


@pytest.mark.asyncio
async def test_list_filters_and_date_routes(client, register):
    headers = await register()
    await create(client, headers, title="A", priority="HIGH", dueDate="2025-03-01")
    await create(client, headers, title="B", dueDate="2025-03-03")
    await create(client, headers, title="C")

    resp = await client.get("/api/goals", params={"priority": "HIGH"}, headers=headers)
    assert [g["title"] for g in resp.json()["data"]["goals"]] == ["A"]

    resp = await client.get("/api/goals", params={"startDate": "2025-03-02", "endDate": "2025-03-31"}, headers=headers)
    assert [g["title"] for g in resp.json()["data"]["goals"]] == ["B"]

    resp = await client.get("/api/goals/date/2025-03-01", headers=headers)
    assert [g["title"] for g in resp.json()["data"]["goals"]] == ["A"]

    resp = await client.get("/api/goals/date-range", params={"startDate": "2025-03-01", "endDate": "2025-03-31"},
                            headers=headers)
    assert sorted(resp.json()["data"]["goalsByDate"]) == ["2025-03-01", "2025-03-03"]

    resp = await client.get("/api/goals/date-range", params={"startDate": "2025-04-01", "endDate": "2025-03-01"},
                            headers=headers)
    assert resp.status_code == 400

    resp = await client.get("/api/goals/date/soon", headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_stats(client, register):
    headers = await register()
    await create(client, headers, title="Done", priority="HIGH", subtasks=[{"title": "A", "completed": True}])
    await create(client, headers, title="Open", subtasks=[{"title": "B"}])

    resp = await client.get("/api/goals/stats", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["stats"] == {
        "totalGoals": 2,
        "activeGoals": 1,
        "completedGoals": 1,
        "highPriorityGoals": 1,
        "totalSubtasks": 2,
        "completedSubtasks": 1,
        "goalCompletionRate": 50,
        "subtaskCompletionRate": 50,
    }
