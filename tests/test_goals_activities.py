from tests.conftest import auth_header, new_student

GOAL = {
    "title": "Learn SQL",
    "description": "Finish the database course before finals",
    "category": "skill",
}


async def create_goal(client, token, **overrides):
    response = await client.post("/api/v1/goals", json={**GOAL, **overrides}, headers=auth_header(token))
    assert response.status_code == 201, response.text
    return response.json()["goal"]


# ==================== Goals ====================

async def test_student_creates_goal_with_defaults(client, student):
    token, profile_id = student
    response = await client.post("/api/v1/goals", json=GOAL, headers=auth_header(token))
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Goal created successfully"
    goal = body["goal"]
    assert goal["student_profile_id"] == profile_id
    assert goal["priority"] == "medium"
    assert goal["status"] == "active"
    assert goal["completed_at"] is None


async def test_goal_validation(client, student):
    token, _ = student
    response = await client.post(
        "/api/v1/goals", json={"title": "x", "category": "hobby"}, headers=auth_header(token)
    )
    assert response.status_code == 400
    assert response.json()["errors"] == [
        "Title must be 3-255 characters",
        "Description must be 10-1000 characters",
        "Invalid category",
    ]


async def test_student_cannot_create_for_another(client, teacher, student):
    token, _ = student
    _, other_id = await new_student(client, teacher[1])
    response = await client.post(
        "/api/v1/goals", json={**GOAL, "student_id": other_id}, headers=auth_header(token)
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Students can only create goals for themselves"


async def test_teacher_must_name_student(client, teacher, student):
    teacher_token, _ = teacher
    _, profile_id = student

    missing = await client.post("/api/v1/goals", json=GOAL, headers=auth_header(teacher_token))
    assert missing.status_code == 400

    created = await client.post(
        "/api/v1/goals", json={**GOAL, "student_id": profile_id}, headers=auth_header(teacher_token)
    )
    assert created.status_code == 201
    assert created.json()["goal"]["student_profile_id"] == profile_id


async def test_goals_ordered_by_priority(client, student):
    token, _ = student
    await create_goal(client, token, title="Low goal", priority="low")
    await create_goal(client, token, title="Urgent goal", priority="urgent")
    await create_goal(client, token, title="High goal", priority="high")

    response = await client.get("/api/v1/goals", headers=auth_header(token))
    body = response.json()
    assert body["count"] == 3
    assert [g["title"] for g in body["goals"]] == ["Urgent goal", "High goal", "Low goal"]


async def test_goal_status_lifecycle(client, student):
    token, _ = student
    goal = await create_goal(client, token)
    url = f"/api/v1/goals/{goal['id']}"

    paused = await client.put(url, json={"status": "paused"}, headers=auth_header(token))
    assert paused.json()["goal"]["status"] == "paused"

    bad = await client.put(url, json={"status": "completed"}, headers=auth_header(token))
    assert bad.status_code == 400
    assert bad.json()["errors"] == ["Invalid status transition from paused to completed"]

    await client.put(url, json={"status": "active"}, headers=auth_header(token))
    done = await client.put(url, json={"status": "completed"}, headers=auth_header(token))
    assert done.json()["message"] == "Goal updated successfully"
    assert done.json()["goal"]["completed_at"] is not None

    reopened = await client.put(url, json={"status": "active"}, headers=auth_header(token))
    assert reopened.status_code == 400


async def test_empty_update_rejected(client, student):
    token, _ = student
    goal = await create_goal(client, token)
    response = await client.put(f"/api/v1/goals/{goal['id']}", json={}, headers=auth_header(token))
    assert response.status_code == 400
    assert response.json()["message"] == "No valid fields to update"


async def test_goal_ownership(client, teacher, student):
    token, _ = student
    other_token, _ = await new_student(client, teacher[1])
    goal = await create_goal(client, token)

    response = await client.get(f"/api/v1/goals/{goal['id']}", headers=auth_header(other_token))
    assert response.status_code == 403

    listed = await client.get("/api/v1/goals", headers=auth_header(other_token))
    assert listed.json()["count"] == 0

    staff = await client.get(f"/api/v1/goals/{goal['id']}", headers=auth_header(teacher[0]))
    assert staff.status_code == 200


async def test_delete_goal(client, student):
    token, _ = student
    goal = await create_goal(client, token)

    response = await client.delete(f"/api/v1/goals/{goal['id']}", headers=auth_header(token))
    assert response.json() == {"success": True, "message": "Goal deleted successfully"}

    missing = await client.get(f"/api/v1/goals/{goal['id']}", headers=auth_header(token))
    assert missing.status_code == 404
    assert missing.json()["message"] == "Goal not found"


# ==================== Activities ====================

ACTIVITY = {
    "title": "Robotics club",
    "category": "academic",
    "start_date": "2024-01-10",
    "end_date": "2024-05-30",
    "hours": 40,
    "organization": "Northside High",
}


async def test_create_activity(client, student):
    token, profile_id = student
    response = await client.post("/api/v1/activities", json=ACTIVITY, headers=auth_header(token))
    assert response.status_code == 201
    activity = response.json()["activity"]
    assert activity["student_profile_id"] == profile_id
    assert activity["hours"] == 40
    assert activity["is_current"] is False
    assert activity["start_date"] == "2024-01-10"


async def test_activity_hours_default_to_zero(client, student):
    token, _ = student
    response = await client.post(
        "/api/v1/activities", json={"title": "Choir", "category": "creative"}, headers=auth_header(token)
    )
    assert response.json()["activity"]["hours"] == 0


async def test_activity_date_range_checked_against_stored_dates(client, student):
    token, _ = student
    created = await client.post("/api/v1/activities", json=ACTIVITY, headers=auth_header(token))
    url = f"/api/v1/activities/{created.json()['activity']['id']}"

    response = await client.put(url, json={"start_date": "2024-06-01"}, headers=auth_header(token))
    assert response.status_code == 400
    assert response.json()["errors"] == ["Start date cannot be after end date"]

    ok = await client.put(url, json={"end_date": None, "is_current": True}, headers=auth_header(token))
    assert ok.status_code == 200
    assert ok.json()["activity"]["end_date"] is None
    assert ok.json()["activity"]["is_current"] is True


async def test_activities_newest_first(client, student):
    token, _ = student
    await client.post("/api/v1/activities", json={**ACTIVITY, "title": "Older"}, headers=auth_header(token))
    await client.post(
        "/api/v1/activities",
        json={**ACTIVITY, "title": "Newer", "start_date": "2024-03-01"},
        headers=auth_header(token),
    )
    titles = [a["title"] for a in (await client.get("/api/v1/activities", headers=auth_header(token))).json()["activities"]]
    assert titles == ["Newer", "Older"]


async def test_student_cannot_create_activity_for_another(client, teacher, student):
    token, _ = student
    _, other_id = await new_student(client, teacher[1])
    response = await client.post(
        "/api/v1/activities", json={**ACTIVITY, "student_id": other_id}, headers=auth_header(token)
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Students can only create activities for themselves"


async def test_delete_activity(client, student):
    token, _ = student
    created = await client.post("/api/v1/activities", json=ACTIVITY, headers=auth_header(token))
    url = f"/api/v1/activities/{created.json()['activity']['id']}"

    response = await client.delete(url, headers=auth_header(token))
    assert response.json()["message"] == "Activity deleted successfully"
    assert (await client.get(url, headers=auth_header(token))).status_code == 404


async def test_goals_appear_in_student_record(client, student):
    token, profile_id = student
    await create_goal(client, token)
    await client.post("/api/v1/activities", json=ACTIVITY, headers=auth_header(token))

    body = (await client.get(f"/api/v1/students/{profile_id}", headers=auth_header(token))).json()
    assert len(body["goals"]) == 1
    assert len(body["activities"]) == 1
