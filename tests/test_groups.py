import pytest

from tests.conftest import auth_header, new_student


@pytest.fixture
async def roster(client, teacher, student):
    """Four student profile ids in the teacher's class."""
    ids = [student[1]]
    for _ in range(3):
        _, profile_id = await new_student(client, teacher[1])
        ids.append(profile_id)
    return ids


async def test_create_group(client, teacher, roster):
    token, _ = teacher
    response = await client.post(
        "/api/v1/groups",
        json={"name": "  Team   Alpha ", "project": "Science fair", "member_ids": roster[:2]},
        headers=auth_header(token),
    )
    assert response.status_code == 201, response.text
    group = response.json()["group"]
    assert group["name"] == "Team Alpha"
    assert group["max_size"] == 4
    assert group["formation_criteria"] == {"algorithm": "manual"}
    assert sorted(m["student_profile_id"] for m in group["members"]) == sorted(roster[:2])
    assert all(m["role"] == "member" for m in group["members"])
    # Two empty profiles: only the size factor contributes (60 * 0.2)
    assert group["quality_score"] == 12


async def test_group_validation(client, teacher, roster):
    token, _ = teacher
    too_many = await client.post(
        "/api/v1/groups",
        json={"name": "Big", "max_size": 2, "member_ids": roster[:3]},
        headers=auth_header(token),
    )
    assert too_many.status_code == 400
    assert too_many.json()["errors"] == ["Group cannot have more than 2 members"]

    unknown = "00000000-0000-0000-0000-000000000000"
    missing = await client.post(
        "/api/v1/groups", json={"name": "Ghosts", "member_ids": [unknown]}, headers=auth_header(token)
    )
    assert missing.status_code == 400
    assert missing.json()["errors"] == [f"Student not found: {unknown}"]


async def test_students_cannot_use_groups(client, student):
    token, _ = student
    assert (await client.get("/api/v1/groups", headers=auth_header(token))).status_code == 403


async def test_score_rosters(client, teacher, roster):
    token, _ = teacher
    response = await client.post(
        "/api/v1/groups/score",
        json={"groups": [roster[:2], roster]},
        headers=auth_header(token),
    )
    assert response.status_code == 200
    body = response.json()
    pair, full = body["groups"]
    assert pair["quality_score"] == 12
    assert full["breakdown"]["group_size"] == 100
    assert full["quality_score"] == 20
    assert body["summary"]["total_groups"] == 2
    assert body["summary"]["quality_distribution"] == {"high": 0, "medium": 0, "low": 2}

    # Nothing was saved
    listed = await client.get("/api/v1/groups", headers=auth_header(token))
    assert listed.json()["pagination"]["total"] == 0


async def test_batch_create(client, teacher, roster):
    token, _ = teacher
    response = await client.post(
        "/api/v1/groups/batch",
        json={
            "algorithm": "balanced",
            "project": "Capstone",
            "groups": [{"member_ids": roster[:2]}, {"name": "Second", "member_ids": roster[2:]}],
        },
        headers=auth_header(token),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "2 groups created successfully"
    first, second = body["groups"]
    assert first["name"] == "Group 1"
    assert second["name"] == "Second"
    assert first["formation_criteria"]["algorithm"] == "balanced"
    assert first["formation_criteria"]["quality_score"] == 12
    assert "formation_date" in first["formation_criteria"]
    assert body["summary"]["average_group_size"] == 2


async def test_batch_rejects_students_in_two_groups(client, teacher, roster):
    token, _ = teacher
    response = await client.post(
        "/api/v1/groups/batch",
        json={"algorithm": "random", "groups": [{"member_ids": roster[:2]}, {"member_ids": roster[1:3]}]},
        headers=auth_header(token),
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Group 2: students already placed in another group"]

    listed = await client.get("/api/v1/groups", headers=auth_header(token))
    assert listed.json()["groups"] == []


async def test_update_replaces_members(client, teacher, roster):
    token, _ = teacher
    created = await client.post(
        "/api/v1/groups", json={"name": "Team", "member_ids": roster[:2]}, headers=auth_header(token)
    )
    url = f"/api/v1/groups/{created.json()['group']['id']}"

    response = await client.put(
        url, json={"status": "completed", "member_ids": roster[2:]}, headers=auth_header(token)
    )
    assert response.status_code == 200
    group = response.json()["group"]
    assert group["status"] == "completed"
    assert sorted(m["student_profile_id"] for m in group["members"]) == sorted(roster[2:])

    bad = await client.put(url, json={"status": "archived"}, headers=auth_header(token))
    assert bad.status_code == 400
    assert bad.json()["errors"] == ["Invalid status"]


async def test_list_filters_by_status(client, teacher, roster):
    token, _ = teacher
    await client.post("/api/v1/groups", json={"name": "Open", "member_ids": roster[:2]}, headers=auth_header(token))
    await client.post(
        "/api/v1/groups",
        json={"name": "Done", "status": "completed", "member_ids": roster[2:]},
        headers=auth_header(token),
    )

    response = await client.get("/api/v1/groups?status=completed", headers=auth_header(token))
    assert [g["name"] for g in response.json()["groups"]] == ["Done"]


async def test_delete_group(client, teacher, roster):
    token, _ = teacher
    created = await client.post(
        "/api/v1/groups", json={"name": "Team", "member_ids": roster[:2]}, headers=auth_header(token)
    )
    url = f"/api/v1/groups/{created.json()['group']['id']}"

    response = await client.delete(url, headers=auth_header(token))
    assert response.json()["message"] == "Group deleted successfully"
    assert (await client.get(url, headers=auth_header(token))).status_code == 404


async def test_max_size_cannot_drop_below_members(client, teacher, roster):
    token, _ = teacher
    created = await client.post(
        "/api/v1/groups", json={"name": "Full", "member_ids": roster}, headers=auth_header(token)
    )
    url = f"/api/v1/groups/{created.json()['group']['id']}"

    response = await client.put(url, json={"max_size": 2}, headers=auth_header(token))
    assert response.status_code == 400
    assert response.json()["errors"] == ["Group cannot have more than 2 members"]
    assert (await client.get(url, headers=auth_header(token))).json()["group"]["max_size"] == 4

    larger = await client.put(url, json={"max_size": 5}, headers=auth_header(token))
    assert larger.status_code == 200
    assert larger.json()["group"]["max_size"] == 5
