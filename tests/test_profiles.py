from tests.conftest import auth_header, new_student

FULL_PROFILE = {
    "first_name": "Samira",
    "last_name": "Stone",
    "year_level": "Junior",
    "major": "Computer Science",
    "bio": "I build small robots",
    "short_term_goals": "Pass data structures",
    "long_term_goals": "Work on compilers",
    "github_url": "https://github.com/samira",
    "technical_skills": [{"name": "Python", "proficiency": "advanced"}, {"name": "SQL"}],
    "soft_skills": [{"name": "Teamwork", "proficiency": "intermediate"}],
    "interests": ["Robotics", "  Chess  "],
}


async def test_full_profile_update(client, student):
    token, profile_id = student
    response = await client.put("/api/v1/users/profile", json=FULL_PROFILE, headers=auth_header(token))
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["message"] == "Profile updated successfully"
    assert body["user"]["first_name"] == "Samira"

    profile = body["profile"]
    assert profile["id"] == profile_id
    assert profile["profile_completion_percentage"] == 100
    assert {s["name"] for s in profile["technical_skills"]} == {"Python", "SQL"}
    assert profile["soft_skills"][0]["proficiency_level"] == "intermediate"
    assert {i["name"] for i in profile["interests"]} == {"Robotics", "Chess"}


async def test_skill_lists_are_replaced(client, student):
    token, _ = student
    await client.put("/api/v1/users/profile", json=FULL_PROFILE, headers=auth_header(token))

    response = await client.put(
        "/api/v1/users/profile",
        json={"technical_skills": [{"name": "Rust"}]},
        headers=auth_header(token),
    )
    profile = response.json()["profile"]
    assert [s["name"] for s in profile["technical_skills"]] == ["Rust"]
    # Untouched lists stay
    assert [s["name"] for s in profile["soft_skills"]] == ["Teamwork"]
    assert profile["major"] == "Computer Science"


async def test_completion_drops_when_lists_are_cleared(client, student):
    token, _ = student
    await client.put("/api/v1/users/profile", json=FULL_PROFILE, headers=auth_header(token))

    response = await client.put(
        "/api/v1/users/profile",
        json={"technical_skills": [], "soft_skills": [], "interests": []},
        headers=auth_header(token),
    )
    assert response.json()["profile"]["profile_completion_percentage"] == 80


async def test_invalid_profile_rejected_whole(client, student):
    token, _ = student
    response = await client.put(
        "/api/v1/users/profile",
        json={"major": "Physics", "year_level": "Fifth", "github_url": "not a url"},
        headers=auth_header(token),
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Invalid year level", "Invalid GitHub URL"]

    # Nothing was written
    profile = (await client.get("/api/v1/users/profile", headers=auth_header(token))).json()["profile"]
    assert profile["major"] is None


async def test_invalid_skill_entry(client, student):
    token, _ = student
    response = await client.put(
        "/api/v1/users/profile",
        json={"technical_skills": [{"name": "Go", "proficiency": "guru"}]},
        headers=auth_header(token),
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Technical skill 1: Invalid proficiency level"]


async def test_teacher_has_no_student_profile(client, teacher):
    token, _ = teacher
    names = await client.put("/api/v1/users/profile", json={"first_name": "Tamsin"}, headers=auth_header(token))
    assert names.status_code == 200
    assert names.json()["user"]["first_name"] == "Tamsin"
    assert names.json()["profile"] is None

    fields = await client.put("/api/v1/users/profile", json={"major": "Math"}, headers=auth_header(token))
    assert fields.status_code == 400
    assert fields.json()["errors"] == ["Only students have a student profile"]


async def test_email_change_conflict(client, teacher, student):
    token, _ = student
    response = await client.put(
        "/api/v1/users/profile", json={"email": "teacher@school.edu"}, headers=auth_header(token)
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Email is already in use"


# ==================== /students ====================

async def test_student_reads_own_record(client, student):
    token, profile_id = student
    response = await client.get(f"/api/v1/students/{profile_id}", headers=auth_header(token))
    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["id"] == profile_id
    assert body["goals"] == []
    assert body["activities"] == []


async def test_student_cannot_read_another_student(client, teacher, student):
    token, _ = student
    _, other_id = await new_student(client, teacher[1])

    response = await client.get(f"/api/v1/students/{other_id}", headers=auth_header(token))
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied: you can only access your own data"

    update = await client.put(
        f"/api/v1/students/{other_id}", json={"major": "Art"}, headers=auth_header(token)
    )
    assert update.status_code == 403


async def test_teacher_updates_student(client, teacher, student):
    teacher_token, _ = teacher
    _, profile_id = student
    response = await client.put(
        f"/api/v1/students/{profile_id}",
        json={"major": "Mathematics", "year_level": "Senior"},
        headers=auth_header(teacher_token),
    )
    assert response.status_code == 200, response.text
    assert response.json()["profile"]["major"] == "Mathematics"
    assert response.json()["user"]["role"] == "student"


async def test_student_list_is_staff_only(client, teacher, student):
    token, _ = student
    denied = await client.get("/api/v1/students", headers=auth_header(token))
    assert denied.status_code == 403

    await new_student(client, teacher[1], email="zed@school.edu")
    response = await client.get("/api/v1/students?limit=1", headers=auth_header(teacher[0]))
    assert response.status_code == 200
    body = response.json()
    assert len(body["students"]) == 1
    assert body["pagination"] == {
        "page": 1,
        "limit": 1,
        "total": 2,
        "total_pages": 2,
        "has_next": True,
        "has_prev": False,
    }


async def test_student_list_search(client, teacher, student):
    response = await client.get("/api/v1/students?search=sam@", headers=auth_header(teacher[0]))
    emails = [s["email"] for s in response.json()["students"]]
    assert emails == ["sam@school.edu"]


async def test_unknown_student_for_staff(client, teacher):
    response = await client.get(
        "/api/v1/students/00000000-0000-0000-0000-000000000000", headers=auth_header(teacher[0])
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Student not found"


async def test_whitespace_names_rejected(client, student):
    token, _ = student
    response = await client.put(
        "/api/v1/users/profile",
        json={"technical_skills": [{"name": "   "}], "interests": ["   "]},
        headers=auth_header(token),
    )
    assert response.status_code == 400
    assert response.json()["errors"] == [
        "Technical skill 1: Skill name must be 1-100 characters",
        "Interest 1: Interest name must be 1-100 characters",
    ]

    catalog = await client.get("/api/v1/catalog/skills", headers=auth_header(token))
    assert catalog.json()["skills"] == []
    interests = await client.get("/api/v1/catalog/interests", headers=auth_header(token))
    assert interests.json()["interests"] == []
