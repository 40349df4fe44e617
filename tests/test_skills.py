from tests.conftest import auth_header, new_student


async def add_skill(client, token, profile_id, **body):
    return await client.post(
        f"/api/v1/students/{profile_id}/skills", json=body, headers=auth_header(token)
    )


async def test_add_and_list_skills(client, student):
    token, profile_id = student
    response = await add_skill(client, token, profile_id, name="  Python ", proficiency="advanced", years_experience=2)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["skill"]["name"] == "Python"
    assert body["skill"]["category"] == "technical"
    assert body["skill"]["verified"] is False
    # first, last, email = 30, plus the skills bonus
    assert body["profile_completion_percentage"] == 40

    listed = await client.get(f"/api/v1/students/{profile_id}/skills", headers=auth_header(token))
    assert [s["name"] for s in listed.json()["skills"]] == ["Python"]


async def test_duplicate_skill_rejected(client, student):
    token, profile_id = student
    await add_skill(client, token, profile_id, name="Python")
    response = await add_skill(client, token, profile_id, name="Python")
    assert response.status_code == 400
    assert response.json()["message"] == "Student already has this skill"


async def test_catalog_is_shared(client, teacher, student):
    token, profile_id = student
    other_token, other_id = await new_student(client, teacher[1])

    first = await add_skill(client, token, profile_id, name="SQL")
    second = await add_skill(client, other_token, other_id, name="SQL")
    assert first.json()["skill"]["id"] == second.json()["skill"]["id"]

    catalog = await client.get("/api/v1/catalog/skills", headers=auth_header(token))
    assert [s["name"] for s in catalog.json()["skills"]] == ["SQL"]


async def test_only_staff_verify(client, teacher, student):
    token, profile_id = student
    denied = await add_skill(client, token, profile_id, name="Python", verified=True)
    assert denied.status_code == 403

    created = await add_skill(client, token, profile_id, name="Python")
    skill_id = created.json()["skill"]["id"]
    url = f"/api/v1/students/{profile_id}/skills/{skill_id}"

    denied_update = await client.put(url, json={"verified": True}, headers=auth_header(token))
    assert denied_update.status_code == 403

    verified = await client.put(url, json={"verified": True}, headers=auth_header(teacher[0]))
    assert verified.status_code == 200
    assert verified.json()["skill"]["verified"] is True


async def test_update_skill_proficiency(client, student):
    token, profile_id = student
    created = await add_skill(client, token, profile_id, name="Python")
    url = f"/api/v1/students/{profile_id}/skills/{created.json()['skill']['id']}"

    response = await client.put(url, json={"proficiency": "expert"}, headers=auth_header(token))
    assert response.json()["skill"]["proficiency_level"] == "expert"

    bad = await client.put(url, json={"proficiency": "wizard"}, headers=auth_header(token))
    assert bad.status_code == 400
    assert bad.json()["errors"] == ["Invalid proficiency level"]


async def test_remove_skill_recomputes_completion(client, student):
    token, profile_id = student
    created = await add_skill(client, token, profile_id, name="Python")
    url = f"/api/v1/students/{profile_id}/skills/{created.json()['skill']['id']}"

    response = await client.delete(url, headers=auth_header(token))
    assert response.json()["message"] == "Skill removed successfully"

    me = await client.get("/api/v1/auth/me", headers=auth_header(token))
    assert me.json()["profile"]["profile_completion_percentage"] == 30

    again = await client.delete(url, headers=auth_header(token))
    assert again.status_code == 404


async def test_other_student_cannot_touch_skills(client, teacher, student):
    _, profile_id = student
    other_token, _ = await new_student(client, teacher[1])
    response = await add_skill(client, other_token, profile_id, name="Python")
    assert response.status_code == 403


async def test_interests(client, student):
    token, profile_id = student
    url = f"/api/v1/students/{profile_id}/interests"

    created = await client.post(url, json={"name": "Robotics", "interest_level": "high"}, headers=auth_header(token))
    assert created.status_code == 201
    assert created.json()["interest"]["interest_level"] == "high"
    assert created.json()["profile_completion_percentage"] == 40

    bad = await client.post(url, json={"name": "Chess", "interest_level": "extreme"}, headers=auth_header(token))
    assert bad.status_code == 400

    dup = await client.post(url, json={"name": "Robotics"}, headers=auth_header(token))
    assert dup.status_code == 400

    listed = await client.get(url, headers=auth_header(token))
    interest_id = listed.json()["interests"][0]["id"]

    removed = await client.delete(f"{url}/{interest_id}", headers=auth_header(token))
    assert removed.status_code == 200
    assert (await client.get(url, headers=auth_header(token))).json()["interests"] == []


async def test_catalog_filters(client, student):
    token, profile_id = student
    await add_skill(client, token, profile_id, name="Python")
    await add_skill(client, token, profile_id, name="Listening", category="soft")

    soft = await client.get("/api/v1/catalog/skills?category=soft", headers=auth_header(token))
    assert [s["name"] for s in soft.json()["skills"]] == ["Listening"]

    search = await client.get("/api/v1/catalog/skills?search=pyth", headers=auth_header(token))
    assert [s["name"] for s in search.json()["skills"]] == ["Python"]

    interests = await client.get("/api/v1/catalog/interests", headers=auth_header(token))
    assert interests.json()["interests"] == []
