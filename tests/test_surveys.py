from tests.conftest import auth_header, register

SURVEY = {
    "title": "Start of term check-in",
    "template_type": "beginning_term",
    "questions": [
        {
            "question_text": "Preferred role in a team?",
            "question_type": "multiple_choice",
            "options": ["Leader", "Builder", " ", "Tester"],
            "is_required": True,
        },
        {"question_text": "How confident are you with Python?", "question_type": "rating_scale"},
        {"question_text": "Anything else?", "question_type": "text_long"},
    ],
}


async def create_survey(client, token, **overrides):
    response = await client.post("/api/v1/surveys", json={**SURVEY, **overrides}, headers=auth_header(token))
    assert response.status_code == 201, response.text
    return response.json()["template"]


async def test_create_survey(client, teacher):
    template = await create_survey(client, teacher[0])
    assert template["is_active"] is True
    assert [q["position"] for q in template["questions"]] == [1, 2, 3]
    # Blank options are dropped
    assert template["questions"][0]["options"] == ["Leader", "Builder", "Tester"]
    assert template["questions"][1]["options"] is None


async def test_survey_validation(client, teacher):
    response = await client.post(
        "/api/v1/surveys",
        json={"title": "Hi", "questions": [{"question_text": "Pick", "question_type": "dropdown"}]},
        headers=auth_header(teacher[0]),
    )
    assert response.status_code == 400
    assert response.json()["errors"] == [
        "Title must be 3-255 characters",
        "Question 1: invalid question type",
    ]


async def test_students_cannot_manage_surveys(client, student):
    token, _ = student
    assert (await client.get("/api/v1/surveys", headers=auth_header(token))).status_code == 403
    assert (await client.post("/api/v1/surveys", json=SURVEY, headers=auth_header(token))).status_code == 403


async def test_available_surveys_track_response_status(client, teacher, student):
    template = await create_survey(client, teacher[0])
    token, _ = student

    available = await client.get("/api/v1/surveys/available", headers=auth_header(token))
    surveys = available.json()["surveys"]
    assert len(surveys) == 1
    assert surveys[0]["question_count"] == 3
    assert surveys[0]["response_status"] is None

    first_question = template["questions"][0]["id"]
    await client.post(
        f"/api/v1/surveys/{template['id']}/responses",
        json={"responses": {first_question: "Leader"}, "completion_status": "in_progress"},
        headers=auth_header(token),
    )
    surveys = (await client.get("/api/v1/surveys/available", headers=auth_header(token))).json()["surveys"]
    assert surveys[0]["response_status"] == "in_progress"


async def test_required_questions_on_completion(client, teacher, student):
    template = await create_survey(client, teacher[0])
    token, _ = student
    questions = [q["id"] for q in template["questions"]]
    url = f"/api/v1/surveys/{template['id']}/responses"

    missing = await client.post(url, json={"responses": {questions[1]: 4}}, headers=auth_header(token))
    assert missing.status_code == 400
    assert missing.json()["errors"] == ["Question 1 is required"]

    wrong = await client.post(
        url, json={"responses": {questions[0]: "Singer", questions[1]: 9}}, headers=auth_header(token)
    )
    assert wrong.json()["errors"] == ["Question 1: invalid answer", "Question 2: invalid answer"]

    ok = await client.post(
        url, json={"responses": {questions[0]: "Tester", questions[1]: 4}}, headers=auth_header(token)
    )
    assert ok.status_code == 200
    saved = ok.json()["response"]
    assert saved["completion_status"] == "completed"
    assert saved["completed_at"] is not None


async def test_resubmission_overwrites(client, teacher, student):
    template = await create_survey(client, teacher[0])
    token, _ = student
    first = template["questions"][0]["id"]
    url = f"/api/v1/surveys/{template['id']}/responses"

    await client.post(url, json={"responses": {first: "Leader"}}, headers=auth_header(token))
    await client.post(url, json={"responses": {first: "Builder"}}, headers=auth_header(token))

    responses = (await client.get(url, headers=auth_header(teacher[0]))).json()["responses"]
    assert len(responses) == 1
    assert responses[0]["responses"] == {first: "Builder"}


async def test_update_replaces_questions(client, teacher):
    template = await create_survey(client, teacher[0])
    url = f"/api/v1/surveys/{template['id']}"

    response = await client.put(
        url,
        json={"title": "Renamed check-in", "questions": [{"question_text": "Ready?", "question_type": "yes_no"}]},
        headers=auth_header(teacher[0]),
    )
    assert response.status_code == 200
    updated = response.json()["template"]
    assert updated["title"] == "Renamed check-in"
    assert [q["question_type"] for q in updated["questions"]] == ["yes_no"]


async def test_only_creator_or_admin_changes_survey(client, teacher, admin_token):
    template = await create_survey(client, teacher[0])
    url = f"/api/v1/surveys/{template['id']}"
    other = (await register(client, "second@school.edu", role="teacher")).json()["token"]

    denied = await client.put(url, json={"title": "Not mine"}, headers=auth_header(other))
    assert denied.status_code == 403

    allowed = await client.put(url, json={"description": "Adjusted"}, headers=auth_header(admin_token))
    assert allowed.status_code == 200


async def test_soft_delete(client, teacher, student):
    template = await create_survey(client, teacher[0])
    token, _ = student
    url = f"/api/v1/surveys/{template['id']}"

    deleted = await client.delete(url, headers=auth_header(teacher[0]))
    assert deleted.json()["message"] == "Survey deleted successfully"

    # Staff still see the template, students do not
    assert (await client.get(url, headers=auth_header(teacher[0]))).json()["template"]["is_active"] is False
    assert (await client.get(url, headers=auth_header(token))).status_code == 404
    assert (await client.get("/api/v1/surveys", headers=auth_header(teacher[0]))).json()["templates"] == []

    closed = await client.post(f"{url}/responses", json={"responses": {}}, headers=auth_header(token))
    assert closed.status_code == 400
    assert closed.json()["message"] == "Survey is no longer active"
