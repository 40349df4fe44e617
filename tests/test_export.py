import csv
import io
import json
from datetime import date

from sqlalchemy import select

from app.models.activity_log import ActivityLog
from tests.conftest import auth_header, new_student
from tests.test_analytics import class_id_for, second_class, set_skills
from tests.test_goals_activities import create_goal
from tests.test_surveys import create_survey


async def export(client, token, export_type, fmt="csv", filters=None):
    params = {"type": export_type, "format": fmt}
    if filters is not None:
        params["filters"] = filters if isinstance(filters, str) else json.dumps(filters)
    return await client.get("/api/v1/export", params=params, headers=auth_header(token))


def read_csv(response):
    return list(csv.DictReader(io.StringIO(response.text)))


# ==================== Access and parameters ====================

async def test_students_cannot_export(client, student):
    token, _ = student
    assert (await export(client, token, "students")).status_code == 403


async def test_invalid_parameters(client, teacher):
    token, _ = teacher
    response = await export(client, token, "passwords")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid export type"

    response = await export(client, token, "students", fmt="xml")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid export format"

    response = await export(client, token, "students", filters="{not json")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid filters format"

    response = await export(client, token, "students", filters="[1, 2]")
    assert response.status_code == 400

    response = await export(client, token, "students", filters={"class_id": "nope"})
    assert response.status_code == 400
    assert response.json()["errors"] == ["Invalid class_id filter"]


async def test_teacher_cannot_export_another_class(client, teacher):
    _, other_class, _ = await second_class(client)
    response = await export(client, teacher[0], "students", filters={"class_id": other_class})
    assert response.status_code == 403


# ==================== Students ====================

async def test_students_csv(client, teacher, student):
    token, profile_id = student
    await set_skills(client, token, [{"name": "Python", "proficiency": "advanced"}, {"name": "Go"}])
    await create_goal(client, token)

    response = await export(client, teacher[0], "students")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == (
        f'attachment; filename="students_export_{date.today().isoformat()}.csv"'
    )

    [row] = read_csv(response)
    assert row["id"] == profile_id
    assert row["email"] == "sam@school.edu"
    assert row["skills_list"] == "Go (beginner); Python (advanced)"
    assert row["goals_count"] == "1"
    assert row["activities_count"] == "0"
    assert "password_hash" not in row


async def test_students_json_with_filters(client, teacher, student, admin_token):
    _, other_class, other_code = await second_class(client)
    await new_student(client, other_code, email="olivia@school.edu")

    response = await export(client, admin_token, "students", fmt="json", filters={"class_id": other_class})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    document = response.json()
    assert document["export_type"] == "students"
    assert document["filters"] == {"class_id": other_class}
    assert document["total_records"] == 1
    assert document["data"][0]["email"] == "olivia@school.edu"

    response = await export(client, admin_token, "students", fmt="json", filters={"search": "SAM@"})
    assert [s["email"] for s in response.json()["data"]] == ["sam@school.edu"]

    response = await export(client, admin_token, "students", fmt="json", filters={"profile_completion": "high"})
    assert response.json()["total_records"] == 0


async def test_empty_csv_has_header(client, teacher):
    response = await export(client, teacher[0], "goals")
    assert response.status_code == 200
    lines = response.text.splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("id,title,description,category,status,priority")


# ==================== Other types ====================

async def test_groups_export(client, teacher, student):
    token, profile_id = student
    await set_skills(client, token, [{"name": "Python"}])
    _, second_id = await new_student(client, teacher[1])
    created = await client.post(
        "/api/v1/groups",
        json={"name": "Team A", "member_ids": [profile_id, second_id]},
        headers=auth_header(teacher[0]),
    )
    assert created.status_code == 201, created.text

    [row] = read_csv(await export(client, teacher[0], "groups"))
    assert row["name"] == "Team A"
    assert row["current_size"] == "2"
    assert row["members_list"].count("(member)") == 2
    assert row["group_skills"] == "Python"
    assert row["quality_score"] != ""


async def test_skills_export(client, teacher, student):
    token, _ = student
    other_token, _ = await new_student(client, teacher[1])
    await set_skills(client, token, [{"name": "Python", "proficiency": "expert"}])
    await set_skills(client, other_token, [{"name": "Python"}, {"name": "SQL"}])

    rows = read_csv(await export(client, teacher[0], "skills"))
    assert [r["name"] for r in rows] == ["Python", "SQL"]
    assert rows[0]["total_students"] == "2"
    assert rows[0]["expert_count"] == "1"
    assert rows[0]["beginner_count"] == "1"


async def test_goals_export_filters(client, teacher, student):
    token, _ = student
    await create_goal(client, token)
    await create_goal(client, token, title="Land an internship", category="career")

    response = await export(client, teacher[0], "goals", fmt="json", filters={"category": "career"})
    [goal] = response.json()["data"]
    assert goal["title"] == "Land an internship"
    assert goal["student_email"] == "sam@school.edu"


async def test_surveys_export(client, teacher):
    await create_survey(client, teacher[0])
    [row] = read_csv(await export(client, teacher[0], "surveys"))
    assert row["question_count"] == "3"
    assert row["total_responses"] == "0"


async def test_analytics_export(client, teacher, student):
    token, _ = student
    await set_skills(client, token, [{"name": "Python", "proficiency": "advanced"}])
    await create_goal(client, token)

    document = (await export(client, teacher[0], "analytics", fmt="json")).json()
    data = document["data"]
    assert data["student_overview"]["total_students"] == 1
    assert data["top_skills"][0]["most_common_level"] == "advanced"
    assert data["goals_breakdown"] == [{"category": "skill", "status": "active", "count": 1, "avg_priority": 2.0}]
    assert data["groups_overview"] == []

    rows = read_csv(await export(client, teacher[0], "analytics"))
    assert [r["type"] for r in rows] == ["skill", "goal"]


async def test_comprehensive_export(client, teacher, student):
    own_class = await class_id_for(client, teacher[0])
    response = await export(
        client, teacher[0], "comprehensive", fmt="json", filters={"students": {"class_id": own_class}}
    )
    assert response.status_code == 200
    document = response.json()
    assert set(document) == {"students", "groups", "analytics", "metadata"}
    assert document["metadata"]["exported_by"] == "teacher@school.edu"
    assert document["metadata"]["total_students"] == 1

    rows = read_csv(await export(client, teacher[0], "comprehensive"))
    assert [r["section"] for r in rows] == ["students", "groups", "skills", "goals"]
    assert rows[0]["total_records"] == "1"


async def test_export_is_logged(app, client, teacher):
    await export(client, teacher[0], "skills", fmt="json")
    async with app.state.db.session() as session:
        entry = (
            await session.execute(select(ActivityLog).where(ActivityLog.action == "data_export"))
        ).scalar_one()
    assert entry.resource_type == "skills"
    assert entry.details["format"] == "json"
