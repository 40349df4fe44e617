import fakeredis

from app.config import Settings
from app.core.cache import CacheManager
from tests.conftest import PASSWORD, auth_header, login, register


async def test_teacher_registers_without_class(client):
    response = await register(client, "Teacher@School.edu", role="teacher")
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Account created successfully"
    assert body["user"]["email"] == "teacher@school.edu"
    assert body["user"]["role"] == "teacher"
    assert body["token"]


async def test_student_needs_valid_class_code(client, teacher):
    missing = await register(client, "a@school.edu")
    assert missing.status_code == 400
    assert {"field": "class_code", "message": "Class code is required for students"} in missing.json()["errors"]

    wrong = await register(client, "a@school.edu", class_code="NOPE0000")
    assert wrong.status_code == 400
    assert wrong.json()["errors"][0]["field"] == "class_code"

    ok = await register(client, "a@school.edu", class_code=teacher[1])
    assert ok.status_code == 201


async def test_registration_reports_every_problem(client):
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "bad", "password": "weak", "first_name": "A", "last_name": "", "role": "admin"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert fields == {"email", "password", "first_name", "last_name", "role"}


async def test_duplicate_email(client):
    await register(client, "dup@school.edu", role="teacher")
    response = await register(client, "DUP@school.edu", role="teacher")
    assert response.status_code == 400
    assert response.json()["message"] == "An account with this email already exists"


async def test_login(client):
    await register(client, "t@school.edu", role="teacher")

    response = await client.post("/api/v1/auth/login", json={"email": "t@school.edu", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["message"] == "Login successful"
    assert response.json()["user"]["last_login"] is not None


async def test_login_failures_are_indistinguishable(client):
    await register(client, "t@school.edu", role="teacher")

    wrong_password = await client.post(
        "/api/v1/auth/login", json={"email": "t@school.edu", "password": "Wrong1234"}
    )
    unknown = await client.post(
        "/api/v1/auth/login", json={"email": "nobody@school.edu", "password": PASSWORD}
    )
    assert wrong_password.status_code == unknown.status_code == 401
    assert wrong_password.json() == unknown.json() == {
        "success": False,
        "message": "Invalid email or password",
    }


async def test_me_anonymous(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 200
    assert response.json() == {"success": False, "authenticated": False, "message": "Not authenticated"}


async def test_me_student_has_profile(client, student):
    token, profile_id = student
    body = (await client.get("/api/v1/auth/me", headers=auth_header(token))).json()
    assert body["authenticated"] is True
    assert body["user"]["role"] == "student"
    assert body["profile"]["id"] == profile_id
    assert body["profile"]["profile_completion_percentage"] == 0


async def test_logout_revokes_token(client):
    token = (await register(client, "t@school.edu", role="teacher")).json()["token"]

    response = await client.post("/api/v1/auth/logout", headers=auth_header(token))
    assert response.status_code == 200

    again = await client.get("/api/v1/users/profile", headers=auth_header(token))
    assert again.status_code == 401
    assert again.json()["message"] == "Token has been revoked"

    # Other sessions keep working
    fresh = await login(client, "t@school.edu")
    assert (await client.get("/api/v1/users/profile", headers=auth_header(fresh))).status_code == 200


async def test_missing_and_bad_tokens(client):
    assert (await client.get("/api/v1/users/profile")).status_code == 401
    response = await client.get("/api/v1/users/profile", headers=auth_header("garbage"))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


async def test_password_reset_flow(client):
    await register(client, "t@school.edu", role="teacher")

    requested = await client.post("/api/v1/auth/forgot-password", json={"email": "t@school.edu"})
    assert requested.status_code == 200
    token = requested.json()["debug_reset_token"]

    weak = await client.post("/api/v1/auth/reset-password", json={"token": token, "password": "weak"})
    assert weak.status_code == 400

    reset = await client.post(
        "/api/v1/auth/reset-password", json={"token": token, "password": "N3wPassword"}
    )
    assert reset.status_code == 200
    assert reset.json()["message"] == "Password reset successfully"

    reused = await client.post(
        "/api/v1/auth/reset-password", json={"token": token, "password": "N3wPassword"}
    )
    assert reused.status_code == 400
    assert reused.json()["message"] == "Invalid or expired reset token"

    login_response = await client.post(
        "/api/v1/auth/login", json={"email": "t@school.edu", "password": "N3wPassword"}
    )
    assert login_response.status_code == 200


async def test_forgot_password_does_not_reveal_accounts(client):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@school.edu"})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "If an account exists with this email, you will receive password reset instructions",
    }


async def test_unknown_endpoint(client):
    response = await client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Endpoint not found"}


async def test_login_limit_ignores_forwarded_for(app, client):
    cache = CacheManager(Settings(CACHE_ENABLED=True), client=fakeredis.FakeRedis(decode_responses=True))
    cache.connect()
    app.state.cache = cache

    codes = []
    for number in range(7):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@school.edu", "password": PASSWORD},
            headers={"X-Forwarded-For": f"203.0.113.{number}"},
        )
        codes.append(response.status_code)
    assert codes == [401] * 5 + [429] * 2
