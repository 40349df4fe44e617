import pytest

from app.api.v1.files import detect_category
from tests.conftest import auth_header, new_student

PDF = b"%PDF-1.4 fake resume body"
PNG = b"\x89PNG\r\n\x1a\nfake image body"


async def upload(client, token, name, content, content_type, **form):
    return await client.post(
        "/api/v1/files/upload",
        files={"file": (name, content, content_type)},
        data=form,
        headers=auth_header(token),
    )


@pytest.mark.parametrize(
    "file_type, name, requested, expected",
    [
        ("application/pdf", "notes.pdf", "resume", "resume"),
        ("application/pdf", "My_Resume.pdf", None, "resume"),
        ("application/pdf", "cv-2024.pdf", None, "resume"),
        ("image/png", "me.png", None, "profile_photo"),
        ("application/pdf", "essay.pdf", "bogus", "document"),
    ],
)
def test_detect_category(file_type, name, requested, expected):
    assert detect_category(file_type, name, requested) == expected


async def test_upload_list_download_delete(client, student):
    token, _ = student
    response = await upload(client, token, "resume.pdf", PDF, "application/pdf")
    assert response.status_code == 201, response.text
    uploaded = response.json()["file"]
    assert uploaded["filename"] == "resume.pdf"
    assert uploaded["category"] == "resume"
    assert uploaded["file_size"] == len(PDF)

    listed = await client.get("/api/v1/files", headers=auth_header(token))
    assert [f["id"] for f in listed.json()["files"]] == [uploaded["id"]]

    download = await client.get(f"/api/v1/files/{uploaded['id']}", headers=auth_header(token))
    assert download.status_code == 200
    assert download.content == PDF
    assert download.headers["content-type"] == "application/pdf"

    deleted = await client.delete(f"/api/v1/files/{uploaded['id']}", headers=auth_header(token))
    assert deleted.json()["message"] == "File deleted successfully"
    gone = await client.get(f"/api/v1/files/{uploaded['id']}", headers=auth_header(token))
    assert gone.status_code == 404


async def test_rejected_type(client, student):
    token, _ = student
    response = await upload(client, token, "archive.zip", b"PK\x03\x04", "application/zip")
    assert response.status_code == 400
    assert response.json()["errors"] == ["File type not allowed. Allowed: PDF, DOC, DOCX, JPG, PNG"]


async def test_empty_file(client, student):
    token, _ = student
    response = await upload(client, token, "blank.pdf", b"", "application/pdf")
    assert response.status_code == 400
    assert response.json()["errors"] == ["File is empty"]


async def test_student_photo_becomes_profile_photo(client, student):
    token, _ = student
    response = await upload(client, token, "me.png", PNG, "image/png")
    photo_id = response.json()["file"]["id"]

    profile = (await client.get("/api/v1/users/profile", headers=auth_header(token))).json()["profile"]
    assert profile["profile_photo_id"] == photo_id

    await client.delete(f"/api/v1/files/{photo_id}", headers=auth_header(token))
    profile = (await client.get("/api/v1/users/profile", headers=auth_header(token))).json()["profile"]
    assert profile["profile_photo_id"] is None


async def test_file_access(client, teacher, student):
    token, _ = student
    other_token, _ = await new_student(client, teacher[1])
    uploaded = (await upload(client, token, "essay.pdf", PDF, "application/pdf")).json()["file"]
    url = f"/api/v1/files/{uploaded['id']}"

    assert (await client.get(url, headers=auth_header(other_token))).status_code == 403
    assert (await client.get(url, headers=auth_header(teacher[0]))).status_code == 200

    # Teachers may read but not delete another user's file
    assert (await client.delete(url, headers=auth_header(teacher[0]))).status_code == 403
    assert (await client.delete(url, headers=auth_header(other_token))).status_code == 403


async def test_upload_requires_auth(client):
    response = await client.post(
        "/api/v1/files/upload", files={"file": ("resume.pdf", PDF, "application/pdf")}
    )
    assert response.status_code == 401
