import json
import os
from fastapi.testclient import TestClient
from sqlmodel import Session, select
from models import Prompt
from conftest import auth_headers

def test_my_profile_is_created_on_demand(client: TestClient):
    response = client.get("/api/profiles/me", headers={"X-User-Id": "alice", "X-User-Email": "alice@example.com"})
    assert response.status_code == 200
    assert response.json()["display_name"] == "alice"

    response = client.put("/api/profiles/me", json={"display_name": "Alice A."}, headers=auth_headers("alice"))
    assert response.json()["display_name"] == "Alice A."
    assert client.get("/api/profiles/alice").json()["display_name"] == "Alice A."
    assert client.get("/api/profiles/nobody").status_code == 404

def test_upload_avatar(client: TestClient, storage_dir):
    files = {"file": ("me.png", b"\x89PNG\r\n", "image/png")}
    response = client.post("/api/profiles/me/avatar", files=files, headers=auth_headers("alice"))
    assert response.status_code == 200
    url = response.json()["avatar_url"]
    assert url.startswith("http://testserver/storage/avatars/alice.png?t=")
    assert os.path.exists(os.path.join(storage_dir, "avatars", "alice.png"))

    served = client.get("/storage/avatars/alice.png")
    assert served.status_code == 200
    assert served.content == b"\x89PNG\r\n"

def test_upload_avatar_rejects_bad_files(client: TestClient, mocker):
    files = {"file": ("me.txt", b"hello", "text/plain")}
    response = client.post("/api/profiles/me/avatar", files=files, headers=auth_headers("alice"))
    assert response.status_code == 400

    from config import settings
    mocker.patch.object(settings, "UPLOAD_MAX_BYTES", 4)
    files = {"file": ("me.png", b"\x89PNG-too-big", "image/png")}
    response = client.post("/api/profiles/me/avatar", files=files, headers=auth_headers("alice"))
    assert response.status_code == 400

def test_missing_object_is_404(client: TestClient):
    assert client.get("/storage/avatars/nobody.png").status_code == 404
    assert client.get("/storage/avatars/../../etc/passwd").status_code == 404

def test_export_json_only_own_prompts(client: TestClient):
    client.post("/api/prompts", json={"title": "mine", "content": "c", "tags": ["a"]}, headers=auth_headers("alice"))
    client.post("/api/prompts", json={"title": "theirs", "content": "c", "visibility": "Public"},
                headers=auth_headers("bob"))

    response = client.get("/api/export?format=json", headers=auth_headers("alice"))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert "attachment; filename=myprompt-export-" in response.headers["content-disposition"]
    data = response.json()
    assert data["version"] == 1
    assert [p["title"] for p in data["prompts"]] == ["mine"]

def test_export_markdown(client: TestClient):
    client.post("/api/prompts", json={"title": "mine", "content": "body", "tags": ["a"]}, headers=auth_headers("alice"))
    response = client.get("/api/export?format=md", headers=auth_headers("alice"))
    assert response.status_code == 200
    assert "## mine\n\nbody\nTags: #a" in response.text

    assert client.get("/api/export?format=csv", headers=auth_headers("alice")).status_code == 400

def test_import(client: TestClient, session: Session):
    payload = {
        "version": 1,
        "prompts": [
            {"title": "one", "content": "c1", "tags": ["t"], "phase": "Debug", "visibility": "Public"},
            {"title": "two", "content": "c2", "phase": "Unknown"},
            {"title": "no content"},
        ],
    }
    files = {"file": ("export.json", json.dumps(payload).encode("utf-8"), "application/json")}
    response = client.post("/api/import", files=files, headers=auth_headers("newcomer"))
    assert response.status_code == 200
    assert response.json() == {"imported": 2, "skipped": 1, "failed": 0}

    prompts = session.exec(select(Prompt).where(Prompt.user_id == "newcomer")).all()
    by_title = {p.title: p for p in prompts}
    assert by_title["one"].phase == "Debug"
    assert by_title["one"].visibility == "Public"
    assert by_title["two"].phase == "Other"
    assert by_title["two"].visibility == "Private"

def test_import_invalid_file(client: TestClient, session: Session):
    files = {"file": ("export.json", b'{"prompts": []}', "application/json")}
    response = client.post("/api/import", files=files, headers=auth_headers("alice"))
    assert response.status_code == 400
    assert response.json()["detail"] == "無効なファイル形式です"

    files = {"file": ("export.json", b"not json", "application/json")}
    response = client.post("/api/import", files=files, headers=auth_headers("alice"))
    assert response.json()["detail"] == "JSONの解析に失敗しました"
    assert session.exec(select(Prompt)).all() == []
