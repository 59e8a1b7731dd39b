from fastapi.testclient import TestClient
from sqlmodel import Session, select
from models import Prompt, PromptHistory, Profile
from conftest import auth_headers

def create(client: TestClient, user_id: str, **kwargs):
    payload = {"title": "Prompt", "content": "Do {task}", "tags": ["x"]}
    payload.update(kwargs)
    response = client.post("/api/prompts", json=payload, headers=auth_headers(user_id, user_id.title()))
    assert response.status_code == 200
    return response.json()

def test_create_prompt_creates_profile_and_history(client: TestClient, session: Session):
    data = create(client, "alice", visibility="Public")
    assert data["user_id"] == "alice"
    assert data["author_name"] == "Alice"
    assert data["tags"] == ["x"]

    assert session.get(Profile, "alice") is not None
    history = session.exec(select(PromptHistory).where(PromptHistory.prompt_id == data["id"])).all()
    assert len(history) == 1

def test_create_prompt_requires_login(client: TestClient):
    response = client.post("/api/prompts", json={"title": "t", "content": "c"})
    assert response.status_code == 401
    assert response.json()["detail"] == "ログインが必要です"

def test_list_prompts_respects_visibility(client: TestClient, session: Session):
    create(client, "alice", title="public", visibility="Public")
    create(client, "alice", title="private")

    guest = client.get("/api/prompts").json()
    assert [p["title"] for p in guest] == ["public"]

    bob = client.get("/api/prompts", headers=auth_headers("bob")).json()
    assert [p["title"] for p in bob] == ["public"]

    alice = client.get("/api/prompts", headers=auth_headers("alice")).json()
    assert {p["title"] for p in alice} == {"public", "private"}

def test_get_private_prompt_of_other_user_is_404(client: TestClient):
    data = create(client, "alice")
    assert client.get(f"/api/prompts/{data['id']}", headers=auth_headers("bob")).status_code == 404
    assert client.get(f"/api/prompts/{data['id']}", headers=auth_headers("alice")).status_code == 200

def test_update_prompt(client: TestClient, session: Session):
    data = create(client, "alice")
    response = client.put(f"/api/prompts/{data['id']}", json={"title": "Renamed"},
                          headers=auth_headers("alice"))
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    # 送っていない項目はそのまま
    assert response.json()["content"] == "Do {task}"

    history = session.exec(select(PromptHistory).where(PromptHistory.prompt_id == data["id"])).all()
    assert len(history) == 2

def test_update_prompt_of_other_user_is_404(client: TestClient):
    data = create(client, "alice", visibility="Public")
    response = client.put(f"/api/prompts/{data['id']}", json={"title": "x"}, headers=auth_headers("bob"))
    assert response.status_code == 404

def test_pin_limit(client: TestClient):
    ids = [create(client, "alice", title=f"p{i}")["id"] for i in range(6)]
    for prompt_id in ids[:5]:
        response = client.put(f"/api/prompts/{prompt_id}", json={"is_pinned": True}, headers=auth_headers("alice"))
        assert response.status_code == 200
    response = client.put(f"/api/prompts/{ids[5]}", json={"is_pinned": True}, headers=auth_headers("alice"))
    assert response.status_code == 400

def test_pin_does_not_touch_updated_at(client: TestClient):
    data = create(client, "alice")
    response = client.put(f"/api/prompts/{data['id']}", json={"is_pinned": True}, headers=auth_headers("alice"))
    assert response.json()["updated_at"] == data["updated_at"]

def test_delete_prompt(client: TestClient, session: Session):
    data = create(client, "alice")
    assert client.delete(f"/api/prompts/{data['id']}", headers=auth_headers("bob")).status_code == 404
    response = client.delete(f"/api/prompts/{data['id']}", headers=auth_headers("alice"))
    assert response.status_code == 200
    assert session.get(Prompt, data["id"]) is None

def test_fork_prompt_notifies_author(client: TestClient):
    data = create(client, "alice", title="Base", visibility="Public")
    response = client.post(f"/api/prompts/{data['id']}/fork", headers=auth_headers("bob", "Bob"))
    assert response.status_code == 200
    fork = response.json()
    assert fork["title"] == "Base (アレンジ)"
    assert fork["parent_id"] == data["id"]
    assert fork["visibility"] == "Private"

    notifications = client.get("/api/notifications", headers=auth_headers("alice")).json()
    assert [(n["type"], n["actor_name"]) for n in notifications] == [("fork", "Bob")]

def test_fork_private_prompt_is_404(client: TestClient):
    data = create(client, "alice")
    assert client.post(f"/api/prompts/{data['id']}/fork", headers=auth_headers("bob")).status_code == 404

def test_history(client: TestClient):
    data = create(client, "alice", visibility="Public")
    client.put(f"/api/prompts/{data['id']}", json={"content": "v2"}, headers=auth_headers("alice"))
    history = client.get(f"/api/prompts/{data['id']}/history").json()
    assert [h["content"] for h in history] == ["Do {task}", "v2"]

def test_use_count(client: TestClient):
    data = create(client, "alice", visibility="Public")
    response = client.post(f"/api/prompts/{data['id']}/use")
    assert response.json() == {"prompt_id": data["id"], "use_count": 1}
    assert client.post("/api/prompts/missing/use").status_code == 404
