from datetime import date
from fastapi.testclient import TestClient
from sqlmodel import Session
from config import settings
from conftest import auth_headers

ADMIN = auth_headers("admin")

def make_admin(mocker):
    mocker.patch.object(settings, "ADMIN_USER_IDS", ["admin"])

def test_feedback_flow(client: TestClient, mocker):
    response = client.post("/api/feedback", json={"type": "bug", "title": "Broken", "description": "details"})
    assert response.status_code == 200
    feedback = response.json()
    assert feedback["author_name"] == "ゲスト"
    assert feedback["status"] == "open"

    assert client.post("/api/feedback", json={"title": " "}).status_code == 400

    liked = client.post(f"/api/feedback/{feedback['id']}/like", json={"session_id": "s1"}).json()
    assert liked == {"feedback_id": feedback["id"], "liked": True, "like_count": 1}
    assert client.get("/api/feedback/liked?session_id=s1").json() == [feedback["id"]]
    liked = client.post(f"/api/feedback/{feedback['id']}/like", json={"session_id": "s1"}).json()
    assert liked["like_count"] == 0

    make_admin(mocker)
    response = client.put(f"/api/admin/feedback/{feedback['id']}/status", json={"status": "done"}, headers=ADMIN)
    assert response.json()["status"] == "done"
    response = client.put(f"/api/admin/feedback/{feedback['id']}/status", json={"status": "weird"}, headers=ADMIN)
    assert response.status_code == 400

    assert [f["status"] for f in client.get("/api/feedback?status=done").json()] == ["done"]
    assert client.delete(f"/api/admin/feedback/{feedback['id']}", headers=ADMIN).status_code == 200
    assert client.get("/api/feedback").json() == []

def test_feedback_unknown_type_falls_back(client: TestClient):
    response = client.post("/api/feedback", json={"type": "rant", "title": "t"}, headers=auth_headers("u1", "User"))
    assert response.json()["type"] == "other"
    assert response.json()["author_name"] == "User"

def test_feedback_screenshot(client: TestClient):
    files = {"file": ("shot.png", b"\x89PNG", "image/png")}
    response = client.post("/api/feedback/screenshot", files=files)
    assert response.status_code == 200
    assert response.json()["url"].startswith("http://testserver/storage/screenshots/")

    files = {"file": ("shot.svg", b"<svg/>", "image/svg+xml")}
    assert client.post("/api/feedback/screenshot", files=files).status_code == 400

def test_admin_routes_require_admin(client: TestClient):
    assert client.get("/api/admin/contacts").status_code == 401
    assert client.get("/api/admin/contacts", headers=auth_headers("someone")).status_code == 403
    assert client.get("/api/admin/feature-flags", headers=auth_headers("someone")).status_code == 403
    assert client.delete("/api/admin/feedback/x", headers=auth_headers("someone")).status_code == 403

def test_contacts(client: TestClient, mocker):
    response = client.post("/api/contacts", json={"name": "A", "email": "a@example.com", "message": "hi"})
    assert response.status_code == 200
    contact = response.json()
    assert contact["status"] == "new"
    assert client.post("/api/contacts", json={"name": "A", "email": "a@example.com", "message": ""}).status_code == 400

    make_admin(mocker)
    assert [c["id"] for c in client.get("/api/admin/contacts", headers=ADMIN).json()] == [contact["id"]]
    response = client.put(f"/api/admin/contacts/{contact['id']}/status", json={"status": "resolved"}, headers=ADMIN)
    assert response.json()["status"] == "resolved"
    assert client.delete(f"/api/admin/contacts/{contact['id']}", headers=ADMIN).status_code == 200
    assert client.delete(f"/api/admin/contacts/{contact['id']}", headers=ADMIN).status_code == 404

def test_changelog(client: TestClient, mocker):
    seeded = client.get("/api/changelog").json()
    assert [e["version"] for e in seeded] == ["1.0.0"]

    make_admin(mocker)
    entry = client.post("/api/admin/changelog", json={"version": "1.1.0", "title": "Chains"}, headers=ADMIN).json()
    assert entry["type"] == "feature"
    assert client.get("/api/changelog").json()[0]["version"] == "1.1.0"
    assert client.delete(f"/api/admin/changelog/{entry['id']}", headers=ADMIN).status_code == 200

def test_feature_flags(client: TestClient, mocker):
    flags = client.get("/api/feature-flags").json()
    assert flags["quick_capture"] is True

    make_admin(mocker)
    response = client.put("/api/admin/feature-flags/quick_capture", json={"enabled": False}, headers=ADMIN)
    assert response.json()["enabled"] is False
    assert client.get("/api/feature-flags").json()["quick_capture"] is False

    response = client.post("/api/admin/feature-flags/quick_capture/toggle", headers=ADMIN)
    assert response.json()["enabled"] is True
    assert client.post("/api/admin/feature-flags/missing/toggle", headers=ADMIN).status_code == 404

def test_analytics(client: TestClient, mocker):
    today = date.today().isoformat()
    for event in ("prompt_copy", "prompt_copy", "search_execute"):
        response = client.post("/api/analytics/events", json={"event_name": event, "session_id": "s1"})
        assert response.status_code == 200
    client.post("/api/analytics/events", json={"event_name": "prompt_create"}, headers=auth_headers("u1"))
    assert client.post("/api/analytics/events", json={"event_name": "hack"}).status_code == 400

    make_admin(mocker)
    kpi = client.post("/api/admin/analytics/aggregate", json={"target_date": today}, headers=ADMIN).json()
    assert kpi["dau"] == 2
    assert kpi["copies_executed"] == 2
    assert kpi["searches"] == 1
    assert kpi["prompts_created"] == 1

    # 同じ日を集計し直しても行は1つ
    client.post("/api/admin/analytics/aggregate", json={"target_date": today}, headers=ADMIN)
    recent = client.get("/api/admin/analytics/kpi?days=7", headers=ADMIN).json()
    assert [r["date"] for r in recent] == [today]

def test_root(client: TestClient):
    assert client.get("/").json() == {"message": "MyPrompt Backend API is running"}
