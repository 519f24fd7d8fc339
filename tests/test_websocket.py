"""Tests for the notification WebSocket."""

from fastapi.testclient import TestClient

from dps.main import app


def _next_notification(ws, attempts: int = 5) -> dict:
    for _ in range(attempts):
        data = ws.receive_json()
        if data["type"] == "notification":
            return data
    raise AssertionError("no notification received")


def test_websocket_receives_admission_notification(db):
    with TestClient(app) as client, client.websocket_connect("/ws/notifications") as ws:
        resp = client.post("/api/pma/patients", json={"bib_number": "77", "triage_status": "UA"})
        assert resp.status_code == 200

        data = _next_notification(ws)
        assert data["message"] == "Patient 77 admis"
        assert data["severity"] == "success"
        assert "timestamp" in data


def test_websocket_receives_checklist_notification(db):
    with TestClient(app) as client, client.websocket_connect("/ws/notifications") as ws:
        resp = client.delete("/api/pma/patients/ghost")
        assert resp.status_code == 404

        session = client.post("/api/checklist/sessions").json()
        client.post(f"/api/checklist/sessions/{session['session_id']}/reset")

        data = _next_notification(ws)
        assert data["message"] == "Checklist réinitialisée."
        assert data["severity"] == "info"


def test_notifications_listed_over_http(client):
    client.post("/api/pma/patients", json={"bib_number": "78"})
    resp = client.get("/api/notifications")
    assert resp.status_code == 200
    assert resp.json()[0]["message"] == "Patient 78 admis"
