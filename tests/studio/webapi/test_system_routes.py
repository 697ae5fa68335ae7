from __future__ import annotations

import requests


def test_health_reports_unreachable_remote(client, command_session):
    command_session.queue(requests.ConnectionError("refused"))

    response = client.get("/api/health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["application_status"] == "healthy"
    assert body["remote_status"] == "unreachable"
    assert body["error"] == "Cannot connect to remote server"
    assert "timestamp" in body


def test_health_reports_timeout(client, command_session):
    command_session.queue(requests.Timeout("slow"))

    response = client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["remote_status"] == "timeout"


def test_health_reports_remote_errors(client, command_session, fake_response):
    command_session.queue(fake_response(500, {}, text="boom"))

    response = client.get("/api/health")

    assert response.status_code == 500
    assert response.json()["remote_status"] == "error"


def test_health_merges_remote_payload(client, command_session, fake_response):
    command_session.queue(fake_response(200, {"status": "healthy", "uptime": 12}))

    body = client.get("/api/health").json()

    assert body["status"] == "healthy"
    assert body["uptime"] == 12
    assert body["application_status"] == "healthy"


def test_run_command_proxy(client, user_headers, command_session, fake_response):
    command_session.queue(fake_response(200, {"task_id": "t1", "status": "queued"}))

    response = client.post(
        "/api/run-command", json={"command": "ls", "projectId": "p1"}, headers=user_headers
    )

    assert response.json()["task_id"] == "t1"
    assert command_session.calls[0]["json"] == {"command": "ls"}


def test_signed_url_is_limited_to_the_callers_files(client, user_headers, services):
    services.store.write_bytes("u1/p1/cover.jpg", b"jpg")

    denied = client.get(
        "/api/storage/signed-url", params={"path": "u2/p1/cover.jpg"}, headers=user_headers
    )
    assert denied.status_code == 403

    allowed = client.get(
        "/api/storage/signed-url",
        params={"path": "u1/p1/cover.jpg", "expiresIn": 60},
        headers=user_headers,
    )
    assert allowed.status_code == 200
    body = allowed.json()
    assert body["signedUrl"].startswith("file://")
    assert body["path"] == "u1/p1/cover.jpg"
    assert "expiresAt" in body


def test_notify_admin_records_notification(client, user_headers, services):
    response = client.post(
        "/api/notify-admin",
        json={"issue": "Audio stuck", "details": {"item": 4}, "projectId": "p1"},
        headers=user_headers,
    )

    assert response.json()["success"] is True
    entry = services.notifications.list_notifications()[0]
    assert (entry.issue, entry.user_id, entry.user_email) == ("Audio stuck", "u1", "reader@studio.test")


def test_profile_routes(client, user_headers):
    assert client.get("/api/users/profile", headers=user_headers).status_code == 404

    saved = client.put(
        "/api/users/profile",
        json={"first_name": "Ishmael", "date_of_birth": "1990-05-01"},
        headers=user_headers,
    )
    assert saved.status_code == 200
    assert saved.json()["first_name"] == "Ishmael"

    bad = client.put("/api/users/profile", json={"date_of_birth": "May 1"}, headers=user_headers)
    assert bad.status_code == 400
