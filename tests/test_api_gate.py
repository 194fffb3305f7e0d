from datetime import datetime, timedelta

from gate_service.config import config
from gate_service.utils.exceptions import PersistenceError

from .conftest import T0, make_user


def _scan(client, headers, token, scan_type="entry", location="Main Gate"):
    body = {"qrToken": token, "scanType": scan_type}
    if location is not None:
        body["location"] = location
    return client.post("/api/gate/verify-qr", json=body, headers=headers)


def test_entry_exit_over_http(client, bearer, codec, clock, operator, participant, repository):
    token = codec.issue("OF-2026-AB12", now=T0)

    clock.set(T0 + timedelta(seconds=1))
    res = _scan(client, bearer(operator), token, "entry")
    assert res.status_code == 200
    body = res.json()
    assert body["valid"] is True
    assert body["status"] == "valid"
    assert body["scanType"] == "entry"
    assert body["participant"]["entityId"] == "OF-2026-AB12"
    assert body["participant"]["team"] == {"id": participant.team_id, "name": "Rocket Labs"}
    assert datetime.fromisoformat(body["scannedAt"]) == T0 + timedelta(seconds=1)

    clock.set(T0 + timedelta(seconds=301))
    res = _scan(client, bearer(operator), token, "exit")
    assert res.status_code == 200
    assert res.json()["scanType"] == "exit"

    res = client.get(f"/api/gate/sessions/{participant.id}", headers=bearer(operator))
    assert res.status_code == 200
    sessions = res.json()
    assert sessions["totalScans"] == 1
    assert sessions["isActiveSession"] is False
    assert sessions["sessions"][0]["durationMinutes"] == 5


def test_rejections_are_200_verdicts(client, bearer, codec, clock, operator, participant):
    token = codec.issue("OF-2026-AB12", now=T0)
    clock.set(T0 + timedelta(hours=25))

    res = _scan(client, bearer(operator), token)
    assert res.status_code == 200
    assert res.json() == {"valid": False, "status": "expired", "error": "QR code has expired"}

    res = _scan(client, bearer(operator), "a:b:c")
    assert res.status_code == 200
    assert res.json() == {"valid": False, "status": "invalid", "error": "Invalid QR format"}

    res = _scan(client, bearer(operator), codec.issue("OF-2026-ZZ99"))
    assert res.status_code == 200
    assert res.json() == {"valid": False, "status": "invalid", "error": "Participant not found"}


def test_scan_type_defaults_to_entry(client, bearer, codec, operator, participant, repository):
    res = client.post(
        "/api/gate/verify-qr",
        json={"qrToken": codec.issue("OF-2026-AB12")},
        headers=bearer(operator),
    )

    assert res.status_code == 200
    assert res.json()["scanType"] == "entry"
    logs, _ = repository.list_entry_logs()
    assert logs[0].location == "GATE1"


def test_unauthenticated_scan_is_401_and_not_logged(client, codec, participant, repository):
    res = _scan(client, {}, codec.issue("OF-2026-AB12"))
    assert res.status_code == 401
    assert "error" in res.json()

    res = _scan(client, {"Authorization": "Bearer not-a-jwt"}, codec.issue("OF-2026-AB12"))
    assert res.status_code == 401

    assert repository.list_entry_logs() == ([], 0)


def test_session_of_deactivated_operator_is_401(client, bearer, codec, repository, participant):
    ghost = make_user(repository, "ghost@onlyfounders.test", role="gate_volunteer", is_active=False)

    res = _scan(client, bearer(ghost), codec.issue("OF-2026-AB12"))

    assert res.status_code == 401


def test_non_operator_scan_is_403_and_not_logged(client, bearer, codec, participant, repository):
    res = _scan(client, bearer(participant), codec.issue("OF-2026-AB12"))

    assert res.status_code == 403
    assert res.json() == {"error": "Gate volunteer access required"}
    assert repository.list_entry_logs() == ([], 0)


def test_missing_or_malformed_body_is_400(client, bearer, operator):
    assert client.post("/api/gate/verify-qr", json={}, headers=bearer(operator)).status_code == 400
    assert client.post(
        "/api/gate/verify-qr", json={"qrToken": ""}, headers=bearer(operator)
    ).status_code == 400
    assert client.post(
        "/api/gate/verify-qr", json={"qrToken": "a:b:c", "scanType": "lunch"}, headers=bearer(operator)
    ).status_code == 400
    assert client.post(
        "/api/gate/verify-qr", content="not json", headers={**bearer(operator), "Content-Type": "application/json"}
    ).status_code == 400


def test_missing_secret_refuses_verification(client, bearer, codec, operator, participant, repository, monkeypatch):
    token = codec.issue("OF-2026-AB12")
    monkeypatch.setattr(config, "QR_SECRET", None)

    res = _scan(client, bearer(operator), token)

    assert res.status_code == 500
    assert res.json() == {"error": "Server configuration error"}
    assert repository.list_entry_logs() == ([], 0)


def test_logs_listing_for_admins(client, bearer, codec, clock, operator, participant, repository):
    admin = make_user(repository, "admin@onlyfounders.test", role="super_admin")
    _scan(client, bearer(operator), codec.issue("OF-2026-AB12"))
    clock.advance(minutes=1)
    _scan(client, bearer(operator), "broken")
    clock.advance(minutes=1)
    _scan(client, bearer(operator), codec.issue("OF-2026-AB12"), "exit")

    res = client.get("/api/gate/logs", headers=bearer(admin))
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 3
    assert [log["status"] for log in body["logs"]] == ["valid", "invalid", "valid"]
    assert body["logs"][0]["scanType"] == "exit"

    res = client.get("/api/gate/logs?status=invalid", headers=bearer(admin))
    assert res.json()["total"] == 1
    assert res.json()["logs"][0]["entityId"] == "broken"

    res = client.get("/api/gate/logs?scanType=exit&limit=1&offset=0", headers=bearer(admin))
    assert res.json()["total"] == 1
    assert res.json()["limit"] == 1

    assert client.get("/api/gate/logs?status=maybe", headers=bearer(admin)).status_code == 400
    assert client.get("/api/gate/logs", headers=bearer(operator)).status_code == 403
    assert client.get("/api/gate/logs").status_code == 401


def test_sessions_require_operator(client, bearer, participant):
    assert client.get(f"/api/gate/sessions/{participant.id}", headers=bearer(participant)).status_code == 403


def test_health(client):
    res = client.get("/api/health")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.json()["qrConfigured"] is True


def test_health_pings_the_active_repository(client, repository, monkeypatch):
    pings = []
    monkeypatch.setattr(repository, "ping", lambda: pings.append(1))

    res = client.get("/api/health")

    assert res.json()["dataAvailable"] is True
    assert pings == [1]


def test_health_reports_unreachable_storage(client, repository, monkeypatch):
    def unreachable():
        raise PersistenceError("storage unreachable")
    monkeypatch.setattr(repository, "ping", unreachable)

    res = client.get("/api/health")

    assert res.status_code == 200
    assert res.json()["status"] == "error"
    assert res.json()["dataAvailable"] is False
    assert res.json()["message"] == "storage unreachable"


def test_storage_failure_during_scan_is_500(client, bearer, codec, operator, participant, repository, monkeypatch):
    def broken(**kwargs):
        raise PersistenceError("disk gone")
    monkeypatch.setattr(repository, "create_entry_log", broken)

    res = _scan(client, bearer(operator), codec.issue("OF-2026-AB12"))

    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}
    assert repository.list_sessions(participant.id) == []
