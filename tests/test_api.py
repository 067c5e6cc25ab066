"""
HTTP surface: identity header, multipart uploads, and domain error mapping.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from geocivic.main import app
from geocivic.services.notification_service import NotificationDispatcher

from conftest import ISSUE, north_of


class LoopRecordingNotifier(NotificationDispatcher):
    """Records, per send, whether it ran on a thread with a running event loop."""

    def __init__(self):
        self.on_event_loop = []

    def send(self, recipient_id, message, report_id=None):
        try:
            asyncio.get_running_loop()
            self.on_event_loop.append(True)
        except RuntimeError:
            self.on_event_loop.append(False)
        return {"id": "n", "recipient_id": recipient_id}


@pytest.fixture
def client(db):
    return TestClient(app)


def as_user(actor):
    return {"X-User-ID": actor.id}


def submit(client, actor, **overrides):
    form = {
        "title": "Overflowing bin",
        "category": "Waste Management",
        "location": "Gandhi Bazaar",
        "latitude": str(ISSUE.latitude),
        "longitude": str(ISSUE.longitude),
    }
    form.update(overrides)
    return client.post(
        "/reports",
        data=form,
        files={"image": ("bin.jpg", b"\xff\xd8citizen", "image/jpeg")},
        headers=as_user(actor),
    )


def resolve(client, actor, report_id, location=ISSUE, proof=b"\xff\xd8proof"):
    files = {"proof_image": ("fixed.jpg", proof, "image/jpeg")} if proof else None
    data = {}
    if location is not None:
        data = {"staff_lat": str(location.latitude), "staff_lng": str(location.longitude)}
    return client.put(f"/reports/{report_id}/resolve", data=data, files=files, headers=as_user(actor))


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "GeoCivic"
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/health/db").json()["connected"] is True


def test_register_user(client):
    response = client.post("/users", json={"name": "Meena", "role": "STAFF"})

    assert response.status_code == 201
    user = response.json()
    assert user["role"] == "STAFF"
    assert client.get(f"/users/{user['id']}").json()["name"] == "Meena"
    assert [u["id"] for u in client.get("/users/staff").json()] == [user["id"]]
    assert client.get("/users/ghost").json()["error"] == "USER_NOT_FOUND"


def test_identity_header_is_required(client, people):
    assert client.get("/reports/mine").status_code == 422
    assert client.get("/reports/mine", headers={"X-User-ID": "ghost"}).status_code == 401


def test_full_flow_over_http(client, people):
    created = submit(client, people.citizen)
    assert created.status_code == 201
    report = created.json()
    assert report["status"] == "OPEN"
    assert report["evidence_ref"].startswith("/uploads/")

    assigned = client.put(
        f"/admin/reports/{report['id']}/assign", json={"staff_id": people.staff.id}, headers=as_user(people.admin)
    )
    assert assigned.status_code == 200
    assert assigned.json()["status"] == "IN_PROGRESS"
    assert [t["id"] for t in client.get("/staff/tasks", headers=as_user(people.staff)).json()] == [report["id"]]

    resolved = resolve(client, people.staff, report["id"], location=north_of(ISSUE, 150))
    assert resolved.status_code == 200
    assert resolved.json()["resolution_proof"]["distance_meters"] == pytest.approx(150, abs=0.01)

    verified = client.put(
        f"/reports/{report['id']}/verify",
        json={"latitude": ISSUE.latitude, "longitude": ISSUE.longitude},
        headers=as_user(people.citizen),
    )
    assert verified.status_code == 200
    assert verified.json()["status"] == "CLOSED"

    balance = client.get(f"/users/{people.citizen.id}/balance", headers=as_user(people.citizen))
    assert balance.json() == {"user_id": people.citizen.id, "balance": 75}
    ledger = client.get(f"/users/{people.citizen.id}/ledger", headers=as_user(people.citizen)).json()
    assert [entry["delta"] for entry in ledger] == [50, 25]

    updates = client.get(f"/reports/{report['id']}/updates").json()
    assert [u["status"] for u in updates] == ["OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED"]

    again = client.put(
        f"/reports/{report['id']}/verify",
        json={"latitude": ISSUE.latitude, "longitude": ISSUE.longitude},
        headers=as_user(people.citizen),
    )
    assert again.status_code == 409
    assert again.json()["error"] == "INVALID_STATE_FOR_TRANSITION"


def test_role_checks_map_to_403(client, people):
    assert submit(client, people.staff).status_code == 403

    report = submit(client, people.citizen).json()
    response = client.put(
        f"/admin/reports/{report['id']}/assign", json={"staff_id": people.staff.id}, headers=as_user(people.citizen)
    )
    assert response.status_code == 403
    assert response.json()["error"] == "WRONG_ACTOR"
    assert client.get("/staff/tasks", headers=as_user(people.citizen)).status_code == 403
    assert client.get("/admin/reports", headers=as_user(people.citizen)).status_code == 403


def test_invalid_submissions(client, people):
    response = submit(client, people.citizen, category="Potholes")
    assert response.status_code == 422
    assert response.json()["error"] == "INVALID_REPORT"

    response = submit(client, people.citizen, latitude="123.0")
    assert response.status_code == 422
    assert response.json()["error"] == "INVALID_COORDINATE"


def test_assign_to_unknown_staff(client, people):
    report = submit(client, people.citizen).json()

    response = client.put(
        f"/admin/reports/{report['id']}/assign", json={"staff_id": people.citizen.id}, headers=as_user(people.admin)
    )

    assert response.status_code == 404
    assert response.json()["error"] == "STAFF_NOT_FOUND"


def test_resolve_errors(client, people):
    report = submit(client, people.citizen).json()
    client.put(f"/admin/reports/{report['id']}/assign", json={"staff_id": people.staff.id}, headers=as_user(people.admin))

    missing_proof = resolve(client, people.staff, report["id"], proof=None)
    assert missing_proof.status_code == 422
    assert missing_proof.json()["error"] == "MISSING_EVIDENCE"

    missing_gps = resolve(client, people.staff, report["id"], location=None)
    assert missing_gps.status_code == 422
    assert missing_gps.json()["error"] == "MISSING_LOCATION"

    too_far = resolve(client, people.staff, report["id"], location=north_of(ISSUE, 250))
    assert too_far.status_code == 422
    body = too_far.json()
    assert body["error"] == "GEOFENCE_VIOLATION"
    assert body["distance_meters"] == pytest.approx(250, abs=0.01)

    wrong_staff = resolve(client, people.other_staff, report["id"])
    assert wrong_staff.status_code == 403

    assert client.get(f"/reports/{report['id']}").json()["status"] == "IN_PROGRESS"


def test_status_filter_accepts_synonyms(client, people):
    first = submit(client, people.citizen, title="First").json()
    submit(client, people.citizen, title="Second")
    client.put(f"/admin/reports/{first['id']}/assign", json={"staff_id": people.staff.id}, headers=as_user(people.admin))

    assert [r["title"] for r in client.get("/reports", params={"status": "Pending"}).json()] == ["Second"]
    assert [r["title"] for r in client.get("/reports", params={"status": "in progress"}).json()] == ["First"]
    assert len(client.get("/reports").json()) == 2
    assert client.get("/reports", params={"status": "escalated"}).status_code == 400
    admin_view = client.get("/admin/reports", params={"status": "open"}, headers=as_user(people.admin))
    assert [r["title"] for r in admin_view.json()] == ["Second"]


def test_upvote_and_lookup(client, people):
    report = submit(client, people.citizen).json()

    assert client.post(f"/reports/{report['id']}/upvote", headers=as_user(people.neighbour)).json()["upvote_count"] == 1
    duplicate = client.post(f"/reports/{report['id']}/upvote", headers=as_user(people.neighbour))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "DUPLICATE_VOTE"

    missing = client.get("/reports/nope")
    assert missing.status_code == 404
    assert missing.json()["error"] == "REPORT_NOT_FOUND"

    mine = client.get("/reports/mine", headers=as_user(people.citizen)).json()
    assert [r["id"] for r in mine] == [report["id"]]


def test_redeem(client, people, ledger):
    from geocivic.models.ledger import LedgerReason

    ledger.credit(people.citizen.id, 75, LedgerReason.RESOLUTION_VERIFIED)
    url = f"/users/{people.citizen.id}/redeem"

    too_much = client.post(url, json={"amount": 100}, headers=as_user(people.citizen))
    assert too_much.status_code == 409
    assert too_much.json()["error"] == "INSUFFICIENT_BALANCE"

    spent = client.post(url, json={"amount": 30, "item": "Metro card"}, headers=as_user(people.citizen))
    assert spent.json()["balance"] == 45

    assert client.post(url, json={"amount": 0}, headers=as_user(people.citizen)).status_code == 422
    assert client.post(url, json={"amount": 5}, headers=as_user(people.neighbour)).status_code == 403
    assert client.get(f"/users/{people.citizen.id}/balance", headers=as_user(people.neighbour)).status_code == 403
    assert client.get(f"/users/{people.citizen.id}/balance", headers=as_user(people.admin)).json()["balance"] == 45


def test_notification_inbox(client, people):
    report = submit(client, people.citizen).json()
    client.put(f"/admin/reports/{report['id']}/assign", json={"staff_id": people.staff.id}, headers=as_user(people.admin))

    inbox = client.get(f"/users/{people.staff.id}/notifications", headers=as_user(people.staff)).json()
    assert inbox["unread_count"] == 1
    notification_id = inbox["notifications"][0]["id"]

    stranger = client.put(f"/users/notifications/{notification_id}/read", headers=as_user(people.citizen))
    assert stranger.status_code == 403

    read = client.put(f"/users/notifications/{notification_id}/read", headers=as_user(people.staff))
    assert read.json()["is_read"] is True
    assert client.put(f"/users/notifications/{notification_id}/read", headers=as_user(people.staff)).status_code == 200
    assert client.put("/users/notifications/missing/read", headers=as_user(people.staff)).status_code == 404

    inbox = client.get(f"/users/{people.staff.id}/notifications", headers=as_user(people.staff)).json()
    assert inbox["unread_count"] == 0


def test_notifications_are_sent_off_the_event_loop(client, people, lifecycle, monkeypatch):
    notifier = LoopRecordingNotifier()
    monkeypatch.setattr(lifecycle, "notifier", notifier)

    report = submit(client, people.citizen).json()
    client.put(f"/admin/reports/{report['id']}/assign", json={"staff_id": people.staff.id}, headers=as_user(people.admin))
    assert resolve(client, people.staff, report["id"]).status_code == 200
    verified = client.put(
        f"/reports/{report['id']}/verify",
        json={"latitude": ISSUE.latitude, "longitude": ISSUE.longitude},
        headers=as_user(people.citizen),
    )

    assert verified.json()["status"] == "CLOSED"
    assert len(notifier.on_event_loop) >= 4
    assert not any(notifier.on_event_loop)


def test_update_profile(client, people):
    url = f"/users/{people.citizen.id}"

    updated = client.put(url, json={"name": " Asha K ", "area": "Jayanagar", "role": "ADMIN"}, headers=as_user(people.citizen))

    assert updated.status_code == 200
    body = updated.json()
    assert body["name"] == "Asha K"
    assert body["area"] == "Jayanagar"
    assert body["role"] == "CITIZEN"
    assert client.get(url).json()["area"] == "Jayanagar"

    by_admin = client.put(url, json={"phone": "080-1234"}, headers=as_user(people.admin))
    assert by_admin.json()["phone"] == "080-1234"
    assert by_admin.json()["name"] == "Asha K"

    assert client.put(url, json={"name": "Ravi"}, headers=as_user(people.neighbour)).status_code == 403
    assert client.put(url, json={"name": ""}, headers=as_user(people.citizen)).status_code == 422
    assert client.put("/users/ghost", json={"name": "x"}, headers=as_user(people.admin)).status_code == 404
