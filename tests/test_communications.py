from sqlalchemy.exc import SQLAlchemyError

from app.pmms.modules.communications.service import normalize_recipient_filter

MESSAGE = {
    "type": "SMS",
    "message": "Branch meeting on Saturday at 10am.",
    "recipient_filter": {"province": "Lusaka"},
}


def _seed(make_member):
    make_member(status="Approved")
    make_member(nrc_number="222222/22/2")
    make_member(nrc_number="333333/33/3", province="Copperbelt", district="Kitwe", status="Approved")


def test_normalize_recipient_filter():
    assert normalize_recipient_filter(
        {"province": "Lusaka", "district": "all", "membershipLevel": "Youth Wing", "colour": "red", "status": ""}
    ) == {"province": "Lusaka", "membership_level": "Youth Wing"}
    assert normalize_recipient_filter(None) == {}


def test_create_draft_with_preview_count(client, login, make_member):
    _seed(make_member)
    h = login()
    r = client.post("/api/communications", json=MESSAGE, headers=h)
    assert r.status_code == 201
    assert r.json["status"] == "Draft"
    assert r.json["recipients_count"] == 2

    r = client.post("/api/communications/preview", json={"recipient_filter": {"status": "pending"}}, headers=h)
    assert r.json["recipients_count"] == 1
    r = client.post("/api/communications/preview", json={"recipient_filter": {"status": "Approved"}}, headers=h)
    assert r.json["recipients_count"] == 2


def test_validation(client, login):
    h = login()
    r = client.post("/api/communications", json={"type": "Email", "message": "short"}, headers=h)
    assert r.status_code == 400
    assert set(r.json["errors"]) == {"message", "subject"}
    r = client.post("/api/communications", json={"type": "Fax", "message": "Long enough message"}, headers=h)
    assert set(r.json["errors"]) == {"type"}


def test_send_records_recipients_once(client, login, make_member):
    _seed(make_member)
    h = login()
    comm_id = client.post("/api/communications", json=MESSAGE, headers=h).json["id"]

    r = client.post(f"/api/communications/{comm_id}/send", headers=h)
    assert r.status_code == 200
    assert r.json["status"] == "Sent"
    assert r.json["sent_count"] == 2
    assert r.json["sent_at"]

    detail = client.get(f"/api/communications/{comm_id}").json
    assert len(detail["recipients"]) == 2
    assert {rec["status"] for rec in detail["recipients"]} == {"Pending"}

    r = client.post(f"/api/communications/{comm_id}/send", headers=h)
    assert r.status_code == 409
    assert r.json["error"] == "invalid_transition"


def test_send_scoped_to_sender_jurisdiction(client, login, make_member):
    _seed(make_member)
    h = login("lusaka@upnd.zm")
    comm = client.post("/api/communications", json=dict(MESSAGE, recipient_filter={}), headers=h).json
    assert comm["recipients_count"] == 2
    r = client.post(f"/api/communications/{comm['id']}/send", headers=h)
    assert r.json["sent_count"] == 2


def test_database_failure_marks_failed(client, login, make_member, monkeypatch):
    _seed(make_member)
    h = login()
    comm_id = client.post("/api/communications", json=MESSAGE, headers=h).json["id"]

    def _boom(**kwargs):
        raise SQLAlchemyError("recipient insert failed")

    monkeypatch.setattr("app.pmms.modules.communications.models.CommunicationRecipient", _boom)
    r = client.post(f"/api/communications/{comm_id}/send", headers=h)
    assert r.status_code == 200
    assert r.json["status"] == "Failed"
    assert r.json["failed_count"] == 2
    assert r.json["sent_count"] == 0

    detail = client.get(f"/api/communications/{comm_id}").json
    assert detail["status"] == "Failed"
    assert detail["recipients"] == []


def test_section_admin_cannot_message(client, login):
    login("section@upnd.zm")
    assert client.get("/api/communications").status_code == 403
