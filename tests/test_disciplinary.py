import io
from datetime import date
from pathlib import Path

CASE = {
    "violation_type": "Misconduct",
    "description": "Disrupted the branch meeting and refused to leave.",
    "severity": "High",
    "reporting_officer": "Branch Secretary",
    "date_incident": "2024-05-01",
}


def _open_case(client, h, member_ref, **overrides):
    payload = dict(CASE, member_id=member_ref)
    payload.update(overrides)
    return client.post("/api/disciplinary/cases", json=payload, headers=h)


def test_create_case_numbering_and_detail(client, login, make_member):
    _, mid = make_member(status="Approved")
    h = login()
    r = _open_case(client, h, mid)
    assert r.status_code == 201
    year = date.today().year
    assert r.json["case_number"] == f"DC-{year}-0001"
    assert r.json["status"] == "Active"
    assert r.json["member_name"] == "Mwila Banda"
    assert r.json["membership_id"] == mid

    r = _open_case(client, h, mid)
    assert r.json["case_number"] == f"DC-{year}-0002"

    r = client.get(f"/api/disciplinary/cases/DC-{year}-0001")
    assert r.status_code == 200
    assert r.json["actions"] == [] and r.json["notes"] == [] and r.json["evidence"] == []


def test_create_case_validation(client, login, make_member):
    _, mid = make_member()
    h = login()
    r = _open_case(client, h, mid, description="Too short", reporting_officer="")
    assert r.status_code == 400
    assert set(r.json["errors"]) == {"description", "reporting_officer"}

    r = client.post("/api/disciplinary/cases", json=CASE, headers=h)
    assert r.status_code == 400
    assert "member_id" in r.json["errors"]

    r = _open_case(client, h, "UPND404")
    assert r.status_code == 404


def test_status_change_appends_note(client, login, make_member):
    _, mid = make_member()
    h = login()
    case_id = _open_case(client, h, mid).json["id"]

    r = client.post(
        f"/api/disciplinary/cases/{case_id}/status",
        json={"status": "Resolved", "note": "Apology accepted.", "resolution": "Written warning"},
        headers=h,
    )
    assert r.status_code == 200
    assert r.json["status"] == "Resolved"
    assert r.json["resolution"] == "Written warning"
    assert [n["note"] for n in r.json["notes"]] == ["Apology accepted."]

    r = client.post(f"/api/disciplinary/cases/{case_id}/status", json={"status": "Closed"}, headers=h)
    assert r.status_code == 400


def test_children_are_appended(client, login, make_member):
    _, mid = make_member()
    h = login()
    case_id = _open_case(client, h, mid).json["id"]

    r = client.post(f"/api/disciplinary/cases/{case_id}/assign", json={"assigned_officer": "Ward Chair"}, headers=h)
    assert r.json["assigned_officer"] == "Ward Chair"

    r = client.post(f"/api/disciplinary/cases/{case_id}/actions", json={"action": "Hearing held", "date": "2024-05-10"}, headers=h)
    assert r.status_code == 201
    assert r.json["date"] == "2024-05-10"
    client.post(f"/api/disciplinary/cases/{case_id}/notes", json={"note": "First note"}, headers=h)
    client.post(f"/api/disciplinary/cases/{case_id}/notes", json={"note": "Second note"}, headers=h)

    r = client.post(f"/api/disciplinary/cases/{case_id}/notes", json={"note": "  "}, headers=h)
    assert r.status_code == 400

    detail = client.get(f"/api/disciplinary/cases/{case_id}").json
    assert [a["action"] for a in detail["actions"]] == ["Hearing held"]
    assert [n["note"] for n in detail["notes"]] == ["First note", "Second note"]


def test_evidence_upload_is_stored(app, client, login, make_member):
    _, mid = make_member()
    h = login()
    case = _open_case(client, h, mid).json

    r = client.post(
        f"/api/disciplinary/cases/{case['id']}/evidence",
        data={"type": "Document", "description": "Meeting minutes", "file": (io.BytesIO(b"minutes"), "minutes.pdf")},
        headers=h,
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    assert r.json["has_file"] is True
    assert r.json["filename"] == "minutes.pdf"
    assert r.json["size_bytes"] == 7

    root = Path(app.config["LOCAL_STORAGE_ROOT"])
    stored = list(root.rglob("minutes.pdf"))
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"minutes"

    r = client.post(
        f"/api/disciplinary/cases/{case['id']}/evidence",
        json={"type": "Hologram", "description": "x"},
        headers=h,
    )
    assert r.status_code == 400


def test_cases_scoped_and_permission_gated(client, login, make_member):
    _, copper_mid = make_member(province="Copperbelt", district="Kitwe")
    h = login()
    case_id = _open_case(client, h, copper_mid).json["id"]
    client.post("/auth/logout")

    login("lusaka@upnd.zm")
    assert client.get(f"/api/disciplinary/cases/{case_id}").status_code == 404
    assert client.get("/api/disciplinary/cases").json["total"] == 0
    client.post("/auth/logout")

    login("kitwe@upnd.zm")
    assert client.get("/api/disciplinary/cases").status_code == 403


def test_member_filter_ignores_non_ascii_and_oversized_ids(client, login, make_member):
    member_id, mid = make_member()
    h = login()
    _open_case(client, h, mid)

    assert client.get(f"/api/disciplinary/cases?member_id={member_id}").json["total"] == 1
    r = client.get("/api/disciplinary/cases", query_string={"member_id": "²"})
    assert r.status_code == 200
    assert r.json["total"] == 0
    r = client.get("/api/disciplinary/cases", query_string={"member_id": "99999999999999999999999"})
    assert r.status_code == 200
    assert r.json["total"] == 0
    assert client.get("/api/disciplinary/cases/99999999999999999999999").status_code == 404
