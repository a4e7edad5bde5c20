import csv
import io
import json

from app.pmms.db import session_scope
from app.pmms.models import AuditEvent


def test_report_catalogue(client, login):
    login("kitwe@upnd.zm")
    r = client.get("/api/reports")
    assert r.status_code == 200
    assert "membership-overview" in [x["id"] for x in r.json["reports"]]
    assert r.json["formats"] == ["csv", "json", "html"]


def test_csv_export_is_attachment_and_audited(app, client, login, make_member):
    _, mid = make_member()
    login()
    r = client.get("/api/reports/membership-overview/export?format=csv")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    assert "attachment;" in r.headers["Content-Disposition"]
    assert "UPND_membership-overview_" in r.headers["Content-Disposition"]
    rows = list(csv.reader(io.StringIO(r.get_data(as_text=True))))
    assert rows[1][0] == mid

    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "report.export").one()
        assert ev.entity_id == "membership-overview"
        assert json.loads(ev.metadata_json)["records"] == 1


def test_json_export_is_scoped(client, login, make_member):
    _, lusaka_mid = make_member()
    make_member(nrc_number="222222/22/2", province="Copperbelt", district="Kitwe")
    login("lusaka@upnd.zm")
    r = client.get("/api/reports/membership-overview/export?format=json")
    doc = json.loads(r.get_data(as_text=True))
    assert [row["membership_id"] for row in doc["data"]] == [lusaka_mid]


def test_html_export_escapes_values(client, login, make_member):
    make_member(full_name="<script>alert(1)</script>")
    login()
    r = client.get("/api/reports/membership-overview/export?format=html")
    assert r.status_code == 200
    body = r.get_data(as_text=True)
    assert "UPND Membership Overview" in body
    assert "<script>alert(1)</script>" not in body
    assert "&lt;script&gt;" in body


def test_export_errors_and_permissions(client, login):
    login()
    assert client.get("/api/reports/membership-overview/export?format=xml").status_code == 400
    assert client.get("/api/reports/membership-overview/export?date_range=forever").status_code == 400
    assert client.get("/api/reports/nope/export").status_code == 404
    client.post("/auth/logout")

    login("kitwe@upnd.zm")
    assert client.get("/api/reports/membership-overview/export").status_code == 403
