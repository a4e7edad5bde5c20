import pytest


def test_statistics_endpoint(client, login, make_member):
    make_member()
    make_member(nrc_number="222222/22/2", status="Approved")
    make_member(nrc_number="333333/33/3", province="Copperbelt", district="Kitwe", status="Rejected")
    login()
    r = client.get("/api/statistics")
    assert r.status_code == 200
    members = r.json["members"]
    assert members["total_members"] == 3
    assert members["pending_applications"] == 1
    assert members["approved_members"] == 1
    assert members["rejected_applications"] == 1
    assert r.json["approval_funnel"][0] == {"stage": "Pending Section Review", "count": 1}
    assert r.json["cards"]["total"] == 0
    assert len(r.json["recent_members"]) == 3


def test_statistics_scoped_for_provincial_admin(client, login, make_member):
    make_member()
    make_member(nrc_number="333333/33/3", province="Copperbelt", district="Kitwe")
    login("lusaka@upnd.zm")
    r = client.get("/api/statistics")
    assert r.json["members"]["total_members"] == 1
    assert r.json["members"]["provincial_distribution"] == [{"province": "Lusaka", "count": 1}]


def test_notifications_endpoint(client, login, make_member):
    make_member()
    login()
    r = client.get("/api/notifications")
    assert r.status_code == 200
    ids = [n["id"] for n in r.json["items"]]
    assert ids == ["pending-approvals", "new-registrations"]


def test_notifications_for_member_role(client, login, make_member):
    make_member()
    login("member@upnd.zm")
    r = client.get("/api/notifications")
    assert r.status_code == 200
    # Members see no register data and hold no approval permission
    assert r.json["items"] == []


def test_geo_endpoints(client, login, make_member):
    make_member(latitude=-15.4, longitude=28.3)
    make_member(nrc_number="222222/22/2", latitude=-15.6, longitude=28.5)
    make_member(nrc_number="333333/33/3", province="Copperbelt", district="Kitwe")
    login()
    r = client.get("/api/geo/members?province=Lusaka")
    assert r.json["total"] == 2
    assert r.json["with_coordinates"] == 2
    assert r.json["bounds"]["north"] == pytest.approx(-14.9)

    r = client.get("/api/geo/provinces")
    assert [c["province"] for c in r.json["clusters"]] == ["Lusaka"]
    assert r.json["clusters"][0]["count"] == 2
