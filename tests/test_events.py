EVENT = {
    "event_name": "Lusaka Youth Rally",
    "event_type": "Rally",
    "event_date": "2024-08-10",
    "event_time": "14:30",
    "location": "Heroes Stadium",
    "province": "Lusaka",
    "district": "Lusaka",
    "organizer": "Youth Wing",
    "expected_attendees": 500,
}


def _create(client, h, **overrides):
    payload = dict(EVENT)
    payload.update(overrides)
    return client.post("/api/events", json=payload, headers=h)


def test_create_and_validate_event(client, login):
    h = login()
    r = _create(client, h)
    assert r.status_code == 201
    assert r.json["status"] == "Planned"
    assert r.json["event_time"] == "14:30"
    assert r.json["actual_attendees"] == 0

    r = _create(client, h, event_name="Hi", location="", expected_attendees=-5, event_date="soon")
    assert r.status_code == 400
    assert set(r.json["errors"]) == {"event_name", "location", "expected_attendees", "event_date"}


def test_update_status_and_filters(client, login):
    h = login()
    event_id = _create(client, h).json["id"]
    _create(client, h, event_name="Copperbelt Training", event_type="Training", province="Copperbelt", event_date="2024-09-01")

    r = client.patch(f"/api/events/{event_id}", json={"location": "Independence Stadium"}, headers=h)
    assert r.json["location"] == "Independence Stadium"

    r = client.post(f"/api/events/{event_id}/status", json={"status": "Active"}, headers=h)
    assert r.json["status"] == "Active"
    assert client.post(f"/api/events/{event_id}/status", json={"status": "Postponed"}, headers=h).status_code == 400

    assert client.get("/api/events?type=Training").json["total"] == 1
    assert client.get("/api/events?date_from=2024-08-15").json["total"] == 1
    assert client.get("/api/events?q=independence").json["total"] == 1
    assert client.get("/api/events?date_from=tomorrow").status_code == 400


def test_rsvp_upsert_and_check_in(client, login, make_member):
    member_id, mid = make_member(status="Approved")
    walk_in_id, _ = make_member(nrc_number="222222/22/2")
    h = login()
    event_id = _create(client, h).json["id"]

    r = client.post(f"/api/events/{event_id}/rsvps", json={"member_id": mid, "response": "Maybe"}, headers=h)
    assert r.status_code == 200
    r = client.post(f"/api/events/{event_id}/rsvps", json={"member_id": mid, "response": "Going"}, headers=h)
    assert r.json["response"] == "Going"
    assert client.post(f"/api/events/{event_id}/rsvps", json={"member_id": mid, "response": "Perhaps"}, headers=h).status_code == 400

    r = client.post(f"/api/events/{event_id}/check-in", json={"member_id": member_id}, headers=h)
    assert r.json["checked_in"] is True
    # Second check-in does not double count
    client.post(f"/api/events/{event_id}/check-in", json={"member_id": member_id}, headers=h)
    r = client.post(f"/api/events/{event_id}/check-in", json={"member_id": walk_in_id}, headers=h)
    assert r.json["response"] == "Going"

    r = client.get(f"/api/events/{event_id}/rsvps")
    assert r.json["summary"] == {"Going": 2, "Maybe": 0, "Not Going": 0, "checked_in": 2, "total": 2}
    assert client.get(f"/api/events/{event_id}").json["actual_attendees"] == 2


def test_events_need_manage_events(client, login):
    login("section@upnd.zm")
    assert client.get("/api/events").status_code == 403
    assert client.get("/api/events/999").status_code == 403
