import uuid

from campus_portal.core.types import UserRole

TECH_FEST = {
    "title": "Tech Fest",
    "description": "Annual technology festival",
    "date": "2025-05-01T10:00",
    "location": "Auditorium",
}


def create_event(client, headers, **overrides):
    r = client.post("/api/events", data={**TECH_FEST, **overrides}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_tech_fest_interest_scenario(client, make_user, auth_headers, broadcaster):
    owner = make_user("Organizer", department="CSE", batch="2022")
    fan = make_user("Fan")

    event = create_event(client, auth_headers(owner))
    assert event["images"] == []
    assert event["interested"] == []
    assert event["date"] == "2025-05-01T10:00:00"
    assert event["user"]["name"] == "Organizer"
    assert event["user"]["department"] == "CSE"
    assert event["user"]["isStudentVerified"] is False

    r1 = client.patch(f"/api/events/{event['id']}/interested", headers=auth_headers(fan))
    assert r1.status_code == 200
    assert r1.json()["interested"] == [str(fan.id)]

    r2 = client.patch(f"/api/events/{event['id']}/interested", headers=auth_headers(fan))
    assert r2.status_code == 200
    assert r2.json()["interested"] == []

    updates = [payload for name, payload in broadcaster.for_topic("events") if name == "eventUpdate"]
    assert [u["type"] for u in updates] == ["created", "interestUpdated", "interestUpdated"]
    assert updates[0]["data"]["id"] == event["id"]
    assert updates[1]["data"]["eventId"] == event["id"]
    assert updates[1]["data"]["interestedCount"] == 1
    assert updates[2]["data"]["interestedCount"] == 0


def test_create_requires_auth(client):
    r = client.post("/api/events", data=TECH_FEST)
    assert r.status_code in (401, 403)


def test_create_with_missing_fields_is_400(client, make_user, auth_headers):
    r = client.post("/api/events", data={"title": "Half an event"}, headers=auth_headers(make_user()))
    assert r.status_code == 400
    assert "Missing required fields" in r.json()["detail"]


def test_malformed_tags_are_ignored(client, make_user, auth_headers):
    event = create_event(client, auth_headers(make_user()), tags="{oops", coordinates='{"lat": 12.9, "lng": 77.5}')
    assert event["tags"] is None
    assert event["coordinates"] == {"lat": 12.9, "lng": 77.5}


def test_get_by_id_counts_views(client, make_user, auth_headers):
    event = create_event(client, auth_headers(make_user()))

    assert client.get(f"/api/events/{event['id']}").json()["views"] == 1
    assert client.get(f"/api/events/{event['id']}").json()["views"] == 2


def test_get_unknown_or_malformed_id_is_404(client):
    assert client.get(f"/api/events/{uuid.uuid4()}").status_code == 404
    r = client.get("/api/events/not-an-id")
    assert r.status_code == 404
    assert r.json() == {"detail": "Event not found"}


def test_list_is_public_and_sorted_by_date(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    create_event(client, headers, title="December", date="2025-12-01T10:00")
    create_event(client, headers, title="March", date="2025-03-01T10:00")

    r = client.get("/api/events")
    assert r.status_code == 200
    assert [e["title"] for e in r.json()] == ["March", "December"]


def test_partial_update_by_owner(client, make_user, auth_headers, broadcaster):
    owner = make_user()
    event = create_event(client, auth_headers(owner), capacity="80")

    r = client.put(f"/api/events/{event['id']}", data={"title": "Tech Fest 2025", "location": ""}, headers=auth_headers(owner))
    assert r.status_code == 200
    body = r.json()
    assert body["title"] == "Tech Fest 2025"
    assert body["location"] == "Auditorium"
    assert body["capacity"] == 80

    assert broadcaster.for_topic("events")[-1] == ("eventUpdate", {"type": "updated", "data": body})


def test_update_by_other_user_is_403(client, make_user, auth_headers):
    event = create_event(client, auth_headers(make_user()))
    r = client.put(f"/api/events/{event['id']}", data={"title": "Mine now"}, headers=auth_headers(make_user()))
    assert r.status_code == 403


def test_update_missing_event_is_404(client, make_user, auth_headers):
    r = client.put(f"/api/events/{uuid.uuid4()}", data={"title": "x"}, headers=auth_headers(make_user()))
    assert r.status_code == 404


def test_delete_by_admin(client, make_user, auth_headers, broadcaster):
    event = create_event(client, auth_headers(make_user()))
    admin = make_user("Admin", role=UserRole.admin)

    r = client.delete(f"/api/events/{event['id']}", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json() == {"message": "Event deleted successfully", "id": event["id"]}
    assert broadcaster.for_topic("events")[-1] == ("eventUpdate", {"type": "deleted", "data": {"eventId": event["id"]}})

    assert client.get(f"/api/events/{event['id']}").status_code == 404


def test_delete_by_stranger_is_403(client, make_user, auth_headers):
    event = create_event(client, auth_headers(make_user()))
    r = client.delete(f"/api/events/{event['id']}", headers=auth_headers(make_user()))
    assert r.status_code == 403
    assert r.json()["detail"] == "Not authorized to delete this event"


def test_create_with_uploaded_images(client, make_user, auth_headers, storage):
    files = [
        ("images", ("stage.png", b"png-bytes", "image/png")),
        ("images", ("crowd.jpg", b"jpg-bytes", "image/jpeg")),
    ]
    r = client.post("/api/events", data=TECH_FEST, files=files, headers=auth_headers(make_user()))

    assert r.status_code == 201, r.text
    assert r.json()["images"] == ["https://cdn.test/stage.png", "https://cdn.test/crowd.jpg"]
    assert [name for name, _ in storage.saved] == ["stage.png", "crowd.jpg"]


def test_update_merges_existing_and_new_images(client, make_user, auth_headers):
    owner = make_user()
    files = [("images", (f"{i}.png", b"x", "image/png")) for i in range(3)]
    event = client.post("/api/events", data=TECH_FEST, files=files, headers=auth_headers(owner)).json()

    keep = event["images"][:1]
    r = client.put(
        f"/api/events/{event['id']}",
        data={"existingImages": f'["{keep[0]}"]'},
        files=[("images", ("new.png", b"y", "image/png"))],
        headers=auth_headers(owner),
    )
    assert r.status_code == 200
    assert r.json()["images"] == [keep[0], "https://cdn.test/new.png"]


def test_too_many_images_is_400_before_upload(client, make_user, auth_headers, storage):
    files = [("images", (f"{i}.png", b"x", "image/png")) for i in range(6)]
    r = client.post("/api/events", data=TECH_FEST, files=files, headers=auth_headers(make_user()))

    assert r.status_code == 400
    assert storage.saved == []


def test_malformed_existing_images_is_400(client, make_user, auth_headers):
    owner = make_user()
    event = create_event(client, auth_headers(owner))
    r = client.put(f"/api/events/{event['id']}", data={"existingImages": "not-json"}, headers=auth_headers(owner))
    assert r.status_code == 400


def test_storage_failure_is_502(client, make_user, auth_headers, storage):
    storage.fail = True
    r = client.post(
        "/api/events",
        data=TECH_FEST,
        files=[("images", ("a.png", b"x", "image/png"))],
        headers=auth_headers(make_user()),
    )
    assert r.status_code == 502
    assert client.get("/api/events").json() == []
