import io

from openpyxl import load_workbook

from models import Artwork, Event, EventParticipant, ParticipantAccount, StaffRole


def test_participant_export_round_trips_through_bulk_upload(client, admin_headers, create_event, add_entry):
    solo = create_event("Veena Solo")
    group = create_event("Group Dance", format="group", event_type="Group")
    add_entry(solo["id"], "Salem", "Asha")
    add_entry(group["id"], "Madurai", "Bala", "Chitra", team_name="Madurai Movers", event_type="Group")

    before = client.get("/api/admin/export/participants", headers=admin_headers)
    assert before.status_code == 200
    assert "participants.csv" in before.headers["content-disposition"]
    lines = before.text.strip().splitlines()
    assert lines[0] == "Team Name,Branch Name,Event Type,Participant Name,Event Name,Mobile"
    assert lines[1] == "Madurai Movers,Madurai,Group,Madurai Movers,Group Dance,"
    assert lines[2] == ",Salem,Individual,Asha,Veena Solo,"

    ids = [row["id"] for row in client.get("/api/admin/participants", headers=admin_headers).json()]
    client.post("/api/admin/participants/delete", json={"ids": ids}, headers=admin_headers)

    res = client.post(
        "/api/admin/participants/bulk-upload",
        files={"file": ("participants.csv", before.content, "text/csv")},
        headers=admin_headers,
    )
    assert res.json()["inserted"] == 2

    after = client.get("/api/admin/export/participants", headers=admin_headers)
    assert after.text == before.text


def test_event_export_formats(client, admin_headers, create_event):
    create_event("Flute", location="Hall 2", event_time="2025-03-01T12:00:00+05:30", description="Bamboo")
    create_event("Veena Solo", location="Hall 1", event_time="2025-03-01T10:30:00+05:30")

    res = client.get("/api/admin/export/events", headers=admin_headers)
    lines = res.text.strip().splitlines()
    assert lines[0] == "Event Name,Location,Start Time,End Time,Description"
    assert lines[1] == "Veena Solo,Hall 1,2025-03-01 10:30,,"
    assert lines[2] == "Flute,Hall 2,2025-03-01 12:00,,Bamboo"

    res = client.get("/api/admin/export/events", params={"format": "xlsx"}, headers=admin_headers)
    assert res.headers["content-type"].startswith("application/vnd.openxmlformats")
    ws = load_workbook(io.BytesIO(res.content)).active
    assert ws.cell(row=2, column=1).value == "Veena Solo"

    assert client.get("/api/admin/export/events", params={"format": "pdf"}, headers=admin_headers).status_code == 422


def test_event_export_reimports(client, admin_headers, create_event):
    create_event("Flute", location="Hall 2", event_time="2025-03-01T12:00:00+05:30")
    exported = client.get("/api/admin/export/events", headers=admin_headers)
    event_id = client.get("/api/events").json()[0]["id"]
    client.delete(f"/api/admin/events/{event_id}", headers=admin_headers)

    res = client.post(
        "/api/admin/events/bulk-upload",
        files={"file": ("events.csv", exported.content, "text/csv")},
        headers=admin_headers,
    )
    assert res.json()["inserted"] == 1
    again = client.get("/api/admin/export/events", headers=admin_headers)
    assert again.text == exported.text


def test_directory_export(client, admin_headers, create_event, add_entry):
    event = create_event("Kolam")
    add_entry(event["id"], "Salem", "Asha")
    rows = client.get("/api/admin/export/directory", headers=admin_headers).json()
    assert rows == [{"Event": "Kolam", "Name": "Asha", "Branch": "Salem", "Phone": "", "Zone": "", "Type": "Individual"}]


def test_data_reset(client, admin_headers, make_staff, headers_for, create_event, add_entry, db):
    event = create_event("Kolam")
    entry = add_entry(event["id"], "Salem", "Asha")
    client.post(f"/api/scoring/events/{event['id']}/scores", json={"scores": [{"participant_id": entry["id"], "score": 10}]}, headers=admin_headers)
    account = ParticipantAccount(email="artist@example.com", full_name="Artist", hashed_password="x")
    db.add(account)
    db.commit()
    db.add(Artwork(participant_id=account.id, event_id=event["id"], title="Kolam art", image_url="https://img.example.com/k.png"))
    db.commit()

    organizer = make_staff("org@sigaram.org", StaffRole.ORGANIZER, rights=["event_management"])
    res = client.post("/api/admin/data/reset", json={"confirmation": "DELETE ALL DATA"}, headers=headers_for(organizer, mfa=True))
    assert res.status_code == 403

    res = client.post("/api/admin/data/reset", json={"confirmation": "delete all data"}, headers=admin_headers)
    assert res.status_code == 400

    res = client.post("/api/admin/data/reset", json={"confirmation": "DELETE ALL DATA"}, headers=admin_headers)
    assert res.status_code == 200
    deleted = res.json()["deleted"]
    assert deleted["events"] == 1
    assert deleted["participants"] == 1
    assert deleted["scores"] == 1

    db.expire_all()
    assert db.query(Event).count() == 0
    assert db.query(EventParticipant).count() == 0
    artwork = db.query(Artwork).one()
    assert artwork.event_id is None
