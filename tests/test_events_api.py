from models import Attendance, Event, EventParticipant, Score, StaffRole, TeamMember


def test_event_crud_and_unique_names(client, admin_headers, create_event):
    event = create_event("Veena Solo", event_type="Solo", hall=1, location="Hall 1")
    assert event["status"] == "Upcoming"
    assert event["format"] == "single"

    dup = client.post("/api/admin/events", json={"name": "  veena solo "}, headers=admin_headers)
    assert dup.status_code == 409

    res = client.put(f"/api/admin/events/{event['id']}", json={"description": "Carnatic veena", "hall": 2}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["hall"] == 2
    assert res.json()["name"] == "Veena Solo"

    other = create_event("Kolam")
    res = client.put(f"/api/admin/events/{other['id']}", json={"name": "VEENA SOLO"}, headers=admin_headers)
    assert res.status_code == 409

    res = client.patch(f"/api/admin/events/{event['id']}/status", json={"status": "Ongoing"}, headers=admin_headers)
    assert res.json()["status"] == "Ongoing"

    assert client.get("/api/admin/events/999").status_code in (404, 405)
    assert client.put("/api/admin/events/999", json={"hall": 1}, headers=admin_headers).status_code == 404


def test_schedule_is_sorted_by_effective_time(client, create_event):
    create_event("Late Show", event_time="2025-03-01T18:00:00+05:30")
    create_event("Moved Up", event_time="2025-03-01T20:00:00+05:30", revised_time="2025-03-01T09:00:00+05:30")
    create_event("Unscheduled")
    create_event("Noon Dance", event_time="2025-03-01T12:00:00+05:30", category="Dance")

    names = [row["name"] for row in client.get("/api/events").json()]
    assert names == ["Moved Up", "Noon Dance", "Late Show", "Unscheduled"]

    dance = client.get("/api/events", params={"category": "dance"}).json()
    assert [row["name"] for row in dance] == ["Noon Dance"]


def test_event_detail_lists_public_entries(client, create_event, add_entry):
    event = create_event("Group Song", format="group", event_type="Group")
    add_entry(event["id"], "Salem", "Asha", "Bala", team_name="Salem Stars", event_type="Group")

    res = client.get(f"/api/events/{event['id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "Group Song"
    assert len(body["participants"]) == 1
    entry = body["participants"][0]
    assert entry["name"] == "Salem Stars"
    assert entry["members"] == ["Asha", "Bala"]
    assert "mobile" not in entry

    assert client.get("/api/events/999").status_code == 404


def test_entry_member_rules(client, admin_headers, create_event):
    duet = create_event("Duet", format="double")
    url = f"/api/admin/events/{duet['id']}/entries"

    res = client.post(url, json={"ima_branch": "Erode", "members": [{"name": "Asha"}, {"name": "  "}]}, headers=admin_headers)
    assert res.status_code == 400
    assert "exactly 2 members" in res.json()["detail"]

    res = client.post(url, json={"ima_branch": "Erode", "members": [{"name": " "}]}, headers=admin_headers)
    assert res.status_code == 422

    res = client.post(url, json={
        "ima_branch": " Erode ",
        "members": [{"name": "Asha", "mobile": "9000000001"}, {"name": "Bala"}],
    }, headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["ima_branch"] == "Erode"
    assert body["name"] == "Asha"
    assert body["mobile"] == "9000000001"
    assert [m["name"] for m in body["members"]] == ["Asha", "Bala"]


def test_directory_search(client, create_event, add_entry):
    dance = create_event("Classical Dance")
    song = create_event("Light Music")
    add_entry(dance["id"], "Salem", "Asha")
    add_entry(song["id"], "Madurai", "Bala")

    assert len(client.get("/api/directory").json()) == 2
    rows = client.get("/api/directory", params={"search": "madu"}).json()
    assert [(row["name"], row["event"]) for row in rows] == [("Bala", "Light Music")]
    rows = client.get("/api/directory", params={"search": "classical"}).json()
    assert [row["name"] for row in rows] == ["Asha"]


def test_delete_event_cascades(client, admin_headers, create_event, add_entry, db):
    event = create_event("Mime")
    entry = add_entry(event["id"], "Salem", "Asha")
    client.post(f"/api/attendance/events/{event['id']}", json={"records": [{"participant_id": entry["id"], "status": "Present"}]}, headers=admin_headers)
    client.post(f"/api/scoring/events/{event['id']}/scores", json={"scores": [{"participant_id": entry["id"], "score": 80}]}, headers=admin_headers)

    res = client.delete(f"/api/admin/events/{event['id']}", headers=admin_headers)
    assert res.status_code == 200

    db.expire_all()
    assert db.query(Event).count() == 0
    assert db.query(EventParticipant).count() == 0
    assert db.query(TeamMember).count() == 0
    assert db.query(Attendance).count() == 0
    assert db.query(Score).count() == 0


def test_event_management_right_is_enforced(client, make_staff, headers_for):
    volunteer = make_staff("vol@sigaram.org", StaffRole.VOLUNTEER)
    res = client.post("/api/admin/events", json={"name": "Quiz"}, headers=headers_for(volunteer))
    assert res.status_code == 403

    organizer = make_staff("org@sigaram.org", StaffRole.ORGANIZER, rights=["event_management"])
    res = client.post("/api/admin/events", json={"name": "Quiz"}, headers=headers_for(organizer, portal="volunteer"))
    assert res.status_code == 403
    res = client.post("/api/admin/events", json={"name": "Quiz"}, headers=headers_for(organizer, mfa=True, portal="organizer"))
    assert res.status_code == 200


def test_participant_crud(client, admin_headers, create_event, add_entry):
    first = create_event("Painting")
    second = create_event("Sketching")
    entry = add_entry(first["id"], "Salem", "Asha")
    other = add_entry(first["id"], "Erode", "Bala")

    res = client.put(f"/api/admin/participants/{entry['id']}", json={"name": "Asha R", "event_id": second["id"], "ima_branch": " "}, headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["event_name"] == "Sketching"
    assert body["ima_branch"] == "Unknown"
    assert body["members"][0]["name"] == "Asha R"

    listed = client.get("/api/admin/participants", params={"event_id": second["id"]}, headers=admin_headers).json()
    assert [row["id"] for row in listed] == [entry["id"]]

    assert client.delete(f"/api/admin/participants/{other['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/admin/participants/{other['id']}", headers=admin_headers).status_code == 404

    res = client.post("/api/admin/participants/delete", json={"ids": [entry["id"], 999]}, headers=admin_headers)
    assert res.json()["message"] == "1 participant(s) deleted"
    assert client.get("/api/admin/participants", headers=admin_headers).json() == []


def test_moving_entry_keeps_event_results_consistent(client, admin_headers, create_event, add_entry):
    painting = create_event("Painting")
    sketching = create_event("Sketching")
    duet = create_event("Duet Singing", format="double")
    asha = add_entry(painting["id"], "Salem", "Asha")
    bala = add_entry(painting["id"], "Erode", "Bala")

    res = client.post(
        f"/api/scoring/events/{painting['id']}/scores",
        json={"scores": [{"participant_id": asha["id"], "score": 90}]},
        headers=admin_headers,
    )
    assert res.status_code == 200

    res = client.put(f"/api/admin/participants/{asha['id']}", json={"event_id": sketching["id"]}, headers=admin_headers)
    assert res.status_code == 409
    dashboard = client.get(f"/api/scoring/events/{painting['id']}", headers=admin_headers).json()
    assert sorted(row["name"] for row in dashboard["entries"]) == ["Asha", "Bala"]
    assert [(row["branch"], row["total_points"]) for row in dashboard["standings"]] == [("Salem", 10)]

    res = client.put(f"/api/admin/participants/{bala['id']}", json={"event_id": duet["id"]}, headers=admin_headers)
    assert res.status_code == 400
    res = client.put(f"/api/admin/participants/{bala['id']}", json={"event_id": sketching["id"]}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["event_name"] == "Sketching"

def test_bulk_upload_events(client, admin_headers, create_event):
    create_event("Kolam")
    csv_text = (
        "Event Name,Location,Start Time,End Time,Description,Event Type\n"
        "Veena Solo,Hall 1,10:30,,Strings,Solo\n"
        "kolam,Hall 2,11:00,,,\n"
        ",Hall 3,12:00,,,\n"
        "Quiz,,someday,,,\n"
        "Drama,,,,,Opera\n"
        "Group Dance,,2025-03-01 16:00,,,group\n"
    )
    res = client.post(
        "/api/admin/events/bulk-upload",
        files={"file": ("events.csv", csv_text, "text/csv")},
        headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["inserted"] == 2
    assert body["skipped"] == 4
    assert any("Row 3" in warning and "already exists" in warning for warning in body["warnings"])
    assert any("Row 4" in warning and "missing event name" in warning for warning in body["warnings"])

    events = {row["name"]: row for row in client.get("/api/events").json()}
    assert events["Veena Solo"]["location"] == "Hall 1"
    assert events["Veena Solo"]["event_time"].startswith("2025-03-01T10:30")
    assert events["Group Dance"]["event_type"] == "Group"
    assert events["Group Dance"]["location"] == "Main Hall"

    res = client.post(
        "/api/admin/events/bulk-upload",
        files={"file": ("events.txt", csv_text, "text/plain")},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_bulk_upload_participants_dry_run_then_commit(client, admin_headers, create_event, add_entry):
    event = create_event("Veena Solo")
    add_entry(event["id"], "Salem", "Asha")
    csv_text = (
        "Participant Name,Event Name,Branch Name,Team Name,Event Type,Mobile\n"
        "Asha,veena solo,salem,,Individual,\n"
        "Bala,Veena Solo,Madurai,,Individual,9000000002\n"
        "Chitra,Unknown Event,Erode,,Individual,\n"
        ",Veena Solo,Erode,,Individual,\n"
        "Devi,Veena Solo,,,Individual,\n"
        "Bala,Veena Solo,Madurai,,Individual,\n"
    )
    files = {"file": ("participants.csv", csv_text, "text/csv")}

    preview = client.post("/api/admin/participants/bulk-upload", params={"dry_run": True}, files=files, headers=admin_headers).json()
    assert preview["dry_run"] is True
    assert preview["inserted"] == 0
    assert [row["name"] for row in preview["preview"]] == ["Bala", "Devi"]
    assert preview["skipped"] == 4
    assert len(client.get("/api/admin/participants", headers=admin_headers).json()) == 1

    files = {"file": ("participants.csv", csv_text, "text/csv")}
    res = client.post("/api/admin/participants/bulk-upload", files=files, headers=admin_headers).json()
    assert res["inserted"] == 2
    rows = client.get("/api/admin/participants", headers=admin_headers).json()
    branches = {row["name"]: row["ima_branch"] for row in rows}
    assert branches == {"Asha": "Salem", "Bala": "Madurai", "Devi": "Unknown"}
