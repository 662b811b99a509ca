from models import StaffRole


def test_mark_attendance_and_stats(client, admin_headers, make_staff, headers_for, create_event, add_entry):
    event = create_event("Kolam")
    asha = add_entry(event["id"], "Salem", "Asha")
    bala = add_entry(event["id"], "Madurai", "Bala")
    add_entry(event["id"], "Erode", "Chitra")
    volunteer = make_staff("vol@sigaram.org", StaffRole.VOLUNTEER, full_name="Vimal")
    headers = headers_for(volunteer)

    report = client.get(f"/api/attendance/events/{event['id']}", headers=headers).json()
    assert report["stats"] == {"total": 3, "present": 0, "absent": 0, "late": 0, "pending": 3}

    res = client.post(f"/api/attendance/events/{event['id']}", json={"records": [
        {"participant_id": asha["id"], "status": "Present"},
        {"participant_id": bala["id"], "status": "Absent"},
    ]}, headers=headers)
    assert res.status_code == 200
    report = res.json()
    assert report["stats"] == {"total": 3, "present": 1, "absent": 1, "late": 0, "pending": 1}
    rows = {row["name"]: row for row in report["rows"]}
    assert rows["Asha"]["check_in_time"] is not None
    assert rows["Asha"]["marked_by"] == "Vimal"
    assert rows["Bala"]["check_in_time"] is None
    assert rows["Chitra"]["status"] == "Pending"

    # Re-marking updates the existing row instead of adding another one.
    report = client.post(f"/api/attendance/events/{event['id']}", json={"records": [
        {"participant_id": bala["id"], "status": "Late"},
    ]}, headers=headers).json()
    assert report["stats"]["late"] == 1 and report["stats"]["absent"] == 0
    assert {row["name"]: row for row in report["rows"]}["Bala"]["check_in_time"] is not None


def test_attendance_rejects_entries_from_other_events(client, admin_headers, create_event, add_entry):
    event = create_event("Kolam")
    other = create_event("Mime")
    stranger = add_entry(other["id"], "Salem", "Asha")
    res = client.post(f"/api/attendance/events/{event['id']}", json={"records": [
        {"participant_id": stranger["id"], "status": "Present"},
    ]}, headers=admin_headers)
    assert res.status_code == 400


def test_attendance_requires_the_right(client, make_staff, headers_for, create_event):
    event = create_event("Kolam")
    judge = make_staff("judge@sigaram.org", StaffRole.JUDGE)
    assert client.get(f"/api/attendance/events/{event['id']}", headers=headers_for(judge)).status_code == 403


def test_attendance_export(client, admin_headers, create_event, add_entry):
    event = create_event("Kolam")
    asha = add_entry(event["id"], "Salem", "Asha")
    add_entry(event["id"], "Erode", "Bala")
    client.post(f"/api/attendance/events/{event['id']}", json={"records": [
        {"participant_id": asha["id"], "status": "Present"},
    ]}, headers=admin_headers)

    res = client.get(f"/api/attendance/events/{event['id']}/export", headers=admin_headers)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    lines = res.text.strip().splitlines()
    assert lines[0] == "Participant Name,Team Name,Branch,Status,Check-in Time,Marked By"
    assert lines[1].startswith("Asha,,Salem,Present,")
    assert lines[1].endswith(",Chief Admin")
    assert lines[2] == "Bala,,Erode,Pending,,"
