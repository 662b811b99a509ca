def _update(client, headers, event_id, entry_id, **payload):
    return client.put(f"/api/performances/events/{event_id}/entries/{entry_id}", json=payload, headers=headers)


def test_running_order(client, admin_headers, create_event, add_entry):
    event = create_event("Veena Solo")
    asha = add_entry(event["id"], "Salem", "Asha")
    bala = add_entry(event["id"], "Madurai", "Bala")
    chitra = add_entry(event["id"], "Erode", "Chitra")

    _update(client, admin_headers, event["id"], bala["id"], slot_number=1)
    rows = _update(client, admin_headers, event["id"], asha["id"], slot_number=2).json()
    assert [(row["name"], row["slot_number"]) for row in rows] == [("Bala", 1), ("Asha", 2), ("Chitra", None)]

    res = _update(client, admin_headers, event["id"], chitra["id"], slot_number=1)
    assert res.status_code == 409

    rows = _update(client, admin_headers, event["id"], bala["id"], status="performing").json()
    assert rows[0]["status"] == "performing"
    res = _update(client, admin_headers, event["id"], asha["id"], status="performing")
    assert res.status_code == 409

    _update(client, admin_headers, event["id"], bala["id"], status="completed")
    rows = _update(client, admin_headers, event["id"], asha["id"], status="performing").json()
    assert {row["name"]: row["status"] for row in rows} == {"Bala": "completed", "Asha": "performing", "Chitra": "pending"}

    public = client.get(f"/api/performances/events/{event['id']}").json()
    assert [row["name"] for row in public] == ["Bala", "Asha", "Chitra"]


def test_performance_entry_must_belong_to_event(client, admin_headers, create_event, add_entry):
    event = create_event("Veena Solo")
    other = create_event("Flute")
    stranger = add_entry(other["id"], "Salem", "Asha")
    assert _update(client, admin_headers, event["id"], stranger["id"], slot_number=1).status_code == 404
    assert client.get("/api/performances/events/999").status_code == 404
