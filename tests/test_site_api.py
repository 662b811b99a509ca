from models import ContactMessage, MembershipApplication


def test_contact_message_is_stored(client, admin_headers, db):
    res = client.post("/api/site/contact", json={
        "name": " Dr. Kumar ",
        "email": "kumar@example.com",
        "subject": "Venue",
        "message": "Where is hall 2?",
    })
    assert res.status_code == 200
    assert res.json()["name"] == "Dr. Kumar"
    assert db.query(ContactMessage).count() == 1

    assert client.post("/api/site/contact", json={"name": "X", "email": "not-an-email", "message": "hi"}).status_code == 422

    rows = client.get("/api/admin/site/contact-messages", headers=admin_headers).json()
    assert [row["subject"] for row in rows] == ["Venue"]


def test_membership_single(client, admin_headers, db):
    res = client.post("/api/site/membership", data={
        "membership_type": "Single",
        "declaration_accepted": "true",
        "address": "12 Temple Street, Salem",
        "doctor1_name": "Dr. Asha",
        "doctor1_email": "asha@example.com",
        "doctor1_registration_number": "TN-1234",
        "doctor2_name": "Dr. Ignored",
    })
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["doctor1"]["registration_number"] == "TN-1234"
    assert body["doctor2"] is None

    rows = client.get("/api/admin/site/membership-applications", headers=admin_headers).json()
    assert len(rows) == 1


def test_membership_validation(client, db):
    res = client.post("/api/site/membership", data={
        "membership_type": "Life Couple",
        "declaration_accepted": "true",
        "doctor1_name": "Dr. Asha",
    })
    assert res.status_code == 422

    res = client.post("/api/site/membership", data={
        "membership_type": "Life",
        "declaration_accepted": "false",
        "doctor1_name": "Dr. Asha",
    })
    assert res.status_code == 422

    res = client.post("/api/site/membership", data={
        "membership_type": "Life Couple",
        "declaration_accepted": "true",
        "doctor1_name": "Dr. Asha",
        "doctor2_name": "Dr. Bala",
    })
    assert res.status_code == 200
    assert res.json()["doctor2"]["name"] == "Dr. Bala"
    assert db.query(MembershipApplication).count() == 1


def test_membership_photo_needs_storage(client):
    res = client.post(
        "/api/site/membership",
        data={"membership_type": "Single", "declaration_accepted": "true", "doctor1_name": "Dr. Asha"},
        files={"doctor1_photo": ("asha.png", b"\x89PNG", "image/png")},
    )
    assert res.status_code == 503


def test_membership_photo_checks_type_and_size(client, monkeypatch):
    import utils

    form = {"membership_type": "Single", "declaration_accepted": "true", "doctor1_name": "Dr. Asha"}
    res = client.post("/api/site/membership", data=form, files={"doctor1_photo": ("asha.gif", b"GIF89a", "image/gif")})
    assert res.status_code == 400

    monkeypatch.setattr(utils, "MAX_UPLOAD_BYTES", 4)
    res = client.post("/api/site/membership", data=form, files={"doctor1_photo": ("asha.png", b"\x89PNG-too-big", "image/png")})
    assert res.status_code == 413
