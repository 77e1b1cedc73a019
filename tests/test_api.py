from datetime import timedelta

from sqlalchemy.exc import OperationalError

from tests.conftest import START


def _payload(**overrides) -> dict:
    body = {
        "title": "Vegetable soup",
        "description": "20 portions, chilled",
        "category": "prepared-food",
        "quantity": 20,
        "quantity_unit": "portions",
        "pickup_address": "5 Market Square",
        "image_urls": ["https://img.example.org/soup.jpg"],
        "expiry_date": (START + timedelta(days=1)).isoformat() + "Z",
    }
    body.update(overrides)
    return body


async def test_requests_without_token_are_rejected(client):
    resp = await client.get("/api/donations")
    assert resp.status == 401
    assert (await resp.json())["error"] == "authentication_error"

    resp = await client.get("/api/donations", headers={"Authorization": "Bearer nonsense"})
    assert resp.status == 401


async def test_register_profile_and_read_it_back(client, auth):
    headers = auth("new-user")
    resp = await client.post(
        "/api/users",
        json={"email": "Pantry@Example.org", "display_name": "Pantry", "role": "recipient"},
        headers=headers,
    )
    assert resp.status == 201
    body = await resp.json()
    assert body["role"] == "recipient"
    assert body["email"] == "pantry@example.org"

    resp = await client.get("/api/users/me", headers=headers)
    assert resp.status == 200
    assert (await resp.json())["last_login"] is not None

    resp = await client.get("/api/auth/verification-status", headers=headers)
    assert (await resp.json())["email_verified"] is False

    resp = await client.post(
        "/api/users",
        json={"email": "other@example.org", "display_name": "Again", "role": "donor"},
        headers=headers,
    )
    assert resp.status == 409


async def test_role_cannot_change(client, auth, donor):
    resp = await client.patch("/api/users/me", json={"role": "admin"}, headers=auth(donor.id))
    assert resp.status == 400

    resp = await client.patch("/api/users/me", json={"phone_number": "+44 20 0000"}, headers=auth(donor.id))
    assert resp.status == 200
    assert (await resp.json())["phone_number"] == "+44 20 0000"


async def test_invalid_profile_payload(client, auth):
    resp = await client.post("/api/users", json={"email": "x@y.z", "display_name": "X", "role": "chef"}, headers=auth("u"))
    assert resp.status == 400
    body = await resp.json()
    assert body["error"] == "validation_error"
    assert any(d["field"] == "role" for d in body["details"])


async def test_admin_role_cannot_be_self_assigned(client, auth):
    headers = auth("self-promoted")
    resp = await client.post(
        "/api/users",
        json={"email": "boss@example.org", "display_name": "Boss", "role": "admin"},
        headers=headers,
    )
    assert resp.status == 400
    assert any(d["field"] == "role" for d in (await resp.json())["details"])

    resp = await client.get("/api/users/me", headers=headers)
    assert resp.status == 404
    resp = await client.get("/api/admin/users", headers=headers)
    assert resp.status != 200


async def test_full_donation_flow(client, auth, donor, recipient):
    resp = await client.post("/api/donations", json=_payload(), headers=auth(donor.id))
    assert resp.status == 201
    created = await resp.json()
    assert created["status"] == "active"
    assert created["expiry_date"] == (START + timedelta(days=1)).isoformat()
    donation_id = created["id"]

    resp = await client.get("/api/donations", headers=auth(recipient.id))
    assert [d["id"] for d in (await resp.json())["donations"]] == [donation_id]

    resp = await client.post(f"/api/donations/{donation_id}/reserve", headers=auth(recipient.id))
    assert resp.status == 200
    assert (await resp.json())["reserved_by"] == recipient.id

    resp = await client.get("/api/donations", headers=auth(recipient.id))
    assert (await resp.json())["donations"] == []

    resp = await client.get("/api/donations/reserved", headers=auth(recipient.id))
    assert [d["id"] for d in (await resp.json())["donations"]] == [donation_id]

    resp = await client.get(f"/api/donations/{donation_id}", headers=auth(donor.id))
    detail = await resp.json()
    assert [r["status"] for r in detail["reservations"]] == ["reserved"]

    resp = await client.post(f"/api/donations/{donation_id}/complete", headers=auth(donor.id))
    assert resp.status == 200
    assert (await resp.json())["status"] == "completed"

    resp = await client.get("/api/donations/mine?status=completed", headers=auth(donor.id))
    assert [d["id"] for d in (await resp.json())["donations"]] == [donation_id]


async def test_reserve_twice_reports_conflict(client, auth, donation, recipient, make_user):
    latecomer = await make_user("recipient")
    await client.post(f"/api/donations/{donation.id}/reserve", headers=auth(recipient.id))

    resp = await client.post(f"/api/donations/{donation.id}/reserve", headers=auth(latecomer.id))
    assert resp.status == 409
    body = await resp.json()
    assert body["error"] == "conflict"
    assert "already reserved" in body["message"]


async def test_illegal_transition_is_422(client, auth, donation, donor):
    resp = await client.post(f"/api/donations/{donation.id}/complete", headers=auth(donor.id))
    assert resp.status == 422
    assert (await resp.json())["error"] == "invalid_transition"


async def test_donor_cancel_of_reservation_reopens(client, auth, donation, donor, recipient):
    await client.post(f"/api/donations/{donation.id}/reserve", headers=auth(recipient.id))

    resp = await client.post(f"/api/donations/{donation.id}/cancel", headers=auth(donor.id))
    body = await resp.json()
    assert body["status"] == "active"
    assert body["reserved_by"] is None


async def test_unknown_donation_is_404(client, auth, recipient):
    resp = await client.post("/api/donations/missing/reserve", headers=auth(recipient.id))
    assert resp.status == 404


async def test_create_validation(client, auth, donor, recipient):
    resp = await client.post("/api/donations", json=_payload(image_urls=[]), headers=auth(donor.id))
    assert resp.status == 400

    resp = await client.post("/api/donations", json=_payload(quantity=0), headers=auth(donor.id))
    assert resp.status == 400

    past = (START - timedelta(hours=1)).isoformat()
    resp = await client.post("/api/donations", json=_payload(expiry_date=past), headers=auth(donor.id))
    assert resp.status == 400

    resp = await client.post("/api/donations", json=_payload(), headers=auth(recipient.id))
    assert resp.status == 422

    resp = await client.post("/api/donations", data="not json", headers=auth(donor.id))
    assert resp.status == 400


async def test_edit_donation(client, auth, donation, donor):
    resp = await client.patch(f"/api/donations/{donation.id}", json={"quantity": 5}, headers=auth(donor.id))
    assert resp.status == 200
    assert (await resp.json())["quantity"] == 5

    resp = await client.patch(f"/api/donations/{donation.id}", json={}, headers=auth(donor.id))
    assert resp.status == 400

    for field in ("description", "title", "image_urls"):
        resp = await client.patch(f"/api/donations/{donation.id}", json={field: None}, headers=auth(donor.id))
        assert resp.status == 400, field
        assert (await resp.json())["error"] == "validation_error"

    resp = await client.patch(f"/api/donations/{donation.id}", json={"image_urls": ["  "]}, headers=auth(donor.id))
    assert resp.status == 400

    resp = await client.get(f"/api/donations/{donation.id}", headers=auth(donor.id))
    assert (await resp.json())["description"] == donation.description


async def test_listing_query_validation(client, auth, recipient):
    resp = await client.get("/api/donations?category=caviar", headers=auth(recipient.id))
    assert resp.status == 400
    resp = await client.get("/api/donations?limit=1000", headers=auth(recipient.id))
    assert resp.status == 400
    resp = await client.get("/api/donations?limit=ten", headers=auth(recipient.id))
    assert resp.status == 400


async def test_role_restricted_listings(client, auth, donor, recipient):
    resp = await client.get("/api/donations/mine", headers=auth(recipient.id))
    assert resp.status == 422
    resp = await client.get("/api/donations/reserved", headers=auth(donor.id))
    assert resp.status == 422
    resp = await client.get("/api/donations/reserved?status=active", headers=auth(recipient.id))
    assert resp.status == 400


async def test_database_outage_is_retryable(client, auth, recipient, lifecycle, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    monkeypatch.setattr(lifecycle, "list_active", broken)
    resp = await client.get("/api/donations", headers=auth(recipient.id))
    assert resp.status == 503
    assert resp.headers["Retry-After"] == "5"
    assert (await resp.json())["retryable"] is True


async def test_unexpected_error_is_hidden(client, auth, recipient, lifecycle, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(lifecycle, "list_active", boom)
    resp = await client.get("/api/donations", headers=auth(recipient.id))
    assert resp.status == 500
    assert "secret" not in await resp.text()
