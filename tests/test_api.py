from datetime import date, timedelta

from tourdesk.models import Driver


def future(days):
    return (date.today() + timedelta(days=days)).isoformat()


def booking_body(**overrides):
    body = {
        "customer_name": "Jordan Lee",
        "customer_email": "jordan@example.com",
        "tour_date": future(60),
        "start_time": "10:00",
        "end_time": "16:00",
        "party_size": 6,
        "base_price": "100",
    }
    body.update(overrides)
    return body


def test_login_me_logout(client, staff_user, login):
    login(staff_user)
    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.get_json()["role"] == "staff"

    assert client.post("/api/v1/auth/logout").status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 401


def test_bad_password_is_rejected(client, staff_user):
    response = client.post("/api/v1/auth/login", json={"email": staff_user.email, "password": "nope"})
    assert response.status_code == 401
    assert response.get_json()["error"] == "Invalid credentials."


def test_admin_only_routes(client, staff_user, admin_user, login):
    login(staff_user)
    assert client.post("/api/v1/fleet/drivers", json={"full_name": "Pat"}).status_code == 403
    assert client.post("/api/v1/auth/users", json={}).status_code == 403

    client.post("/api/v1/auth/logout")
    login(admin_user)
    created = client.post(
        "/api/v1/auth/users",
        json={"full_name": "New Hire", "email": "new@example.com", "password": "long-enough-1", "role": "staff"},
    )
    assert created.status_code == 201


def test_anonymous_requests_get_json_401(client):
    response = client.post("/api/v1/bookings", json=booking_body())
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_validation_errors_name_the_field(client, staff_user, login):
    login(staff_user)
    response = client.post("/api/v1/bookings", json=booking_body(party_size=0))
    assert response.status_code == 400
    assert response.get_json() == {
        "error": "Party size must be at least 1.",
        "kind": "ValidationError",
        "field": "party_size",
    }


def test_booking_assignment_and_cancellation_flow(client, staff_user, admin_user, login):
    login(admin_user)
    driver = client.post("/api/v1/fleet/drivers", json={"full_name": "Alex Driver"}).get_json()
    small = client.post(
        "/api/v1/fleet/vehicles",
        json={"make": "Cadillac", "model": "Escalade", "vehicle_number": "wt-1", "capacity": 4},
    ).get_json()
    van = client.post(
        "/api/v1/fleet/vehicles",
        json={"make": "Mercedes", "model": "Sprinter", "vehicle_number": "wt-2", "capacity": 14},
    ).get_json()
    assert small["vehicle_number"] == "WT-1"
    client.post("/api/v1/auth/logout")

    login(staff_user)
    booking = client.post("/api/v1/bookings", json=booking_body()).get_json()
    assert booking["status"] == "pending"
    assert booking["total_price"] == "108.90"

    early = client.put(
        f"/api/v1/bookings/{booking['id']}/assignment", json={"driver_id": driver["id"], "vehicle_id": van["id"]}
    )
    assert early.status_code == 409
    assert early.get_json()["kind"] == "InvalidStateError"

    confirmed = client.post(f"/api/v1/bookings/{booking['id']}/confirm", json={"override": True}).get_json()
    assert confirmed == {"id": booking["id"], "status": "confirmed", "confirmed_by_override": True}

    availability = client.post(
        "/api/v1/availability",
        json={"date": booking["tour_date"], "start_time": "10:00", "duration_hours": 6, "party_size": 6},
    ).get_json()
    vehicles = {v["id"]: v for v in availability["vehicles"]}
    assert vehicles[small["id"]]["reasons"] == ["capacity"]
    assert vehicles[small["id"]]["capacity_deficit"] == 2
    assert vehicles[van["id"]]["is_available"] is True

    too_small = client.put(
        f"/api/v1/bookings/{booking['id']}/assignment", json={"driver_id": driver["id"], "vehicle_id": small["id"]}
    )
    assert too_small.status_code == 409
    assert too_small.get_json()["deficit"] == 2

    assigned = client.put(
        f"/api/v1/bookings/{booking['id']}/assignment", json={"driver_id": driver["id"], "vehicle_id": van["id"]}
    )
    assert assigned.status_code == 200
    assert assigned.get_json()["status"] == "assigned"

    other = client.post("/api/v1/bookings", json=booking_body(start_time="15:00", end_time="18:00")).get_json()
    client.post(f"/api/v1/bookings/{other['id']}/confirm", json={"override": True})
    clash = client.put(
        f"/api/v1/bookings/{other['id']}/assignment", json={"driver_id": driver["id"], "vehicle_id": van["id"]}
    )
    assert clash.status_code == 409
    assert clash.get_json()["resource"] == f"driver:{driver['id']}"
    assert clash.get_json()["reason"] == "schedule_conflict"

    notifications = client.get(f"/api/v1/bookings/{booking['id']}/notifications").get_json()
    assert ("driver", "assignment_created") in {(n["recipient_role"], n["event_type"]) for n in notifications}

    quote = client.get(f"/api/v1/bookings/{booking['id']}/refund-quote").get_json()
    assert quote["refund_amount"] == "0.00"

    cancelled = client.post(f"/api/v1/bookings/{booking['id']}/cancel", json={"reason": "Weather"})
    assert cancelled.get_json()["status"] == "cancelled"
    detail = client.get(f"/api/v1/bookings/{booking['id']}").get_json()
    assert detail["assignment"] is None

    again = client.put(
        f"/api/v1/bookings/{other['id']}/assignment", json={"driver_id": driver["id"], "vehicle_id": van["id"]}
    )
    assert again.status_code == 200


def test_booking_deposit_payment_confirms_booking(client, staff_user, login):
    login(staff_user)
    booking = client.post("/api/v1/bookings", json=booking_body()).get_json()

    intent = client.post("/api/v1/payments/intents", json={"booking_id": booking["id"], "payment_type": "deposit"})
    assert intent.status_code == 201
    ref = intent.get_json()["payment_intent_ref"]
    assert intent.get_json()["amount"] == "54.45"

    event = {"type": "payment_intent.succeeded", "data": {"object": {"id": ref}}}
    handled = client.post("/api/v1/payments/events", json=event).get_json()
    assert handled["payment"]["status"] == "succeeded"

    detail = client.get(f"/api/v1/bookings/{booking['id']}").get_json()
    assert detail["status"] == "confirmed"
    assert detail["deposit_paid"] is True
    assert detail["confirmed_by_override"] is False

    window = client.get(f"/api/v1/bookings/{booking['id']}/final-payment").get_json()
    assert window["amount_due"] == "54.45"
    assert window["is_open"] is False

    final = client.post("/api/v1/payments/intents", json={"booking_id": booking["id"], "payment_type": "final_payment"})
    confirmed = client.post("/api/v1/payments/confirm", json={"payment_intent_ref": final.get_json()["payment_intent_ref"]})
    assert confirmed.get_json()["status"] == "succeeded"
    assert client.get(f"/api/v1/bookings/{booking['id']}").get_json()["final_payment_paid"] is True


def test_pricing_preview(client, staff_user, login, make_venue):
    venue_id = make_venue().id
    login(staff_user)
    response = client.post(
        "/api/v1/pricing/preview",
        json={
            "start_date": future(30),
            "party_size": 6,
            "days": [{"stops": [{"stop_type": "winery", "venue_id": venue_id, "flat_cost": 200, "per_person_cost": 10}]}],
        },
    )
    totals = response.get_json()["totals"]
    assert totals["total"] == "283.14"
    assert totals["deposit"] == "141.57"
    assert totals["balance"] == "141.57"


def test_rate_settings_override_defaults(client, admin_user, login):
    login(admin_user)
    assert client.get("/api/v1/pricing/settings").get_json()["tax_rate"] == "8.9"
    updated = client.put("/api/v1/pricing/settings", json={"tax_rate": "10"}).get_json()
    assert updated["tax_rate"] == "10"
    assert client.put("/api/v1/pricing/settings", json={"deposit_percentage": "150"}).status_code == 400


def test_venue_directory(client, staff_user, login):
    login(staff_user)
    client.post("/api/v1/venues", json={"kind": "winery", "name": "Leonetti Cellar", "city": "Walla Walla"})
    client.post("/api/v1/venues", json={"kind": "restaurant", "name": "Saffron"})

    wineries = client.get("/api/v1/venues?kind=winery").get_json()["items"]
    assert [v["name"] for v in wineries] == ["Leonetti Cellar"]
    assert client.get("/api/v1/venues?kind=spa").status_code == 400


def test_public_proposal_view_and_accept(client, staff_user, login, make_venue):
    venue_id = make_venue().id
    login(staff_user)
    created = client.post(
        "/api/v1/proposals",
        json={
            "customer_name": "Morgan Avery",
            "start_date": future(30),
            "end_date": future(31),
            "party_size": 6,
            "internal_notes": "VIP",
            "days": [{"stops": [{"stop_type": "winery", "venue_id": venue_id, "flat_cost": 200, "per_person_cost": 10}]}],
        },
    )
    assert created.status_code == 201
    proposal = created.get_json()
    assert proposal["totals"]["total"] == "283.14"
    assert len(proposal["days"]) == 2

    sent = client.post(f"/api/v1/proposals/{proposal['id']}/send")
    assert sent.get_json()["status"] == "sent"
    client.post("/api/v1/auth/logout")

    token = proposal["access_token"]
    assert len(token) >= 32
    public = client.get(f"/api/v1/proposals/public/{token}").get_json()
    assert public["status"] == "viewed"
    assert "internal_notes" not in public
    assert "access_token" not in public

    accepted = client.post(f"/api/v1/proposals/public/{token}/accept", json={"accepted_by_name": "Morgan"})
    assert accepted.get_json()["status"] == "accepted"

    deposit = client.post(f"/api/v1/proposals/public/{token}/deposit")
    assert deposit.status_code == 201
    assert deposit.get_json()["amount"] == "141.57"

    assert client.get("/api/v1/proposals/public/" + "x" * 64).status_code == 404


def test_public_proposal_routes_ignore_proposal_numbers(client, staff_user, login, make_venue):
    venue_id = make_venue().id
    login(staff_user)
    proposal = client.post(
        "/api/v1/proposals",
        json={
            "customer_name": "Morgan Avery",
            "start_date": future(30),
            "party_size": 2,
            "days": [{"stops": [{"stop_type": "winery", "venue_id": venue_id}]}],
        },
    ).get_json()
    client.post(f"/api/v1/proposals/{proposal['id']}/send")
    client.post("/api/v1/auth/logout")

    number = proposal["proposal_number"]
    assert client.get(f"/api/v1/proposals/public/{number}").status_code == 404
    assert client.post(f"/api/v1/proposals/public/{number}/accept", json={}).status_code == 404
    assert client.post(f"/api/v1/proposals/public/{number}/deposit").status_code == 404
    assert client.get(f"/api/v1/proposals/public/{proposal['access_token'][:-1]}").status_code == 404


def test_failed_request_discards_pending_changes(client, db):
    db.session.add(Driver(full_name="Unsaved Driver"))

    response = client.get("/api/v1/proposals/public/" + "y" * 64)

    assert response.status_code == 404
    assert Driver.query.count() == 0


def test_payment_event_without_object_is_rejected(client, staff_user, login):
    login(staff_user)

    for event in ({"type": "payment_intent.succeeded", "data": {"object": None}}, {"type": "charge.refunded"}):
        response = client.post("/api/v1/payments/events", json=event)
        assert response.status_code == 400
        assert response.get_json()["kind"] == "ValidationError"
