from datetime import datetime, timedelta, timezone


def _travel_date(days_ahead=5):
    return (datetime.now(timezone.utc).date() + timedelta(days=days_ahead)).isoformat()


def _book(client, headers, bus_id, seats, **extra):
    payload = {
        "bus_id": bus_id,
        "seats": [{"seat_number": seat, "passenger_age": 30} for seat in seats],
        "passenger_details": {"name": "Asha Verma", "email": "asha@example.com"},
        "payment_method": "upi",
        "upi_id": "asha@upi",
    }
    payload.update(extra)
    return client.post("/bookings", json=payload, headers=headers)


def test_booking_flow(client, bus, auth_headers):
    travel_date = _travel_date()

    search = client.get(
        "/trips/search",
        params={"from": "bangalore", "to": "chennai", "date": travel_date},
    )
    assert search.status_code == 200
    trips = search.json()
    assert [trip["id"] for trip in trips] == [bus.id]
    assert trips[0]["available_seats"] == 40
    assert "seats" not in trips[0]

    detail = client.get(f"/trips/{bus.id}", params={"date": travel_date})
    assert detail.status_code == 200
    assert detail.json()["departure_date_iso"] == travel_date
    assert len(detail.json()["seats"]) == 40

    availability = client.get(f"/trips/{bus.id}/availability", params={"seats": "S01,S02"})
    assert availability.json()["available"] is True

    response = _book(client, auth_headers, bus.id, ["S01", "S02"], journey_date=travel_date)
    assert response.status_code == 201
    body = response.json()
    ticket_id = body["ticket_id"]
    assert body["message"] == "Booking successful"
    assert body["booking"]["total_amount"] == 500.0
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["payment_status"] == "completed"
    assert body["booking"]["journey_date"] == travel_date
    assert [seat["seat_number"] for seat in body["booking"]["seats"]] == ["S01", "S02"]

    availability = client.get(f"/trips/{bus.id}/availability", params={"seats": "S03,S02"})
    assert availability.json() == {
        "bus_id": bus.id,
        "available": False,
        "seat_number": "S02",
        "reason": "already booked",
    }

    mine = client.get("/bookings/me", headers=auth_headers)
    assert mine.status_code == 200
    assert [booking["ticket_id"] for booking in mine.json()] == [ticket_id]
    assert mine.json()[0]["bus"]["bus_name"] == "Deccan Express"

    pdf = client.get(f"/bookings/{ticket_id}/ticket", headers=auth_headers)
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.headers["content-disposition"].startswith("attachment")
    assert pdf.content.startswith(b"%PDF")

    cancel = client.post(f"/bookings/{ticket_id}/cancel", headers=auth_headers)
    assert cancel.status_code == 200
    assert cancel.json()["message"] == "Ticket cancelled successfully"
    assert cancel.json()["refund_amount"] == 400.0

    again = client.post(f"/bookings/{ticket_id}/cancel", headers=auth_headers)
    assert again.status_code == 409
    assert again.json()["detail"] == "Ticket already cancelled"

    trip = client.get(f"/trips/{bus.id}").json()
    assert trip["available_seats"] == 40
    assert not any(seat["is_booked"] for seat in trip["seats"])


def test_double_booking_is_a_conflict(client, bus, auth_headers, other_user, token_for):
    assert _book(client, auth_headers, bus.id, ["S07"]).status_code == 201

    rival_headers = {"Authorization": f"Bearer {token_for(other_user.id)}"}
    response = _book(client, rival_headers, bus.id, ["S08", "S07"])

    assert response.status_code == 409
    assert response.json()["detail"] == "Seat S07 is already booked"
    assert client.get(f"/trips/{bus.id}").json()["available_seats"] == 39


def test_booking_validation_errors(client, bus, auth_headers):
    missing_upi = _book(client, auth_headers, bus.id, ["S01"], upi_id=None)
    assert missing_upi.status_code == 400

    bad_date = _book(client, auth_headers, bus.id, ["S01"], journey_date="soon")
    assert bad_date.status_code == 400

    no_seats = _book(client, auth_headers, bus.id, [])
    assert no_seats.status_code == 422

    unknown_method = _book(client, auth_headers, bus.id, ["S01"], payment_method="cash")
    assert unknown_method.status_code == 422

    unknown_bus = _book(client, auth_headers, "missing", ["S01"])
    assert unknown_bus.status_code == 404


def test_bookings_require_a_valid_token(client, bus, user, token_for):
    assert client.get("/bookings/me").status_code == 401
    assert _book(client, {}, bus.id, ["S01"]).status_code == 401

    forged = {"Authorization": f"Bearer {token_for(user.id, secret='wrong-secret')}"}
    response = client.get("/bookings/me", headers=forged)
    assert response.status_code == 401
    assert response.json()["detail"] == "Session expired. Please login again."

    expired = token_for(user.id, exp=datetime.now(timezone.utc) - timedelta(minutes=5))
    response = client.get("/bookings/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_missing_jwt_secret_is_a_server_error(client, auth_headers, monkeypatch):
    monkeypatch.delenv("JWT_SECRET")
    assert client.get("/bookings/me", headers=auth_headers).status_code == 500


def test_ticket_download_accepts_query_token(client, bus, user, auth_headers, other_user, token_for):
    ticket_id = _book(client, auth_headers, bus.id, ["S09"]).json()["ticket_id"]

    html = client.get(
        f"/bookings/{ticket_id}/ticket",
        params={"format": "html", "token": token_for(user.id)},
    )
    assert html.status_code == 200
    assert html.headers["content-type"].startswith("text/html")
    assert html.headers["content-disposition"].startswith("inline")
    assert ticket_id in html.text

    assert client.get(f"/bookings/{ticket_id}/ticket").status_code == 401

    stranger = client.get(
        f"/bookings/{ticket_id}/ticket",
        params={"token": token_for(other_user.id)},
    )
    assert stranger.status_code == 404


def test_cancel_someone_elses_ticket_is_not_found(client, bus, auth_headers, other_user, token_for):
    ticket_id = _book(client, auth_headers, bus.id, ["S10"]).json()["ticket_id"]

    rival_headers = {"Authorization": f"Bearer {token_for(other_user.id)}"}
    response = client.post(f"/bookings/{ticket_id}/cancel", headers=rival_headers)

    assert response.status_code == 404


def test_search_rejects_out_of_window_dates(client, bus):
    today = datetime.now(timezone.utc).date().isoformat()

    response = client.get("/trips/search", params={"from": "a", "to": "b", "date": today})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please select a date from tomorrow onwards"

    response = client.get("/trips/search", params={"from": "a", "to": "b"})
    assert response.status_code == 400


def test_route_suggestions_and_seat_initialization(client, make_bus):
    bus = make_bus(from_location="Hyderabad", to_location="Vijayawada")

    assert client.get("/trips/route-suggestions", params={"q": "hyd"}).json() == ["Hyderabad"]
    assert client.get(
        "/trips/route-suggestions", params={"q": "hyd", "type": "to"}
    ).json() == []

    first = client.post(f"/trips/{bus.id}/initialize-seats")
    second = client.post(f"/trips/{bus.id}/initialize-seats")
    assert first.status_code == 200
    assert first.json()["created"] is True
    assert second.json() == {
        "message": "Bus seats initialized",
        "bus_id": bus.id,
        "created": False,
        "seat_count": 40,
    }
    assert client.post("/trips/missing/initialize-seats").status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"message": "Geobus booking engine is running"}
