"""Tests for the HTTP and WebSocket API."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from medicare.services.notifier import ConnectionManager

from conftest import NEXT_MONDAY, seed_user


def booking(**overrides):
    data = {
        "doctor_id": "doctor-1",
        "date": NEXT_MONDAY,
        "time": "10:00",
        "reason": "Persistent headaches for two weeks",
        "type": "online",
    }
    data.update(overrides)
    return data


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAuthRoutes:
    """Tests for /api/auth endpoints."""

    def test_register(self, client, auth_service):
        response = client.post(
            "/api/auth/register",
            json={"name": "Alex Kim", "email": "alex@example.com", "password": "secret123"},
        )
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["id"] == "uid-1"
        assert user["role"] == "patient"
        assert auth_service.created[0]["email"] == "alex@example.com"

    def test_register_validation_error(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Alex Kim", "email": "alex@example.com", "password": "123"},
        )
        assert response.status_code == 400
        assert "Password" in response.json()["detail"]

    def test_register_missing_field(self, client):
        response = client.post("/api/auth/register", json={"name": "Alex Kim"})
        assert response.status_code == 422

    def test_session_sets_cookie(self, client, auth_service, patient):
        auth_service.tokens["good"] = patient.id
        response = client.post("/api/auth/session", json={"id_token": "good"})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == patient.id
        assert "medicare_session" in response.cookies
        assert response.cookies["medicare_session"] != patient.id

        profile = client.get("/api/auth/profile")
        assert profile.status_code == 200
        assert profile.json()["email"] == "pat@example.com"

    def test_forged_session_cookie_rejected(self, client, doctor):
        client.cookies.set("medicare_session", doctor.id)
        assert client.get("/api/auth/profile").status_code == 401
        assert client.get("/api/auth/session").json() == {"authenticated": False}

    def test_session_bad_token(self, client):
        response = client.post("/api/auth/session", json={"id_token": "bad"})
        assert response.status_code == 401

    def test_session_suspended(self, client, store, auth_service):
        seed_user(store, "banned", "patient", status="suspended")
        auth_service.tokens["tok"] = "banned"
        response = client.post("/api/auth/session", json={"id_token": "tok"})
        assert response.status_code == 403

    def test_get_session(self, client, login, patient):
        assert client.get("/api/auth/session").json() == {"authenticated": False}
        response = client.get("/api/auth/session", headers=login(patient))
        assert response.json()["authenticated"] is True

    def test_logout(self, client):
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_profile_requires_auth(self, client):
        assert client.get("/api/auth/profile").status_code == 401

    def test_update_profile(self, client, login, doctor):
        response = client.put(
            "/api/auth/profile",
            json={"bio": "Cardiologist with a focus on prevention", "experience": 8},
            headers=login(doctor),
        )
        assert response.status_code == 200
        assert response.json()["experience"] == 8
        assert response.json()["name"] == "Dana Smith"

    def test_doctor_directory(self, client, monday_doctor, patient):
        response = client.get("/api/auth/doctors")
        assert response.status_code == 200
        doctors = response.json()
        assert [d["id"] for d in doctors] == [monday_doctor.id]
        assert doctors[0]["availabilities"][0]["day"] == "Monday"


class TestDoctorRoutes:
    """Tests for /api/doctor endpoints."""

    def test_availability_crud(self, client, login, doctor):
        headers = login(doctor)
        created = client.post(
            "/api/doctor/availability",
            json={"day": "Monday", "start_time": "09:00", "end_time": "12:00"},
            headers=headers,
        )
        assert created.status_code == 201
        window_id = created.json()["id"]

        updated = client.put(
            f"/api/doctor/availability/{window_id}", json={"end_time": "13:00"}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["end_time"] == "13:00"

        listed = client.get("/api/doctor/availability", headers=headers)
        assert [w["id"] for w in listed.json()] == [window_id]

        deleted = client.delete(f"/api/doctor/availability/{window_id}", headers=headers)
        assert deleted.status_code == 200
        assert client.get("/api/doctor/availability", headers=headers).json() == []

    def test_overlap_is_conflict(self, client, login, monday_doctor):
        response = client.post(
            "/api/doctor/availability",
            json={"day": "Monday", "start_time": "11:00", "end_time": "13:00"},
            headers=login(monday_doctor),
        )
        assert response.status_code == 409

    def test_bad_day_is_validation_error(self, client, login, doctor):
        response = client.post(
            "/api/doctor/availability",
            json={"day": "Caturday", "start_time": "11:00", "end_time": "13:00"},
            headers=login(doctor),
        )
        assert response.status_code == 400

    def test_patient_forbidden(self, client, login, patient):
        response = client.post(
            "/api/doctor/availability",
            json={"day": "Monday", "start_time": "09:00", "end_time": "12:00"},
            headers=login(patient),
        )
        assert response.status_code == 403

    def test_consultation_fee(self, client, login, doctor):
        response = client.put(
            "/api/doctor/consultation-fee", json={"consultation_fee": 65}, headers=login(doctor)
        )
        assert response.status_code == 200
        assert response.json()["consultation_fee"] == 65.0

    def test_consultation_fee_required(self, client, login, doctor):
        response = client.put("/api/doctor/consultation-fee", json={}, headers=login(doctor))
        assert response.status_code == 400


class TestAppointmentRoutes:
    """Tests for /api/appointments endpoints."""

    def test_available_slots(self, client, monday_doctor):
        response = client.get(f"/api/appointments/available/{monday_doctor.id}/{NEXT_MONDAY}")
        assert response.status_code == 200
        assert response.json() == {
            "doctor_id": monday_doctor.id,
            "date": NEXT_MONDAY,
            "available_slots": ["09:00", "10:00", "11:00"],
        }

    def test_available_slots_unknown_doctor(self, client):
        response = client.get(f"/api/appointments/available/nobody/{NEXT_MONDAY}")
        assert response.status_code == 404

    def test_requires_auth(self, client):
        assert client.get("/api/appointments").status_code == 401
        assert client.post("/api/appointments", json=booking()).status_code == 401

    def test_booking_flow(self, client, login, monday_doctor, patient, other_patient):
        patient_headers = login(patient)
        doctor_headers = login(monday_doctor)

        created = client.post("/api/appointments", json=booking(), headers=patient_headers)
        assert created.status_code == 201
        appointment = created.json()
        assert appointment["status"] == "pending"
        assert appointment["fee"] == 50.0
        assert appointment["doctor"] == {"name": "Dana Smith", "email": "dana@example.com"}
        assert appointment["patient"]["name"] == "Pat Lee"

        confirmed = client.put(
            f"/api/appointments/{appointment['id']}", json={"status": "confirmed"}, headers=doctor_headers
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"

        rival = client.post("/api/appointments", json=booking(), headers=login(other_patient))
        assert rival.status_code == 409

        slots = client.get(f"/api/appointments/available/{monday_doctor.id}/{NEXT_MONDAY}")
        assert slots.json()["available_slots"] == ["09:00", "11:00"]

        assert client.delete(f"/api/appointments/{appointment['id']}", headers=patient_headers).status_code == 409

        listed = client.get("/api/appointments", headers=doctor_headers)
        assert [a["id"] for a in listed.json()] == [appointment["id"]]

    def test_reschedule_confirmed(self, client, login, monday_doctor, patient):
        created = client.post("/api/appointments", json=booking(), headers=login(patient)).json()
        client.put(f"/api/appointments/{created['id']}", json={"status": "confirmed"}, headers=login(monday_doctor))

        moved = client.put(f"/api/appointments/{created['id']}", json={"time": "11:00"}, headers=login(patient))
        assert moved.status_code == 200
        assert moved.json()["status"] == "pending"
        assert moved.json()["time"] == "11:00"

    def test_past_booking_is_validation_error(self, client, login, monday_doctor, patient):
        response = client.post("/api/appointments", json=booking(date="2024-12-30"), headers=login(patient))
        assert response.status_code == 400

    def test_get_and_delete(self, client, login, monday_doctor, patient, other_patient):
        created = client.post("/api/appointments", json=booking(), headers=login(patient)).json()
        url = f"/api/appointments/{created['id']}"

        assert client.get(url, headers=login(monday_doctor)).status_code == 200
        assert client.get(url, headers=login(other_patient)).status_code == 403
        assert client.delete(url, headers=login(patient)).status_code == 200
        assert client.get(url, headers=login(patient)).status_code == 404


class TestRatingRoutes:
    """Tests for /api/ratings endpoints."""

    def test_rating_flow(self, client, login, monday_doctor, patient):
        created = client.post("/api/appointments", json=booking(), headers=login(patient)).json()
        url = f"/api/appointments/{created['id']}"

        early = client.post("/api/ratings", json={"doctor_id": monday_doctor.id, "value": 5}, headers=login(patient))
        assert early.status_code == 409

        client.put(url, json={"status": "confirmed"}, headers=login(monday_doctor))
        client.put(url, json={"status": "completed"}, headers=login(monday_doctor))

        rated = client.post(
            "/api/ratings",
            json={"doctor_id": monday_doctor.id, "value": 5, "review": "Great"},
            headers=login(patient),
        )
        assert rated.status_code == 201

        again = client.post("/api/ratings", json={"doctor_id": monday_doctor.id, "value": 1}, headers=login(patient))
        assert again.status_code == 409

        listed = client.get(f"/api/ratings/{monday_doctor.id}", headers=login(monday_doctor))
        assert [(r["value"], r["patient_name"]) for r in listed.json()] == [(5, "Pat Lee")]
        profile = client.get("/api/auth/profile", headers=login(monday_doctor))
        assert profile.json()["average_rating"] == 5.0

    def test_listing_requires_login(self, client, doctor):
        assert client.get(f"/api/ratings/{doctor.id}").status_code == 401

    def test_out_of_range(self, client, login, doctor, patient):
        response = client.post("/api/ratings", json={"doctor_id": doctor.id, "value": 9}, headers=login(patient))
        assert response.status_code == 400


class TestChatRoutes:
    """Tests for /api/chats endpoints."""

    def test_chat_flow(self, client, login, doctor, patient):
        chat = client.post("/api/chats", json={"participant_id": doctor.id}, headers=login(patient))
        assert chat.status_code == 200
        chat_id = chat.json()["id"]

        sent = client.post(f"/api/chats/{chat_id}/messages", json={"text": "Hello"}, headers=login(patient))
        assert sent.status_code == 201

        messages = client.get(f"/api/chats/{chat_id}/messages", headers=login(doctor))
        assert [m["text"] for m in messages.json()] == ["Hello"]

        chats = client.get("/api/chats", headers=login(doctor))
        assert chats.json()[0]["last_message"] == "Hello"


class TestWebSocket:
    """Tests for the /api/ws real-time channel."""

    @pytest.fixture
    def live_app(self, store, clock, auth_service):
        from medicare.app import create_app

        return create_app(
            store=store,
            notifier=ConnectionManager(),
            clock=clock,
            auth_service=auth_service,
            start_reminders=False,
        )

    def test_rejects_unknown_token(self, live_app):
        with TestClient(live_app) as client:
            with pytest.raises(WebSocketDisconnect):
                with client.websocket_connect("/api/ws?token=nope"):
                    pass

    def test_doctor_receives_new_booking(self, live_app, login, monday_doctor, patient):
        patient_headers = login(patient)
        login(monday_doctor)
        with TestClient(live_app) as client:
            with client.websocket_connect(f"/api/ws?token=token-{monday_doctor.id}") as websocket:
                response = client.post("/api/appointments", json=booking(), headers=patient_headers)
                assert response.status_code == 201
                message = websocket.receive_json()
                assert message["event"] == "appointment_created"
                assert message["data"]["id"] == response.json()["id"]
