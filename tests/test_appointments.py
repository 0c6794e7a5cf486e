import pytest

from mediconnect.core.security import UserRole, get_password_hash
from mediconnect.models.user import User

from .conftest import auth_headers, register

APPOINTMENT_DATE = "2030-05-17T10:30:00"

def book(client, patient, doctor_id, **extra):
    payload = {"doctor_id": doctor_id, "appointment_date": APPOINTMENT_DATE}
    payload.update(extra)
    return client.post("/api/v1/appointments", json=payload, headers=auth_headers(patient["token"]))

def update(client, actor, appointment_id, **payload):
    return client.put(
        f"/api/v1/appointments/{appointment_id}",
        json=payload,
        headers=auth_headers(actor["token"]),
    )

@pytest.fixture
def appointment(client, online_doctor, patient):
    response = book(client, patient, online_doctor["id"], notes="Recurring headaches")
    assert response.status_code == 200
    return response.json()

@pytest.fixture
def other_doctor(client):
    data = register(client, "other.doctor@example.com", "DOCTOR", name="Lisa Cuddy")
    return {"token": data["token"], "user": data["user"], "id": data["user"]["doctor"]["id"]}

class TestBooking:

    def test_patient_books_online_doctor(self, client, online_doctor, patient):
        response = book(client, patient, online_doctor["id"], notes="First visit")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "PENDING"
        assert data["doctor_id"] == online_doctor["id"]
        assert data["patient_id"] == patient["id"]
        assert data["appointment_date"].startswith(APPOINTMENT_DATE)
        assert data["notes"] == "First visit"
        assert data["doctor"]["name"] == "Gregory House"
        assert data["patient"]["phone"] == "555-0100"

    def test_booking_offline_doctor_is_refused(self, client, doctor, patient):
        response = book(client, patient, doctor["id"])

        assert response.status_code == 400
        assert response.json() == {"error": "Doctor is currently offline"}

    def test_booking_unknown_doctor(self, client, patient):
        response = book(client, patient, 9999)

        assert response.status_code == 404
        assert response.json() == {"error": "Doctor not found"}

    def test_doctor_cannot_book(self, client, online_doctor):
        response = book(client, online_doctor, online_doctor["id"])

        assert response.status_code == 403
        assert response.json() == {"error": "Only patients can book appointments"}

    def test_missing_date_is_rejected(self, client, online_doctor, patient):
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": online_doctor["id"]},
            headers=auth_headers(patient["token"]),
        )
        assert response.status_code == 400

    def test_going_offline_later_keeps_appointment(self, client, appointment, online_doctor):
        client.put("/api/v1/doctors/status", json={"is_online": False}, headers=auth_headers(online_doctor["token"]))

        response = update(client, online_doctor, appointment["id"], status="CONFIRMED")
        assert response.status_code == 200

class TestDoctorTransitions:

    def test_confirm_then_complete(self, client, appointment, online_doctor):
        confirmed = update(client, online_doctor, appointment["id"], status="CONFIRMED")
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "CONFIRMED"

        completed = update(client, online_doctor, appointment["id"], status="COMPLETED")
        assert completed.status_code == 200
        assert completed.json()["status"] == "COMPLETED"

    def test_pending_cannot_jump_to_completed(self, client, appointment, online_doctor):
        response = update(client, online_doctor, appointment["id"], status="COMPLETED")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid status transition from PENDING to COMPLETED"}

    @pytest.mark.parametrize("target", ["PENDING", "CONFIRMED", "CANCELLED", "COMPLETED"])
    def test_terminal_state_is_final(self, client, appointment, online_doctor, target):
        update(client, online_doctor, appointment["id"], status="CANCELLED")

        response = update(client, online_doctor, appointment["id"], status=target)
        assert response.status_code == 400
        assert "cannot be changed" in response.json()["error"]

        listing = client.get("/api/v1/appointments", headers=auth_headers(online_doctor["token"])).json()
        assert listing["appointments"][0]["status"] == "CANCELLED"

    def test_other_doctor_is_forbidden(self, client, appointment, other_doctor):
        response = update(client, other_doctor, appointment["id"], status="CONFIRMED")

        assert response.status_code == 403

    def test_unknown_status_is_rejected(self, client, appointment, online_doctor):
        response = update(client, online_doctor, appointment["id"], status="ARCHIVED")

        assert response.status_code == 400

    def test_unknown_appointment(self, client, online_doctor):
        response = update(client, online_doctor, 9999, status="CONFIRMED")

        assert response.status_code == 404
        assert response.json() == {"error": "Appointment not found"}

class TestPatientTransitions:

    def test_patient_cancels_confirmed_appointment(self, client, appointment, online_doctor, patient):
        update(client, online_doctor, appointment["id"], status="CONFIRMED")

        response = update(client, patient, appointment["id"], status="CANCELLED")
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

    def test_patient_cannot_confirm_own_appointment(self, client, appointment, patient):
        response = update(client, patient, appointment["id"], status="CONFIRMED")

        assert response.status_code == 403
        assert response.json() == {"error": "Patients can only cancel appointments"}

    def test_patient_cannot_cancel_someone_elses_appointment(self, client, appointment, other_patient):
        response = update(client, other_patient, appointment["id"], status="CANCELLED")

        assert response.status_code == 403

    def test_patient_cannot_cancel_twice(self, client, appointment, patient):
        update(client, patient, appointment["id"], status="CANCELLED")

        response = update(client, patient, appointment["id"], status="CANCELLED")
        assert response.status_code == 400

class TestNotes:

    def test_notes_update_without_status_change(self, client, appointment, patient):
        response = update(client, patient, appointment["id"], notes="Bring previous scans")

        assert response.status_code == 200
        assert response.json()["notes"] == "Bring previous scans"
        assert response.json()["status"] == "PENDING"

    def test_notes_can_be_cleared(self, client, appointment, online_doctor):
        response = update(client, online_doctor, appointment["id"], notes=None)

        assert response.status_code == 200
        assert response.json()["notes"] is None

    def test_status_change_keeps_notes(self, client, appointment, online_doctor):
        response = update(client, online_doctor, appointment["id"], status="CONFIRMED")

        assert response.json()["notes"] == "Recurring headaches"

    def test_notes_need_ownership(self, client, appointment, other_patient):
        response = update(client, other_patient, appointment["id"], notes="Hijacked")

        assert response.status_code == 403

class TestDeletion:

    @pytest.mark.parametrize("owner", ["online_doctor", "patient"])
    def test_owner_deletes(self, client, appointment, owner, request):
        actor = request.getfixturevalue(owner)

        response = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=auth_headers(actor["token"]))
        assert response.status_code == 200
        assert response.json() == {"message": "Appointment deleted successfully"}

        again = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=auth_headers(actor["token"]))
        assert again.status_code == 404

    def test_deleting_terminal_appointment(self, client, appointment, online_doctor, patient):
        update(client, patient, appointment["id"], status="CANCELLED")

        response = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=auth_headers(online_doctor["token"]))
        assert response.status_code == 200

    def test_non_owner_cannot_delete(self, client, appointment, other_patient, other_doctor):
        for actor in (other_patient, other_doctor):
            response = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=auth_headers(actor["token"]))
            assert response.status_code == 403

class TestListing:

    def test_each_party_sees_their_own(self, client, appointment, online_doctor, patient, other_patient, other_doctor):
        for actor, expected in [
            (online_doctor, 1), (patient, 1), (other_patient, 0), (other_doctor, 0)
        ]:
            data = client.get("/api/v1/appointments", headers=auth_headers(actor["token"])).json()
            assert data["pagination"]["total"] == expected
            assert len(data["appointments"]) == expected

    def test_status_filter(self, client, appointment, online_doctor, patient):
        book(client, patient, online_doctor["id"])
        update(client, online_doctor, appointment["id"], status="CONFIRMED")
        headers = auth_headers(patient["token"])

        confirmed = client.get("/api/v1/appointments?status=CONFIRMED", headers=headers).json()
        pending = client.get("/api/v1/appointments?status=PENDING", headers=headers).json()

        assert [a["id"] for a in confirmed["appointments"]] == [appointment["id"]]
        assert pending["pagination"]["total"] == 1

    def test_admin_sees_everything_but_cannot_modify(self, client, appointment, db_session):
        admin = User(
            email="admin@example.com",
            name="Site Admin",
            password_hash=get_password_hash("AdminPassword1"),
            role=UserRole.ADMIN,
        )
        db_session.add(admin)
        db_session.commit()
        token = client.post(
            "/api/v1/auth/login", json={"email": "admin@example.com", "password": "AdminPassword1"}
        ).json()["token"]

        listing = client.get("/api/v1/appointments", headers=auth_headers(token)).json()
        assert listing["pagination"]["total"] == 1

        response = client.put(
            f"/api/v1/appointments/{appointment['id']}",
            json={"status": "CONFIRMED"},
            headers=auth_headers(token),
        )
        assert response.status_code == 403
