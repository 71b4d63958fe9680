"""
HTTP surface: routes, error envelope, post-commit notifications.
"""
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from intake_engine.api.v1.endpoints import patients as patients_endpoint
from intake_engine.dependencies.providers import get_notification_sink
from intake_engine.models import Admission, UserRole

from conftest import RecordingSink, beds_of

API = "/api/v1"


def _registration(department_id, **overrides) -> dict:
    body = {
        "first_name": "Ali",
        "last_name": "Hassan",
        "date_of_birth": "1990-03-02",
        "gender": "male",
        "phone": "0300-1234567",
        "cnic": "35202-1234567-1",
        "department_id": str(department_id),
        "chief_complaint": "Fever for three days",
    }
    body.update(overrides)
    return body


@pytest.fixture
def world(db, make_department, make_user, make_ward):
    dept = make_department()
    doctor = make_user(UserRole.DOCTOR, dept)
    ward_doctor = make_user(UserRole.DOCTOR, dept)
    ward = make_ward(beds=2)
    return {
        "dept": dept,
        "doctor": doctor,
        "ward_doctor": ward_doctor,
        "ward": ward,
        "admin_id": ward.admin_user_id,
        "beds": beds_of(db, ward.id),
    }


def _request_admission(client, world, visit_id, **extra) -> dict:
    body = {
        "visit_id": visit_id,
        "requested_by": str(world["doctor"].id),
        "admission_reason": "Severe dehydration",
        "ward_id": str(world["ward"].id),
        "urgency": "urgent",
    }
    body.update(extra)
    response = client.post(f"{API}/admissions/request", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestPatients:
    def test_register(self, client, world):
        response = client.post(f"{API}/patients/register", json=_registration(world["dept"].id))

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["patient"]["patient_number"] == "P2505001"
        assert body["patient"]["national_id"] == "35202-1234567-1"
        assert body["visit"]["visit_number"] == "V250513001"
        assert body["visit"]["status"] == "waiting"
        assert body["token_number"] == 1
        assert body["assigned_doctor_id"] == str(world["doctor"].id)
        assert body["estimated_wait_minutes"] == 15
        assert body["is_new_patient"] is True

    def test_repeat_registration(self, client, world):
        first = client.post(f"{API}/patients/register", json=_registration(world["dept"].id)).json()
        second = client.post(
            f"{API}/patients/register",
            json=_registration(world["dept"].id, phone="923001234567", cnic=None),
        ).json()
        assert second["patient"]["id"] == first["patient"]["id"]
        assert second["token_number"] == 2
        assert second["is_new_patient"] is False

    def test_missing_fields_is_a_validation_error(self, client, world):
        response = client.post(
            f"{API}/patients/register",
            json=_registration(world["dept"].id, first_name=None, chief_complaint=""),
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "ValidationError"
        assert "first_name" in body["error"]["message"]
        assert "chief_complaint" in body["error"]["message"]

    def test_malformed_body(self, client, world):
        response = client.post(
            f"{API}/patients/register",
            json=_registration(world["dept"].id, date_of_birth="second of march"),
        )
        assert response.status_code == 422
        assert response.json()["error"]["kind"] == "ValidationError"
        assert "date_of_birth" in response.json()["error"]["fields"]

    def test_unknown_department(self, client, world):
        response = client.post(f"{API}/patients/register", json=_registration(uuid.uuid4()))
        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "NotFound"

    def test_search(self, client, world):
        client.post(f"{API}/patients/register", json=_registration(world["dept"].id))
        response = client.get(f"{API}/patients/search", params={"phone": "+92 300 1234567"})
        assert response.status_code == 200
        assert [p["patient_number"] for p in response.json()] == ["P2505001"]

    def test_storage_errors_are_opaque(self, client, world, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT secret_table", {}, Exception("password=hunter2"))

        monkeypatch.setattr(patients_endpoint, "search_patients", broken)
        response = client.get(f"{API}/patients/search", params={"phone": "0300"})
        assert response.status_code == 500
        assert response.json()["error"]["kind"] == "StorageError"
        assert "hunter2" not in response.text


class TestVisits:
    def test_status_progression(self, client, world):
        visit_id = client.post(f"{API}/patients/register", json=_registration(world["dept"].id)).json()["visit"]["id"]

        response = client.put(f"{API}/visits/{visit_id}/status", json={"status": "in_consultation"})
        assert response.status_code == 200
        assert response.json()["status"] == "in_consultation"

        response = client.put(f"{API}/visits/{visit_id}/status", json={"status": "waiting"})
        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "StateConflict"


class TestAdmissions:
    @pytest.fixture
    def visit_id(self, client, world):
        response = client.post(f"{API}/patients/register", json=_registration(world["dept"].id))
        return response.json()["visit"]["id"]

    def test_request_notifies_ward_admin(self, client, world, visit_id, sink):
        body = _request_admission(client, world, visit_id)
        assert body["status"] == "pending"
        assert body["admission_number"] == "ADM-2025-000001"
        assert body["patient_number"] == "P2505001"
        assert [n["recipient_id"] for n in sink.sent] == [world["admin_id"]]
        assert sink.sent[0]["priority"] == "high"

    def test_pending_listing_with_ward_overview(self, client, world, visit_id):
        admission = _request_admission(client, world, visit_id)
        response = client.get(f"{API}/admissions/requests", params={"ward_admin_id": str(world["admin_id"])})

        assert response.status_code == 200
        body = response.json()
        assert [a["id"] for a in body["pending_requests"]] == [admission["id"]]
        assert body["pending_requests"][0]["requesting_doctor_name"] == world["doctor"].full_name
        assert body["wards"][0]["available_beds"] == 2
        assert len(body["wards"][0]["beds"]) == 2

    def test_request_carries_consultation_findings(self, client, world, visit_id):
        body = _request_admission(
            client, world, visit_id, diagnosis="Acute gastroenteritis", treatment_plan="IV fluids"
        )
        assert body["diagnosis"] == "Acute gastroenteritis"
        assert body["treatment_plan"] == "IV fluids"
        assert _request_admission(client, world, visit_id)["diagnosis"] is None

    def test_admission_outlives_its_visit(self, db, client, world, visit_id):
        # visit_id is SET NULL when the visit row goes away.
        admission = _request_admission(client, world, visit_id)
        db.execute(Admission.__table__.update().where(Admission.id == uuid.UUID(admission["id"])).values(visit_id=None))
        db.commit()

        response = client.get(f"{API}/admissions/requests", params={"ward_admin_id": str(world["admin_id"])})
        assert response.status_code == 200, response.text
        assert response.json()["pending_requests"][0]["visit_id"] is None

    def test_approve_then_discharge(self, client, world, visit_id, sink):
        admission = _request_admission(client, world, visit_id)
        bed = world["beds"][0]
        sink.sent.clear()

        response = client.post(
            f"{API}/admissions/{admission['id']}/decision",
            json={
                "action": "approve",
                "ward_admin_id": str(world["admin_id"]),
                "bed_id": str(bed.id),
                "assigned_doctor_id": str(world["ward_doctor"].id),
            },
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "approved"
        assert response.json()["bed_id"] == str(bed.id)
        assert [n["recipient_id"] for n in sink.sent] == [world["doctor"].id, world["ward_doctor"].id]

        wards = client.get(f"{API}/wards").json()
        assert wards[0]["available_beds"] == 1
        assert wards[0]["occupied_beds"] == 1
        assert wards[0]["beds"][0]["patient_name"] == "Ali Hassan"

        assigned = client.get(f"{API}/admissions/assigned", params={"doctor_id": str(world["ward_doctor"].id)})
        assert [a["id"] for a in assigned.json()[0]["admissions"]] == [admission["id"]]

        again = client.post(
            f"{API}/admissions/{admission['id']}/decision",
            json={"action": "reject", "ward_admin_id": str(world["admin_id"])},
        )
        assert again.status_code == 409
        assert again.json()["error"]["kind"] == "StateConflict"

        response = client.post(
            f"{API}/admissions/{admission['id']}/discharge",
            json={"actor_id": str(world["ward_doctor"].id)},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "discharged"
        assert client.get(f"{API}/wards").json()[0]["available_beds"] == 2

    def test_unauthorized_decision(self, client, world, visit_id):
        admission = _request_admission(client, world, visit_id)
        response = client.post(
            f"{API}/admissions/{admission['id']}/decision",
            json={"action": "approve", "ward_admin_id": str(world["doctor"].id)},
        )
        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "Unauthorized"

    def test_bed_unavailable(self, client, world, visit_id):
        bed = world["beds"][0]
        first = _request_admission(client, world, visit_id)
        second = _request_admission(client, world, visit_id)
        for admission, expected in ((first, 200), (second, 409)):
            response = client.post(
                f"{API}/admissions/{admission['id']}/decision",
                json={"action": "approve", "ward_admin_id": str(world["admin_id"]), "bed_id": str(bed.id)},
            )
            assert response.status_code == expected
        assert response.json()["error"]["kind"] == "BedUnavailable"

    def test_notification_failure_does_not_undo_the_decision(self, client, world, visit_id):
        from intake_engine.main import app

        admission = _request_admission(client, world, visit_id)
        app.dependency_overrides[get_notification_sink] = lambda: RecordingSink(fail=True)

        response = client.post(
            f"{API}/admissions/{admission['id']}/decision",
            json={"action": "reject", "ward_admin_id": str(world["admin_id"]), "notes": "Full"},
        )
        assert response.status_code == 200
        listing = client.get(f"{API}/admissions/requests", params={"ward_admin_id": str(world["admin_id"])})
        assert listing.json()["pending_requests"] == []

    def test_unknown_action_rejected_by_schema(self, client, world, visit_id):
        admission = _request_admission(client, world, visit_id)
        response = client.post(
            f"{API}/admissions/{admission['id']}/decision",
            json={"action": "postpone", "ward_admin_id": str(world["admin_id"])},
        )
        assert response.status_code == 422


class TestWards:
    def test_bed_maintenance_and_reconcile(self, client, world):
        bed = world["beds"][1]
        response = client.put(f"{API}/wards/beds/{bed.id}/status", json={"status": "maintenance"})
        assert response.status_code == 200
        assert response.json()["status"] == "maintenance"
        assert client.get(f"{API}/wards").json()[0]["available_beds"] == 1

        response = client.put(f"{API}/wards/beds/{bed.id}/status", json={"status": "occupied"})
        assert response.status_code == 400

        response = client.post(f"{API}/wards/{world['ward'].id}/reconcile")
        assert response.status_code == 200
        assert response.json()["available_beds"] == 1
        assert response.json()["total_beds"] == 2
