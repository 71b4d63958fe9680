"""
Doctor assignment: least-loaded, first-seen wins ties.
"""
import uuid
from datetime import datetime, timezone

from intake_engine.models import UserRole
from intake_engine.services.assignment_service import (
    assign_doctor,
    doctor_workloads,
    list_eligible_doctors,
    pick_least_loaded,
)

from conftest import TODAY


class TestPickLeastLoaded:
    def test_empty_pool(self):
        assert pick_least_loaded([], {}) is None

    def test_strict_minimum(self):
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        assert pick_least_loaded([a, b, c], {a: 3, b: 1, c: 2}) == b

    def test_tie_goes_to_first_seen(self):
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        assert pick_least_loaded([a, b, c], {a: 2, b: 1, c: 1}) == b

    def test_missing_load_counts_as_zero(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        assert pick_least_loaded([a, b], {a: 1}) == b

    def test_equal_loads_keep_picking_the_same_doctor(self):
        """Not round-robin: with equal loads the first doctor wins every time."""
        a, b = uuid.uuid4(), uuid.uuid4()
        assert pick_least_loaded([a, b], {a: 0, b: 0}) == a
        assert pick_least_loaded([a, b], {a: 0, b: 0}) == a


class TestAssignDoctor:
    def test_only_active_doctors_of_the_department(self, db, make_department, make_user):
        dept = make_department()
        other = make_department("Pediatrics")
        first = make_user(UserRole.DOCTOR, dept)
        make_user(UserRole.DOCTOR, dept, is_active=False)
        make_user(UserRole.NURSE, dept)
        make_user(UserRole.DOCTOR, other)
        second = make_user(UserRole.DOCTOR, dept)

        assert list_eligible_doctors(db, dept.id) == [first.id, second.id]

    def test_no_doctor_is_not_an_error(self, db, make_department, caplog):
        dept = make_department()
        with caplog.at_level("INFO"):
            assert assign_doctor(db, dept.id, TODAY) is None
        assert "No active doctor" in caplog.text

    def test_registrations_alternate_by_load(self, db, make_department, make_user, register):
        dept = make_department()
        first = make_user(UserRole.DOCTOR, dept)
        second = make_user(UserRole.DOCTOR, dept)

        assigned = [register(dept, phone=f"0300-00000{i:02d}").assigned_doctor_id for i in range(4)]

        assert assigned == [first.id, second.id, first.id, second.id]
        assert doctor_workloads(db, [first.id, second.id], TODAY) == {first.id: 2, second.id: 2}

    def test_workload_counts_only_today(self, db, make_department, make_user, register, clock):
        dept = make_department()
        first = make_user(UserRole.DOCTOR, dept)
        second = make_user(UserRole.DOCTOR, dept)

        clock.moment = datetime(2025, 5, 12, 10, 0, tzinfo=timezone.utc)
        register(dept, phone="0300-0000001")
        register(dept, phone="0300-0000002")

        clock.moment = datetime(2025, 5, 13, 10, 0, tzinfo=timezone.utc)
        assert doctor_workloads(db, [first.id, second.id], TODAY) == {}
        assert assign_doctor(db, dept.id, TODAY) == first.id
