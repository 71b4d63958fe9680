"""
Number formats, retry helper, date helpers.
"""
from datetime import date, datetime, timezone

import pytest

from intake_engine.core.exceptions import NotFound, SequenceExhausted, TransientStorageError
from intake_engine.utils.datetime_utils import as_utc, calculate_age
from intake_engine.utils.id_generators import (
    admission_scope,
    format_admission_number,
    format_patient_number,
    format_visit_number,
    patient_scope,
    token_scope,
    visit_scope,
)
from intake_engine.utils.retry import retry_transient

DAY = date(2025, 5, 13)


class TestIdentifiers:
    def test_scopes(self):
        assert patient_scope(DAY) == "patient:2025-05"
        assert visit_scope(DAY) == "visit:2025-05-13"
        assert token_scope("d1", DAY) == "token:d1:2025-05-13"
        assert admission_scope(DAY) == "admission:2025"

    def test_formats(self):
        assert format_patient_number(DAY, 1) == "P2505001"
        assert format_visit_number(DAY, 42) == "V250513042"
        assert format_admission_number(DAY, 7) == "ADM-2025-000007"

    def test_overflow_does_not_wrap(self):
        assert format_visit_number(DAY, 999) == "V250513999"
        with pytest.raises(SequenceExhausted):
            format_visit_number(DAY, 1000)
        with pytest.raises(SequenceExhausted):
            format_patient_number(DAY, 0)


class TestRetryTransient:
    def test_returns_after_transient_failures(self, caplog):
        attempts = []

        def work():
            attempts.append(1)
            if len(attempts) < 3:
                raise TransientStorageError("busy")
            return "done"

        assert retry_transient(work, attempts=3, backoff_seconds=0, label="unit") == "done"
        assert len(attempts) == 3
        assert "unit hit transient storage error" in caplog.text

    def test_gives_up_after_bound(self):
        attempts = []

        def work():
            attempts.append(1)
            raise TransientStorageError("busy")

        with pytest.raises(TransientStorageError):
            retry_transient(work, attempts=2, backoff_seconds=0, label="unit")
        assert len(attempts) == 2

    def test_other_errors_are_not_retried(self):
        attempts = []

        def work():
            attempts.append(1)
            raise NotFound("gone")

        with pytest.raises(NotFound):
            retry_transient(work, attempts=5, backoff_seconds=0, label="unit")
        assert len(attempts) == 1


class TestDates:
    def test_calculate_age(self):
        assert calculate_age(date(1990, 5, 13), DAY) == 35
        assert calculate_age(date(1990, 5, 14), DAY) == 34
        assert calculate_age(None, DAY) is None

    def test_as_utc_treats_naive_as_utc(self):
        assert as_utc(datetime(2025, 5, 13, 9, 0)).tzinfo == timezone.utc
