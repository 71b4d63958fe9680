# intake_engine/utils/id_generators.py
"""
Scope keys and display formats for sequential identifiers.

The numbers themselves come from services.sequence_service; this module only
knows how a scope is named and how a reserved value is rendered.
"""
from datetime import date
from uuid import UUID

from intake_engine.core.exceptions import SequenceExhausted

DAILY_WIDTH = 3
ADMISSION_WIDTH = 6


def patient_scope(day: date) -> str:
    """Patient numbers are unique per calendar month (the number has no day part)."""
    return f"patient:{day:%Y-%m}"


def visit_scope(day: date) -> str:
    return f"visit:{day:%Y-%m-%d}"


def token_scope(department_id: UUID, day: date) -> str:
    return f"token:{department_id}:{day:%Y-%m-%d}"


def admission_scope(day: date) -> str:
    return f"admission:{day:%Y}"


def _pad(seq: int, width: int, scope_label: str) -> str:
    if seq < 1 or seq >= 10**width:
        raise SequenceExhausted(
            f"{scope_label} sequence value {seq} does not fit in {width} digits"
        )
    return f"{seq:0{width}d}"


def format_patient_number(day: date, seq: int) -> str:
    """
    Format: P{YY}{MM}{seq3}

    Example: P2505001 is the first patient registered in May 2025.
    """
    return f"P{day:%y%m}{_pad(seq, DAILY_WIDTH, 'Patient')}"


def format_visit_number(day: date, seq: int) -> str:
    """
    Format: V{YY}{MM}{DD}{seq3}

    Example: V250513001 is the first visit on 13 May 2025.
    """
    return f"V{day:%y%m%d}{_pad(seq, DAILY_WIDTH, 'Visit')}"


def format_admission_number(day: date, seq: int) -> str:
    """
    Format: ADM-{YYYY}-{seq6}
    """
    return f"ADM-{day:%Y}-{_pad(seq, ADMISSION_WIDTH, 'Admission')}"
