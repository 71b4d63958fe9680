# intake_engine/services/identity_service.py
"""
Find-or-create resolution for incoming registrations.

Matching is deliberately simple: normalize the phone and government ID,
build the candidate key set, and take the first patient matching any key.
There is no ranking or fuzzy scoring.

Known ambiguity: a shared household phone can match several distinct
patients; the first one returned wins. This mirrors long-standing behaviour
and is kept as-is until product decides how such registrations should be
disambiguated.
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake_engine.core.config import get_settings
from intake_engine.core.database import storage_errors
from intake_engine.core.exceptions import TransientStorageError
from intake_engine.models.patient import Patient

logger = logging.getLogger(__name__)

# Only these may be overwritten on an existing patient by a repeat registration.
CONTACT_FIELDS = ("address", "email", "emergency_contact", "city")

_ID_SEPARATORS = re.compile(r"[-\s]")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Digits only; None when nothing is left."""
    if not phone:
        return None
    digits = "".join(c for c in phone if c.isdigit())
    return digits or None


def phone_variants(
    phone: Optional[str],
    *,
    country_code: Optional[str] = None,
    trunk_prefix: Optional[str] = None,
) -> list[str]:
    """
    The normalized phone plus its locale-equivalent spelling.

    "923001234567" and "03001234567" are the same subscriber: the leading
    country code and the local trunk prefix are interchangeable.
    """
    settings = get_settings()
    country_code = settings.phone_country_code if country_code is None else country_code
    trunk_prefix = settings.phone_trunk_prefix if trunk_prefix is None else trunk_prefix

    normalized = normalize_phone(phone)
    if not normalized:
        return []

    variants = [normalized]
    if country_code and normalized.startswith(country_code):
        variants.append(trunk_prefix + normalized[len(country_code):])
    elif trunk_prefix and normalized.startswith(trunk_prefix):
        variants.append(country_code + normalized[len(trunk_prefix):])
    return variants


def normalize_national_id(national_id: Optional[str]) -> Optional[str]:
    """Strip dashes and whitespace, uppercase."""
    if not national_id:
        return None
    normalized = _ID_SEPARATORS.sub("", national_id).upper()
    return normalized or None


@dataclass(frozen=True)
class MatchCriteria:
    phones: tuple[str, ...]
    national_id: Optional[str]

    def matches(self, patient: Patient) -> bool:
        if patient.phone_normalized and patient.phone_normalized in self.phones:
            return True
        return bool(self.national_id and patient.national_id_normalized == self.national_id)


def build_match_criteria(
    phone: Optional[str],
    national_id: Optional[str],
    *,
    force_new: bool = False,
) -> Optional[MatchCriteria]:
    """
    None means "always create": no identity keys were supplied, or the
    caller asked for a new patient explicitly.
    """
    if force_new:
        return None
    phones = tuple(phone_variants(phone))
    normalized_id = normalize_national_id(national_id)
    if not phones and not normalized_id:
        return None
    return MatchCriteria(phones=phones, national_id=normalized_id)


def first_match(candidates: Iterable[Patient], criteria: MatchCriteria) -> Optional[Patient]:
    for patient in candidates:
        if criteria.matches(patient):
            return patient
    return None


def merge_contact_fields(patient: Patient, incoming: dict) -> list[str]:
    """
    Copy contact fields present (non-empty) in ``incoming`` onto ``patient``.

    Demographic and medical fields are never touched. Returns the names of
    the fields that changed.
    """
    changed = []
    for field in CONTACT_FIELDS:
        value = incoming.get(field)
        if value and getattr(patient, field) != value:
            setattr(patient, field, value)
            changed.append(field)
    return changed


def _match_query(db: Session, criteria: MatchCriteria):
    conditions = []
    if criteria.phones:
        conditions.append(Patient.phone_normalized.in_(criteria.phones))
    if criteria.national_id:
        conditions.append(Patient.national_id_normalized == criteria.national_id)
    return (
        db.query(Patient)
        .filter(or_(*conditions))
        .order_by(Patient.created_at.asc(), Patient.id.asc())
    )


def find_existing_patient(db: Session, criteria: MatchCriteria) -> Optional[Patient]:
    """
    First patient matching the criteria, or None.

    A failed search is logged and surfaced as TransientStorageError; it is
    never treated as "no match", which would create a duplicate.
    """
    try:
        candidates = _match_query(db, criteria).limit(1).all()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Patient identity search failed (phone_variants=%d, national_id=%s): %s",
            len(criteria.phones),
            bool(criteria.national_id),
            exc,
            exc_info=True,
        )
        raise TransientStorageError("Patient lookup failed, please retry.") from exc
    return first_match(candidates, criteria)


def search_patients(
    db: Session,
    *,
    phone: Optional[str] = None,
    national_id: Optional[str] = None,
    limit: int = 20,
) -> list[Patient]:
    """All patients matching a phone (any variant) or government ID."""
    criteria = build_match_criteria(phone, national_id)
    if criteria is None:
        return []
    with storage_errors(db):
        return _match_query(db, criteria).limit(limit).all()
