"""
Visit status progression with the token mirrored.
"""
import uuid
from datetime import datetime, timezone

import pytest

from intake_engine.core.exceptions import NotFound, StateConflict
from intake_engine.models import Token, TokenStatus, VisitStatus
from intake_engine.services.visit_service import update_visit_status


class TestVisitStatus:
    @pytest.fixture
    def visit(self, make_department, register):
        return register(make_department()).visit

    def _token(self, db, visit_id) -> Token:
        db.expire_all()
        return db.query(Token).filter(Token.visit_id == visit_id).one()

    def test_forward_progression_moves_token_too(self, db, clock, visit):
        clock.moment = datetime(2025, 5, 13, 10, 0, tzinfo=timezone.utc)
        updated = update_visit_status(db, visit.id, VisitStatus.IN_CONSULTATION, clock=clock)
        assert updated.status == VisitStatus.IN_CONSULTATION
        assert updated.consultation_started_at is not None
        assert self._token(db, visit.id).status == TokenStatus.IN_CONSULTATION

        updated = update_visit_status(db, visit.id, VisitStatus.COMPLETED, clock=clock)
        assert updated.status == VisitStatus.COMPLETED
        assert updated.completed_at is not None
        assert self._token(db, visit.id).status == TokenStatus.COMPLETED

    def test_skipping_straight_to_completed(self, db, clock, visit):
        updated = update_visit_status(db, visit.id, VisitStatus.COMPLETED, clock=clock)
        assert updated.consultation_started_at is not None
        assert updated.completed_at is not None

    def test_same_status_is_a_no_op(self, db, clock, visit):
        assert update_visit_status(db, visit.id, VisitStatus.WAITING, clock=clock).status == VisitStatus.WAITING
        assert self._token(db, visit.id).status == TokenStatus.WAITING

    def test_never_regresses(self, db, clock, visit):
        update_visit_status(db, visit.id, VisitStatus.COMPLETED, clock=clock)
        with pytest.raises(StateConflict):
            update_visit_status(db, visit.id, VisitStatus.IN_CONSULTATION, clock=clock)
        assert self._token(db, visit.id).status == TokenStatus.COMPLETED

    def test_unknown_visit(self, db, clock):
        with pytest.raises(NotFound):
            update_visit_status(db, uuid.uuid4(), VisitStatus.COMPLETED, clock=clock)
