# intake_engine/services/sequence_service.py
"""
Collision-free, per-scope monotonic counters.

Each scope owns one row in ``sequence_counters``. A value is reserved by an
atomic increment of that row in its own short transaction, so two callers
can never receive the same value for the same scope, even across
processes. Values reserved by a caller that later fails are simply skipped
(gap-tolerant).
"""
import logging

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from intake_engine.core.config import get_settings
from intake_engine.core.database import commit_or_raise, is_transient
from intake_engine.core.exceptions import SequenceExhausted, TransientStorageError
from intake_engine.models.sequence_counter import SequenceCounter
from intake_engine.utils.retry import retry_transient

logger = logging.getLogger(__name__)


class SequenceGenerator:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.sequence_max_attempts
        self.backoff_seconds = (
            settings.retry_backoff_seconds if backoff_seconds is None else backoff_seconds
        )

    def next_value(self, scope: str, *, max_value: int | None = None) -> int:
        """
        Reserve and return the next value in ``scope`` (first value is 1).

        Raises SequenceExhausted when the scope is past ``max_value`` or the
        counter could not be reserved within the retry bound.
        """
        try:
            value = retry_transient(
                lambda: self._increment(scope),
                attempts=self.max_attempts,
                backoff_seconds=self.backoff_seconds,
                label=f"sequence {scope}",
            )
        except TransientStorageError as exc:
            logger.error("Sequence %s could not be reserved after %d attempts", scope, self.max_attempts)
            raise SequenceExhausted(
                f"Could not reserve the next number for {scope}, please retry."
            ) from exc

        if max_value is not None and value > max_value:
            raise SequenceExhausted(f"Limit of {max_value} reached for {scope}.")
        return value

    def _increment(self, scope: str) -> int:
        db: Session = self.session_factory()
        try:
            updated = (
                db.query(SequenceCounter)
                .filter(SequenceCounter.scope == scope)
                .update({SequenceCounter.value: SequenceCounter.value + 1}, synchronize_session=False)
            )
            if updated == 0:
                # First use of the scope. A concurrent first use makes one of
                # the inserts fail; that caller retries and takes the update path.
                db.add(SequenceCounter(scope=scope, value=1))
                try:
                    db.flush()
                except IntegrityError as exc:
                    db.rollback()
                    raise TransientStorageError(f"Counter {scope} was created concurrently") from exc

            value = db.query(SequenceCounter.value).filter(SequenceCounter.scope == scope).scalar()
            commit_or_raise(db)
            return value
        except DBAPIError as exc:
            db.rollback()
            if is_transient(exc):
                raise TransientStorageError(f"Counter {scope} is busy") from exc
            raise
        finally:
            db.close()
