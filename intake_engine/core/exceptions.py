# intake_engine/core/exceptions.py
"""
Error taxonomy for the intake and allocation engine.

Every service raises one of these. The HTTP layer turns them into a stable
``{"success": false, "error": {"kind": ..., "message": ...}}`` envelope, so
callers can switch on ``kind`` without parsing messages.
"""


class IntakeError(Exception):
    kind = "IntakeError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(IntakeError):
    """Bad or missing input. Nothing was mutated."""

    kind = "ValidationError"
    status_code = 400


class NotFound(IntakeError):
    kind = "NotFound"
    status_code = 404


class Unauthorized(IntakeError):
    """Actor has no rights over the target ward or admission."""

    kind = "Unauthorized"
    status_code = 403


class StateConflict(IntakeError):
    """Illegal transition, e.g. deciding an admission that is already terminal."""

    kind = "StateConflict"
    status_code = 409


class BedUnavailable(IntakeError):
    """The bed is not available, usually because another approval claimed it first."""

    kind = "BedUnavailable"
    status_code = 409


class SequenceExhausted(IntakeError):
    """A scope ran past its formatted width, or its counter could not be reserved."""

    kind = "SequenceExhausted"
    status_code = 503


class TransientStorageError(IntakeError):
    """Retryable storage failure (lock timeout, dropped connection)."""

    kind = "TransientStorageError"
    status_code = 503
