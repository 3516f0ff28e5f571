"""
Error taxonomy shared by the services.

Services raise these before touching state (validation, lookups) or after
rolling back (persistence). Routers translate them into HTTPException using
``status_code`` and ``to_detail()``.
"""
from typing import Any, Optional


class AcademyError(Exception):
    status_code = 500

    def __init__(self, message: str, *, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_detail(self) -> Any:
        if not self.extra:
            return self.message
        return {"message": self.message, **self.extra}


class ValidationError(AcademyError):
    status_code = 400


class NotFound(AcademyError):
    status_code = 404


class NotYourStudent(AcademyError):
    status_code = 403


class Conflict(AcademyError):
    status_code = 409


class DuplicateAttendance(Conflict):
    pass


class SettlementConflict(Conflict):
    """Another worker linked one of these sessions to a paid settlement first."""


class NothingToPay(AcademyError):
    status_code = 400


class PersistenceFailure(AcademyError):
    """The store rejected or failed a write; safe to retry."""

    status_code = 503
