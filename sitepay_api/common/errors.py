# sitepay_api/common/errors.py
from __future__ import annotations

from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from sitepay_api.common.http import fail


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


# ---------- payroll taxonomy ----------

class PayrollError(APIError):
    """Base for every failure the payroll core reports to its callers."""
    default_code = "PAYROLL_ERROR"
    default_status = 400

    def __init__(self, message, payload=None):
        super().__init__(self.default_code, message, self.default_status, payload)


class InvalidInputError(PayrollError):
    default_code = "INVALID_INPUT"
    default_status = 422


class RecordNotFoundError(PayrollError):
    default_code = "NOT_FOUND"
    default_status = 404


class _EmployeeScopedError(PayrollError):
    """Carries the employee identity so bulk callers can report per employee."""

    def __init__(self, employee_id, employee_code=None, message=None):
        self.employee_id = employee_id
        self.employee_code = employee_code
        label = employee_code or f"#{employee_id}"
        super().__init__(
            message or self.describe(label),
            payload={"employee_id": employee_id, "employee_code": employee_code},
        )

    def describe(self, label: str) -> str:
        return f"Employee {label}: {self.default_code}"


class NoSalaryStructureError(_EmployeeScopedError):
    default_code = "NO_SALARY_STRUCTURE"
    default_status = 422

    def describe(self, label):
        return f"No active salary structure found for employee {label}"


class NoAttendanceRecordError(_EmployeeScopedError):
    default_code = "NO_ATTENDANCE_RECORD"
    default_status = 422

    def __init__(self, employee_id, employee_code=None, month=None):
        self.month = month
        super().__init__(employee_id, employee_code)
        if month:
            self.payload["month"] = month

    def describe(self, label):
        suffix = f" for {self.month}" if self.month else ""
        return f"No attendance record found for employee {label}{suffix}"


class PayslipLockedError(_EmployeeScopedError):
    default_code = "PAYSLIP_LOCKED"
    default_status = 409

    def describe(self, label):
        return f"Payslip for employee {label} is already PAID and cannot be changed"


class AttendanceLockedError(PayrollError):
    default_code = "ATTENDANCE_LOCKED"
    default_status = 409


class AlreadyFinalizedError(PayrollError):
    default_code = "ALREADY_FINALIZED"
    default_status = 409


class StorageError(PayrollError):
    """Persistence failure. `connectivity` marks a lost database connection."""
    default_code = "STORAGE_ERROR"
    default_status = 503

    def __init__(self, message, connectivity=False, payload=None):
        self.connectivity = connectivity
        super().__init__(message, payload=payload)

    @classmethod
    def from_exc(cls, exc, message):
        """Wrap a SQLAlchemy error; connection-level failures are flagged."""
        connectivity = isinstance(exc, (OperationalError, DisconnectionError)) or bool(
            getattr(exc, "connection_invalidated", False)
        )
        return cls(f"{message}: {exc.__class__.__name__}", connectivity=connectivity)


# ---------- handlers ----------

def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else None)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
