"""
Monthly payroll over all active employees of a tenant.

Employees are processed one after another, each in its own transaction via
payslip_generator.generate(). A failure for one employee is recorded and the
run moves on; only a lost database connection stops the run early. Nothing
is retried.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from sitepay_api.common.errors import PayrollError, StorageError
from sitepay_api.common.months import normalize_month
from sitepay_api.common.tenant import Tenant
from sitepay_api.extensions import db
from sitepay_api.models.attendance import AttendanceRecord
from sitepay_api.models.payroll.payslip import PAYMENT_PAID, Payslip
from sitepay_api.models.payroll.salary_structure import SALARY_ACTIVE, SalaryStructure
from sitepay_api.services import payslip_generator
from sitepay_api.services.directory import list_active_employees

log = logging.getLogger(__name__)

OUTCOME_SUCCESS = "success"
OUTCOME_FAILURE = "failure"
OUTCOME_SKIPPED = "skipped"


@dataclass
class ProgressEvent:
    current: int
    total: int
    employee_code: str
    outcome: str


@dataclass
class BatchResult:
    month: str
    total: int = 0
    successes: List[Payslip] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None
    export: Any = None
    export_error: Optional[str] = None


def _failure(emp, err: PayrollError) -> Dict[str, Any]:
    return {
        "employee_id": emp.id,
        "employee_code": emp.code,
        "reason": err.message,
        "code": err.code,
    }


def _clear_unpaid(month: str, employee_ids: List[int]) -> int:
    if not employee_ids:
        return 0
    try:
        n = (
            Payslip.query
            .filter(Payslip.month == month,
                    Payslip.employee_id.in_(employee_ids),
                    Payslip.payment_status != PAYMENT_PAID)
            .delete(synchronize_session=False)
        )
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError.from_exc(e, f"Could not clear payslips for {month}")
    return n


def run_monthly_payroll(month, tenant: Tenant, site_id=None, regenerate_existing: bool = False,
                        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
                        exporter: Optional[Callable[[List[Payslip]], Any]] = None) -> BatchResult:
    month = normalize_month(month)
    result = BatchResult(month=month)

    try:
        employees = list_active_employees(tenant, site_id)
        result.total = len(employees)

        existing = {}
        if regenerate_existing:
            removed = _clear_unpaid(month, [e.id for e in employees])
            log.info("payroll %s: cleared %d unpaid payslips before regeneration", month, removed)
            # paid payslips survive regeneration
            q = db.session.query(Payslip.employee_id).filter(Payslip.month == month,
                                                             Payslip.payment_status == PAYMENT_PAID)
            existing = {pid: "Payslip already paid" for (pid,) in q.all()}
        else:
            q = db.session.query(Payslip.employee_id).filter(Payslip.month == month)
            existing = {pid: "Payslip already exists" for (pid,) in q.all()}
    except (SQLAlchemyError, StorageError) as e:
        db.session.rollback()
        result.aborted = True
        result.abort_reason = getattr(e, "message", None) or f"Database error: {e.__class__.__name__}"
        log.error("payroll %s aborted before start: %s", month, result.abort_reason)
        return result

    log.info("payroll %s: %d employees (site=%s regenerate=%s)", month, len(employees), site_id, regenerate_existing)

    for idx, emp in enumerate(employees, start=1):
        if emp.id in existing:
            result.skipped.append({
                "employee_id": emp.id,
                "employee_code": emp.code,
                "reason": existing[emp.id],
            })
            outcome = OUTCOME_SKIPPED
        else:
            error = None
            try:
                result.successes.append(payslip_generator.generate(emp.id, month, tenant=tenant))
                outcome = OUTCOME_SUCCESS
            except PayrollError as e:
                error = e
            except SQLAlchemyError as e:
                db.session.rollback()
                error = StorageError.from_exc(e, f"Database error for employee {emp.code}")
            except Exception as e:
                db.session.rollback()
                log.exception("payroll %s: unexpected error for %s", month, emp.code)
                error = PayrollError(f"Unexpected error for employee {emp.code}: {e.__class__.__name__}")

            if error is not None:
                result.failures.append(_failure(emp, error))
                outcome = OUTCOME_FAILURE
                if isinstance(error, StorageError) and error.connectivity:
                    result.aborted = True
                    result.abort_reason = error.message
                    log.error("payroll %s aborted at %s: %s", month, emp.code, error.message)
                else:
                    log.warning("payroll %s: %s failed: %s", month, emp.code, error.message)

        if on_progress:
            try:
                on_progress(ProgressEvent(current=idx, total=len(employees), employee_code=emp.code, outcome=outcome))
            except Exception:
                log.exception("payroll %s: progress callback failed at %s", month, emp.code)
        if result.aborted:
            break

    if exporter is not None:
        try:
            result.export = exporter(result.successes)
        except Exception as e:  # payslips are already saved; report and return
            log.exception("payroll %s: export failed", month)
            result.export_error = str(e) or e.__class__.__name__

    log.info("payroll %s done: success=%d failed=%d skipped=%d aborted=%s",
             month, len(result.successes), len(result.failures), len(result.skipped), result.aborted)
    return result


def preflight(month, tenant: Tenant, site_id=None) -> Dict[str, Any]:
    """Advisory: who will fail a run right now. Does not block anything."""
    month = normalize_month(month)
    employees = list_active_employees(tenant, site_id)
    ids = [e.id for e in employees]

    with_structure = set()
    with_attendance = set()
    if ids:
        with_structure = {
            eid for (eid,) in db.session.query(SalaryStructure.employee_id)
            .filter(SalaryStructure.employee_id.in_(ids), SalaryStructure.status == SALARY_ACTIVE).all()
        }
        with_attendance = {
            eid for (eid,) in db.session.query(AttendanceRecord.employee_id)
            .filter(AttendanceRecord.employee_id.in_(ids), AttendanceRecord.month == month).all()
        }

    def _brief(e):
        return {"employee_id": e.id, "employee_code": e.code, "name": e.full_name}

    missing_structure = [_brief(e) for e in employees if e.id not in with_structure]
    missing_attendance = [_brief(e) for e in employees if e.id not in with_attendance]
    return {
        "month": month,
        "employees": len(employees),
        "missing_salary_structure": missing_structure,
        "missing_attendance": missing_attendance,
        "ready": len(employees) - len({*(m["employee_id"] for m in missing_structure),
                                       *(m["employee_id"] for m in missing_attendance)}),
    }
