"""
Monthly attendance ledger.

One row per (employee, month) holding days present against the calendar day
count of the month. Rows are saved as DRAFT and frozen month-wide by
finalize_month(); a FINALIZED row is never changed again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from sitepay_api.common.errors import (
    AlreadyFinalizedError,
    AttendanceLockedError,
    InvalidInputError,
    PayrollError,
    StorageError,
)
from sitepay_api.common.months import days_in_month, normalize_month
from sitepay_api.common.tenant import Tenant
from sitepay_api.extensions import db
from sitepay_api.models.attendance import (
    ATTENDANCE_DRAFT,
    ATTENDANCE_FINALIZED,
    AttendanceRecord,
)
from sitepay_api.models.employee import Employee
from sitepay_api.services.directory import get_employee

log = logging.getLogger(__name__)


@dataclass
class SaveResult:
    month: str
    saved: List[AttendanceRecord] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)


def _days_present(raw) -> int:
    if raw is None or raw == "" or isinstance(raw, bool):
        raise InvalidInputError("days_present is required")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidInputError("days_present must be a whole number")
        raw = int(raw)
    try:
        days = int(str(raw).strip())
    except (TypeError, ValueError):
        raise InvalidInputError(f"days_present must be a whole number, got {raw!r}")
    if days < 0:
        raise InvalidInputError("days_present must not be negative")
    return days


def save_attendance(month, records, tenant: Optional[Tenant] = None) -> SaveResult:
    """
    Upsert attendance for many employees of one month.

    Bad records are rejected individually and the rest are still saved.
    A days_present above the month length is stored as given and reported
    in warnings.
    """
    month = normalize_month(month)
    total_days = days_in_month(month)
    if not isinstance(records, list):
        raise InvalidInputError("records must be a list")

    result = SaveResult(month=month)
    for idx, rec in enumerate(records):
        rec = rec if isinstance(rec, dict) else {}
        raw_id = rec.get("employee_id")
        try:
            emp = get_employee(raw_id, tenant)
            days = _days_present(rec.get("days_present"))

            row = AttendanceRecord.query.filter_by(employee_id=emp.id, month=month).first()
            if row and row.is_finalized:
                raise AttendanceLockedError(
                    f"Attendance for employee {emp.code} in {month} is finalized",
                    payload={"employee_id": emp.id, "month": month},
                )
            if not row:
                row = AttendanceRecord(employee_id=emp.id, month=month, status=ATTENDANCE_DRAFT)
                db.session.add(row)

            row.days_present = days
            row.total_days_in_month = total_days
            if "remarks" in rec:
                row.remarks = (rec.get("remarks") or None)
            row.updated_at = datetime.utcnow()
            result.saved.append(row)

            if days > total_days:
                result.warnings.append({
                    "index": idx,
                    "employee_id": emp.id,
                    "employee_code": emp.code,
                    "message": f"days_present {days} exceeds {total_days} days in {month}",
                })
        except PayrollError as e:
            result.rejected.append({
                "index": idx,
                "employee_id": raw_id,
                "code": e.code,
                "reason": e.message,
            })

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("attendance save failed for %s", month)
        raise StorageError.from_exc(e, f"Could not save attendance for {month}")

    log.info("attendance %s: saved=%d rejected=%d warnings=%d",
             month, len(result.saved), len(result.rejected), len(result.warnings))
    return result


def finalize_month(month, tenant: Optional[Tenant] = None) -> int:
    """Freeze every DRAFT row of the month in one transaction. Returns the count."""
    month = normalize_month(month)
    q = AttendanceRecord.query.filter(AttendanceRecord.month == month,
                                      AttendanceRecord.status == ATTENDANCE_DRAFT)
    if tenant and tenant.company_id is not None:
        # subquery keeps FOR UPDATE on attendance rows only
        company_emps = select(Employee.id).where(Employee.company_id == tenant.company_id)
        q = q.filter(AttendanceRecord.employee_id.in_(company_emps))
    rows = q.with_for_update().all()
    if not rows:
        raise AlreadyFinalizedError(f"No draft attendance left to finalize for {month}",
                                    payload={"month": month})

    now = datetime.utcnow()
    for row in rows:
        row.status = ATTENDANCE_FINALIZED
        row.finalized_at = now

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("attendance finalize failed for %s", month)
        raise StorageError.from_exc(e, f"Could not finalize attendance for {month}")

    log.info("attendance %s finalized: %d rows", month, len(rows))
    return len(rows)


def _scoped(q, tenant: Optional[Tenant]):
    if tenant and tenant.company_id is not None:
        q = q.join(Employee, Employee.id == AttendanceRecord.employee_id).filter(
            Employee.company_id == tenant.company_id
        )
    return q


def get_by_month(month, tenant: Optional[Tenant] = None) -> List[AttendanceRecord]:
    month = normalize_month(month)
    q = _scoped(AttendanceRecord.query.filter(AttendanceRecord.month == month), tenant)
    return q.order_by(AttendanceRecord.employee_id.asc()).all()


def get_by_employee(employee_id, from_month=None, to_month=None) -> List[AttendanceRecord]:
    q = AttendanceRecord.query.filter(AttendanceRecord.employee_id == int(employee_id))
    # YYYY-MM sorts lexically
    if from_month:
        q = q.filter(AttendanceRecord.month >= normalize_month(from_month))
    if to_month:
        q = q.filter(AttendanceRecord.month <= normalize_month(to_month))
    return q.order_by(AttendanceRecord.month.desc()).all()


def get_record(employee_id, month) -> Optional[AttendanceRecord]:
    return AttendanceRecord.query.filter_by(
        employee_id=int(employee_id), month=normalize_month(month)
    ).first()


def month_summary(month, tenant: Optional[Tenant] = None) -> Dict[str, Any]:
    rows = get_by_month(month, tenant)
    draft = sum(1 for r in rows if r.status == ATTENDANCE_DRAFT)
    return {
        "month": normalize_month(month),
        "total_days_in_month": days_in_month(month),
        "records": len(rows),
        "draft": draft,
        "finalized": len(rows) - draft,
        "total_days_present": sum(r.days_present or 0 for r in rows),
        "is_finalized": bool(rows) and draft == 0,
    }
