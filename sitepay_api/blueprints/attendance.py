from __future__ import annotations

from flask import Blueprint, current_app, request

from sitepay_api.common.auth import requires_perms
from sitepay_api.common.http import ok
from sitepay_api.common.months import normalize_month
from sitepay_api.common.paging import paginate
from sitepay_api.common.tenant import current_tenant
from sitepay_api.models.attendance import AttendanceRecord
from sitepay_api.services import attendance_ledger

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


def _row_attendance(x: AttendanceRecord):
    emp = x.employee
    return {
        "id": x.id,
        "employee_id": x.employee_id,
        "employee_code": emp.code if emp else None,
        "employee_name": emp.full_name if emp else None,
        "month": x.month,
        "days_present": x.days_present,
        "total_days_in_month": x.total_days_in_month,
        "remarks": x.remarks,
        "status": x.status,
        "finalized_at": x.finalized_at.isoformat() if x.finalized_at else None,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }


@bp.post("/save")
@requires_perms("payroll.attendance.write")
def save():
    j = request.get_json(silent=True) or {}
    res = attendance_ledger.save_attendance(j.get("month"), j.get("records") or [], current_tenant())
    current_app.logger.info("attendance save %s: %d saved, %d rejected",
                            res.month, len(res.saved), len(res.rejected))
    return ok({
        "month": res.month,
        "saved": [_row_attendance(r) for r in res.saved],
        "rejected": res.rejected,
        "warnings": res.warnings,
    })


@bp.post("/finalize")
@requires_perms("payroll.attendance.finalize")
def finalize():
    j = request.get_json(silent=True) or {}
    count = attendance_ledger.finalize_month(j.get("month"), current_tenant())
    return ok({"month": normalize_month(j.get("month")), "finalized": count})


@bp.get("/month/<month>")
@requires_perms("payroll.attendance.read")
def by_month(month):
    rows = attendance_ledger.get_by_month(month, current_tenant())
    items, meta = paginate(rows)
    return ok([_row_attendance(r) for r in items], **meta)


@bp.get("/summary/<month>")
@requires_perms("payroll.attendance.read")
def summary(month):
    return ok(attendance_ledger.month_summary(month, current_tenant()))


@bp.get("/employee/<int:employee_id>")
@requires_perms("payroll.attendance.read")
def by_employee(employee_id: int):
    rows = attendance_ledger.get_by_employee(
        employee_id, request.args.get("from"), request.args.get("to")
    )
    return ok([_row_attendance(r) for r in rows])
