from __future__ import annotations

from flask import Blueprint, current_app, request

from sitepay_api.common.auth import requires_perms
from sitepay_api.common.http import ok
from sitepay_api.common.money import as_float
from sitepay_api.common.tenant import current_tenant
from sitepay_api.models.payroll.salary_structure import SalaryStructure
from sitepay_api.services import salary_structures, statutory

bp = Blueprint("salaries", __name__, url_prefix="/api/v1/salaries")

_AMOUNTS = (
    "basic_salary", "hra", "incentive_allowance",
    "pf_deduction", "esi_deduction", "professional_tax", "mediclaim_deduction",
    "advance_deduction", "other_deductions",
    "gross_salary", "total_deductions", "net_salary",
)


def _row_salary(x: SalaryStructure):
    emp = x.employee
    out = {
        "salary_id": x.salary_id,
        "employee_id": x.employee_id,
        "employee_code": emp.code if emp else None,
        "employee_name": emp.full_name if emp else None,
        "effective_from": x.effective_from.isoformat() if x.effective_from else None,
        "status": x.status,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }
    for f in _AMOUNTS:
        out[f] = as_float(getattr(x, f))
    return out


@bp.post("")
@requires_perms("payroll.salary.write")
def create_salary():
    j = request.get_json(silent=True) or {}
    row = salary_structures.create(j.get("employee_id"), j)
    current_app.logger.info("salary structure %s created", row.salary_id)
    return ok(_row_salary(row), status=201)


@bp.put("/<int:salary_id>")
@requires_perms("payroll.salary.write")
def update_salary(salary_id: int):
    j = request.get_json(silent=True) or {}
    return ok(_row_salary(salary_structures.update(salary_id, j)))


@bp.delete("/<int:salary_id>")
@requires_perms("payroll.salary.write")
def deactivate_salary(salary_id: int):
    return ok(_row_salary(salary_structures.deactivate(salary_id)))


@bp.get("/employee/<int:employee_id>")
@requires_perms("payroll.salary.read")
def by_employee(employee_id: int):
    if request.args.get("history") in ("1", "true", "yes"):
        return ok([_row_salary(r) for r in salary_structures.list_by_employee(employee_id)])
    row = salary_structures.get_active_by_employee(employee_id)
    return ok(_row_salary(row) if row else None)


@bp.post("/suggest")
@requires_perms("payroll.salary.read", "payroll.salary.write")
def suggest():
    """Backward split of a monthly CTC; nothing is saved."""
    j = request.get_json(silent=True) or {}
    state = j.get("state") or current_app.config.get("PAYROLL_DEFAULT_PT_STATE")
    res = statutory.suggest_structure(j.get("ctc"), j.get("split"), state, current_tenant().company_id)
    return ok({k: (as_float(v) if k not in ("split", "state") else v) for k, v in res.items()})
