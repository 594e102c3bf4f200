from __future__ import annotations

from flask import Blueprint, current_app, request, send_file

from sitepay_api.common.auth import requires_perms
from sitepay_api.common.errors import InvalidInputError
from sitepay_api.common.http import ok
from sitepay_api.common.money import as_float
from sitepay_api.common.months import normalize_month
from sitepay_api.common.paging import paginate
from sitepay_api.common.tenant import current_tenant
from sitepay_api.models.payroll.payslip import Payslip
from sitepay_api.services import payroll_orchestrator, payslip_export, payslip_generator
from sitepay_api.services.directory import get_site

bp = Blueprint("payslips", __name__, url_prefix="/api/v1/payslips")

_AMOUNTS = (
    "basic_salary", "hra", "incentive_allowance", "earned_basic", "earned_hra",
    "earned_incentive", "overtime_amount", "gross_salary",
    "pf_deduction", "esi_deduction", "professional_tax", "advance_deduction",
    "welfare_deduction", "health_insurance", "other_deductions", "total_deductions",
    "net_salary",
)


def _int_arg(name, raw):
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be integer")


def _row_payslip(x: Payslip):
    emp = x.employee
    site = emp.site if emp else None
    out = {
        "payslip_id": x.payslip_id,
        "employee_id": x.employee_id,
        "employee_code": emp.code if emp else None,
        "employee_name": emp.full_name if emp else None,
        "designation": emp.designation if emp else None,
        "site_id": site.id if site else None,
        "site_name": site.name if site else None,
        "salary_id": x.salary_id,
        "month": x.month,
        "days_present": x.days_present,
        "total_days_in_month": x.total_days_in_month,
        "total_working_days": x.total_working_days,
        "days_absent": x.days_absent,
        "payment_status": x.payment_status,
        "payment_date": x.payment_date.isoformat() if x.payment_date else None,
        "payment_method": x.payment_method,
        "payment_reference": x.payment_reference,
        "remarks": x.remarks,
        "calc_meta": x.calc_meta,
        "generated_at": x.generated_at.isoformat() if x.generated_at else None,
    }
    for f in _AMOUNTS:
        out[f] = as_float(getattr(x, f))
    return out


def _row_batch(res: payroll_orchestrator.BatchResult):
    return {
        "month": res.month,
        "total": res.total,
        "success_count": len(res.successes),
        "failure_count": len(res.failures),
        "skipped_count": len(res.skipped),
        "successes": [
            {"payslip_id": p.payslip_id, "employee_id": p.employee_id,
             "employee_code": p.employee.code if p.employee else None,
             "net_salary": as_float(p.net_salary)}
            for p in res.successes
        ],
        "failures": res.failures,
        "skipped": res.skipped,
        "aborted": res.aborted,
        "abort_reason": res.abort_reason,
    }


@bp.post("/generate")
@requires_perms("payroll.payslips.generate")
def generate():
    j = request.get_json(silent=True) or {}
    if j.get("employee_id") in (None, ""):
        raise InvalidInputError("employee_id is required")
    row = payslip_generator.generate(
        j.get("employee_id"),
        j.get("month"),
        j.get("year"),
        advance_deduction=j.get("advance_deduction"),
        remarks=j.get("remarks"),
        tenant=current_tenant(),
    )
    return ok(_row_payslip(row), status=201)


@bp.post("/generate/bulk")
@requires_perms("payroll.payslips.generate")
def generate_bulk():
    j = request.get_json(silent=True) or {}
    res = payroll_orchestrator.run_monthly_payroll(
        j.get("month"),
        current_tenant(),
        site_id=_int_arg("site_id", j.get("site_id")),
        regenerate_existing=bool(j.get("regenerate")),
    )
    current_app.logger.info("bulk payroll %s: %d ok, %d failed, %d skipped",
                            res.month, len(res.successes), len(res.failures), len(res.skipped))
    # manifest is returned even when some or all employees failed
    return ok(_row_batch(res))


@bp.get("/preflight/<month>")
@requires_perms("payroll.payslips.generate", "payroll.payslips.read")
def preflight(month):
    return ok(payroll_orchestrator.preflight(
        month, current_tenant(), site_id=_int_arg("site_id", request.args.get("site_id"))
    ))


@bp.put("/<int:payslip_id>/payment-status")
@requires_perms("payroll.payslips.pay")
def payment_status(payslip_id: int):
    j = request.get_json(silent=True) or {}
    row = payslip_generator.update_payment_status(
        payslip_id,
        j.get("status") or j.get("payment_status"),
        j.get("method") or j.get("payment_method"),
        j.get("reference") or j.get("payment_reference"),
        tenant=current_tenant(),
    )
    return ok(_row_payslip(row))


@bp.get("/<int:payslip_id>")
@requires_perms("payroll.payslips.read")
def get_one(payslip_id: int):
    return ok(_row_payslip(payslip_generator.get_payslip(payslip_id, current_tenant())))


@bp.get("/month/<month>")
@requires_perms("payroll.payslips.read")
def by_month(month):
    rows = payslip_generator.list_by_month(
        month, _int_arg("site_id", request.args.get("site_id")), current_tenant()
    )
    items, meta = paginate(rows)
    return ok([_row_payslip(r) for r in items], **meta)


@bp.get("/summary/<month>")
@requires_perms("payroll.payslips.read")
def summary(month):
    res = payslip_generator.month_summary(
        month, _int_arg("site_id", request.args.get("site_id")), current_tenant()
    )
    return ok({k: (as_float(v) if k.startswith(("total_", "paid_net", "pending_net")) else v)
               for k, v in res.items()})


@bp.get("/month/<month>/export")
@requires_perms("payroll.payslips.read")
def export_month(month):
    month = normalize_month(month)
    fmt = (request.args.get("format") or "xlsx").lower()
    site_id = _int_arg("site_id", request.args.get("site_id"))
    rows = payslip_export.payslip_rows(payslip_generator.list_by_month(month, site_id, current_tenant()))

    if fmt == "xlsx":
        wb = payslip_export.build_payroll_workbook(rows, month)
        return send_file(payslip_export.workbook_bytes(wb), mimetype=payslip_export.XLSX_MIMETYPE,
                         as_attachment=True, download_name=f"payroll_{month}.xlsx")
    if fmt == "pdf":
        site = get_site(site_id)
        site_name = site.name if site else "All sites"
        pdf = payslip_export.render_site_statement_pdf(site_name, rows, month)
        return send_file(pdf, mimetype="application/pdf",
                         as_attachment=True, download_name=f"statement_{month}.pdf")
    raise InvalidInputError("format must be xlsx or pdf")


@bp.get("/<int:payslip_id>/pdf")
@requires_perms("payroll.payslips.read")
def payslip_pdf(payslip_id: int):
    p = payslip_generator.get_payslip(payslip_id, current_tenant())
    row = payslip_export.payslip_rows([p])[0]
    pdf = payslip_export.render_payslip_pdf(row)
    code = row.get("employee_code") or p.employee_id
    return send_file(pdf, mimetype="application/pdf",
                     as_attachment=True, download_name=f"payslip_{code}_{p.month}.pdf")
