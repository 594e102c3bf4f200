"""
Payslip derivation.

compute_payslip() is the pure arithmetic: the attendance ratio is applied once
to the full-month gross and once to the full-month net, and the prorated
deduction total is whatever remains between them. Individual components are
never prorated one by one, so gross - deductions == net holds exactly. The
earned basic/HRA/incentive split of the prorated gross is stored alongside
the full-month rates so printed earnings add up to the gross.

generate() wraps it with the lookups and the upsert on (employee, month).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from sitepay_api.common.errors import (
    InvalidInputError,
    NoAttendanceRecordError,
    NoSalaryStructureError,
    PayslipLockedError,
    RecordNotFoundError,
    StorageError,
)
from sitepay_api.common.money import ZERO, dec, parse_amount, round_rupees
from sitepay_api.common.months import month_key, normalize_month
from sitepay_api.common.tenant import Tenant
from sitepay_api.extensions import db
from sitepay_api.models.employee import Employee
from sitepay_api.models.payroll.payslip import PAYMENT_PAID, PAYMENT_PENDING, Payslip
from sitepay_api.services import attendance_ledger, salary_structures
from sitepay_api.services.directory import get_employee

log = logging.getLogger(__name__)

PAYMENT_METHODS = ("BANK_TRANSFER", "CASH", "CHEQUE", "UPI")


@dataclass
class PayslipFigures:
    days_present: int
    total_days: int
    ratio: Decimal
    gross_full: Decimal
    total_deductions_full: Decimal
    net_full: Decimal
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    advance_deduction: Decimal
    lines: Dict[str, Decimal] = field(default_factory=dict)
    earned: Dict[str, Decimal] = field(default_factory=dict)


def compute_payslip(structure, attendance, advance_override=None) -> PayslipFigures:
    d = int(attendance.days_present or 0)
    t = int(attendance.total_days_in_month or 0)
    if t <= 0:
        raise InvalidInputError("total_days_in_month must be positive")
    if d < 0:
        raise InvalidInputError("days_present must not be negative")

    basic = dec(structure.basic_salary)
    hra = dec(structure.hra)
    incentive = dec(structure.incentive_allowance)
    advance = dec(structure.advance_deduction) if advance_override is None else dec(advance_override)

    lines = {
        "basic_salary": basic,
        "hra": hra,
        "incentive_allowance": incentive,
        "pf_deduction": dec(structure.pf_deduction),
        "esi_deduction": dec(structure.esi_deduction),
        "professional_tax": dec(structure.professional_tax),
        "health_insurance": dec(structure.mediclaim_deduction),
        "advance_deduction": advance,
        "other_deductions": dec(structure.other_deductions),
    }

    gross_full = basic + hra + incentive
    ded_full = (
        lines["pf_deduction"] + lines["esi_deduction"] + lines["professional_tax"]
        + lines["health_insurance"] + advance + lines["other_deductions"]
    )
    net_full = gross_full - ded_full

    # multiply before dividing so 13/30 is not truncated first
    gross = round_rupees(gross_full * d / t)
    net = round_rupees(net_full * d / t)

    # earned lines are differences of rounded running totals, so they sum to gross
    earned_basic = round_rupees(basic * d / t)
    basic_hra = round_rupees((basic + hra) * d / t)
    earned = {
        "earned_basic": earned_basic,
        "earned_hra": basic_hra - earned_basic,
        "earned_incentive": gross - basic_hra,
    }

    return PayslipFigures(
        days_present=d,
        total_days=t,
        ratio=Decimal(d) / Decimal(t),
        gross_full=gross_full,
        total_deductions_full=ded_full,
        net_full=net_full,
        gross_salary=gross,
        total_deductions=gross - net,
        net_salary=net,
        advance_deduction=advance,
        lines=lines,
        earned=earned,
    )


def _calc_meta(fig: PayslipFigures, structure, override_used: bool) -> Dict[str, Any]:
    return {
        "salary_id": structure.salary_id,
        "days_present": fig.days_present,
        "total_days": fig.total_days,
        "ratio": str(fig.ratio.quantize(Decimal("0.000001"))),
        "gross_full": str(fig.gross_full),
        "total_deductions_full": str(fig.total_deductions_full),
        "net_full": str(fig.net_full),
        "advance_override": override_used,
    }


def _resolve_month(month, year=None) -> str:
    if year not in (None, ""):
        return month_key(year, month)
    return normalize_month(month)


def generate(employee_id, month, year=None, advance_deduction=None, remarks=None,
             tenant: Optional[Tenant] = None) -> Payslip:
    """
    Create or refresh the payslip for (employee, month).

    Requires an ACTIVE salary structure and an attendance row for the month;
    the attendance row need not be finalized. Regenerating keeps the same
    payslip_id. Structure and attendance are only read.
    """
    month = _resolve_month(month, year)
    emp = get_employee(employee_id, tenant)

    structure = salary_structures.get_active_by_employee(emp.id)
    if not structure:
        raise NoSalaryStructureError(emp.id, emp.code)

    att = attendance_ledger.get_record(emp.id, month)
    if not att:
        raise NoAttendanceRecordError(emp.id, emp.code, month)

    override = None if advance_deduction in (None, "") else parse_amount(advance_deduction, "advance_deduction")

    row = Payslip.query.filter_by(employee_id=emp.id, month=month).first()
    if row and row.is_paid and current_app.config.get("PAYROLL_LOCK_PAID_PAYSLIPS", True):
        raise PayslipLockedError(emp.id, emp.code)

    fig = compute_payslip(structure, att, override)

    if not row:
        row = Payslip(employee_id=emp.id, month=month, payment_status=PAYMENT_PENDING)
        db.session.add(row)

    row.salary_id = structure.salary_id
    row.days_present = fig.days_present
    row.total_days_in_month = fig.total_days
    row.total_working_days = fig.total_days
    row.days_absent = max(fig.total_days - fig.days_present, 0)

    for name, amount in fig.lines.items():
        setattr(row, name, amount)
    for name, amount in fig.earned.items():
        setattr(row, name, amount)
    row.overtime_amount = ZERO
    row.welfare_deduction = ZERO

    row.gross_salary = fig.gross_salary
    row.total_deductions = fig.total_deductions
    row.net_salary = fig.net_salary
    if remarks is not None:
        row.remarks = remarks or None
    row.calc_meta = _calc_meta(fig, structure, override is not None)
    row.generated_at = datetime.utcnow()

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("payslip generation failed for employee %s %s", emp.code, month)
        raise StorageError.from_exc(e, f"Could not save payslip for employee {emp.code}")

    log.info("payslip %s generated for %s %s: gross=%s ded=%s net=%s",
             row.payslip_id, emp.code, month, row.gross_salary, row.total_deductions, row.net_salary)
    return row


def _in_tenant(row: Payslip, tenant: Optional[Tenant]) -> bool:
    if not tenant or tenant.company_id is None:
        return True
    return row.employee is not None and row.employee.company_id == tenant.company_id


def get_payslip(payslip_id, tenant: Optional[Tenant] = None) -> Payslip:
    try:
        pid = int(payslip_id)
    except (TypeError, ValueError):
        raise InvalidInputError("payslip_id must be integer")
    row = db.session.get(Payslip, pid)
    if not row or not _in_tenant(row, tenant):
        raise RecordNotFoundError(f"Payslip {pid} not found")
    return row


def update_payment_status(payslip_id, status, method, reference=None,
                          tenant: Optional[Tenant] = None) -> Payslip:
    """PENDING -> PAID only. PAID is terminal."""
    row = get_payslip(payslip_id, tenant)
    target = (status or "").strip().upper()
    if target != PAYMENT_PAID:
        raise InvalidInputError(f"payment status can only be set to {PAYMENT_PAID}")
    if row.is_paid:
        raise PayslipLockedError(row.employee_id, row.employee.code if row.employee else None)
    method = (method or "").strip().upper()
    if method not in PAYMENT_METHODS:
        raise InvalidInputError("payment_method is invalid", payload={"allowed": list(PAYMENT_METHODS)})

    row.payment_status = PAYMENT_PAID
    row.payment_method = method
    row.payment_reference = (reference or None)
    row.payment_date = datetime.utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError.from_exc(e, f"Could not update payslip {row.payslip_id}")
    log.info("payslip %s marked PAID via %s", row.payslip_id, method)
    return row


def list_by_month(month, site_id=None, tenant: Optional[Tenant] = None) -> List[Payslip]:
    month = normalize_month(month)
    q = Payslip.query.join(Employee, Employee.id == Payslip.employee_id).filter(Payslip.month == month)
    if site_id not in (None, ""):
        q = q.filter(Employee.site_id == int(site_id))
    if tenant and tenant.company_id is not None:
        q = q.filter(Employee.company_id == tenant.company_id)
    return q.order_by(Employee.code.asc(), Payslip.payslip_id.asc()).all()


def month_summary(month, site_id=None, tenant: Optional[Tenant] = None) -> Dict[str, Any]:
    rows = list_by_month(month, site_id, tenant)
    paid = [r for r in rows if r.is_paid]
    pending = [r for r in rows if not r.is_paid]

    def _sum(items, attr):
        return sum((dec(getattr(r, attr)) for r in items), ZERO)

    return {
        "month": normalize_month(month),
        "count": len(rows),
        "total_gross": _sum(rows, "gross_salary"),
        "total_deductions": _sum(rows, "total_deductions"),
        "total_net": _sum(rows, "net_salary"),
        "paid_count": len(paid),
        "paid_net": _sum(paid, "net_salary"),
        "pending_count": len(pending),
        "pending_net": _sum(pending, "net_salary"),
    }
