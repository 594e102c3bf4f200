from decimal import Decimal

import pytest

from sitepay_api.common.errors import (
    InvalidInputError,
    NoAttendanceRecordError,
    NoSalaryStructureError,
    PayslipLockedError,
    RecordNotFoundError,
)
from sitepay_api.common.tenant import Tenant
from sitepay_api.extensions import db
from sitepay_api.models.payroll.payslip import Payslip
from sitepay_api.services import payslip_generator, salary_structures

from factories import attendance, company, employee, structure


def test_generate_prorates_by_calendar_days(app):
    e = employee(company())
    s = structure(e)
    attendance(e, "2025-06", days_present=13, total_days=30)

    p = payslip_generator.generate(e.id, "2025-06")
    assert Decimal(p.gross_salary) == Decimal("12480")
    assert Decimal(p.net_salary) == Decimal("11005")
    assert Decimal(p.total_deductions) == Decimal("1475")
    assert p.total_working_days == p.total_days_in_month == 30
    assert p.days_absent == 17
    assert p.salary_id == s.salary_id
    assert p.payment_status == "PENDING"
    # full-month lines are kept as on the structure
    assert Decimal(p.basic_salary) == Decimal("20000")
    assert Decimal(p.health_insurance) == Decimal("403")
    assert Decimal(p.overtime_amount) == 0 and Decimal(p.welfare_deduction) == 0
    assert Decimal(p.calc_meta["gross_full"]) == Decimal("28800")
    assert p.calc_meta["salary_id"] == s.salary_id


def test_month_and_year_arguments(app):
    e = employee(company())
    structure(e)
    attendance(e, "2025-03", days_present=31)
    p = payslip_generator.generate(e.id, 3, 2025)
    assert p.month == "2025-03"
    assert Decimal(p.net_salary) == Decimal("25397")


def test_no_attendance_raises_and_writes_nothing(app):
    e = employee(company())
    structure(e)
    with pytest.raises(NoAttendanceRecordError) as ei:
        payslip_generator.generate(e.id, "2025-03")
    assert ei.value.payload["employee_id"] == e.id
    assert ei.value.payload["month"] == "2025-03"
    assert Payslip.query.count() == 0


def test_no_structure_names_employee(app):
    e = employee(company(), code="E777")
    attendance(e, "2025-06")
    with pytest.raises(NoSalaryStructureError) as ei:
        payslip_generator.generate(e.id, "2025-06")
    assert ei.value.employee_code == "E777"
    assert "E777" in ei.value.message
    assert Payslip.query.count() == 0


def test_unknown_employee(app):
    with pytest.raises(InvalidInputError):
        payslip_generator.generate(12345, "2025-06")


def test_regenerate_keeps_id_and_takes_new_values(app):
    e = employee(company())
    structure(e)
    att = attendance(e, "2025-06", days_present=13, total_days=30)
    first = payslip_generator.generate(e.id, "2025-06")
    first_id = first.payslip_id

    att.days_present = 30
    db.session.commit()
    second = payslip_generator.generate(e.id, "2025-06", advance_deduction=0, remarks="recalc")

    assert Payslip.query.filter_by(employee_id=e.id, month="2025-06").count() == 1
    assert second.payslip_id == first_id
    assert Decimal(second.net_salary) == Decimal("26397")
    assert second.remarks == "recalc"
    assert second.calc_meta["advance_override"] is True


def test_generate_does_not_touch_inputs(app):
    e = employee(company())
    s = structure(e)
    attendance(e, "2025-06", days_present=13, total_days=30)
    payslip_generator.generate(e.id, "2025-06", advance_deduction=5000)
    active = salary_structures.get_active_by_employee(e.id)
    assert active.salary_id == s.salary_id
    assert Decimal(active.advance_deduction) == Decimal("1000")


def test_paid_payslip_is_locked(app):
    e = employee(company())
    structure(e)
    attendance(e, "2025-06", days_present=30, total_days=30)
    p = payslip_generator.generate(e.id, "2025-06")
    payslip_generator.update_payment_status(p.payslip_id, "PAID", "bank_transfer", "UTR123")

    with pytest.raises(PayslipLockedError):
        payslip_generator.generate(e.id, "2025-06")


def test_paid_lock_can_be_switched_off(app):
    app.config["PAYROLL_LOCK_PAID_PAYSLIPS"] = False
    e = employee(company())
    structure(e)
    attendance(e, "2025-06", days_present=30, total_days=30)
    p = payslip_generator.generate(e.id, "2025-06")
    payslip_generator.update_payment_status(p.payslip_id, "PAID", "CASH")
    again = payslip_generator.generate(e.id, "2025-06", advance_deduction=0)
    assert again.payslip_id == p.payslip_id
    assert again.payment_status == "PAID"


def test_payment_status_transitions(app):
    e = employee(company())
    structure(e)
    attendance(e, "2025-06", days_present=30, total_days=30)
    p = payslip_generator.generate(e.id, "2025-06")

    with pytest.raises(InvalidInputError):
        payslip_generator.update_payment_status(p.payslip_id, "PENDING", "CASH")
    with pytest.raises(InvalidInputError):
        payslip_generator.update_payment_status(p.payslip_id, "PAID", "BARTER")

    paid = payslip_generator.update_payment_status(p.payslip_id, "paid", "upi", "ref-9")
    assert paid.payment_status == "PAID"
    assert paid.payment_method == "UPI"
    assert paid.payment_reference == "ref-9"
    assert paid.payment_date is not None

    with pytest.raises(PayslipLockedError):
        payslip_generator.update_payment_status(p.payslip_id, "PAID", "CASH")


def test_list_and_summary_by_month(app):
    c = company()
    a, b = employee(c, "E1"), employee(c, "E2")
    for e in (a, b):
        structure(e)
        attendance(e, "2025-06", days_present=30, total_days=30)
        payslip_generator.generate(e.id, "2025-06")
    payslip_generator.update_payment_status(
        payslip_generator.list_by_month("2025-06")[0].payslip_id, "PAID", "CASH"
    )

    s = payslip_generator.month_summary("2025-06")
    assert s["count"] == 2
    assert s["total_gross"] == Decimal("57600")
    assert s["total_net"] == Decimal("50794")
    assert s["paid_count"] == 1 and s["pending_count"] == 1
    assert s["paid_net"] == Decimal("25397")


def test_earned_components_are_stored(app):
    e = employee(company())
    structure(e)
    attendance(e, "2025-06", days_present=13, total_days=30)
    p = payslip_generator.generate(e.id, "2025-06")
    assert Decimal(p.earned_basic) == Decimal("8667")
    assert Decimal(p.earned_hra) == Decimal("3466")
    assert Decimal(p.earned_incentive) == Decimal("347")
    assert Decimal(p.earned_basic) + Decimal(p.earned_hra) + Decimal(p.earned_incentive) == Decimal(p.gross_salary)


def test_other_company_cannot_reach_payslip(app):
    c, other = company("C1"), company("C2", "Other Co")
    e = employee(c)
    structure(e)
    attendance(e, "2025-06", days_present=30, total_days=30)
    p = payslip_generator.generate(e.id, "2025-06", tenant=Tenant(c.id))

    with pytest.raises(RecordNotFoundError):
        payslip_generator.get_payslip(p.payslip_id, Tenant(other.id))
    with pytest.raises(RecordNotFoundError):
        payslip_generator.update_payment_status(p.payslip_id, "PAID", "CASH", tenant=Tenant(other.id))
    with pytest.raises(InvalidInputError):
        payslip_generator.generate(e.id, "2025-06", tenant=Tenant(other.id))

    assert payslip_generator.get_payslip(p.payslip_id).payment_status == "PENDING"
    paid = payslip_generator.update_payment_status(p.payslip_id, "PAID", "CASH", tenant=Tenant(c.id))
    assert paid.payment_status == "PAID"
