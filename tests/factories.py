import calendar
from decimal import Decimal

from flask_jwt_extended import create_access_token

from sitepay_api.extensions import db
from sitepay_api.models.attendance import AttendanceRecord
from sitepay_api.models.employee import Employee
from sitepay_api.models.master import Company, Site
from sitepay_api.services import salary_structures

# 20000 + 8000 + 800 gross, 3403 deductions
STRUCTURE_28800 = {
    "basic_salary": 20000,
    "hra": 8000,
    "incentive_allowance": 800,
    "pf_deduction": 1800,
    "esi_deduction": 0,
    "professional_tax": 200,
    "mediclaim_deduction": 403,
    "advance_deduction": 1000,
    "other_deductions": 0,
}


def company(code="C1", name="Acme Infra"):
    c = Company(code=code, name=name)
    db.session.add(c); db.session.commit()
    return c


def site(c, code="S1", name="Pune Metro"):
    s = Site(company_id=c.id, code=code, name=name)
    db.session.add(s); db.session.commit()
    return s


def employee(c, code="E001", site=None, status="ACTIVE", first_name="Test", last_name="Worker"):
    e = Employee(company_id=c.id, site_id=site.id if site else None, code=code,
                 first_name=first_name, last_name=last_name, status=status,
                 designation="Mason", ifsc_code="SBIN0000001", account_number="1234567890")
    db.session.add(e); db.session.commit()
    return e


def structure(emp, **overrides):
    fields = dict(STRUCTURE_28800)
    fields.update(overrides)
    return salary_structures.create(emp.id, fields)


def attendance(emp, month="2025-06", days_present=30, total_days=None, status="DRAFT"):
    if total_days is None:
        y, m = (int(x) for x in month.split("-"))
        total_days = calendar.monthrange(y, m)[1]
    a = AttendanceRecord(employee_id=emp.id, month=month, days_present=days_present,
                         total_days_in_month=total_days, status=status)
    db.session.add(a); db.session.commit()
    return a


def auth_headers(perms=None, roles=None, company_id=None):
    claims = {"roles": roles or [], "perms": perms or []}
    if company_id is not None:
        claims["company_id"] = company_id
    token = create_access_token(identity="1", additional_claims=claims)
    return {"Authorization": f"Bearer {token}"}


def D(x):
    return Decimal(str(x))
