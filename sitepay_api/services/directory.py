# Read-only lookups into the employee/site master data owned by other services.
from __future__ import annotations

from typing import List, Optional

from sitepay_api.common.errors import InvalidInputError
from sitepay_api.common.tenant import Tenant
from sitepay_api.extensions import db
from sitepay_api.models.employee import EMPLOYEE_ACTIVE, Employee
from sitepay_api.models.master import Site


def get_employee(employee_id, tenant: Optional[Tenant] = None) -> Employee:
    try:
        emp_id = int(employee_id)
    except (TypeError, ValueError):
        raise InvalidInputError("employee_id must be integer")
    emp = db.session.get(Employee, emp_id)
    # another company's employee reads as missing
    if not emp or (tenant and tenant.company_id is not None and emp.company_id != tenant.company_id):
        raise InvalidInputError(f"Employee {emp_id} not found", payload={"employee_id": emp_id})
    return emp


def list_active_employees(tenant: Tenant, site_id: Optional[int] = None) -> List[Employee]:
    q = Employee.query.filter(Employee.status == EMPLOYEE_ACTIVE)
    if tenant.company_id is not None:
        q = q.filter(Employee.company_id == tenant.company_id)
    if site_id is not None:
        q = q.filter(Employee.site_id == site_id)
    return q.order_by(Employee.code.asc(), Employee.id.asc()).all()


def get_site(site_id) -> Optional[Site]:
    if site_id in (None, ""):
        return None
    return db.session.get(Site, int(site_id))
