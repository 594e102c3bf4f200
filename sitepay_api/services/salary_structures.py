from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from sitepay_api.common.errors import InvalidInputError, RecordNotFoundError, StorageError
from sitepay_api.common.money import parse_amount
from sitepay_api.extensions import db
from sitepay_api.models.payroll.salary_structure import (
    DEDUCTION_FIELDS,
    EARNING_FIELDS,
    SALARY_ACTIVE,
    SALARY_INACTIVE,
    SalaryStructure,
)
from sitepay_api.services.directory import get_employee

log = logging.getLogger(__name__)

AMOUNT_FIELDS = EARNING_FIELDS + DEDUCTION_FIELDS


def _effective_from(raw) -> Optional[date]:
    if raw in (None, ""):
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        raise InvalidInputError(f"effective_from must be YYYY-MM-DD, got {raw!r}")


def _apply(row: SalaryStructure, fields: Dict[str, Any], partial: bool):
    for name in AMOUNT_FIELDS:
        if partial and name not in fields:
            continue
        setattr(row, name, parse_amount(fields.get(name), name))
    eff = _effective_from(fields.get("effective_from"))
    if eff:
        row.effective_from = eff
    row.recompute_totals()


def _commit(what: str):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("salary structure %s failed", what)
        raise StorageError.from_exc(e, f"Could not {what} salary structure")


def create(employee_id, fields: Dict[str, Any]) -> SalaryStructure:
    """
    New ACTIVE structure for the employee. Any previous ACTIVE row is switched
    to INACTIVE in the same transaction.
    """
    emp = get_employee(employee_id)
    fields = fields or {}

    row = SalaryStructure(employee_id=emp.id, status=SALARY_ACTIVE)
    _apply(row, fields, partial=False)
    if not row.effective_from:
        row.effective_from = date.today()

    # flush the deactivation before the insert so the partial unique index holds
    (
        SalaryStructure.query
        .filter(SalaryStructure.employee_id == emp.id, SalaryStructure.status == SALARY_ACTIVE)
        .update({SalaryStructure.status: SALARY_INACTIVE}, synchronize_session="fetch")
    )
    db.session.add(row)
    _commit("create")
    log.info("salary structure %s created for employee %s (gross=%s net=%s)",
             row.salary_id, emp.code, row.gross_salary, row.net_salary)
    return row


def _get(salary_id) -> SalaryStructure:
    try:
        sid = int(salary_id)
    except (TypeError, ValueError):
        raise InvalidInputError("salary_id must be integer")
    row = db.session.get(SalaryStructure, sid)
    if not row:
        raise RecordNotFoundError(f"Salary structure {sid} not found")
    return row


def update(salary_id, fields: Dict[str, Any]) -> SalaryStructure:
    """Edit amounts in place; status is not changed here."""
    row = _get(salary_id)
    _apply(row, fields or {}, partial=True)
    _commit("update")
    return row


def deactivate(salary_id) -> SalaryStructure:
    row = _get(salary_id)
    row.status = SALARY_INACTIVE
    _commit("deactivate")
    log.info("salary structure %s deactivated", row.salary_id)
    return row


def get_active_by_employee(employee_id) -> Optional[SalaryStructure]:
    return SalaryStructure.query.filter_by(employee_id=int(employee_id), status=SALARY_ACTIVE).first()


def list_by_employee(employee_id) -> List[SalaryStructure]:
    return (
        SalaryStructure.query
        .filter(SalaryStructure.employee_id == int(employee_id))
        .order_by(SalaryStructure.effective_from.desc(), SalaryStructure.salary_id.desc())
        .all()
    )
