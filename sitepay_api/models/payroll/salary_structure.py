from datetime import datetime, date
from decimal import Decimal

from sqlalchemy import text

from sitepay_api.extensions import db

SALARY_ACTIVE = "ACTIVE"
SALARY_INACTIVE = "INACTIVE"

EARNING_FIELDS = ("basic_salary", "hra", "incentive_allowance")
DEDUCTION_FIELDS = (
    "pf_deduction",
    "esi_deduction",
    "professional_tax",
    "mediclaim_deduction",
    "advance_deduction",
    "other_deductions",
)


class SalaryStructure(db.Model):
    __tablename__ = "salary_structures"

    salary_id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    # earnings (monthly)
    basic_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    hra = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    incentive_allowance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # deductions (monthly fixed amounts)
    pf_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    esi_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)   # manual entry
    professional_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    mediclaim_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    advance_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # snapshot of the derived totals at write time
    gross_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    effective_from = db.Column(db.Date, nullable=False, default=date.today)
    status = db.Column(db.String(10), nullable=False, default=SALARY_ACTIVE)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # at most one ACTIVE structure per employee
        db.Index(
            "uq_salary_active_per_employee",
            "employee_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    employee = db.relationship("Employee", lazy="joined")

    def recompute_totals(self):
        gross = sum((Decimal(str(getattr(self, f) or 0)) for f in EARNING_FIELDS), Decimal("0"))
        deductions = sum((Decimal(str(getattr(self, f) or 0)) for f in DEDUCTION_FIELDS), Decimal("0"))
        self.gross_salary = gross
        self.total_deductions = deductions
        self.net_salary = gross - deductions
