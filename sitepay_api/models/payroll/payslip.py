from datetime import datetime
from sitepay_api.extensions import db

PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"


class Payslip(db.Model):
    """
    Frozen result of one payslip generation for (employee, month).

    Earning and deduction lines are copies of the salary structure used
    (full-month amounts); gross_salary, total_deductions and net_salary are the
    prorated figures actually payable. earned_basic + earned_hra +
    earned_incentive == gross_salary. calc_meta records the inputs.
    """
    __tablename__ = "payslips"

    payslip_id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    salary_id = db.Column(db.Integer, db.ForeignKey("salary_structures.salary_id", ondelete="SET NULL"), nullable=True)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM

    # attendance snapshot
    days_present = db.Column(db.Integer, nullable=False, default=0)
    total_days_in_month = db.Column(db.Integer, nullable=False)
    total_working_days = db.Column(db.Integer, nullable=False)  # == total_days_in_month (calendar days)
    days_absent = db.Column(db.Integer, nullable=False, default=0)

    # earnings
    basic_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    hra = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    incentive_allowance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # prorated split of gross_salary
    earned_basic = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    earned_hra = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    earned_incentive = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    overtime_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    gross_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # deductions
    pf_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    esi_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    professional_tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    advance_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    welfare_deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    health_insurance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    other_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    net_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # payment
    payment_status = db.Column(db.String(10), nullable=False, default=PAYMENT_PENDING)
    payment_date = db.Column(db.DateTime)
    payment_method = db.Column(db.String(30))
    payment_reference = db.Column(db.String(80))

    remarks = db.Column(db.String(255))
    calc_meta = db.Column(db.JSON)

    generated_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", name="uq_payslip_emp_month"),
        db.Index("ix_payslip_month", "month"),
    )

    employee = db.relationship("Employee", lazy="joined")
    salary = db.relationship("SalaryStructure", lazy="select")

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAYMENT_PAID
