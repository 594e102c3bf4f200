from datetime import datetime
from sitepay_api.extensions import db

EMPLOYEE_ACTIVE = "ACTIVE"
EMPLOYEE_STATUSES = (EMPLOYEE_ACTIVE, "ON_LEAVE", "RESIGNED", "TERMINATED")

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False)
    site_id    = db.Column(db.Integer, db.ForeignKey("sites.id", ondelete="SET NULL"), nullable=True)

    code  = db.Column(db.String(32), nullable=False)    # unique per company
    first_name  = db.Column(db.String(80), nullable=False)
    last_name   = db.Column(db.String(80), nullable=True)
    designation = db.Column(db.String(120), nullable=True)
    mobile      = db.Column(db.String(20), nullable=True)

    status = db.Column(db.String(16), default=EMPLOYEE_ACTIVE, nullable=False)  # see EMPLOYEE_STATUSES

    # bank details, display-only for exports
    bank_name      = db.Column(db.String(120), nullable=True)
    account_number = db.Column(db.String(34), nullable=True)
    ifsc_code      = db.Column(db.String(11), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_employee_company_code"),
        db.Index("ix_emp_company_id", "company_id"),
        db.Index("ix_emp_site_id", "site_id"),
    )

    company = db.relationship("Company", lazy="joined")
    site    = db.relationship("Site", lazy="joined")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
