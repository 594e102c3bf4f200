from datetime import datetime
from sitepay_api.extensions import db

ATTENDANCE_DRAFT = "DRAFT"
ATTENDANCE_FINALIZED = "FINALIZED"


class AttendanceRecord(db.Model):
    """Monthly attendance of one employee: days present against calendar days."""
    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM

    days_present = db.Column(db.Integer, nullable=False, default=0)
    total_days_in_month = db.Column(db.Integer, nullable=False)  # calendar days, not working days
    remarks = db.Column(db.String(255))

    status = db.Column(db.String(12), nullable=False, default=ATTENDANCE_DRAFT)
    finalized_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", name="uq_attendance_emp_month"),
        db.Index("ix_attendance_month_status", "month", "status"),
    )

    employee = db.relationship("Employee", lazy="joined")

    @property
    def is_finalized(self) -> bool:
        return self.status == ATTENDANCE_FINALIZED
