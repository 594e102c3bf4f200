from datetime import datetime, date
from sitepay_api.extensions import db


class StatConfig(db.Model):
    """
    Scoped statutory configuration (PF / ESI / PT).

    value_json shapes:
    - PF: {"emp_rate": 0.12, "wage_cap": 15000}
    - ESI: {"policy": "manual"}
    - PT: {"state": "MH", "slabs": [{"above": 7500, "amount": 175}, ...]}
      ("above" is exclusive; legacy rows keyed on an inclusive "min" still resolve)
    """
    __tablename__ = "stat_configs"

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(8), nullable=False)  # PF, ESI, PT
    key = db.Column(db.String(80), nullable=False)
    value_json = db.Column(db.JSON, nullable=False)

    # Scoping: by company, state, both, or global (both NULL)
    scope_company_id = db.Column(db.Integer, nullable=True)
    scope_state = db.Column(db.String(10), nullable=True)  # e.g., "MH"
    priority = db.Column(db.Integer, nullable=False, default=100)

    effective_from = db.Column(db.Date, nullable=False, default=date.today)
    effective_to = db.Column(db.Date)
    closed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index(
            "ix_statcfg_resolve",
            "type",
            "scope_state",
            "scope_company_id",
            "effective_from",
            "effective_to",
            "priority",
        ),
    )
