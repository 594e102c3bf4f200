from __future__ import annotations
from datetime import date
from typing import List, Optional

from sitepay_api.models.payroll.stat_config import StatConfig


def resolve_configs(cfg_type: str, company_id: int | None, state: str | None, on_date: date) -> List[StatConfig]:
    """
    Return StatConfig records of a given type that are effective on `on_date`, ordered by resolution:
    1) company + state
    2) state-only
    3) company-only
    4) global (no scope)

    Within each tier, lower `priority` wins; tie-breaker is most-recent `effective_from`.
    """
    q = (
        StatConfig.query
        .filter(StatConfig.type == cfg_type)
        .filter(StatConfig.effective_from <= on_date)
        .filter((StatConfig.effective_to.is_(None)) | (StatConfig.effective_to >= on_date))
        .filter((StatConfig.closed_at.is_(None)) | (StatConfig.closed_at > on_date))
    )

    def _ordered(subq):
        return (
            subq.order_by(StatConfig.priority.asc(), StatConfig.effective_from.desc(), StatConfig.id.desc()).all()
        )

    out: List[StatConfig] = []
    if company_id is not None and state:
        out.extend(_ordered(q.filter(StatConfig.scope_company_id == company_id, StatConfig.scope_state == state)))

    if state:
        out.extend(_ordered(q.filter(StatConfig.scope_company_id.is_(None), StatConfig.scope_state == state)))

    if company_id is not None:
        out.extend(_ordered(q.filter(StatConfig.scope_company_id == company_id, StatConfig.scope_state.is_(None))))

    out.extend(_ordered(q.filter(StatConfig.scope_company_id.is_(None), StatConfig.scope_state.is_(None))))

    return out


def resolve_value(cfg_type: str, company_id: int | None, state: str | None, on_date: date) -> Optional[dict]:
    """value_json of the winning config, or None when nothing is configured."""
    rows = resolve_configs(cfg_type, company_id, (state or "").upper() or None, on_date)
    if not rows:
        return None
    return rows[0].value_json or {}
