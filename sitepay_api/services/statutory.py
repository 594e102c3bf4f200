"""
Statutory deduction rules applied when a salary structure is prepared.

PF follows the wage-cap rule, PT is a state slab lookup against monthly gross,
ESI is entered by hand. Rates and slabs come from StatConfig when configured;
the built-in tables below are the fallback.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sitepay_api.common.errors import InvalidInputError
from sitepay_api.common.money import ZERO, dec, parse_amount, round_rupees
from sitepay_api.services.compliance_scope import resolve_value

log = logging.getLogger(__name__)

PF_DEFAULT_RATE = Decimal("0.12")
PF_DEFAULT_WAGE_CAP = Decimal("15000")

# Monthly PT slabs per state. A slab applies when gross > above.
DEFAULT_PT_SLABS: Dict[str, List[Dict[str, Any]]] = {
    "MH": [
        {"above": 7500, "amount": 175},
        {"above": 10000, "amount": 200},
    ],
    "KA": [
        {"above": 10000, "amount": 150},
        {"above": 15000, "amount": 200},
    ],
    "GJ": [
        {"above": 9000, "amount": 150},
        {"above": 12000, "amount": 200},
    ],
    "TN": [
        {"above": 15000, "amount": 180},
        {"above": 21000, "amount": 208},
    ],
    "WB": [
        {"above": 6000, "amount": 150},
        {"above": 10000, "amount": 200},
    ],
}

# Backward split presets: basic as % of gross, HRA as % of basic.
SPLIT_OPTIONS: Dict[str, Dict[str, Any]] = {
    "high-basic": {"basic": Decimal("87.11"), "hra_of_basic": Decimal("5"), "label": "High Basic (87.11%)"},
    "40-40": {"basic": Decimal("40"), "hra_of_basic": Decimal("40"), "label": "40% Basic, HRA 40% of Basic"},
    "50-40": {"basic": Decimal("50"), "hra_of_basic": Decimal("40"), "label": "50% Basic, HRA 40% of Basic"},
}
DEFAULT_SPLIT = "40-40"


def _pf_params(company_id: Optional[int], state: Optional[str], on_date: date):
    cfg = resolve_value("PF", company_id, state, on_date) or {}
    rate = dec(cfg.get("emp_rate", PF_DEFAULT_RATE))
    cap = dec(cfg.get("wage_cap", PF_DEFAULT_WAGE_CAP))
    return rate, cap


def provident_fund(basic, company_id: Optional[int] = None, state: Optional[str] = None,
                   on_date: Optional[date] = None) -> Decimal:
    """Employee PF: flat cap x rate once basic reaches the cap, else round(basic x rate)."""
    rate, cap = _pf_params(company_id, state, on_date or date.today())
    basic = dec(basic)
    if basic >= cap:
        return round_rupees(cap * rate)
    return round_rupees(basic * rate)


def pt_slabs(state: Optional[str], company_id: Optional[int] = None,
             on_date: Optional[date] = None) -> List[Dict[str, Any]]:
    st = (state or "").upper()
    cfg = resolve_value("PT", company_id, st, on_date or date.today())
    if cfg and cfg.get("slabs"):
        return list(cfg["slabs"])
    return DEFAULT_PT_SLABS.get(st, [])


def _slab_applies(gross: Decimal, slab: Dict[str, Any]) -> bool:
    # "above" is exclusive; older configs keyed on an inclusive "min"
    if "above" in slab:
        return gross > dec(slab["above"])
    return gross >= dec(slab.get("min"))


def _slab_floor(slab: Dict[str, Any]) -> Decimal:
    return dec(slab["above"]) if "above" in slab else dec(slab.get("min"))


def pt_from_slabs(gross, slabs: List[Dict[str, Any]]) -> Decimal:
    """Amount of the highest slab the gross clears; 0 below the first."""
    gross = dec(gross)
    amount = ZERO
    for slab in sorted(slabs, key=_slab_floor):
        if _slab_applies(gross, slab):
            amount = dec(slab.get("amount"))
    return amount


def professional_tax(gross, state: Optional[str], company_id: Optional[int] = None,
                     on_date: Optional[date] = None) -> Decimal:
    """Monthly PT for the state. Unknown state with no config => 0 (manual entry)."""
    slabs = pt_slabs(state, company_id, on_date)
    if not slabs:
        log.info("no PT slabs for state=%s company=%s; PT left at 0", state, company_id)
        return ZERO
    return pt_from_slabs(gross, slabs)


def suggest_structure(ctc, split: Optional[str] = None, state: Optional[str] = None,
                      company_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Backward calculation from a monthly CTC (treated as gross) to earning
    components plus PF and PT. ESI stays 0; it is entered manually.
    The result is a suggestion only; nothing is persisted.
    """
    ctc = parse_amount(ctc, "ctc")
    if ctc <= 0:
        raise InvalidInputError("ctc must be greater than zero")
    split = split or DEFAULT_SPLIT
    preset = SPLIT_OPTIONS.get(split)
    if not preset:
        raise InvalidInputError(f"unknown split {split!r}", payload={"allowed": sorted(SPLIT_OPTIONS)})

    basic = round_rupees(ctc * preset["basic"] / 100)
    hra = round_rupees(basic * preset["hra_of_basic"] / 100)
    incentive = ctc - basic - hra

    pf = provident_fund(basic, company_id, state)
    pt = professional_tax(ctc, state, company_id)

    return {
        "split": split,
        "state": (state or "").upper() or None,
        "basic_salary": basic,
        "hra": hra,
        "incentive_allowance": incentive,
        "pf_deduction": pf,
        "esi_deduction": ZERO,
        "professional_tax": pt,
        "gross_salary": ctc,
        "total_deductions": pf + pt,
        "net_salary": ctc - pf - pt,
    }
