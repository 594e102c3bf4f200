from datetime import date
from decimal import Decimal

import pytest

from sitepay_api.common.errors import InvalidInputError
from sitepay_api.models.payroll.stat_config import StatConfig
from sitepay_api.services import statutory


@pytest.mark.parametrize("basic,pf", [
    (15000, 1800), (25000, 1800), (14999, 1800), (10000, 1200), (8333, 1000), (0, 0),
])
def test_provident_fund_defaults(app, basic, pf):
    assert statutory.provident_fund(basic) == Decimal(pf)


def test_provident_fund_reads_config(session):
    session.add(StatConfig(type="PF", key="PF_LOW", effective_from=date(2020, 1, 1),
                           value_json={"emp_rate": 0.10, "wage_cap": 20000}))
    session.commit()
    assert statutory.provident_fund(25000) == Decimal("2000")
    assert statutory.provident_fund(10000) == Decimal("1000")


@pytest.mark.parametrize("state,gross,pt", [
    ("MH", 7500, 0), ("MH", 7501, 175), ("MH", 10000, 175), ("MH", 10001, 200),
    ("KA", 15000, 150), ("KA", 15001, 200),
    ("GJ", 9000, 0), ("GJ", 12500, 200),
    ("TN", 16000, 180), ("TN", 25000, 208),
    ("WB", 6001, 150), ("WB", 20000, 200),
])
def test_professional_tax_default_tables(app, state, gross, pt):
    assert statutory.professional_tax(gross, state) == Decimal(pt)


@pytest.mark.parametrize("state,gross,pt", [
    ("MH", "7500.00", 0), ("MH", "7500.50", 175), ("MH", "10000.00", 175), ("MH", "10000.50", 200),
    ("KA", "10000.01", 150), ("KA", "15000.99", 200),
    ("GJ", "9000.40", 150), ("GJ", "12000.01", 200),
    ("TN", "15000.50", 180), ("TN", "21000.50", 208),
    ("WB", "6000.50", 150), ("WB", "10000.01", 200),
])
def test_professional_tax_paise_above_threshold(app, state, gross, pt):
    assert statutory.professional_tax(Decimal(gross), state) == Decimal(pt)


def test_configured_slabs_with_exclusive_threshold(session):
    session.add(StatConfig(type="PT", key="PT_MH_C3", scope_state="MH", scope_company_id=3,
                           effective_from=date(2020, 1, 1),
                           value_json={"state": "MH", "slabs": [{"above": 5000, "amount": 250}]}))
    session.commit()
    assert statutory.professional_tax(Decimal("5000"), "MH", company_id=3) == Decimal("0")
    assert statutory.professional_tax(Decimal("5000.10"), "MH", company_id=3) == Decimal("250")


def test_unknown_state_is_manual(app):
    assert statutory.professional_tax(50000, "XX") == 0


def test_professional_tax_prefers_config(session):
    session.add(StatConfig(type="PT", key="PT_MH_C1", scope_state="MH", scope_company_id=1,
                           effective_from=date(2020, 1, 1),
                           value_json={"state": "MH", "slabs": [
                               {"min": 0, "max": 5000, "amount": 0},
                               {"min": 5001, "max": 9999999, "amount": 250},
                           ]}))
    session.commit()
    assert statutory.professional_tax(6000, "MH", company_id=1) == Decimal("250")
    assert statutory.professional_tax(6000, "MH", company_id=2) == Decimal("0")


def test_suggest_high_basic(app):
    s = statutory.suggest_structure(28800, "high-basic", "MH")
    assert s["basic_salary"] == Decimal("25088")
    assert s["hra"] == Decimal("1254")
    assert s["incentive_allowance"] == Decimal("2458")
    assert s["basic_salary"] + s["hra"] + s["incentive_allowance"] == Decimal("28800")
    assert s["pf_deduction"] == Decimal("1800")
    assert s["professional_tax"] == Decimal("200")
    assert s["esi_deduction"] == 0
    assert s["net_salary"] == Decimal("26800")


def test_suggest_forty_forty(app):
    s = statutory.suggest_structure("20000", "40-40", "KA")
    assert (s["basic_salary"], s["hra"], s["incentive_allowance"]) == (8000, 3200, 8800)
    assert s["pf_deduction"] == Decimal("960")
    assert s["professional_tax"] == Decimal("200")


@pytest.mark.parametrize("ctc,split", [(0, "40-40"), (-10, "40-40"), (20000, "60-20")])
def test_suggest_rejects_bad_input(app, ctc, split):
    with pytest.raises(InvalidInputError):
        statutory.suggest_structure(ctc, split, "MH")
