from decimal import Decimal
from io import BytesIO

from openpyxl import load_workbook

from sitepay_api.services import payslip_export, payslip_generator

from factories import attendance, company, employee, site, structure

MONTH = "2025-06"


def _payslips():
    c = company()
    north = site(c, "N1", "North Tower")
    out = []
    for code, s, days in (("E1", north, 30), ("E2", north, 13), ("E3", None, 20)):
        e = employee(c, code, site=s)
        structure(e)
        attendance(e, MONTH, days_present=days, total_days=30)
        out.append(payslip_generator.generate(e.id, MONTH))
    return out


def _col(header):
    return [h for h, _ in payslip_export.COLUMNS].index(header) + 1


def test_rows_carry_site_and_bank_fields(app):
    rows = payslip_export.payslip_rows(_payslips())
    assert [r["site_name"] for r in rows] == ["North Tower", "North Tower", "Unassigned"]
    assert rows[0]["ifsc_code"] == "SBIN0000001"
    assert rows[1]["net_salary"] == Decimal("11005")


def test_workbook_has_sheet_per_site_with_totals(app):
    rows = payslip_export.payslip_rows(_payslips())
    wb = payslip_export.build_payroll_workbook(rows, MONTH)
    assert wb.sheetnames == ["North Tower", "Unassigned"]

    ws = wb["North Tower"]
    assert ws["A1"].value == "NORTH TOWER"
    assert "June 2025" in ws["A2"].value
    assert ws.cell(row=3, column=_col("NET PAYABLE")).value == "NET PAYABLE"
    assert ws.cell(row=4, column=_col("EMP CODE")).value == "E1"

    total_row = ws.max_row
    assert ws.cell(row=total_row, column=_col("EMP NAME")).value == "TOTAL"
    assert ws.cell(row=total_row, column=_col("GROSS PAYABLE")).value == 28800 + 12480
    assert ws.cell(row=total_row, column=_col("NET PAYABLE")).value == 25397 + 11005
    assert ws.cell(row=total_row, column=_col("DEDUCTIONS")).value == 3403 + 1475


def test_workbook_bytes_round_trip_loads(app):
    rows = payslip_export.payslip_rows(_payslips())
    bio = payslip_export.workbook_bytes(payslip_export.build_payroll_workbook(rows, MONTH))
    wb = load_workbook(BytesIO(bio.getvalue()))
    assert "Unassigned" in wb.sheetnames


def test_long_site_names_are_cut_to_sheet_limit(app):
    rows = [{"site_name": "Mumbai Trans Harbour Link Package Four", "employee_code": "E1",
             "total_days_in_month": 30, **{f: Decimal("1") for f in payslip_export.AMOUNT_FIELDS}}]
    wb = payslip_export.build_payroll_workbook(rows, MONTH)
    assert len(wb.sheetnames[0]) <= 31


def test_empty_month_still_builds(app):
    wb = payslip_export.build_payroll_workbook([], MONTH)
    assert wb.sheetnames == ["Unassigned"]


def test_pdfs_render(app):
    rows = payslip_export.payslip_rows(_payslips())
    slip = payslip_export.render_payslip_pdf(rows[0]).getvalue()
    statement = payslip_export.render_site_statement_pdf("North Tower", rows[:2], MONTH).getvalue()
    assert slip.startswith(b"%PDF")
    assert statement.startswith(b"%PDF")


def test_totals_sum_persisted_fields(app):
    rows = payslip_export.payslip_rows(_payslips())
    t = payslip_export.totals(rows)
    assert t["gross_salary"] - t["total_deductions"] == t["net_salary"]


def test_earned_columns_add_up_to_gross(app):
    rows = payslip_export.payslip_rows(_payslips())
    ws = payslip_export.build_payroll_workbook(rows, MONTH)["North Tower"]
    earned = ("BASIC", "HRA", "Incentive/Other Allowance")

    # row 5 is E2, 13 of 30 days
    assert ws.cell(row=5, column=_col("FIXED BASIC")).value == 20000
    assert [ws.cell(row=5, column=_col(h)).value for h in earned] == [8667, 3466, 347]
    for r in (4, 5, ws.max_row):
        assert sum(ws.cell(row=r, column=_col(h)).value for h in earned) == \
            ws.cell(row=r, column=_col("GROSS PAYABLE")).value
    assert ws.cell(row=ws.max_row, column=_col("BASIC")).value == 20000 + 8667
