"""
Excel and PDF renderings of generated payslips.

Every figure comes from the persisted payslip rows; totals are sums of those
stored fields and nothing is recomputed here.
"""
from __future__ import annotations

import calendar as pycal
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from sitepay_api.common.money import ZERO, dec
from sitepay_api.common.months import parse_month

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
UNASSIGNED_SITE = "Unassigned"
SHEET_NAME_MAX = 31

# persisted payslip fields carried into every export row
AMOUNT_FIELDS = (
    "basic_salary", "hra", "incentive_allowance",
    "earned_basic", "earned_hra", "earned_incentive", "gross_salary",
    "pf_deduction", "esi_deduction", "professional_tax", "health_insurance",
    "advance_deduction", "other_deductions", "total_deductions", "net_salary",
)

# (header, row key) in sheet order; row keys in AMOUNT_FIELDS are totalled
COLUMNS = [
    ("Sr No", "sr_no"),
    ("EMP CODE", "employee_code"),
    ("EMP NAME", "employee_name"),
    ("Designation", "designation"),
    ("Location", "site_name"),
    ("Month Days", "total_days_in_month"),
    ("Days Present", "days_present"),
    # monthly rate
    ("FIXED BASIC", "basic_salary"),
    ("FIXED HRA", "hra"),
    ("FIXED Incentive/Other", "incentive_allowance"),
    # earned for the days present; these three sum to GROSS PAYABLE
    ("BASIC", "earned_basic"),
    ("HRA", "earned_hra"),
    ("Incentive/Other Allowance", "earned_incentive"),
    ("GROSS PAYABLE", "gross_salary"),
    ("PF SHARE", "pf_deduction"),
    ("ESIC", "esi_deduction"),
    ("PT", "professional_tax"),
    ("MEDICLAIM", "health_insurance"),
    ("Advance", "advance_deduction"),
    ("Other", "other_deductions"),
    ("DEDUCTIONS", "total_deductions"),
    ("NET PAYABLE", "net_salary"),
    ("Payment", "payment_status"),
    ("REMARK", "remarks"),
    ("IFSC CODE", "ifsc_code"),
    ("Account Number", "account_number"),
]


def month_label(month: str) -> str:
    y, m = parse_month(month)
    return f"{pycal.month_name[m]} {y}"


def payslip_rows(payslips: Iterable) -> List[Dict[str, Any]]:
    """Flatten payslips with employee and site display fields."""
    rows = []
    for p in payslips:
        emp = p.employee
        site = emp.site if emp else None
        row = {
            "payslip_id": p.payslip_id,
            "month": p.month,
            "employee_id": p.employee_id,
            "employee_code": emp.code if emp else None,
            "employee_name": emp.full_name if emp else None,
            "designation": emp.designation if emp else None,
            "site_id": site.id if site else None,
            "site_name": site.name if site else UNASSIGNED_SITE,
            "bank_name": emp.bank_name if emp else None,
            "account_number": emp.account_number if emp else None,
            "ifsc_code": emp.ifsc_code if emp else None,
            "days_present": p.days_present,
            "total_days_in_month": p.total_days_in_month,
            "days_absent": p.days_absent,
            "payment_status": p.payment_status,
            "payment_date": p.payment_date,
            "remarks": p.remarks,
        }
        for f in AMOUNT_FIELDS:
            row[f] = dec(getattr(p, f))
        rows.append(row)
    return rows


def group_by_site(rows: List[Dict[str, Any]]) -> "OrderedDict[str, List[Dict[str, Any]]]":
    groups: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for r in sorted(rows, key=lambda x: (x["site_name"] or "", x["employee_code"] or "")):
        groups.setdefault(r["site_name"] or UNASSIGNED_SITE, []).append(r)
    return groups


def totals(rows: List[Dict[str, Any]]) -> Dict[str, Decimal]:
    return {f: sum((dec(r.get(f)) for r in rows), ZERO) for f in AMOUNT_FIELDS}


def _cell(v):
    if isinstance(v, Decimal):
        return float(v)
    return v


def _sheet_title(name: str, used: set) -> str:
    # Excel forbids these in sheet names
    for ch in '[]:*?/\\':
        name = name.replace(ch, "-")
    base = (name or UNASSIGNED_SITE)[:SHEET_NAME_MAX]
    title, n = base, 2
    while title.lower() in used:
        suffix = f" ({n})"
        title = base[:SHEET_NAME_MAX - len(suffix)] + suffix
        n += 1
    used.add(title.lower())
    return title


def build_payroll_workbook(rows: List[Dict[str, Any]], month: str) -> Workbook:
    """One sheet per site: title rows, column headers, a row per payslip, a TOTAL row."""
    wb = Workbook()
    wb.remove(wb.active)
    bold = Font(bold=True)
    head_fill = PatternFill("solid", fgColor="D9D9D9")
    label = month_label(month)

    groups = group_by_site(rows)
    if not groups:
        groups[UNASSIGNED_SITE] = []

    used: set = set()
    for site_name, site_rows in groups.items():
        ws = wb.create_sheet(_sheet_title(site_name, used))
        days = site_rows[0]["total_days_in_month"] if site_rows else ""

        ws.append([site_name.upper()])
        ws.append([f"Statement of Attendance : {label}", None, None, None, None, f"Working Days : {days}"])
        ws.append([h for h, _ in COLUMNS])
        ws["A1"].font = Font(bold=True, size=13)
        for c in ws[3]:
            c.font = bold
            c.fill = head_fill
            c.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

        for i, r in enumerate(site_rows, start=1):
            ws.append([i if key == "sr_no" else _cell(r.get(key)) for _, key in COLUMNS])

        tot = totals(site_rows)
        total_row = []
        for _, key in COLUMNS:
            if key == "employee_name":
                total_row.append("TOTAL")
            elif key in tot:
                total_row.append(_cell(tot[key]))
            else:
                total_row.append(None)
        ws.append(total_row)
        for c in ws[ws.max_row]:
            c.font = bold

        for idx, (header, _) in enumerate(COLUMNS, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = max(10, min(len(header) + 4, 28))
        ws.freeze_panes = "C4"

    return wb


def workbook_bytes(wb: Workbook) -> BytesIO:
    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio


# ---------- PDF ----------

def _money(x) -> str:
    return f"{dec(x):,.2f}"


def _styles():
    styles = getSampleStyleSheet()
    title = ParagraphStyle("SlipTitle", parent=styles["Heading1"], fontSize=16,
                           spaceAfter=14, alignment=TA_CENTER, textColor=colors.darkblue)
    heading = ParagraphStyle("SlipHeading", parent=styles["Heading2"], fontSize=12,
                             spaceAfter=8, textColor=colors.darkblue)
    return styles, title, heading


_GRID = [
    ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
]


def render_payslip_pdf(row: Dict[str, Any]) -> BytesIO:
    """Single payslip as an A4 PDF."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    styles, title_style, heading_style = _styles()

    content = [Paragraph(f"PAYSLIP - {month_label(row['month'])}", title_style)]

    info = [
        ["Employee Code:", row.get("employee_code") or "-"],
        ["Name:", row.get("employee_name") or "-"],
        ["Designation:", row.get("designation") or "-"],
        ["Site:", row.get("site_name") or UNASSIGNED_SITE],
        ["Month Days:", str(row.get("total_days_in_month"))],
        ["Days Present:", str(row.get("days_present"))],
        ["Bank / A/c:", f"{row.get('bank_name') or '-'} / {row.get('account_number') or '-'}"],
    ]
    info_table = Table(info, colWidths=[2 * inch, 4 * inch])
    info_table.setStyle(TableStyle(_GRID + [("BACKGROUND", (0, 0), (0, -1), colors.lightgrey)]))
    content += [info_table, Spacer(1, 14), Paragraph("SALARY", heading_style)]

    # (label, monthly rate, earned)
    earnings = [("Basic", row["basic_salary"], row["earned_basic"]),
                ("HRA", row["hra"], row["earned_hra"]),
                ("Incentive / Other", row["incentive_allowance"], row["earned_incentive"])]
    deductions = [("PF", row["pf_deduction"]), ("ESIC", row["esi_deduction"]),
                  ("Professional Tax", row["professional_tax"]), ("Mediclaim", row["health_insurance"]),
                  ("Advance", row["advance_deduction"]), ("Other", row["other_deductions"])]
    body = [["Earnings", "Rate", "Earned", "Deductions", "Amount"]]
    for i in range(max(len(earnings), len(deductions))):
        e = earnings[i] if i < len(earnings) else ("", None, None)
        d = deductions[i] if i < len(deductions) else ("", None)
        body.append([e[0], _money(e[1]) if e[1] is not None else "",
                     _money(e[2]) if e[2] is not None else "",
                     d[0], _money(d[1]) if d[1] is not None else ""])
    fixed_total = sum((dec(e[1]) for e in earnings), ZERO)
    body.append(["Gross Payable", _money(fixed_total), _money(row["gross_salary"]),
                 "Total Deductions", _money(row["total_deductions"])])

    table = Table(body, colWidths=[1.5 * inch, 1.0 * inch, 1.0 * inch, 1.5 * inch, 1.0 * inch])
    table.setStyle(TableStyle(_GRID + [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("ALIGN", (1, 1), (2, -1), "RIGHT"),
        ("ALIGN", (4, 1), (4, -1), "RIGHT"),
    ]))
    content += [table, Spacer(1, 14)]

    net = Table([["Net Payable", f"Rs. {_money(row['net_salary'])}"]], colWidths=[4.2 * inch, 1.8 * inch])
    net.setStyle(TableStyle(_GRID + [
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
        ("BACKGROUND", (0, 0), (-1, -1), colors.lightblue),
        ("ALIGN", (1, 0), (1, 0), "RIGHT"),
    ]))
    content += [net, Spacer(1, 18)]
    content.append(Paragraph("This is a computer generated payslip. No signature required.",
                             ParagraphStyle("Footer", parent=styles["Normal"], alignment=TA_CENTER, fontSize=8)))
    content.append(Paragraph(f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles["Normal"]))

    doc.build(content)
    buffer.seek(0)
    return buffer


STATEMENT_COLUMNS = [
    ("#", "sr_no"), ("Code", "employee_code"), ("Name", "employee_name"),
    ("Days", "days_present"), ("Basic", "earned_basic"), ("HRA", "earned_hra"),
    ("Incentive", "earned_incentive"), ("Gross", "gross_salary"), ("PF", "pf_deduction"),
    ("ESIC", "esi_deduction"), ("PT", "professional_tax"), ("Advance", "advance_deduction"),
    ("Deductions", "total_deductions"), ("Net", "net_salary"),
]


def render_site_statement_pdf(site_name: str, rows: List[Dict[str, Any]], month: str) -> BytesIO:
    """Landscape statement of every payslip of one site with a totals line."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4))
    styles, title_style, _ = _styles()

    content = [
        Paragraph(f"{site_name or UNASSIGNED_SITE}", title_style),
        Paragraph(f"Salary statement : {month_label(month)}", styles["Normal"]),
        Spacer(1, 12),
    ]

    data = [[h for h, _ in STATEMENT_COLUMNS]]
    for i, r in enumerate(rows, start=1):
        line = []
        for _, key in STATEMENT_COLUMNS:
            if key == "sr_no":
                line.append(str(i))
            elif key in AMOUNT_FIELDS:
                line.append(_money(r.get(key)))
            else:
                line.append(str(r.get(key) if r.get(key) is not None else ""))
        data.append(line)

    tot = totals(rows)
    data.append([
        "", "", "TOTAL", "",
        *[_money(tot[key]) for _, key in STATEMENT_COLUMNS[4:]],
    ])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle(_GRID + [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
    ]))
    content.append(table)

    doc.build(content)
    buffer.seek(0)
    return buffer
