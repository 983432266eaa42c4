"""
Claims spreadsheet export (xlsx) for the admin surface.
"""

import io
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from app.models.tables import Claim
from app.rules.compensation import delay_reason_label

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COLUMNS = [
    ("Claim ID", 22),
    ("Created", 14),
    ("Passenger", 24),
    ("Email", 30),
    ("Flight", 10),
    ("Flight Date", 12),
    ("Route", 12),
    ("Issue", 18),
    ("Delay", 8),
    ("Reason", 22),
    ("Status", 14),
    ("Compensation", 14),
    ("Commission", 14),
    ("Net", 14),
    ("POA Signed", 10),
]

MONEY_FORMAT = '$#,##0.00;[Red]-$#,##0.00;"-"'


def build_claims_workbook(claims: Iterable[Claim]) -> bytes:
    """One row per claim, header frozen, money columns formatted."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Claims"

    header_font = Font(name="Arial", bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill("solid", fgColor="1F4E79")
    header_align = Alignment(horizontal="center", vertical="center", wrap_text=True)
    thin_border = Border(bottom=Side(style="thin", color="D9E2F3"))
    text_font = Font(name="Arial", size=10)
    paid_font = Font(name="Arial", size=10, color="006600")
    rejected_font = Font(name="Arial", size=10, color="CC0000")

    for col_idx, (header, width) in enumerate(COLUMNS, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_align
        ws.column_dimensions[cell.column_letter].width = width

    ws.freeze_panes = "A2"

    for row_idx, c in enumerate(claims, 2):
        compensation = float(c.compensation_amount) if c.compensation_amount is not None else None
        commission = float(c.commission_amount) if c.commission_amount is not None else None
        net = compensation - commission if compensation is not None and commission is not None else None
        values = [
            c.claim_id,
            c.created_at.date() if c.created_at else None,
            c.passenger_name,
            c.email,
            c.flight_number,
            c.flight_date,
            f"{c.departure_airport}-{c.arrival_airport}",
            c.issue_type,
            c.delay_duration or "",
            delay_reason_label(c.delay_reason) if c.delay_reason else "",
            c.status,
            compensation,
            commission,
            net,
            "Yes" if c.poa_signed else "No",
        ]
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.font = text_font
            cell.border = thin_border
            if col_idx == 2:
                cell.number_format = "YYYY-MM-DD"
            elif col_idx in (12, 13, 14):
                cell.number_format = MONEY_FORMAT
            elif col_idx == 11:
                if c.status == "paid":
                    cell.font = paid_font
                elif c.status == "rejected":
                    cell.font = rejected_font

    ws.auto_filter.ref = ws.dimensions

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
