"""Spreadsheet and PDF rendering for tabular reports"""

import io
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import openpyxl
from openpyxl.utils import get_column_letter
from openpyxl.styles import Alignment, Border, Font, Side
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

MISSING = "-"


@dataclass
class ReportColumn:
    """One column of a report: source key, header text and spreadsheet width"""

    key: str
    header: str
    width: int = 14


def format_cell(value: Any) -> Any:
    if value is None or value == "":
        return MISSING
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, (int, float, str)):
        return str(value)
    return value


def _table_rows(
    columns: Sequence[ReportColumn], rows: Sequence[Dict[str, Any]], numbered: bool
) -> List[List[Any]]:
    table = []
    for index, row in enumerate(rows, start=1):
        values = [format_cell(row.get(col.key)) for col in columns]
        table.append([index] + values if numbered else values)
    return table


def _total_row(columns: Sequence[ReportColumn], totals: Optional[Dict[str, Any]], numbered: bool) -> Optional[List[Any]]:
    if not totals:
        return None
    values = [totals.get(col.key, "") for col in columns]
    return [""] + values if numbered else values


def render_excel(
    title: str,
    columns: Sequence[ReportColumn],
    rows: Sequence[Dict[str, Any]],
    totals: Optional[Dict[str, Any]] = None,
    numbered: bool = True,
) -> bytes:
    """Render rows as a single-sheet workbook with a bold header and optional total row"""
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = title[:31]  # Excel sheet name limit

    headers = (["#"] if numbered else []) + [col.header for col in columns]
    widths = ([6] if numbered else []) + [col.width for col in columns]
    worksheet.append(headers)
    for row in _table_rows(columns, rows, numbered):
        worksheet.append(row)

    total = _total_row(columns, totals, numbered)
    if total:
        worksheet.append(total)
        for cell in worksheet[worksheet.max_row]:
            cell.font = Font(bold=True)

    for cell in worksheet[1]:
        cell.font = Font(bold=True, size=12)
        cell.alignment = Alignment(horizontal="center")

    for index, width in enumerate(widths, start=1):
        worksheet.column_dimensions[get_column_letter(index)].width = width

    thin = Side(style="thin")
    for row in worksheet.iter_rows():
        for cell in row:
            cell.border = Border(top=thin, left=thin, bottom=thin, right=thin)

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


def render_pdf(
    title: str,
    columns: Sequence[ReportColumn],
    rows: Sequence[Dict[str, Any]],
    totals: Optional[Dict[str, Any]] = None,
    numbered: bool = True,
    wide: bool = False,
) -> bytes:
    """Render rows as a titled, striped table; wide reports use landscape A4"""
    output = io.BytesIO()
    doc = SimpleDocTemplate(output, pagesize=landscape(A4) if wide else A4, leftMargin=40, rightMargin=40)
    styles = getSampleStyleSheet()

    headers = (["#"] if numbered else []) + [col.header for col in columns]
    data = [headers] + [[str(value) for value in row] for row in _table_rows(columns, rows, numbered)]
    total = _total_row(columns, totals, numbered)
    if total:
        data.append([str(value) for value in total])

    table = Table(data, repeatRows=1)
    style = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f1f5f9")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8 if wide else 10),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.HexColor("#fafafa"), colors.white]),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ]
    if total:
        style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
    table.setStyle(TableStyle(style))

    doc.build([Paragraph(title, styles["Title"]), Spacer(1, 12), table])
    return output.getvalue()
