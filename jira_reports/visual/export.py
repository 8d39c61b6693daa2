"""Export of issue rows: CSV, Excel and PDF encodings plus a summary block."""

from __future__ import annotations

import io
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any
from xml.sax.saxutils import escape

import pandas as pd
import pytz
from openpyxl.utils import get_column_letter
from reportlab.graphics.shapes import Drawing, Rect, String
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from jira_reports.core.config import (
    COMMENT_FALLBACK_TEXT,
    EXPORT_COLUMN_WIDTHS,
    EXPORT_DEFAULT_COLUMN_WIDTH,
    EXPORT_FIELDS,
    EXPORT_SHEET_NAME,
    PDF_ALT_ROW_COLOR,
    PDF_COMMENTS_COLUMN_WIDTH_MM,
    PDF_HEADER_COLOR,
    PDF_STATUS_COLORS,
    PDF_TITLE,
    UNASSIGNED_NAME,
)
from jira_reports.core.models import CommentRow, IssueRow


def _comment_line(comment: CommentRow) -> str:
    return f"[{comment.author}]: {comment.text or COMMENT_FALLBACK_TEXT}"


def format_comments(comments: Sequence[CommentRow], mode: str) -> str:
    """Render comments for the ``Comments`` column.

    ``none`` yields an empty cell, ``last`` only the newest comment and
    ``full`` every comment, one per line.
    """
    if not comments or mode == "none":
        return ""
    if mode == "last":
        return _comment_line(comments[-1])
    return "\n".join(_comment_line(c) for c in comments)


def prepare_export_rows(
    rows: Iterable[IssueRow],
    comment_mode: str = "last",
    selected_fields: Sequence[str] | None = None,
) -> list[dict[str, Any]]:
    records = []
    for row in rows:
        full = {
            "Key": row.key,
            "Summary": row.summary,
            "Assignee": row.assignee_name or UNASSIGNED_NAME,
            "Status": row.status,
            "Priority": row.priority or "",
            "Labels": ", ".join(row.labels),
            "TimeSpent": row.time_spent,
            "Estimate": row.estimate,
            "Exceeded": "Yes" if row.exceeded else "No",
            "Comments": format_comments(row.comments, comment_mode),
        }
        if not selected_fields:
            records.append(full)
            continue
        records.append({f: full[f] for f in selected_fields if f in full})
    return records


def _frame(records: Sequence[dict[str, Any]], selected_fields: Sequence[str] | None) -> pd.DataFrame:
    if records:
        return pd.DataFrame(records)
    columns = [f for f in (selected_fields or EXPORT_FIELDS) if f in EXPORT_FIELDS]
    return pd.DataFrame(columns=columns)


def to_excel_bytes(
    records: Sequence[dict[str, Any]],
    selected_fields: Sequence[str] | None = None,
) -> bytes:
    df = _frame(records, selected_fields)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=EXPORT_SHEET_NAME)
        ws = writer.sheets[EXPORT_SHEET_NAME]
        for idx, column in enumerate(df.columns, start=1):
            width = EXPORT_COLUMN_WIDTHS.get(str(column), EXPORT_DEFAULT_COLUMN_WIDTH)
            ws.column_dimensions[get_column_letter(idx)].width = width
        ws.freeze_panes = "A2"
    return output.getvalue()


def to_csv_bytes(
    records: Sequence[dict[str, Any]],
    selected_fields: Sequence[str] | None = None,
    encoding: str = "utf-8",
) -> bytes:
    return _frame(records, selected_fields).to_csv(index=False).encode(encoding)


def format_duration(seconds: int) -> str:
    if not seconds:
        return "0h"
    hours, rem = divmod(int(seconds), 3600)
    return f"{hours}h {rem // 60}m"


def export_summary(rows: Sequence[IssueRow]) -> dict[str, Any]:
    """Headline figures shown above an exported table."""
    return {
        "total_issues": len(rows),
        "total_time_spent": format_duration(sum(r.time_spent_seconds for r in rows)),
        "total_estimate": format_duration(sum(r.estimate_seconds for r in rows)),
        "status_counts": dict(Counter(r.status or "Unknown" for r in rows)),
    }


# ------------------ PDF ------------------
def _cell_style():
    return ParagraphStyle("ReportCell", parent=getSampleStyleSheet()["BodyText"], fontSize=7, leading=8.5)


def _pdf_cell(column: str, value: Any, style: ParagraphStyle) -> Paragraph:
    text = escape(str(value if value is not None else "")).replace("\n", "<br/>")
    if column == "Exceeded" and value == "Yes":
        text = f'<font color="red"><b>{text}</b></font>'
    return Paragraph(text, style)


def _status_bar(status_counts: dict[str, int], width: float) -> Drawing:
    """Stacked bar of issue counts per status with a wrapped legend below it."""
    total = sum(status_counts.values()) or 1
    bar_h = 8 * mm
    slot = 40 * mm
    per_row = max(1, int(width // slot))
    legend_rows = -(-len(status_counts) // per_row)
    height = bar_h + legend_rows * 5 * mm + 2 * mm
    drawing = Drawing(width, height)
    bar_y = height - bar_h
    x = 0.0
    for idx, (status, count) in enumerate(status_counts.items()):
        fill = colors.HexColor(PDF_STATUS_COLORS[idx % len(PDF_STATUS_COLORS)])
        seg = count / total * width
        drawing.add(Rect(x, bar_y, seg, bar_h, fillColor=fill, strokeColor=None))
        x += seg
        lx = (idx % per_row) * slot
        ly = bar_y - (idx // per_row + 1) * 5 * mm
        drawing.add(Rect(lx, ly, 3 * mm, 3 * mm, fillColor=fill, strokeColor=None))
        drawing.add(String(lx + 5 * mm, ly + 0.5 * mm, f"{status} ({count})", fontSize=8))
    return drawing


def _pdf_table(records: Sequence[dict[str, Any]], width: float) -> Table:
    headers = list(records[0])
    style = _cell_style()
    data: list[list[Any]] = [headers]
    data.extend([_pdf_cell(h, rec.get(h), style) for h in headers] for rec in records)

    col_widths = [width / len(headers)] * len(headers)
    if "Comments" in headers and len(headers) > 1:
        comments_w = min(PDF_COMMENTS_COLUMN_WIDTH_MM * mm, width / 2)
        rest = (width - comments_w) / (len(headers) - 1)
        col_widths = [comments_w if h == "Comments" else rest for h in headers]

    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(PDF_HEADER_COLOR)),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 8),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor(PDF_ALT_ROW_COLOR)]),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("TOPPADDING", (0, 0), (-1, -1), 1),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
            ]
        )
    )
    return table


def to_pdf_bytes(
    rows: Sequence[IssueRow],
    comment_mode: str = "last",
    selected_fields: Sequence[str] | None = None,
    generated: date | None = None,
) -> bytes:
    """Landscape A4 report: header, totals, status breakdown bar, then the table.

    With no rows the document still carries the header and zero totals.
    """
    summary = export_summary(rows)
    records = prepare_export_rows(rows, comment_mode, selected_fields)
    generated = generated or datetime.now(pytz.UTC).date()

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title=PDF_TITLE,
    )
    styles = getSampleStyleSheet()
    story: list[Any] = [
        Paragraph(PDF_TITLE, styles["Heading1"]),
        Paragraph(f"Generated on: {generated.isoformat()}", styles["Normal"]),
        Paragraph(
            f"Total Issues: {summary['total_issues']} &nbsp;&nbsp; "
            f"Total Time Spent: {summary['total_time_spent']} &nbsp;&nbsp; "
            f"Total Estimate: {summary['total_estimate']}",
            styles["Normal"],
        ),
    ]
    if rows:
        story += [
            Spacer(1, 4 * mm),
            Paragraph("Status Breakdown:", styles["Normal"]),
            _status_bar(summary["status_counts"], doc.width),
        ]
    if records and records[0]:
        story += [Spacer(1, 4 * mm), _pdf_table(records, doc.width)]
    doc.build(story)
    return buf.getvalue()
