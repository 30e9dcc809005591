from __future__ import annotations

import re
from pathlib import Path

from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas

from bracketflow.config import get_settings
from bracketflow.core.models import AllocationReport
from bracketflow.printout.text import format_currency, format_percent, format_range


PAGE_WIDTH, PAGE_HEIGHT = LETTER
LEFT_MARGIN = 54
RIGHT_MARGIN = PAGE_WIDTH - LEFT_MARGIN
LINE_HEIGHT = 16
BOTTOM_MARGIN = 72

HEADER_FONT = "Helvetica-Bold"
BODY_FONT = "Helvetica"
SMALL_FONT = "Helvetica"

SUMMARY_ROWS = (
    ("gross", "Gross income"),
    ("deductions", "Deductions"),
    ("taxable_income", "Taxable income"),
    ("total_tax", "Total tax (at full fill)"),
)

# x offsets of the bracket table columns
COLUMNS = (
    ("Bracket", LEFT_MARGIN),
    ("Range", LEFT_MARGIN + 56),
    ("Rate", LEFT_MARGIN + 230),
    ("Income in bracket", LEFT_MARGIN + 290),
    ("Tax from bracket", LEFT_MARGIN + 410),
)


def _sanitize_segment(value: str) -> str:
    segment = re.sub(r"[^A-Za-z0-9]+", "-", value.strip().lower())
    segment = segment.strip("-")
    return segment or "schedule"


def _build_artifact_name(report: AllocationReport, label: str) -> str:
    income = int(report.taxable_income)
    return f"brackets_{_sanitize_segment(label)}_{income}.pdf"


def _resolve_output_path(out_path: str, report: AllocationReport, label: str) -> Path:
    requested = Path(out_path)
    artifact_root = Path(get_settings().artifact_root)
    if not artifact_root.is_absolute():
        artifact_root = Path.cwd() / artifact_root

    if requested.suffix.lower() == ".pdf":
        final_path = requested if requested.is_absolute() else artifact_root / requested
    else:
        base_dir = requested if requested.is_absolute() else artifact_root / requested
        if requested.suffix:
            base_dir = base_dir.parent
        final_path = base_dir / _build_artifact_name(report, label)

    final_path.parent.mkdir(parents=True, exist_ok=True)
    return final_path


def _set_metadata(pdf: canvas.Canvas, report: AllocationReport, label: str) -> None:
    pdf.setTitle(f"Bracket-by-bracket math - {label}")
    pdf.setSubject(f"Taxable income {format_currency(report.taxable_income)}")
    pdf.setCreator("bracketflow")


def _draw_summary(pdf: canvas.Canvas, report: AllocationReport, label: str) -> float:
    pdf.setFont(HEADER_FONT, 16)
    pdf.drawString(LEFT_MARGIN, PAGE_HEIGHT - 72, "Bracket-by-bracket math")
    pdf.setFont(SMALL_FONT, 9)
    pdf.drawString(LEFT_MARGIN, PAGE_HEIGHT - 88, f"Schedule: {label}")

    y = PAGE_HEIGHT - 116
    pdf.setFont(BODY_FONT, 10)
    for key, caption in SUMMARY_ROWS:
        pdf.drawString(LEFT_MARGIN, y, caption)
        pdf.drawRightString(RIGHT_MARGIN, y, format_currency(getattr(report, key)))
        y -= LINE_HEIGHT
    pdf.drawString(LEFT_MARGIN, y, "Average rate")
    pdf.drawRightString(RIGHT_MARGIN, y, format_percent(report.avg_rate))
    y -= LINE_HEIGHT
    pdf.drawString(LEFT_MARGIN, y, "Marginal rate")
    pdf.drawRightString(RIGHT_MARGIN, y, format_percent(report.marginal_rate))
    return y - 2 * LINE_HEIGHT


def _draw_table_header(pdf: canvas.Canvas, y: float) -> float:
    pdf.setFont(HEADER_FONT, 10)
    for caption, x in COLUMNS:
        pdf.drawString(x, y, caption)
    return y - LINE_HEIGHT


def _draw_lines(pdf: canvas.Canvas, report: AllocationReport, y: float) -> None:
    y = _draw_table_header(pdf, y)
    pdf.setFont(BODY_FONT, 10)
    for line in report.lines:
        if y < BOTTOM_MARGIN:
            pdf.showPage()
            y = _draw_table_header(pdf, PAGE_HEIGHT - 72)
            pdf.setFont(BODY_FONT, 10)
        cells = (
            str(line.index + 1),
            format_range(line.lower, line.upper),
            f"{round(line.rate * 100)}%",
            format_currency(line.amount),
            format_currency(line.tax),
        )
        for (_, x), cell in zip(COLUMNS, cells):
            pdf.drawString(x, y, cell)
        y -= LINE_HEIGHT

    pdf.setFont(HEADER_FONT, 10)
    pdf.drawString(LEFT_MARGIN, y - 4, "Totals")
    pdf.drawString(COLUMNS[3][1], y - 4, format_currency(report.total_amount))
    pdf.drawString(COLUMNS[4][1], y - 4, format_currency(report.total_tax))


def render_bracket_pdf(out_path: str, report: AllocationReport, label: str = "custom") -> str:
    """Render the bracket table for ``report`` and return the filesystem path."""

    output_path = _resolve_output_path(out_path, report, label)
    pdf = canvas.Canvas(str(output_path), pagesize=LETTER)

    _set_metadata(pdf, report, label)
    y = _draw_summary(pdf, report, label)
    _draw_lines(pdf, report, y)

    pdf.showPage()
    pdf.save()
    return str(output_path)
