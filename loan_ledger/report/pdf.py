"""PDF rendering of a :class:`ClientReport` with reportlab platypus."""

import logging
from pathlib import Path
from typing import IO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from loan_ledger.report.projection import INSTALLMENT_HEADERS, ClientReport, LoanSection, ReportField

logger = logging.getLogger(__name__)

MARGIN = 15 * mm
SECTION_FILL = colors.HexColor("#ECF0F1")
ALERT = "#C0392B"


def _numbered_canvas(brand: str) -> type[canvas.Canvas]:
    """Canvas class that stamps ``<brand> | Página i de n`` on every page."""

    class NumberedCanvas(canvas.Canvas):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self._page_states: list[dict] = []

        def showPage(self):  # noqa: N802
            self._page_states.append(dict(self.__dict__))
            self._startPage()

        def save(self):
            total = len(self._page_states)
            for state in self._page_states:
                self.__dict__.update(state)
                self._draw_footer(total)
                super().showPage()
            super().save()

        def _draw_footer(self, total: int) -> None:
            width, _ = self._pagesize
            self.setFont("Helvetica", 8)
            self.setFillColor(colors.grey)
            self.drawCentredString(width / 2, 10 * mm, f"{brand} | Página {self.getPageNumber()} de {total}")

    return NumberedCanvas


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("ReportTitle", parent=base["Title"], fontSize=16, spaceAfter=2 * mm),
        "subtitle": ParagraphStyle("ReportSubtitle", parent=base["Normal"], fontSize=8, textColor=colors.grey),
        "section": ParagraphStyle("Section", parent=base["Heading2"], fontSize=12, spaceBefore=4 * mm),
        "cell": ParagraphStyle("Cell", parent=base["Normal"], fontSize=8, leading=10),
        "label": ParagraphStyle("Label", parent=base["Normal"], fontSize=8, leading=10, fontName="Helvetica-Bold"),
        "body": ParagraphStyle("Body", parent=base["Normal"], fontSize=9, leading=12),
    }


def _field_table(fields: list[ReportField], styles: dict[str, ParagraphStyle], width: float) -> Table:
    """Two label/value pairs per row."""
    cells = []
    for f in fields:
        value = escape(f.value)
        if not f.valid:
            value = f'<font color="{ALERT}">{value}</font>'
        cells.append((Paragraph(escape(f.label), styles["label"]), Paragraph(value, styles["cell"])))

    rows = []
    for i in range(0, len(cells), 2):
        pair = cells[i : i + 2]
        row = [*pair[0], *(pair[1] if len(pair) > 1 else ("", ""))]
        rows.append(row)

    col = width / 4
    table = Table(rows, colWidths=[col * 0.8, col * 1.2, col * 0.8, col * 1.2])
    table.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
                ("TOPPADDING", (0, 0), (-1, -1), 2),
            ]
        )
    )
    return table


def _installment_table(section: LoanSection, styles: dict[str, ParagraphStyle], width: float) -> Table:
    rows = [[Paragraph(h, styles["label"]) for h in INSTALLMENT_HEADERS]]
    overdue_rows = []
    for index, row in enumerate(section.installments, start=1):
        rows.append([Paragraph(escape(text), styles["cell"]) for text in row.cells()])
        if row.is_overdue:
            overdue_rows.append(index)

    ratios = (0.06, 0.15, 0.15, 0.15, 0.17, 0.14, 0.18)
    table = Table(rows, colWidths=[width * r for r in ratios], repeatRows=1)
    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), SECTION_FILL),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for index in overdue_rows:
        commands.append(("BACKGROUND", (0, index), (-1, index), colors.HexColor("#FDEDEC")))
    table.setStyle(TableStyle(commands))
    return table


def _signature_block(report: ClientReport, styles: dict[str, ParagraphStyle], width: float) -> Table:
    line = "_" * 45
    rows = [
        [Paragraph(line, styles["body"]), Paragraph(line, styles["body"])],
        [Paragraph(escape(report.client_name), styles["cell"]), Paragraph("Responsável", styles["cell"])],
    ]
    table = Table(rows, colWidths=[width / 2, width / 2])
    table.setStyle(TableStyle([("ALIGN", (0, 0), (-1, -1), "CENTER")]))
    return table


def render_pdf(report: ClientReport, destination: str | Path | IO[bytes]) -> str | Path | IO[bytes]:
    """Lay out ``report`` as an A4 PDF.

    Parameters
    ----------
    report : ClientReport
        Output of :func:`build_client_report`.
    destination : str | Path | IO[bytes]
        File path or writable binary stream.

    Returns
    -------
    str | Path | IO[bytes]
        ``destination``, for chaining.
    """
    if isinstance(destination, Path):
        destination.parent.mkdir(parents=True, exist_ok=True)
        target = str(destination)
    else:
        target = destination

    doc = SimpleDocTemplate(
        target,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN + 5 * mm,
        title=report.title,
        author=report.brand,
    )
    styles = _styles()
    width = doc.width

    story = [
        Paragraph(escape(report.title), styles["title"]),
        Paragraph(escape(report.generated_at_text), styles["subtitle"]),
        Spacer(1, 4 * mm),
        Paragraph("Dados do Cliente", styles["section"]),
        _field_table(report.client_fields, styles, width),
        Paragraph("Histórico de Empréstimos", styles["section"]),
    ]

    if not report.loans:
        story.append(Paragraph(escape(report.empty_message), styles["body"]))
    for section in report.loans:
        story.append(Spacer(1, 3 * mm))
        story.append(_field_table(section.summary, styles, width))
        if section.installments:
            story.append(Spacer(1, 2 * mm))
            story.append(_installment_table(section, styles, width))

    story.append(Paragraph("Termos e Assinatura", styles["section"]))
    story.extend(Paragraph(escape(line), styles["body"]) for line in report.terms)
    story.append(Spacer(1, 15 * mm))
    story.append(_signature_block(report, styles, width))

    doc.build(story, canvasmaker=_numbered_canvas(report.brand))
    logger.info("Rendered report for %s (%d loans)", report.client_name, len(report.loans))
    return destination
