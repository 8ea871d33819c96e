"""PDF rendering of the reconciliation report sheet (A4 portrait, one-inch margins)."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .report import REPORT_TITLE, ArqueoReport, ReportSection, build_report_sheet, report_subtitle

logger = logging.getLogger(__name__)

PAGE_MARGIN = 1 * inch
PDF_CONTENT_TYPE = "application/pdf"


class ExportError(Exception):
    """The report could not be rendered to a document."""


@dataclass(frozen=True)
class ExportedDocument:
    filename: str
    content: bytes
    content_type: str = PDF_CONTENT_TYPE


def report_filename(report: ArqueoReport) -> str:
    return f"arqueo-{report.record.reconciliation_id}.pdf"


class ArqueoPdfRenderer:
    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "ArqueoTitle",
            parent=self.styles["Heading1"],
            fontSize=16,
            spaceAfter=6,
            alignment=1,
            fontName="Helvetica-Bold",
        )
        self.subtitle_style = ParagraphStyle(
            "ArqueoSubtitle",
            parent=self.styles["Normal"],
            fontSize=10,
            spaceAfter=12,
            alignment=1,
            textColor=colors.grey,
        )
        self.section_style = ParagraphStyle(
            "ArqueoSection",
            parent=self.styles["Heading3"],
            fontSize=12,
            spaceBefore=10,
            spaceAfter=6,
            fontName="Helvetica-Bold",
        )
        self.cell_style = ParagraphStyle(
            "ArqueoCell",
            parent=self.styles["Normal"],
            fontSize=8,
            leading=10,
        )
        self.label_style = ParagraphStyle(
            "ArqueoLabel",
            parent=self.cell_style,
            fontName="Helvetica-Bold",
        )

    def _cell(self, text: str, style: ParagraphStyle | None = None) -> Paragraph:
        return Paragraph(escape(str(text)), style or self.cell_style)

    def _rows_table(self, section: ReportSection, width: float) -> Table:
        data = [[self._cell(label, self.label_style), self._cell(value)] for label, value in section.rows]
        table = Table(data, colWidths=[width * 0.35, width * 0.65])
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        return table

    def _data_table(self, section: ReportSection, width: float) -> Table:
        header = [self._cell(column, self.label_style) for column in section.columns]
        body = [[self._cell(value) for value in row] for row in section.rows]
        col_width = width / len(section.columns)
        table = Table([header] + body, colWidths=[col_width] * len(section.columns), repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                ]
            )
        )
        return table

    def build_story(self, report: ArqueoReport, width: float) -> list:
        story = [
            Paragraph(REPORT_TITLE, self.title_style),
            Paragraph(escape(report_subtitle(report)), self.subtitle_style),
        ]
        for section in build_report_sheet(report):
            story.append(Paragraph(escape(section.title), self.section_style))
            if section.is_table:
                story.append(self._data_table(section, width))
            elif section.rows:
                story.append(self._rows_table(section, width))
            story.append(Spacer(1, 6))
        return story

    def render(self, report: ArqueoReport) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title=f"Arqueo {report.record.reconciliation_id}",
        )
        doc.build(self.build_story(report, doc.width))
        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes


def export_report_pdf(report: ArqueoReport | None) -> ExportedDocument:
    if report is None:
        logger.warning("PDF export requested without a loaded report")
        raise ExportError("No hay un reporte cargado para exportar.")
    try:
        content = ArqueoPdfRenderer().render(report)
    except Exception as exc:
        logger.exception("Failed to render PDF for reconciliation %s", report.record.reconciliation_id)
        raise ExportError(f"Error generando PDF: {exc}") from exc
    return ExportedDocument(filename=report_filename(report), content=content)
