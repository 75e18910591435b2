"""
Paper Export Service - PDF Generation

Renders a resolved question paper in exam layout:
- Title and metadata header (Subject, Grade, Type)
- Optional instructions block
- Each question with its marks, content (text, verbatim markup, table)
  and sub-questions directly underneath
- A right-aligned total line as the last element of the document

Markup is written verbatim in a fixed-width style; it is never interpreted.
"""

import logging
from io import BytesIO
from typing import BinaryIO, List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Preformatted, Spacer, Table, TableStyle, Flowable,
)

from papers.schemas import ComposedQuestion, ResolvedPaper, TableData

log = logging.getLogger(__name__)

CONTENT_WIDTH_CM = 17  # A4 width minus 2cm margins


def _escape_html(text: str) -> str:
    """Escape HTML special characters so ReportLab Paragraph treats them as literal text."""
    if not text:
        return text or ""
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    return text


def _paragraph_text(text: str) -> str:
    """Escaped text with line breaks kept (ReportLab reflows bare newlines)."""
    return _escape_html(text).replace("\n", "<br/>")


# ─── Custom Flowables ───────────────────────────────────────────────────────────

class HorizontalLine(Flowable):
    """Draw a horizontal line across the page."""

    def __init__(self, width, thickness=1, color=colors.black):
        Flowable.__init__(self)
        self.width = width
        self.thickness = thickness
        self.color = color

    def draw(self):
        self.canv.setStrokeColor(self.color)
        self.canv.setLineWidth(self.thickness)
        self.canv.line(0, 0, self.width, 0)


# ─── Style Definitions ──────────────────────────────────────────────────────────

def get_custom_styles():
    """Paragraph styles for the question paper."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='PaperTitle',
        parent=styles['Heading1'],
        fontSize=16,
        textColor=colors.black,
        alignment=TA_CENTER,
        spaceAfter=6,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='PaperMeta',
        parent=styles['Normal'],
        fontSize=11,
        textColor=colors.black,
        alignment=TA_CENTER,
        spaceAfter=2,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='Instructions',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.black,
        alignment=TA_LEFT,
        leftIndent=20,
        spaceAfter=4,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='QuestionHeader',
        parent=styles['Normal'],
        fontSize=12,
        textColor=colors.black,
        alignment=TA_LEFT,
        spaceBefore=8,
        spaceAfter=4,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='SubQuestionHeader',
        parent=styles['QuestionHeader'],
        fontSize=11,
        leftIndent=20,
        spaceBefore=4,
    ))

    styles.add(ParagraphStyle(
        name='QuestionText',
        parent=styles['Normal'],
        fontSize=11,
        textColor=colors.black,
        alignment=TA_JUSTIFY,
        spaceAfter=6,
        fontName='Helvetica',
        leading=14,
    ))

    styles.add(ParagraphStyle(
        name='Markup',
        parent=styles['Code'],
        fontSize=10,
        fontName='Courier',
        leading=12,
        spaceAfter=6,
    ))

    styles.add(ParagraphStyle(
        name='TableCell',
        parent=styles['Normal'],
        fontSize=9,
        fontName='Helvetica',
        leading=11,
    ))

    styles.add(ParagraphStyle(
        name='TotalLine',
        parent=styles['Normal'],
        fontSize=12,
        textColor=colors.black,
        alignment=TA_RIGHT,
        spaceBefore=12,
        fontName='Helvetica-Bold',
    ))

    return styles


# ─── Story building ─────────────────────────────────────────────────────────────

def _label(question: ComposedQuestion, position: int) -> str:
    number = (question.number or "").strip()
    return number if number else str(position)


def _content_table(table: TableData, styles, indent_cm: float = 0) -> Optional[Table]:
    """
    Table content as a grid; ragged rows are padded so the grid stays rectangular.
    Returns None when there is not a single column to draw.
    """
    cell_style = styles['TableCell']
    width = max([len(table.headers)] + [len(row) for row in table.rows])
    if width == 0:
        return None

    def _row(cells: Sequence[str], bold: bool = False) -> list:
        padded = list(cells) + [""] * (width - len(cells))
        fmt = "<b>{}</b>" if bold else "{}"
        return [Paragraph(fmt.format(_escape_html(cell)), cell_style) for cell in padded]

    data = []
    if table.headers:
        data.append(_row(table.headers, bold=True))
    data.extend(_row(row) for row in table.rows)

    col_width = (CONTENT_WIDTH_CM - indent_cm) * cm / width
    tbl = Table(data, colWidths=[col_width] * width, hAlign='LEFT')
    commands = [
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ]
    if table.headers:
        commands.append(('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey))
    tbl.setStyle(TableStyle(commands))
    return tbl


def _append_content(story: list, question: ComposedQuestion, styles, indent_cm: float = 0) -> None:
    """description → text → markup → table, each only when present."""
    text_style, markup_style = styles["QuestionText"], styles["Markup"]
    if indent_cm:
        text_style = ParagraphStyle(name="QuestionTextIndented", parent=text_style, leftIndent=indent_cm * cm)
        markup_style = ParagraphStyle(name="MarkupIndented", parent=markup_style, leftIndent=indent_cm * cm)

    if question.description:
        story.append(Paragraph(_paragraph_text(question.description), text_style))
    if question.content.text:
        story.append(Paragraph(_paragraph_text(question.content.text), text_style))
    if question.content.markup:
        story.append(Preformatted(question.content.markup, markup_style))
    if question.content_types.has_table and question.content.table_data is not None:
        tbl = _content_table(question.content.table_data, styles, indent_cm=indent_cm)
        if tbl is not None:
            story.append(Spacer(1, 0.1*cm))
            story.append(tbl)
            story.append(Spacer(1, 0.2*cm))


def build_story(paper: ResolvedPaper, styles=None) -> Tuple[List[Flowable], int]:
    """
    Build the flowables for a paper in one top-to-bottom pass.

    Returns (story, total_marks). Only top-level question marks are totalled.
    """
    if styles is None:
        styles = get_custom_styles()
    story: List[Flowable] = []

    # ─── Header ─────────────────────────────────────────────────────────────────
    story.append(Paragraph(_escape_html(paper.title), styles['PaperTitle']))
    for label, value in (("Subject", paper.subject_name), ("Grade", paper.grade_label), ("Type", paper.assessment_type)):
        if value:
            story.append(Paragraph(f"{label}: {_escape_html(str(value))}", styles['PaperMeta']))
    story.append(Spacer(1, 0.3*cm))
    story.append(HorizontalLine(width=CONTENT_WIDTH_CM*cm, thickness=1.5))
    story.append(Spacer(1, 0.3*cm))

    # ─── Instructions ───────────────────────────────────────────────────────────
    if paper.instructions and paper.instructions.strip():
        story.append(Paragraph("<b>Instructions:</b>", styles['Normal']))
        story.append(Spacer(1, 0.2*cm))
        story.append(Paragraph(_paragraph_text(paper.instructions), styles['Instructions']))
        story.append(Spacer(1, 0.3*cm))
        story.append(HorizontalLine(width=CONTENT_WIDTH_CM*cm, thickness=1.5))
        story.append(Spacer(1, 0.5*cm))

    # ─── Questions ──────────────────────────────────────────────────────────────
    total = 0
    for position, question in enumerate(paper.questions, start=1):
        marks = question.marks or 0
        total += marks
        story.append(Paragraph(
            f"Question {_escape_html(_label(question, position))} [{marks} marks]",
            styles['QuestionHeader'],
        ))
        _append_content(story, question, styles)

        for sub_position, sub in enumerate(question.sub_questions, start=1):
            story.append(Paragraph(
                f"({_escape_html(_label(sub, sub_position))}) [{sub.marks or 0} marks]",
                styles['SubQuestionHeader'],
            ))
            _append_content(story, sub, styles, indent_cm=0.7)

        story.append(Spacer(1, 0.4*cm))

    # ─── Total ──────────────────────────────────────────────────────────────────
    story.append(Paragraph(f"Total: {total} marks", styles['TotalLine']))
    return story, total


# ─── Question Paper Generator ───────────────────────────────────────────────────

def render_question_paper(paper: ResolvedPaper, sink: BinaryIO) -> int:
    """
    Write the paper as a PDF into `sink`.
    Returns the total marks printed on the last line.
    """
    doc = SimpleDocTemplate(
        sink,
        pagesize=A4,
        rightMargin=2*cm,
        leftMargin=2*cm,
        topMargin=2*cm,
        bottomMargin=2*cm,
        title=paper.title,
    )
    story, total = build_story(paper)
    doc.build(story)
    log.info("Export: paper id=%s rendered, %s questions, %s marks", paper.id, len(paper.questions), total)
    return total


def generate_question_paper(paper: ResolvedPaper) -> BytesIO:
    """Render into an in-memory buffer positioned at the start. Returns BytesIO buffer containing the PDF."""
    buffer = BytesIO()
    render_question_paper(paper, buffer)
    buffer.seek(0)
    return buffer
