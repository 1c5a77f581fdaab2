import os
import io
import logging
from typing import Dict
from xml.sax.saxutils import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from models.schemas import Schedule, SUBJECT_LABELS, TIME_SLOTS

logger = logging.getLogger(__name__)

# Unicode TTF for non-Latin names (e.g. Arabic); Helvetica otherwise
FONT_PATH_ENV = "PDF_FONT_PATH"

FONT_NAME = "ScheduleSans"
FALLBACK_FONT = "Helvetica"
FALLBACK_FONT_BOLD = "Helvetica-Bold"

def _ensure_fonts():
    """Registers the configured TTF font once. Returns (regular, bold) font names."""
    font_path = os.environ.get(FONT_PATH_ENV)
    if not font_path:
        return FALLBACK_FONT, FALLBACK_FONT_BOLD
    if FONT_NAME in pdfmetrics.getRegisteredFontNames():
        return FONT_NAME, FONT_NAME
    if not os.path.exists(font_path):
        logger.error("PDF font not found at %s, using %s", font_path, FALLBACK_FONT)
        return FALLBACK_FONT, FALLBACK_FONT_BOLD
    pdfmetrics.registerFont(TTFont(FONT_NAME, font_path))
    return FONT_NAME, FONT_NAME

def _styles(font, font_bold):
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle('ScheduleTitle', parent=styles['Heading1'], fontName=font_bold, alignment=1, fontSize=16),
        "header": ParagraphStyle('ScheduleHeader', parent=styles['Normal'], fontName=font_bold, fontSize=10, textColor=colors.white),
        "cell": ParagraphStyle('ScheduleCell', parent=styles['Normal'], fontName=font, fontSize=9),
        "empty": ParagraphStyle('ScheduleEmpty', parent=styles['Normal'], fontName=font, fontSize=9, textColor=colors.red),
    }

def _build(elements):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), rightMargin=20, leftMargin=20, topMargin=20, bottomMargin=20)
    doc.build(elements)
    buffer.seek(0)
    return buffer

TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.darkblue), # Header bg
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
    ('GRID', (0, 0), (-1, -1), 1, colors.black),
    ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.whitesmoke, colors.lightgrey]),
])

def generate_schedule_pdf(schedule: Schedule, teacher_names: Dict[str, str]):
    """
    Renders the class timetable: one row per class, one column per slot.

    Each cell shows the subject and the teacher; unassigned cells are
    marked in red so gaps stay visible on paper.
    """
    font, font_bold = _ensure_fonts()
    st = _styles(font, font_bold)

    elements = [Paragraph("Class Schedule", st["title"]), Spacer(1, 15)]

    slot_labels = {ts.key: ts.label for ts in schedule.time_slots}
    headers = ["Class"] + [f"{slot.value} ({slot_labels.get(slot, '')})" for slot in TIME_SLOTS]
    data = [[Paragraph(escape(h), st["header"]) for h in headers]]

    for row in schedule.rows:
        level = row.classroom.level
        class_text = f"<b>{escape(row.classroom.location)}</b>"
        if level:
            class_text += f"<br/>Level {level.level} / Stage {level.stage}"
        line = [Paragraph(class_text, st["cell"])]

        for slot in TIME_SLOTS:
            cell = row.cells[slot]
            subject = escape(SUBJECT_LABELS[cell.subject])
            if cell.teacher_id:
                teacher = escape(teacher_names.get(cell.teacher_id, cell.teacher_id))
                line.append(Paragraph(f"<b>{subject}</b><br/>{teacher}", st["cell"]))
            else:
                line.append(Paragraph(f"<b>{subject}</b><br/>Unassigned", st["empty"]))
        data.append(line)

    table = Table(data, colWidths=[200] + [190] * len(TIME_SLOTS))
    table.setStyle(TABLE_STYLE)
    elements.append(table)
    return _build(elements)

def generate_teacher_pdf(teacher_name: str, schedule: Schedule, teacher_id: str):
    """Renders one teacher's day: the class they teach in each slot."""
    font, font_bold = _ensure_fonts()
    st = _styles(font, font_bold)

    elements = [Paragraph(f"Teaching Plan: {escape(teacher_name)}", st["title"]), Spacer(1, 15)]

    data = [[Paragraph(h, st["header"]) for h in ["Slot", "Time", "Class", "Subject"]]]
    for ts in schedule.time_slots:
        row = next((r for r in schedule.rows if r.cells[ts.key].teacher_id == teacher_id), None)
        if row:
            data.append([
                Paragraph(f"<b>{ts.key.value}</b>", st["cell"]),
                Paragraph(escape(ts.label), st["cell"]),
                Paragraph(escape(row.classroom.location), st["cell"]),
                Paragraph(escape(SUBJECT_LABELS[row.cells[ts.key].subject]), st["cell"]),
            ])
        else:
            data.append([Paragraph(f"<b>{ts.key.value}</b>", st["cell"]), Paragraph(escape(ts.label), st["cell"]), "-", "-"])

    table = Table(data, colWidths=[60, 140, 300, 200])
    table.setStyle(TABLE_STYLE)
    elements.append(table)
    return _build(elements)
