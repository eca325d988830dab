"""
utils/export.py — Report renderers: CSV, PDF (reportlab), JSON and Excel (openpyxl).

Plantings reports are a list of flat {label: value} rows. Analytics reports
are an ordered {section_key: result} mapping; every section is laid out as a
small table by section_table(), which CSV, PDF and Excel all share so the
three formats carry the same values. JSON dumps the data as-is.

PDF layout:
- Cover block: report name + generation timestamp
- Plantings: one table, header row repeated on every page, alternating row
  shading, trailing record count
- Analytics: one titled table per section, with a page break before a
  section when too little vertical space is left
- "Página N de M" footer on every page, drawn once the page count is known
"""

import csv
import io
import json
import logging
import re
from datetime import date, datetime
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, CondPageBreak,
)

from models import SECTION_LABELS

logger = logging.getLogger(__name__)


MIMETYPES = {
    'csv': 'text/csv',
    'pdf': 'application/pdf',
    'json': 'application/json',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


class ReportError(Exception):
    """Base class for report rendering failures."""


class UnsupportedFormatError(ReportError):
    """The requested output format has no renderer."""


class RenderError(ReportError):
    """The rendering library failed; no partial output is returned."""


# Field key → display label for analytics sections
FIELD_LABELS = {
    'period': 'Período',
    'total_plantings': 'Total Siembras',
    'harvested_count': 'Cosechadas',
    'active_count': 'Activas',
    'efficiency_rate': 'Eficiencia %',
    'avg_days_to_harvest': 'Promedio Días Cosecha',
    'plant_name': 'Planta',
    'total_count': 'Total',
    'success_rate': 'Tasa Éxito %',
    'avg_harvest_time': 'Días hasta Cosecha',
    'avg_dome_time': 'Días hasta Cúpula',
    'avg_light_time': 'Días hasta Luz',
    'overall_efficiency': 'Eficiencia General %',
    'loss_rate': 'Tasa de Pérdida %',
    'active_rate': 'Tasa Activa %',
    'month': 'Mes',
    'planted': 'Plantadas',
    'harvested': 'Cosechadas',
    'efficiency': 'Eficiencia %',
    'tray_number': 'Bandeja',
    'harvested_plantings': 'Cosechadas',
    'average_cycle_length': 'Duración Media del Ciclo',
    'seasonal_patterns': 'Patrones Estacionales',
    'best_performing_seasons': 'Mejores Temporadas',
    'seasonal_efficiency': 'Eficiencia Estacional',
    'spring': 'Primavera',
    'summer': 'Verano',
    'fall': 'Otoño',
    'winter': 'Invierno',
    'cycle_predictability': 'Predictibilidad',
    'predictability_score': 'Puntuación',
    'consistency_rating': 'Consistencia',
    'recommendations': 'Recomendaciones',
    'expected_harvests_30_days': 'Cosechas Esperadas 30 días',
    'expected_harvests_60_days': 'Cosechas Esperadas 60 días',
    'expected_harvests_90_days': 'Cosechas Esperadas 90 días',
    'recommended_planting_schedule': 'Calendario Recomendado',
}

# Column order of list-shaped sections (kept even when the list is empty)
LIST_SECTION_FIELDS = {
    'top_plants': ('plant_name', 'total_count', 'harvested_count', 'success_rate'),
    'monthly_trends': ('month', 'planted', 'harvested', 'efficiency'),
    'tray_performance': ('tray_number', 'total_plantings', 'harvested_plantings', 'efficiency'),
}

# Header row for mapping-shaped sections that read as a two-column table
DICT_SECTION_HEADERS = {
    'status_distribution': ('Estado', 'Cantidad'),
}

NESTED_SEPARATOR = ' / '
LIST_SEPARATOR = '; '


def field_label(key):
    """Display label for a field key; unknown keys (e.g. status codes) are kept."""
    return FIELD_LABELS.get(key, key)


def section_label(key):
    return SECTION_LABELS.get(key, key)


def _cell(value):
    """Scalar cell value; lists of scalars collapse into one cell."""
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(str(v) for v in value)
    return value


def _flatten(mapping, prefix=''):
    """Flatten nested mappings into [label, value] rows."""
    rows = []
    for key, value in mapping.items():
        label = f"{prefix}{NESTED_SEPARATOR}{field_label(key)}" if prefix else field_label(key)
        if isinstance(value, dict):
            rows.extend(_flatten(value, label))
        else:
            rows.append([label, _cell(value)])
    return rows


def section_table(key, value):
    """
    Lay out one analytics section as (header_row, rows).

    - list of mappings → mini-table, one column per field
    - mapping          → [label, value] lines, nested mappings flattened
    - anything else    → a single value line
    header_row is None when the section has no column header.
    """
    if isinstance(value, list):
        fields = LIST_SECTION_FIELDS.get(key)
        if fields is None and value and isinstance(value[0], dict):
            fields = tuple(value[0].keys())
        if fields is None:
            return None, [[_cell(item)] for item in value]
        header = [field_label(f) for f in fields]
        return header, [[_cell(item.get(f)) for f in fields] for item in value]

    if isinstance(value, dict):
        header = DICT_SECTION_HEADERS.get(key)
        return (list(header) if header else None), _flatten(value)

    return None, [[section_label(key), _cell(value)]]


def _headers(rows, config):
    """Plantings header: enabled column labels, falling back to the row keys."""
    labels = [col.label for col in config.enabled_columns()]
    if labels:
        return labels
    return list(rows[0].keys()) if rows else []


# ========================================
# CSV
# ========================================

def render_csv(data, config):
    """Render as UTF-8 CSV text; quoting follows standard CSV escaping."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')

    if config.type == 'plantings':
        headers = _headers(data, config)
        writer.writerow(headers)
        for row in data:
            writer.writerow([row.get(h, '') for h in headers])
    else:
        for index, (key, value) in enumerate(data.items()):
            if index:
                writer.writerow([])
            header, rows = section_table(key, value)
            writer.writerow([section_label(key).upper()])
            if header:
                writer.writerow(header)
            writer.writerows(rows)

    return buffer.getvalue().encode('utf-8')


# ========================================
# JSON
# ========================================

def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_json(data):
    """Pretty-printed JSON of the in-memory result, key order preserved."""
    text = json.dumps(data, indent=2, ensure_ascii=False, default=_json_default)
    return text.encode('utf-8')


# ========================================
# PDF
# ========================================

HEADER_GREEN = colors.Color(34 / 255, 197 / 255, 94 / 255)
ROW_SHADE = colors.HexColor('#F9FAFB')
GRID_GREY = colors.HexColor('#E2E8F0')

# Remaining height below which a new analytics section starts a new page
SECTION_MIN_SPACE = 80 * mm


class NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so every footer can show the page total."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_page_footer(page_count)
            super().showPage()
        super().save()

    def draw_page_footer(self, page_count):
        width, _ = self._pagesize
        self.setFont('Helvetica', 9)
        self.drawRightString(width - 15 * mm, 8 * mm,
                             f"Página {self._pageNumber} de {page_count}")


def _pdf_styles():
    styles = getSampleStyleSheet()
    cell = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10)
    header = ParagraphStyle('HeaderCell', parent=cell, fontName='Helvetica-Bold',
                            textColor=colors.white)
    return styles, cell, header


def _pdf_table(header, rows, cell_style, header_style, shade=True):
    body = [[Paragraph(escape(str(v)), cell_style) for v in row] for row in rows]
    if header:
        body.insert(0, [Paragraph(escape(str(h)), header_style) for h in header])

    table = Table(body, repeatRows=1 if header else 0, hAlign='LEFT')
    commands = [
        ('GRID', (0, 0), (-1, -1), 0.25, GRID_GREY),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]
    first_body_row = 0
    if header:
        commands.append(('BACKGROUND', (0, 0), (-1, 0), HEADER_GREEN))
        first_body_row = 1
    if shade and len(body) > first_body_row:
        commands.append(('ROWBACKGROUNDS', (0, first_body_row), (-1, -1), [colors.white, ROW_SHADE]))
    table.setStyle(TableStyle(commands))
    return table


def _plantings_story(data, config, styles, cell_style, header_style):
    if not data:
        return [Paragraph('No hay datos para mostrar', styles['Normal'])]

    headers = _headers(data, config)
    rows = [[row.get(h, '-') for h in headers] for row in data]
    return [
        _pdf_table(headers, rows, cell_style, header_style),
        Spacer(1, 6 * mm),
        Paragraph(f"Total de registros: {len(data)}", styles['Normal']),
    ]


def _analytics_story(data, styles, cell_style, header_style):
    story = []
    for key, value in data.items():
        story.append(CondPageBreak(SECTION_MIN_SPACE))
        story.append(Paragraph(escape(section_label(key)), styles['Heading2']))
        header, rows = section_table(key, value)
        if rows or header:
            story.append(_pdf_table(header, rows, cell_style, header_style))
        else:
            story.append(Paragraph('Sin datos', styles['Normal']))
        story.append(Spacer(1, 6 * mm))
    if not data:
        story.append(Paragraph('No hay datos para mostrar', styles['Normal']))
    return story


def _pdf_story(data, config, generated_at):
    styles, cell_style, header_style = _pdf_styles()
    story = [
        Paragraph(escape(config.name), styles['Title']),
        Paragraph(f"Generado: {generated_at.strftime('%d/%m/%Y %H:%M')}", styles['Normal']),
        Spacer(1, 8 * mm),
    ]
    if config.type == 'plantings':
        story.extend(_plantings_story(data, config, styles, cell_style, header_style))
    else:
        story.extend(_analytics_story(data, styles, cell_style, header_style))
    return story


def render_pdf(data, config, generated_at):
    """Render a PDF; any reportlab failure surfaces as RenderError."""
    buffer = io.BytesIO()
    pagesize = landscape(A4) if config.type == 'plantings' else A4
    try:
        doc = SimpleDocTemplate(
            buffer, pagesize=pagesize,
            leftMargin=20 * mm, rightMargin=20 * mm, topMargin=20 * mm, bottomMargin=18 * mm,
            title=config.name,
        )
        doc.build(_pdf_story(data, config, generated_at), canvasmaker=NumberedCanvas)
    except Exception as exc:
        logger.exception("PDF rendering failed for report %r", config.name)
        raise RenderError(f"PDF rendering failed: {exc}") from exc
    return buffer.getvalue()


# ========================================
# Excel
# ========================================

HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='22C55E', end_color='22C55E', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
TITLE_FONT = Font(name='Calibri', bold=True, size=14)
ROW_FILL = PatternFill(start_color='F9FAFB', end_color='F9FAFB', fill_type='solid')
CELL_BORDER = Border(
    bottom=Side(style='thin', color='E2E8F0'),
    right=Side(style='thin', color='E2E8F0'),
)

INVALID_SHEET_CHARS = re.compile(r'[\[\]:*?/\\]')


def _sheet_title(label):
    return INVALID_SHEET_CHARS.sub('', label)[:31] or 'Hoja'


def _write_table(ws, start_row, header, rows):
    """Write an optional styled header plus rows; returns the next free row."""
    row_idx = start_row
    if header:
        for col_idx, name in enumerate(header, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=name)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGNMENT
        row_idx += 1

    for offset, values in enumerate(rows):
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = CELL_BORDER
            if offset % 2:
                cell.fill = ROW_FILL
        row_idx += 1
    return row_idx


def _fit_columns(ws, count, width=22):
    for col_idx in range(1, count + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width


def _build_workbook(data, config, generated_at):
    wb = Workbook()

    if config.type == 'plantings':
        ws = wb.active
        ws.title = 'Siembras'
        headers = _headers(data, config)
        _write_table(ws, 1, headers, [[row.get(h, '') for h in headers] for row in data])
        _fit_columns(ws, len(headers))
        ws.freeze_panes = 'A2'
    else:
        ws = wb.active
        ws.title = 'Resumen'
        ws.cell(row=1, column=1, value=config.name).font = TITLE_FONT
        ws.cell(row=2, column=1, value=f"Generado: {generated_at.strftime('%d/%m/%Y %H:%M')}")
        for key, value in data.items():
            section_ws = wb.create_sheet(title=_sheet_title(section_label(key)))
            header, rows = section_table(key, value)
            _write_table(section_ws, 1, header, rows)
            width = len(header) if header else max((len(r) for r in rows), default=1)
            _fit_columns(section_ws, width, width=30)
    return wb


def render_xlsx(data, config, generated_at):
    """Render a workbook: one sheet for plantings, one sheet per analytics section."""
    buffer = io.BytesIO()
    try:
        _build_workbook(data, config, generated_at).save(buffer)
    except Exception as exc:
        logger.exception("Excel rendering failed for report %r", config.name)
        raise RenderError(f"Excel rendering failed: {exc}") from exc
    return buffer.getvalue()


# ========================================
# Dispatch
# ========================================

def render(data, config, generated_at):
    """Render report data in config.format. Unknown formats raise UnsupportedFormatError."""
    fmt = (config.format or '').lower()
    if fmt == 'csv':
        return render_csv(data, config)
    if fmt == 'json':
        return render_json(data)
    if fmt == 'pdf':
        return render_pdf(data, config, generated_at)
    if fmt == 'xlsx':
        return render_xlsx(data, config, generated_at)
    raise UnsupportedFormatError(f"Unsupported report format: {config.format!r}")
