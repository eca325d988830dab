"""
report_engine.py — Report pipeline for plantings and analytics reports.

Pipeline:
    plantings → apply_filters → apply_sorting → project_columns → render   (plantings mode)
    plantings → apply_filters → analytics.run_sections        → render   (analytics mode)

Filter rules (a planting passes only if ALL hold):
- planting date within [date_range.start, date_range.end], inclusive
- status in filters.status, when that list is non-empty
- plant name (missing → '') in filters.plant_names, when non-empty
- tray (missing → '') in filters.trays, when non-empty
- quantity (missing → 0) within quantity_range min/max, for each bound that is set

A planting missing an optional field therefore fails a non-empty filter on
that field unless the filter lists ''.

Sorting is a stable multi-key sort: earlier keys win, full ties keep input order.
"""

import logging
import re
from dataclasses import replace
from datetime import datetime, timezone

import analytics
from models import GeneratedReport, PLACEHOLDER, status_label
from utils.dates import DATE_PRESETS, days_between, format_date, resolve_date_range, to_utc
from utils.export import render, MIMETYPES

logger = logging.getLogger(__name__)

MIN_INSTANT = datetime.min.replace(tzinfo=timezone.utc)

DEFAULT_FILE_STEM = 'reporte'

# Field kinds for sorting and formatting
DATE_FIELDS = ('date_planted', 'expected_harvest', 'dome_date', 'light_date',
               'created_at', 'updated_at')
NUMBER_FIELDS = ('quantity', 'yield_weight')
TEXT_FIELDS = ('plant_name', 'status', 'tray_number', 'notes')


def now_utc():
    return datetime.now(timezone.utc)


# ========================================
# Filter Engine
# ========================================

def _passes(planting, filters, date_range):
    if not date_range.contains(planting.date_planted):
        return False

    if filters.status and planting.status not in filters.status:
        return False

    if filters.plant_names and (planting.plant_name or '') not in filters.plant_names:
        return False

    if filters.trays and (planting.tray_number or '') not in filters.trays:
        return False

    bounds = filters.quantity_range
    if bounds is not None:
        quantity = planting.quantity or 0
        if bounds.min is not None and quantity < bounds.min:
            return False
        if bounds.max is not None and quantity > bounds.max:
            return False

    return True


def apply_filters(plantings, filters, date_range):
    """Return a new list of the plantings that pass every filter, in input order."""
    if date_range.is_inverted:
        # No planting date satisfies start > end
        logger.warning("Inverted date range %s > %s: no plantings will match",
                       date_range.start.isoformat(), date_range.end.isoformat())
    return [p for p in plantings if _passes(p, filters, date_range)]


# ========================================
# Sort Engine
# ========================================

def _sort_key(field, now):
    """Typed key function for one sort field, or None for unknown fields."""
    if field in DATE_FIELDS:
        return lambda p: getattr(p, field) or MIN_INSTANT
    if field in NUMBER_FIELDS:
        return lambda p: getattr(p, field) or 0
    if field in TEXT_FIELDS:
        return lambda p: getattr(p, field) or ''
    if field == 'days_from_planting':
        return lambda p: days_between(p.date_planted, now)
    return None


def apply_sorting(plantings, sorting, now=None):
    """
    Stable multi-key sort. Returns a new list; the input is left untouched.

    Applies one stable sort per key from the last key to the first, so the
    first key decides and later keys only break its ties. Unknown fields
    are ignored.
    """
    now = to_utc(now) if now else now_utc()
    result = list(plantings)
    for sort_config in reversed(sorting):
        key = _sort_key(sort_config.field, now)
        if key is None:
            logger.debug("Ignoring unknown sort field %r", sort_config.field)
            continue
        result.sort(key=key, reverse=(sort_config.direction == 'desc'))
    return result


# ========================================
# Column Projector
# ========================================

def _or_placeholder(value):
    return PLACEHOLDER if value is None or value == '' else value


def _column_value(planting, key, now):
    if key == 'plant_name':
        return _or_placeholder(planting.plant_name)
    if key == 'status':
        return status_label(planting.status)
    if key == 'days_from_planting':
        return days_between(planting.date_planted, now)
    if key in DATE_FIELDS:
        return format_date(getattr(planting, key))
    if key == 'efficiency':
        return '100%' if planting.status == 'HARVESTED' else PLACEHOLDER
    if key in ('tray_number', 'quantity', 'yield_weight', 'notes'):
        return _or_placeholder(getattr(planting, key))
    return PLACEHOLDER


def project_columns(plantings, columns, now):
    """
    Map each planting to a flat {label: value} row of the enabled columns.

    Column order follows the order of `columns`.
    """
    enabled = [col for col in columns if col.enabled]
    now = to_utc(now)
    return [
        {col.label: _column_value(p, col.key, now) for col in enabled}
        for p in plantings
    ]


# ========================================
# Pipeline entry points
# ========================================

def generate_plantings_report(plantings, config, now=None):
    """Filter, sort and project plantings into flat rows."""
    now = to_utc(now) if now else now_utc()
    filtered = apply_filters(plantings, config.filters, config.date_range)
    if config.sorting:
        filtered = apply_sorting(filtered, config.sorting, now)
    return project_columns(filtered, config.enabled_columns(), now)


def generate_analytics_report(plantings, config, now=None):
    """Filter plantings and run every enabled section in order."""
    now = to_utc(now) if now else now_utc()
    filtered = apply_filters(plantings, config.filters, config.date_range)
    return analytics.run_sections(filtered, config.enabled_sections(), config.date_range, now)


def sanitize_report_name(name):
    """Strip everything but letters, digits and spaces; spaces → '_'."""
    safe = re.sub(r'[^a-zA-Z0-9\s]', '', name)
    return re.sub(r'\s+', '_', safe)


def generate_file_name(name, fmt, today):
    """
    File name for a rendered report.

    Example: ("Q1 Report #1!", "csv", 2024-03-01) → "Q1_Report_1_2024-03-01.csv"
    A name with nothing left after sanitizing becomes "reporte".
    """
    stem = sanitize_report_name(name)
    if not stem.strip('_'):
        stem = DEFAULT_FILE_STEM
    return f"{stem}_{today.strftime('%Y-%m-%d')}.{fmt}"


def default_report_name(report_type, now):
    return f"Reporte {report_type} - {format_date(now)}"


def current_date_range(date_range, now):
    """Re-anchor a named preset at `now`; custom and unnamed ranges are kept."""
    preset = date_range.preset
    if preset and preset != 'custom' and preset in DATE_PRESETS:
        return resolve_date_range(preset, now)
    return date_range


def generate_report(plantings, config, now=None):
    """
    Run the full pipeline for a config and render it.

    The config is not modified: the report runs on a copy with the default
    name filled in, the format lowercased and any named date preset resolved
    against `now`.

    Returns a GeneratedReport holding the data and the rendered bytes.
    Raises UnsupportedFormatError or RenderError from the renderer.
    """
    now = to_utc(now) if now else now_utc()
    config = replace(
        config,
        name=config.name or default_report_name(config.type, now),
        format=(config.format or '').lower(),
        date_range=current_date_range(config.date_range, now),
    )

    if config.type == 'plantings':
        data = generate_plantings_report(plantings, config, now)
        logger.info("Plantings report %r: %d of %d plantings selected",
                    config.name, len(data), len(plantings))
    else:
        data = generate_analytics_report(plantings, config, now)
        logger.info("Analytics report %r: %d sections over %d plantings",
                    config.name, len(data), len(plantings))

    content = render(data, config, now)
    return GeneratedReport(
        config=config,
        data=data,
        generated_at=now,
        file_name=generate_file_name(config.name, config.format, now),
        content=content,
        mimetype=MIMETYPES[config.format],
    )
