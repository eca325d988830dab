"""
utils/validators.py — Validation of report config payloads received over HTTP.

Validates:
- Report mode (plantings / analytics)
- Date range (named preset, or explicit start/end with start <= end)
- Columns and sort fields (known keys, asc/desc directions)
- Analytics sections (known calculator keys)
- Filters (lists of strings, numeric quantity bounds)

Columns and sections may be given as plain keys; labels then come from the
defaults. Missing columns/sections fall back to the enabled defaults.
"""

from datetime import datetime

from analytics import SECTION_CALCULATORS
from models import (
    REPORT_MODES, STATUSES, AnalyticsSection, Planting, QuantityRange, ReportColumn,
    ReportConfig, ReportFilters, SortConfig, DEFAULT_ANALYTICS_SECTIONS,
    DEFAULT_PLANTING_COLUMNS, default_columns, default_sections,
)
from report_engine import default_report_name
from utils.dates import DATE_PRESETS, resolve_date_range


class ValidationError(ValueError):
    """An incoming report config payload is malformed."""


COLUMN_DEFAULTS = {col.key: col for col in DEFAULT_PLANTING_COLUMNS}
SECTION_DEFAULTS = {s.key: s for s in DEFAULT_ANALYTICS_SECTIONS}


def _string_list(value, name):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"'{name}' must be a list of strings")
    return value


def _number(value, name):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"'{name}' must be a number")
    return value


def _integer(value, name):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{name}' must be an integer")
    return value


def validate_date_range(payload, now: datetime):
    payload = payload or {}
    if not isinstance(payload, dict):
        raise ValidationError("'date_range' must be an object")

    preset = payload.get('preset')
    if preset is None:
        preset = 'custom' if payload.get('start') or payload.get('end') else 'last_month'
    if preset not in DATE_PRESETS:
        raise ValidationError(f"Unknown date range preset: {preset!r}")

    try:
        date_range = resolve_date_range(preset, now, payload.get('start'), payload.get('end'))
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if date_range.is_inverted:
        raise ValidationError("Date range start is after its end")
    return date_range


def validate_filters(payload):
    payload = payload or {}
    if not isinstance(payload, dict):
        raise ValidationError("'filters' must be an object")

    statuses = _string_list(payload.get('status'), 'filters.status')
    unknown = [s for s in statuses if s not in STATUSES]
    if unknown:
        raise ValidationError(f"Unknown status filter values: {', '.join(unknown)}")

    quantity_range = None
    bounds = payload.get('quantity_range')
    if bounds:
        if not isinstance(bounds, dict):
            raise ValidationError("'filters.quantity_range' must be an object")
        quantity_range = QuantityRange(
            min=_number(bounds.get('min'), 'filters.quantity_range.min'),
            max=_number(bounds.get('max'), 'filters.quantity_range.max'),
        )

    return ReportFilters(
        status=statuses,
        plant_names=_string_list(payload.get('plant_names'), 'filters.plant_names'),
        trays=_string_list(payload.get('trays'), 'filters.trays'),
        quantity_range=quantity_range,
    )


def validate_columns(payload):
    if payload is None:
        return default_columns(enabled_only=True)
    if not isinstance(payload, list):
        raise ValidationError("'columns' must be a list")

    columns = []
    for item in payload:
        if isinstance(item, str):
            item = {'key': item}
        if not isinstance(item, dict) or 'key' not in item:
            raise ValidationError("Each column needs a 'key'")
        default = COLUMN_DEFAULTS.get(item['key'])
        if default is None:
            raise ValidationError(f"Unknown column: {item['key']!r}")
        columns.append(ReportColumn(
            key=default.key,
            label=item.get('label') or default.label,
            enabled=bool(item.get('enabled', True)),
            sortable=default.sortable,
        ))
    return columns


def validate_sorting(payload):
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValidationError("'sorting' must be a list")

    sorting = []
    for item in payload:
        if not isinstance(item, dict) or 'field' not in item:
            raise ValidationError("Each sort entry needs a 'field'")
        direction = item.get('direction', 'asc')
        if direction not in ('asc', 'desc'):
            raise ValidationError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")
        sorting.append(SortConfig(field=item['field'], direction=direction))
    return sorting


def validate_sections(payload):
    if payload is None:
        return default_sections(enabled_only=True)
    if not isinstance(payload, list):
        raise ValidationError("'sections' must be a list")

    sections = []
    for position, item in enumerate(payload, 1):
        if isinstance(item, str):
            item = {'key': item, 'order': position}
        if not isinstance(item, dict) or 'key' not in item:
            raise ValidationError("Each section needs a 'key'")
        if item['key'] not in SECTION_CALCULATORS:
            raise ValidationError(f"Unknown analytics section: {item['key']!r}")
        default = SECTION_DEFAULTS[item['key']]
        sections.append(AnalyticsSection(
            key=default.key,
            label=item.get('label') or default.label,
            enabled=bool(item.get('enabled', True)),
            order=_integer(item.get('order', default.order), 'sections.order'),
        ))
    return sections


def validate_report_config(payload, now: datetime) -> ReportConfig:
    """Build a ReportConfig from a JSON payload, raising ValidationError on bad input."""
    if not isinstance(payload, dict):
        raise ValidationError("Report config must be a JSON object")

    report_type = payload.get('type', 'plantings')
    if report_type not in REPORT_MODES:
        raise ValidationError(f"Unknown report type: {report_type!r}")

    fmt = payload.get('format', 'pdf')
    if not isinstance(fmt, str):
        raise ValidationError("'format' must be a string")

    config = ReportConfig(
        name=(payload.get('name') or '').strip() or default_report_name(report_type, now),
        type=report_type,
        format=fmt.lower(),
        date_range=validate_date_range(payload.get('date_range'), now),
        filters=validate_filters(payload.get('filters')),
        is_favorite=bool(payload.get('is_favorite', False)),
    )
    if report_type == 'plantings':
        config.columns = validate_columns(payload.get('columns'))
        config.sorting = validate_sorting(payload.get('sorting'))
    else:
        config.sections = validate_sections(payload.get('sections'))
    return config


def validate_plantings_payload(payload):
    """Parse an optional list of snake_case planting objects supplied inline."""
    if not isinstance(payload, list):
        raise ValidationError("'plantings' must be a list")
    plantings = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValidationError("Each planting must be an object")
        try:
            plantings.append(Planting.from_dict(item))
        except (ValueError, TypeError) as exc:
            raise ValidationError(f"Invalid planting {item.get('id')!r}: {exc}") from exc
    return plantings
