"""
tests/test_validators.py — Tests for report config payload validation.
"""

import pytest
from datetime import datetime, timezone

from models import default_columns, default_sections
from utils.validators import (
    ValidationError, validate_columns, validate_date_range, validate_filters,
    validate_plantings_payload, validate_report_config, validate_sections, validate_sorting,
)


NOW = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


class TestDateRange:

    def test_defaults_to_last_month(self):
        date_range = validate_date_range(None, NOW)
        assert date_range.preset == 'last_month'
        assert date_range.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert date_range.end == NOW

    def test_start_end_imply_custom(self):
        date_range = validate_date_range({'start': '2024-01-01', 'end': '2024-02-01'}, NOW)
        assert date_range.preset == 'custom'

    def test_custom_needs_both_ends(self):
        with pytest.raises(ValidationError):
            validate_date_range({'preset': 'custom', 'start': '2024-01-01'}, NOW)

    def test_inverted_rejected(self):
        with pytest.raises(ValidationError):
            validate_date_range({'start': '2024-02-01', 'end': '2024-01-01'}, NOW)

    def test_unknown_preset_rejected(self):
        with pytest.raises(ValidationError):
            validate_date_range({'preset': 'last_decade'}, NOW)


class TestFilters:

    def test_valid(self):
        filters = validate_filters({
            'status': ['GROWING'],
            'trays': ['A1'],
            'quantity_range': {'min': 10, 'max': 50},
        })
        assert filters.status == ['GROWING']
        assert filters.quantity_range.min == 10
        assert filters.plant_names == []

    def test_unknown_status(self):
        with pytest.raises(ValidationError, match='SPROUTED'):
            validate_filters({'status': ['SPROUTED']})

    def test_non_numeric_bound(self):
        with pytest.raises(ValidationError):
            validate_filters({'quantity_range': {'min': 'ten'}})

    def test_non_list_names(self):
        with pytest.raises(ValidationError):
            validate_filters({'plant_names': 'Rúcula'})


class TestColumnsAndSorting:

    def test_missing_columns_use_defaults(self):
        columns = validate_columns(None)
        assert [c.key for c in columns] == [c.key for c in default_columns(enabled_only=True)]

    def test_keys_take_default_labels(self):
        columns = validate_columns(['quantity', {'key': 'plant_name', 'label': 'Planta'}])
        assert [(c.key, c.label) for c in columns] == [('quantity', 'Cantidad'), ('plant_name', 'Planta')]

    def test_unknown_column(self):
        with pytest.raises(ValidationError):
            validate_columns(['color'])

    def test_sort_direction(self):
        sorting = validate_sorting([{'field': 'quantity', 'direction': 'desc'}, {'field': 'plant_name'}])
        assert [(s.field, s.direction) for s in sorting] == [('quantity', 'desc'), ('plant_name', 'asc')]
        with pytest.raises(ValidationError):
            validate_sorting([{'field': 'quantity', 'direction': 'down'}])


class TestSections:

    def test_missing_sections_use_enabled_defaults(self):
        sections = validate_sections(None)
        assert [s.key for s in sections] == [s.key for s in default_sections(enabled_only=True)]

    def test_plain_keys_ordered_by_position(self):
        sections = validate_sections(['projections', 'executive_summary'])
        assert [(s.key, s.order) for s in sections] == [('projections', 1), ('executive_summary', 2)]

    def test_unknown_section(self):
        with pytest.raises(ValidationError):
            validate_sections(['weather'])

    def test_non_integer_order(self):
        with pytest.raises(ValidationError, match='order'):
            validate_sections([{'key': 'top_plants', 'order': 'first'}])
        with pytest.raises(ValidationError):
            validate_sections([{'key': 'top_plants', 'order': None}])


class TestReportConfig:

    def test_defaults(self):
        config = validate_report_config({}, NOW)
        assert config.type == 'plantings'
        assert config.format == 'pdf'
        assert config.name == 'Reporte plantings - 15/03/2024'
        assert config.sections == []
        assert config.columns

    def test_analytics_mode(self):
        config = validate_report_config({'type': 'analytics', 'format': 'CSV', 'name': ' Q1 '}, NOW)
        assert config.name == 'Q1'
        assert config.format == 'csv'
        assert config.columns == []
        assert config.sections

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            validate_report_config(['plantings'], NOW)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            validate_report_config({'type': 'harvests'}, NOW)


class TestPlantingsPayload:

    def test_parses_snake_case(self):
        plantings = validate_plantings_payload([
            {'id': '1', 'date_planted': '2024-03-01', 'status': 'GROWING', 'unknown_key': 1},
        ])
        assert plantings[0].status == 'GROWING'
        assert plantings[0].date_planted == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_bad_date(self):
        with pytest.raises(ValidationError):
            validate_plantings_payload([{'id': '1', 'date_planted': 'yesterday'}])

    def test_not_a_list(self):
        with pytest.raises(ValidationError):
            validate_plantings_payload({'id': '1'})

    def test_text_quantity_rejected(self):
        with pytest.raises(ValidationError, match='quantity'):
            validate_plantings_payload([{'id': '1', 'date_planted': '2024-03-01', 'quantity': '20'}])

    def test_numeric_tray_read_as_text(self):
        plantings = validate_plantings_payload([{'id': '1', 'date_planted': '2024-03-01', 'tray_number': 3}])
        assert plantings[0].tray_number == '3'
