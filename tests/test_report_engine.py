"""
tests/test_report_engine.py — Tests for column projection, the pipeline
entry points and the file-name policy.
"""

import json
import pytest
from dataclasses import replace
from datetime import datetime, timezone

from models import (
    DateRange, Planting, ReportColumn, ReportConfig, ReportFilters, SortConfig,
    default_columns, default_sections,
)
from report_engine import (
    generate_analytics_report, generate_file_name, generate_plantings_report,
    generate_report, project_columns,
)
from utils.export import RenderError, UnsupportedFormatError


NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def plantings():
    return [
        Planting(id='1', date_planted='2024-03-01', plant_name='Rúcula', status='HARVESTED',
                 tray_number='A1', quantity=20, updated_at='2024-03-11',
                 expected_harvest='2024-03-12', notes='Riego, dos veces'),
        Planting(id='2', date_planted='2024-03-05', plant_name='Brócoli', status='GROWING',
                 tray_number='A2', quantity=40),
        Planting(id='3', date_planted='2024-02-20', status='PLANTED'),
    ]


def plantings_config(**kwargs):
    values = dict(
        name='Reporte de prueba',
        type='plantings',
        format='json',
        date_range=DateRange(start='2024-03-01', end=NOW),
        columns=default_columns(enabled_only=True),
    )
    values.update(kwargs)
    return ReportConfig(**values)


# ========================================
# Column projection
# ========================================

class TestProjectColumns:

    def test_labels_in_column_order(self, plantings):
        columns = [
            ReportColumn('quantity', 'Cantidad'),
            ReportColumn('plant_name', 'Nombre'),
            ReportColumn('notes', 'Notas', enabled=False),
        ]
        rows = project_columns(plantings[:1], columns, NOW)
        assert list(rows[0].keys()) == ['Cantidad', 'Nombre']

    def test_derived_values(self, plantings):
        columns = [
            ReportColumn('date_planted', 'Fecha Siembra'),
            ReportColumn('status', 'Estado'),
            ReportColumn('days_from_planting', 'Días'),
            ReportColumn('expected_harvest', 'Cosecha Esperada'),
            ReportColumn('notes', 'Notas'),
            ReportColumn('efficiency', 'Eficiencia %'),
        ]
        row = project_columns(plantings[:1], columns, NOW)[0]
        assert row == {
            'Fecha Siembra': '01/03/2024',
            'Estado': 'Cosechado',
            'Días': 15,
            'Cosecha Esperada': '12/03/2024',
            'Notas': 'Riego, dos veces',
            'Eficiencia %': '100%',
        }

    def test_missing_values_use_placeholder(self, plantings):
        columns = [replace(col, enabled=True) for col in default_columns()]
        row = project_columns(plantings[2:], columns, NOW)[0]
        assert row['Nombre de Planta'] == '-'
        assert row['Cosecha Esperada'] == '-'
        assert row['Bandeja'] == '-'
        assert row['Cantidad'] == '-'
        assert row['Notas'] == '-'
        assert row['Eficiencia %'] == '-'
        assert row['Estado'] == 'Plantado'

    def test_days_recomputed_from_now(self, plantings):
        columns = [ReportColumn('days_from_planting', 'Días')]
        later = datetime(2024, 4, 1, tzinfo=timezone.utc)
        assert project_columns(plantings[1:2], columns, later)[0]['Días'] == 27

    def test_unknown_status_passes_through(self):
        planting = Planting(id='x', date_planted='2024-03-01', status='ARCHIVED')
        row = project_columns([planting], [ReportColumn('status', 'Estado')], NOW)[0]
        assert row['Estado'] == 'ARCHIVED'


# ========================================
# Pipeline
# ========================================

class TestPipeline:

    def test_plantings_report_filters_then_sorts(self, plantings):
        config = plantings_config(
            sorting=[SortConfig('date_planted', 'desc')],
            columns=[ReportColumn('plant_name', 'Nombre')],
        )
        rows = generate_plantings_report(plantings, config, NOW)
        assert rows == [{'Nombre': 'Brócoli'}, {'Nombre': 'Rúcula'}]

    def test_plantings_report_keeps_input_order_without_sorting(self, plantings):
        config = plantings_config(columns=[ReportColumn('plant_name', 'Nombre')],
                                  filters=ReportFilters(status=['GROWING', 'HARVESTED']))
        rows = generate_plantings_report(plantings, config, NOW)
        assert [r['Nombre'] for r in rows] == ['Rúcula', 'Brócoli']

    def test_plantings_report_skips_disabled_columns(self, plantings):
        config = plantings_config(columns=[ReportColumn('plant_name', 'Nombre'),
                                           ReportColumn('notes', 'Notas', enabled=False)])
        assert config.enabled_columns() == [ReportColumn('plant_name', 'Nombre')]
        rows = generate_plantings_report(plantings, config, NOW)
        assert rows == [{'Nombre': 'Rúcula'}, {'Nombre': 'Brócoli'}]

    def test_analytics_report_enabled_sections_in_order(self, plantings):
        config = ReportConfig(
            name='Análisis', type='analytics',
            date_range=DateRange(start='2024-01-01', end=NOW),
            sections=default_sections(),
        )
        data = generate_analytics_report(plantings, config, NOW)
        assert list(data.keys()) == [
            'executive_summary', 'status_distribution', 'top_plants',
            'time_averages', 'efficiency_rates', 'monthly_trends',
        ]
        assert data['executive_summary']['total_plantings'] == 3

    def test_generate_report_renders_content(self, plantings):
        report = generate_report(plantings, plantings_config(), NOW)
        assert report.file_name == 'Reporte_de_prueba_2024-03-15.json'
        assert report.mimetype == 'application/json'
        assert report.generated_at == NOW
        assert json.loads(report.content.decode('utf-8')) == report.data
        assert report.file_size == len(report.content)

    def test_generate_report_default_name(self, plantings):
        report = generate_report(plantings, plantings_config(name=''), NOW)
        assert report.config.name == 'Reporte plantings - 15/03/2024'

    def test_unknown_format_fails(self, plantings):
        with pytest.raises(UnsupportedFormatError):
            generate_report(plantings, plantings_config(format='docx'), NOW)

    def test_generate_report_leaves_config_untouched(self, plantings):
        config = plantings_config(name='', format='CSV')
        generate_report(plantings, config, NOW)
        assert config.name == ''
        assert config.format == 'CSV'

    def test_format_case_insensitive(self, plantings):
        report = generate_report(plantings, plantings_config(format='CSV'), NOW)
        assert report.file_name == 'Reporte_de_prueba_2024-03-15.csv'
        assert report.mimetype == 'text/csv'

    def test_named_preset_follows_now(self, plantings):
        stale = DateRange(start='2023-01-01', end='2023-01-31', preset='last_month')
        config = plantings_config(date_range=stale, columns=[ReportColumn('plant_name', 'Nombre')])
        report = generate_report(plantings, config, NOW)
        assert report.config.date_range.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert [row['Nombre'] for row in report.data] == ['Rúcula', 'Brócoli']

    def test_custom_range_kept(self, plantings):
        fixed = DateRange(start='2023-01-01', end='2023-01-31', preset='custom')
        report = generate_report(plantings, plantings_config(date_range=fixed), NOW)
        assert report.data == []

    def test_illegal_excel_characters_are_render_error(self):
        planting = Planting(id='1', date_planted='2024-03-05', notes='bad\x01note')
        config = plantings_config(format='xlsx', columns=[ReportColumn('notes', 'Notas')])
        with pytest.raises(RenderError):
            generate_report([planting], config, NOW)


# ========================================
# File names
# ========================================

class TestFileName:

    def test_strips_symbols(self):
        assert generate_file_name('Q1 Report #1!', 'csv', NOW) == 'Q1_Report_1_2024-03-15.csv'

    def test_collapses_spaces(self):
        assert generate_file_name('Cosecha   de  marzo', 'pdf', NOW) == 'Cosecha_de_marzo_2024-03-15.pdf'

    def test_empty_stem_falls_back(self):
        assert generate_file_name('¡¿!', 'csv', NOW) == 'reporte_2024-03-15.csv'
