"""
models.py — Python dataclasses for the microgreens report service.

Plantings arrive from the plantings REST API (see plantings_api.py) and are
read-only here. Report configurations are saved in the settings table as a
JSON list (see utils/config_store.py).
"""

from dataclasses import dataclass, field, replace
from typing import Optional, List, Dict, Any
from datetime import datetime

from utils.dates import parse_datetime, resolve_date_range


# Canonical lifecycle statuses, in lifecycle order
STATUSES = ('PLANTED', 'GROWING', 'HARVESTED', 'COMPOSTED')

STATUS_LABELS = {
    'PLANTED': 'Plantado',
    'GROWING': 'Creciendo',
    'HARVESTED': 'Cosechado',
    'COMPOSTED': 'Compostado',
}

REPORT_MODES = ('plantings', 'analytics')

REPORT_FORMATS = ('csv', 'pdf', 'json', 'xlsx')

NO_NAME = 'Sin nombre'
NO_TRAY = 'Sin bandeja'
PLACEHOLDER = '-'

DATE_ATTRS = ('date_planted', 'expected_harvest', 'dome_date', 'light_date',
              'created_at', 'updated_at', 'deleted_at')
NUMBER_ATTRS = ('quantity', 'yield_weight')
TEXT_ATTRS = ('plant_name', 'status', 'tray_number', 'notes')


def status_label(status: str) -> str:
    """Human-readable status; unknown codes pass through unchanged."""
    return STATUS_LABELS.get(status, status)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class Planting:
    """One growing cycle of a crop, from seeding to harvest or compost."""
    id: str = ""
    date_planted: Optional[datetime] = None
    status: str = 'PLANTED'
    plant_name: Optional[str] = None
    expected_harvest: Optional[datetime] = None
    dome_date: Optional[datetime] = None
    light_date: Optional[datetime] = None
    quantity: Optional[float] = None
    yield_weight: Optional[float] = None
    notes: Optional[str] = None
    tray_number: Optional[str] = None
    plant_type_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        for name in DATE_ATTRS:
            setattr(self, name, parse_datetime(getattr(self, name)))
        if self.date_planted is None:
            raise ValueError(f"Planting {self.id!r} has no planting date")

        for name in NUMBER_ATTRS:
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValueError(f"Planting {self.id!r}: {name} must be a number, got {value!r}")

        # Numeric labels (tray 3) are read as text
        for name in TEXT_ATTRS:
            value = getattr(self, name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(self, name, str(value))
            elif value is not None and not isinstance(value, str):
                raise ValueError(f"Planting {self.id!r}: {name} must be text, got {value!r}")
        self.status = self.status or 'PLANTED'

    @property
    def harvest_date(self) -> Optional[datetime]:
        """Instant of harvest: the last update of a HARVESTED record."""
        if self.status != 'HARVESTED':
            return None
        return self.updated_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'plant_name': self.plant_name,
            'date_planted': _iso(self.date_planted),
            'expected_harvest': _iso(self.expected_harvest),
            'dome_date': _iso(self.dome_date),
            'light_date': _iso(self.light_date),
            'quantity': self.quantity,
            'yield_weight': self.yield_weight,
            'notes': self.notes,
            'status': self.status,
            'tray_number': self.tray_number,
            'plant_type_id': self.plant_type_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'deleted_at': _iso(self.deleted_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Planting':
        """Build from the snake_case shape produced by to_dict()."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class DateRange:
    """Inclusive [start, end] window on the planting date."""
    start: datetime
    end: datetime
    preset: Optional[str] = None

    def __post_init__(self):
        self.start = parse_datetime(self.start)
        self.end = parse_datetime(self.end)

    @property
    def is_inverted(self) -> bool:
        return self.start > self.end

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {'start': _iso(self.start), 'end': _iso(self.end), 'preset': self.preset}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DateRange':
        return cls(start=data['start'], end=data['end'], preset=data.get('preset'))


@dataclass
class QuantityRange:
    """Optional inclusive bounds on planting quantity."""
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class ReportFilters:
    """Multi-field filter. An empty or missing field means 'no constraint'."""
    status: List[str] = field(default_factory=list)
    plant_names: List[str] = field(default_factory=list)
    trays: List[str] = field(default_factory=list)
    quantity_range: Optional[QuantityRange] = None

    def to_dict(self) -> Dict[str, Any]:
        quantity_range = None
        if self.quantity_range is not None:
            quantity_range = {'min': self.quantity_range.min, 'max': self.quantity_range.max}
        return {
            'status': list(self.status),
            'plant_names': list(self.plant_names),
            'trays': list(self.trays),
            'quantity_range': quantity_range,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ReportFilters':
        data = data or {}
        quantity_range = data.get('quantity_range')
        return cls(
            status=list(data.get('status') or []),
            plant_names=list(data.get('plant_names') or []),
            trays=list(data.get('trays') or []),
            quantity_range=QuantityRange(**quantity_range) if quantity_range else None,
        )


@dataclass
class ReportColumn:
    """One projectable field of a plantings report."""
    key: str
    label: str
    enabled: bool = True
    sortable: bool = True


@dataclass
class SortConfig:
    """One (field, direction) pair of a multi-key sort."""
    field: str
    direction: str = 'asc'


@dataclass
class AnalyticsSection:
    """One analytics calculator block and its position in the output."""
    key: str
    label: str
    enabled: bool = True
    order: int = 0


@dataclass
class ReportConfig:
    """A named report definition, either plantings (tabular) or analytics."""
    name: str
    type: str
    date_range: DateRange
    format: str = 'pdf'
    filters: ReportFilters = field(default_factory=ReportFilters)
    columns: List[ReportColumn] = field(default_factory=list)
    sorting: List[SortConfig] = field(default_factory=list)
    sections: List[AnalyticsSection] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    is_favorite: bool = False

    def __post_init__(self):
        self.created_at = parse_datetime(self.created_at)

    def enabled_columns(self) -> List[ReportColumn]:
        return [col for col in self.columns if col.enabled]

    def enabled_sections(self) -> List[AnalyticsSection]:
        """Enabled sections by ascending order; ties keep list order."""
        return sorted((s for s in self.sections if s.enabled), key=lambda s: s.order)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'format': self.format,
            'date_range': self.date_range.to_dict(),
            'filters': self.filters.to_dict(),
            'created_at': _iso(self.created_at),
            'is_favorite': self.is_favorite,
        }
        if self.type == 'plantings':
            data['columns'] = [vars(col).copy() for col in self.columns]
            data['sorting'] = [vars(s).copy() for s in self.sorting]
        else:
            data['sections'] = [vars(s).copy() for s in self.sections]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReportConfig':
        return cls(
            id=data.get('id'),
            name=data['name'],
            type=data['type'],
            format=data.get('format', 'pdf'),
            date_range=DateRange.from_dict(data['date_range']),
            filters=ReportFilters.from_dict(data.get('filters')),
            columns=[ReportColumn(**col) for col in data.get('columns') or []],
            sorting=[SortConfig(**s) for s in data.get('sorting') or []],
            sections=[AnalyticsSection(**s) for s in data.get('sections') or []],
            created_at=data.get('created_at'),
            is_favorite=bool(data.get('is_favorite', False)),
        )


@dataclass
class GeneratedReport:
    """Output of one pipeline run. Never persisted."""
    config: ReportConfig
    data: Any
    generated_at: datetime
    file_name: str
    content: bytes = b''
    mimetype: str = 'application/octet-stream'

    @property
    def file_size(self) -> int:
        return len(self.content)


# ========================================
# Defaults and presets
# ========================================

DEFAULT_PLANTING_COLUMNS = [
    ReportColumn('plant_name', 'Nombre de Planta', True),
    ReportColumn('date_planted', 'Fecha Siembra', True),
    ReportColumn('status', 'Estado', True),
    ReportColumn('days_from_planting', 'Días Transcurridos', True),
    ReportColumn('expected_harvest', 'Cosecha Esperada', True),
    ReportColumn('dome_date', 'Fecha Cúpula', False),
    ReportColumn('light_date', 'Fecha Luz', False),
    ReportColumn('tray_number', 'Bandeja', True),
    ReportColumn('quantity', 'Cantidad', True),
    ReportColumn('yield_weight', 'Rendimiento (g)', False),
    ReportColumn('notes', 'Notas', False, sortable=False),
    ReportColumn('efficiency', 'Eficiencia %', False),
    ReportColumn('created_at', 'Fecha Creación', False),
]

DEFAULT_ANALYTICS_SECTIONS = [
    AnalyticsSection('executive_summary', 'Resumen Ejecutivo', True, 1),
    AnalyticsSection('status_distribution', 'Distribución por Estados', True, 2),
    AnalyticsSection('top_plants', 'Plantas Más Exitosas', True, 3),
    AnalyticsSection('time_averages', 'Promedios de Tiempo', True, 4),
    AnalyticsSection('efficiency_rates', 'Tasas de Eficiencia', True, 5),
    AnalyticsSection('monthly_trends', 'Tendencias Mensuales', True, 6),
    AnalyticsSection('tray_performance', 'Rendimiento por Bandeja', False, 7),
    AnalyticsSection('growth_cycle_analysis', 'Análisis de Ciclos', False, 8),
    AnalyticsSection('projections', 'Proyecciones', False, 9),
]

SECTION_LABELS = {s.key: s.label for s in DEFAULT_ANALYTICS_SECTIONS}


def default_columns(enabled_only=False) -> List[ReportColumn]:
    """Fresh copies of the default plantings columns."""
    return [replace(col) for col in DEFAULT_PLANTING_COLUMNS if col.enabled or not enabled_only]


def default_sections(enabled_only=False) -> List[AnalyticsSection]:
    """Fresh copies of the default analytics sections."""
    return [replace(s) for s in DEFAULT_ANALYTICS_SECTIONS if s.enabled or not enabled_only]


def preset_reports(now: datetime) -> List[ReportConfig]:
    """The built-in report definitions offered before any config is saved."""
    return [
        ReportConfig(
            name='Reporte Mensual Estándar',
            type='plantings',
            date_range=resolve_date_range('last_month', now),
            columns=default_columns(enabled_only=True),
            sorting=[SortConfig('date_planted', 'desc')],
            format='pdf',
            is_favorite=True,
        ),
        ReportConfig(
            name='Análisis Trimestral',
            type='analytics',
            date_range=resolve_date_range('last_3_months', now),
            sections=default_sections(enabled_only=True),
            format='pdf',
            is_favorite=True,
        ),
        ReportConfig(
            name='Export Completo CSV',
            type='plantings',
            date_range=resolve_date_range('all_time', now),
            columns=default_columns(),
            sorting=[SortConfig('date_planted', 'desc')],
            format='csv',
            is_favorite=True,
        ),
    ]
