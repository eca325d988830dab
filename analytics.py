"""
analytics.py — Aggregate calculators for analytics-mode reports.

Each calculator takes the already-filtered plantings and returns one named
summary. Calculators are pure: the current instant is passed in explicitly
wherever a day count depends on it, and empty input yields zero-valued
results rather than errors.

Sections:
- executive_summary:      totals, efficiency and average days to harvest
- status_distribution:    count per canonical status (all four always present)
- top_plants:             top 10 plant names by harvest success rate
- time_averages:          average days to harvest, dome and light
- efficiency_rates:       harvested / composted / still-active percentages
- monthly_trends:         planted and harvested counts per planting month
- tray_performance:       harvest efficiency per tray
- growth_cycle_analysis:  cycle length plus illustrative seasonal figures
- projections:            naive harvest counts for the next 30/60/90 days

The last two are illustrative estimates, not forecasts.
"""

import math
from collections import OrderedDict

from models import STATUSES, NO_NAME, NO_TRAY
from utils.dates import days_between, format_date, month_key


TOP_PLANTS_LIMIT = 10
PROJECTION_HORIZONS = (30, 60, 90)


def round_half_up(value):
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def percentage(part, whole):
    """Whole-number percentage of part over whole; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


def _average_days(pairs):
    """Rounded mean of whole-day gaps for (start, end) pairs; 0 if empty."""
    pairs = list(pairs)
    if not pairs:
        return 0
    total = sum(days_between(start, end) for start, end in pairs)
    return round_half_up(total / len(pairs))


def _harvested(plantings):
    return [p for p in plantings if p.status == 'HARVESTED']


def average_harvest_time(plantings):
    """Mean days from planting to harvest over harvested plantings only."""
    return _average_days(
        (p.date_planted, p.harvest_date)
        for p in _harvested(plantings)
        if p.harvest_date is not None
    )


def average_dome_time(plantings):
    return _average_days((p.date_planted, p.dome_date) for p in plantings if p.dome_date)


def average_light_time(plantings):
    return _average_days((p.date_planted, p.light_date) for p in plantings if p.light_date)


def _group_counts(plantings, key_func):
    """Group into {key: {'total': n, 'harvested': n}} preserving first-seen order."""
    groups = OrderedDict()
    for p in plantings:
        counts = groups.setdefault(key_func(p), {'total': 0, 'harvested': 0})
        counts['total'] += 1
        if p.status == 'HARVESTED':
            counts['harvested'] += 1
    return groups


# ========================================
# Section calculators
# ========================================

def executive_summary(plantings, date_range=None):
    total = len(plantings)
    harvested = len(_harvested(plantings))
    growing = sum(1 for p in plantings if p.status == 'GROWING')

    period = 'N/A'
    if date_range is not None:
        period = f"{format_date(date_range.start)} - {format_date(date_range.end)}"

    return {
        'period': period,
        'total_plantings': total,
        'harvested_count': harvested,
        'active_count': growing,
        'efficiency_rate': percentage(harvested, total),
        'avg_days_to_harvest': average_harvest_time(plantings),
    }


def status_distribution(plantings):
    """Count per status. All canonical statuses are present, zero-filled."""
    distribution = OrderedDict((status, 0) for status in STATUSES)
    for p in plantings:
        if p.status in distribution:
            distribution[p.status] += 1
    return distribution


def top_plants(plantings, limit=TOP_PLANTS_LIMIT):
    groups = _group_counts(plantings, lambda p: p.plant_name or NO_NAME)
    ranking = [
        {
            'plant_name': name,
            'total_count': counts['total'],
            'harvested_count': counts['harvested'],
            'success_rate': percentage(counts['harvested'], counts['total']),
        }
        for name, counts in groups.items()
    ]
    ranking.sort(key=lambda row: row['success_rate'], reverse=True)
    return ranking[:limit]


def time_averages(plantings):
    return {
        'avg_harvest_time': average_harvest_time(plantings),
        'avg_dome_time': average_dome_time(plantings),
        'avg_light_time': average_light_time(plantings),
    }


def efficiency_rates(plantings):
    total = len(plantings)
    harvested = len(_harvested(plantings))
    composted = sum(1 for p in plantings if p.status == 'COMPOSTED')
    return {
        'overall_efficiency': percentage(harvested, total),
        'loss_rate': percentage(composted, total),
        'active_rate': percentage(total - harvested - composted, total),
    }


def monthly_trends(plantings):
    """
    Bucket by the month of the planting date.

    A bucket's harvested count is the number of HARVESTED plantings that were
    planted in that month, not harvested in it.
    """
    buckets = _group_counts(plantings, lambda p: month_key(p.date_planted))
    return [
        {
            'month': month,
            'planted': counts['total'],
            'harvested': counts['harvested'],
            'efficiency': percentage(counts['harvested'], counts['total']),
        }
        for month, counts in sorted(buckets.items())
    ]


def tray_performance(plantings):
    groups = _group_counts(plantings, lambda p: p.tray_number or NO_TRAY)
    rows = [
        {
            'tray_number': tray,
            'total_plantings': counts['total'],
            'harvested_plantings': counts['harvested'],
            'efficiency': percentage(counts['harvested'], counts['total']),
        }
        for tray, counts in groups.items()
    ]
    rows.sort(key=lambda row: row['efficiency'], reverse=True)
    return rows


def seasonal_patterns():
    """Illustrative estimate, not a forecast: fixed seasonal figures."""
    return {
        'best_performing_seasons': ['Primavera', 'Otoño'],
        'seasonal_efficiency': OrderedDict([
            ('spring', 85),
            ('summer', 75),
            ('fall', 90),
            ('winter', 70),
        ]),
    }


def cycle_predictability():
    """Illustrative estimate, not a forecast: fixed predictability rating."""
    return {
        'predictability_score': 78,
        'consistency_rating': 'Buena',
        'recommendations': [
            'Mantener condiciones de luz constantes',
            'Optimizar riego en verano',
        ],
    }


def growth_cycle_analysis(plantings):
    """Measured average cycle length plus the illustrative seasonal blocks."""
    return {
        'average_cycle_length': average_harvest_time(plantings),
        'seasonal_patterns': seasonal_patterns(),
        'cycle_predictability': cycle_predictability(),
    }


def project_harvests(plantings, days, now):
    """
    Illustrative estimate, not a forecast.

    Counts PLANTED/GROWING plantings whose remaining time (average harvest
    time minus days already grown) falls within (0, days].
    """
    avg_harvest = average_harvest_time(plantings)
    count = 0
    for p in plantings:
        if p.status not in ('PLANTED', 'GROWING'):
            continue
        remaining = avg_harvest - days_between(p.date_planted, now)
        if 0 < remaining <= days:
            count += 1
    return count


def planting_schedule():
    """Illustrative estimate, not a forecast: fixed planting advice."""
    return [
        'Plantar 5-7 bandejas por semana para mantener producción constante',
        'Enfocar en plantas de alto rendimiento: Rúcula, Brócoli',
        'Reducir plantado de variedades con baja eficiencia en invierno',
    ]


def projections(plantings, now):
    result = OrderedDict()
    for horizon in PROJECTION_HORIZONS:
        result[f'expected_harvests_{horizon}_days'] = project_harvests(plantings, horizon, now)
    result['recommended_planting_schedule'] = planting_schedule()
    return result


# Section key → callable(plantings, date_range, now)
SECTION_CALCULATORS = {
    'executive_summary': lambda plantings, date_range, now: executive_summary(plantings, date_range),
    'status_distribution': lambda plantings, date_range, now: status_distribution(plantings),
    'top_plants': lambda plantings, date_range, now: top_plants(plantings),
    'time_averages': lambda plantings, date_range, now: time_averages(plantings),
    'efficiency_rates': lambda plantings, date_range, now: efficiency_rates(plantings),
    'monthly_trends': lambda plantings, date_range, now: monthly_trends(plantings),
    'tray_performance': lambda plantings, date_range, now: tray_performance(plantings),
    'growth_cycle_analysis': lambda plantings, date_range, now: growth_cycle_analysis(plantings),
    'projections': lambda plantings, date_range, now: projections(plantings, now),
}


def run_sections(plantings, sections, date_range, now):
    """
    Run the calculator of every given section, in the given order.

    Returns an OrderedDict keyed by section key. Sections with no known
    calculator are skipped.
    """
    analytics = OrderedDict()
    for section in sections:
        calculator = SECTION_CALCULATORS.get(section.key)
        if calculator is None:
            continue
        analytics[section.key] = calculator(plantings, date_range, now)
    return analytics
