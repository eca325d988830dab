"""
tests/test_sorting.py — Tests for the multi-key stable sort.
"""

from datetime import datetime, timezone

from models import Planting, SortConfig
from report_engine import apply_sorting


NOW = datetime(2024, 3, 15, tzinfo=timezone.utc)


def make_planting(id, planted='2024-03-01', **kwargs):
    return Planting(id=id, date_planted=planted, **kwargs)


def ids(plantings):
    return [p.id for p in plantings]


class TestSingleKey:

    def test_equal_dates_keep_input_order(self):
        first = make_planting('first', plant_name='Zanahoria')
        second = make_planting('second', plant_name='Albahaca')
        result = apply_sorting([first, second], [SortConfig('date_planted', 'asc')], NOW)
        assert ids(result) == ['first', 'second']

    def test_desc_keeps_ties_in_input_order(self):
        plantings = [
            make_planting('a', '2024-03-01'),
            make_planting('b', '2024-03-05'),
            make_planting('c', '2024-03-01'),
        ]
        result = apply_sorting(plantings, [SortConfig('date_planted', 'desc')], NOW)
        assert ids(result) == ['b', 'a', 'c']

    def test_numbers_missing_as_zero(self):
        plantings = [
            make_planting('ten', quantity=10),
            make_planting('none', quantity=None),
            make_planting('two', quantity=2),
        ]
        result = apply_sorting(plantings, [SortConfig('quantity')], NOW)
        assert ids(result) == ['none', 'two', 'ten']

    def test_strings_case_sensitive(self):
        plantings = [make_planting('lower', plant_name='acelga'), make_planting('upper', plant_name='Zanahoria')]
        result = apply_sorting(plantings, [SortConfig('plant_name')], NOW)
        assert ids(result) == ['upper', 'lower']

    def test_days_from_planting(self):
        plantings = [make_planting('recent', '2024-03-10'), make_planting('old', '2024-02-01')]
        result = apply_sorting(plantings, [SortConfig('days_from_planting', 'desc')], NOW)
        assert ids(result) == ['old', 'recent']


class TestMultiKey:

    def test_first_key_decides_later_keys_break_ties(self):
        plantings = [
            make_planting('1', '2024-03-02', plant_name='Rúcula'),
            make_planting('2', '2024-03-01', plant_name='Rúcula'),
            make_planting('3', '2024-03-05', plant_name='Brócoli'),
        ]
        sorting = [SortConfig('plant_name', 'asc'), SortConfig('date_planted', 'desc')]
        assert ids(apply_sorting(plantings, sorting, NOW)) == ['3', '1', '2']

    def test_full_tie_keeps_input_order(self):
        plantings = [make_planting(str(i), plant_name='Rúcula', tray_number='A1') for i in range(5)]
        sorting = [SortConfig('plant_name'), SortConfig('tray_number', 'desc')]
        assert ids(apply_sorting(plantings, sorting, NOW)) == ['0', '1', '2', '3', '4']

    def test_unknown_field_ignored(self):
        plantings = [make_planting('b', quantity=2), make_planting('a', quantity=1)]
        sorting = [SortConfig('no_such_field'), SortConfig('quantity')]
        assert ids(apply_sorting(plantings, sorting, NOW)) == ['a', 'b']


def test_input_not_mutated():
    plantings = [make_planting('b', quantity=2), make_planting('a', quantity=1)]
    result = apply_sorting(plantings, [SortConfig('quantity')], NOW)
    assert ids(plantings) == ['b', 'a']
    assert ids(result) == ['a', 'b']


def test_empty_sorting_returns_copy():
    plantings = [make_planting('x')]
    result = apply_sorting(plantings, [], NOW)
    assert result == plantings
    assert result is not plantings
