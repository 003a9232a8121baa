"""Tests for series filtering."""

import numpy as np
import pandas as pd

from dendroclim.data.cleaners import SeriesFilter


def correlations(values):
    return pd.DataFrame({'r': pd.Series(values, dtype=float)}).rename_axis('series')


def make_table():
    years = np.arange(1900, 1920)
    table = pd.DataFrame({
        'A': np.ones(len(years)),
        'B': np.ones(len(years)),
        'C': np.ones(len(years)),
        'D': np.ones(len(years))
    }, index=years)
    # Only D covers the first years
    table.loc[1900:1904, ['A', 'B', 'C']] = np.nan
    return table


def test_threshold_and_undefined():
    series_filter = SeriesFilter(min_correlation=0.3)
    result = series_filter.apply(make_table(), correlations({'A': 0.6, 'B': 0.1, 'C': np.nan, 'D': 0.5}))

    assert list(result.columns) == ['A', 'D']
    removed = series_filter.removed_table().set_index('series')
    assert set(removed.index) == {'B', 'C'}
    assert removed.loc['C', 'reason'] == 'undefined correlation'


def test_keep_undefined():
    series_filter = SeriesFilter(drop_undefined=False)
    result = series_filter.apply(make_table(), correlations({'A': 0.6, 'B': 0.6, 'C': np.nan, 'D': 0.6}))
    assert 'C' in result.columns


def test_exclude_and_keep_lists():
    series_filter = SeriesFilter(exclude_series=['A', 'Z'], keep_series=['B'])
    result = series_filter.apply(make_table(), correlations({'A': 0.9, 'B': 0.0, 'C': 0.6, 'D': 0.6}))

    assert list(result.columns) == ['B', 'C', 'D']
    assert series_filter.removed_table()['reason'].tolist() == ['excluded']


def test_uncovered_end_years_are_trimmed():
    series_filter = SeriesFilter()
    result = series_filter.apply(make_table(), correlations({'A': 0.6, 'B': 0.6, 'C': 0.6, 'D': 0.0}))

    assert list(result.columns) == ['A', 'B', 'C']
    assert result.index.min() == 1905


def test_from_config(config):
    series_filter = SeriesFilter.from_config(config)
    assert series_filter.min_correlation == 0.3
    assert series_filter.drop_undefined is True
    assert series_filter.exclude_series == set()
