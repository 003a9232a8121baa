"""Tests for pointer-year detection."""

import numpy as np
import pandas as pd

from dendroclim.analysis.pointer import PointerYearAnalyzer


def narrow_ring_table(n_series=6):
    years = np.arange(1940, 1961)
    table = pd.DataFrame({f'T{i}': np.ones(len(years)) for i in range(n_series)}, index=years)
    table.loc[1950] = 0.5
    return table


def test_narrow_ring_is_negative_then_recovery_positive():
    result = PointerYearAnalyzer().run(narrow_ring_table())

    assert result.loc[1950, 'nature'] == -1
    assert result.loc[1950, 'pct_negative'] == 100.0
    assert result.loc[1950, 'mean_rgv'] == -50.0
    assert result.loc[1951, 'nature'] == 1
    assert (result.drop(index=[1950, 1951])['nature'] == 0).all()


def test_first_year_has_no_variation():
    result = PointerYearAnalyzer().run(narrow_ring_table())

    assert result.loc[1940, 'n_series'] == 0
    assert result.loc[1940, 'nature'] == 0


def test_too_few_series():
    result = PointerYearAnalyzer(min_series=5).run(narrow_ring_table(n_series=3))
    assert (result['nature'] == 0).all()


def test_share_of_series_threshold():
    table = narrow_ring_table(n_series=4)
    table.loc[1950, 'T3'] = 1.0

    strict = PointerYearAnalyzer(nseries_threshold=80, min_series=3).run(table)
    loose = PointerYearAnalyzer(nseries_threshold=75, min_series=3).run(table)

    assert strict.loc[1950, 'nature'] == 0
    assert loose.loc[1950, 'nature'] == -1


def test_relative_growth_variation():
    table = pd.DataFrame({'a': [1.0, 1.5, 0.0, 2.0]}, index=[2000, 2001, 2002, 2003])
    rgv = PointerYearAnalyzer.relative_growth_variation(table)

    assert np.isnan(rgv.loc[2000, 'a'])
    assert rgv.loc[2001, 'a'] == 50.0
    assert rgv.loc[2002, 'a'] == -100.0
    # Growth after a zero ring has no defined variation
    assert np.isnan(rgv.loc[2003, 'a'])
