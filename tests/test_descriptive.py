"""Tests for series and site summaries."""

import numpy as np
import pandas as pd
import pytest

from dendroclim.analysis.descriptive import (
    assign_sites,
    mean_sensitivity,
    series_statistics,
    site_summary
)


@pytest.fixture
def sites():
    return pd.DataFrame({
        'site_id': ['SITEA', 'SITEA0', 'SITEB'],
        'latitude': [46.0, 46.1, 47.0],
        'longitude': [8.0, 8.1, 9.0],
        'taxon': ['Picea abies', 'Picea abies', 'Pinus cembra']
    })


def test_mean_sensitivity():
    series = pd.Series([1.0, 3.0, 1.0])
    # |2 * (3 - 1) / 4| = 1 for both pairs
    assert mean_sensitivity(series) == pytest.approx(1.0)
    assert np.isnan(mean_sensitivity(pd.Series([1.0])))
    assert mean_sensitivity(pd.Series([2.0, 2.0, 2.0])) == 0.0


def test_series_statistics(rwl):
    stats = series_statistics(rwl)

    assert list(stats.index) == list(rwl.columns)
    assert stats.loc['SITEA00', 'first'] == 1800
    assert stats.loc['SITEA01', 'first'] == 1805
    assert stats.loc['SITEA01', 'n_years'] == 195
    assert (stats['last'] == 1999).all()
    assert (stats['sens1'] > 0).all()
    assert stats['ar1'].between(-1, 1).all()


def test_longest_prefix_wins(sites):
    assignment = assign_sites(['SITEA01', 'SITEA11', 'SITEB02', 'OTHER'], sites)

    assert assignment['SITEA01'] == 'SITEA0'
    assert assignment['SITEA11'] == 'SITEA'
    assert assignment['SITEB02'] == 'SITEB'
    assert pd.isna(assignment['OTHER'])


def test_site_summary(rwl, sites):
    summary = site_summary(rwl, sites).set_index('site_id')

    assert summary.loc['SITEA0', 'n_series'] == 8
    assert summary.loc['SITEA0', 'first'] == 1800
    assert summary.loc['SITEA0', 'last'] == 1999
    assert summary.loc['SITEB', 'n_series'] == 0
    assert summary.loc['SITEA', 'n_series'] == 0
