"""Tests for input validation."""

import numpy as np
import pandas as pd

from dendroclim.data.validators import RingWidthValidator


def test_clean_table_passes(rwl):
    report = RingWidthValidator().validate_ring_widths(rwl)

    assert report['status'] == 'pass'
    assert report['n_series'] == rwl.shape[1]
    assert report['first_year'] == 1800
    assert report['series']['SITEA01']['first'] == 1805
    assert report['series']['SITEA01']['internal_gaps'] == 0


def test_short_and_gappy_series_warn(rwl):
    rwl = rwl.copy()
    rwl['SHORT'] = np.nan
    rwl.loc[1990:1999, 'SHORT'] = 1.0
    rwl['GAPPY'] = np.nan
    rwl.loc[[1900, 1950, 1999], 'GAPPY'] = 1.0

    report = RingWidthValidator().validate_ring_widths(rwl)

    assert report['status'] == 'warning'
    assert any('SHORT' in w for w in report['warnings'])
    assert any('GAPPY' in w and 'complete' in w for w in report['warnings'])
    assert report['series']['GAPPY']['internal_gaps'] == 97


def test_negative_widths_fail():
    rwl = pd.DataFrame({'A': [1.0, -1.0]}, index=[2000, 2001])
    report = RingWidthValidator().validate_ring_widths(rwl)

    assert report['status'] == 'fail'
    assert report['errors']


def test_empty_table_fails():
    report = RingWidthValidator().validate_ring_widths(pd.DataFrame(index=[2000]))
    assert report['status'] == 'fail'


def test_thresholds_from_config(config, rwl):
    validator = RingWidthValidator(config)
    assert validator.min_series_length == 30
    assert validator.validate_ring_widths(rwl)['status'] == 'pass'


def test_site_checks():
    sites = pd.DataFrame({
        'site_id': ['A', 'A', 'B'],
        'latitude': [45.0, 46.0, 95.0],
        'longitude': [8.0, 8.0, 8.0],
        'taxon': ['Picea abies', 'Picea abies', 'Larix decidua']
    })
    report = RingWidthValidator().validate_sites(sites)

    assert report['status'] == 'fail'
    assert len(report['errors']) == 2
    assert report['taxa'] == ['Larix decidua', 'Picea abies']


def test_overlap_and_summary(rwl):
    validator = RingWidthValidator()
    validator.validate_ring_widths(rwl)

    good = validator.check_overlap(rwl, pd.DataFrame({'pdsi': 0.0}, index=range(1900, 2020)), 'pdsi')
    poor = validator.check_overlap(rwl, pd.DataFrame({'spei': 0.0}, index=range(1995, 2020)), 'spei')

    assert good['status'] == 'pass'
    assert good['n_common_years'] == 100
    assert poor['status'] == 'warning'

    summary = validator.get_summary()
    assert list(summary['check']) == ['ring_widths', 'overlap_pdsi', 'overlap_spei']
    assert list(summary.columns) == ['check', 'status', 'n_errors', 'n_warnings']
