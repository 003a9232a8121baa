"""Tests for loading ring-width, site and drought-index tables."""

import numpy as np
import pandas as pd
import pytest

from dendroclim.data.loaders import RingWidthLoader, complete_years, monthly_long_to_wide


def test_load_ring_widths(config):
    rwl = RingWidthLoader(config).load_ring_widths()

    assert rwl.index.name == 'year'
    assert rwl.index.min() == 1800 and rwl.index.max() == 1999
    assert len(rwl) == 200
    assert 'SITEX00' in rwl.columns
    assert rwl.dtypes.eq(float).all()


def test_missing_years_become_explicit(tmp_path, config):
    path = tmp_path / 'gappy.csv'
    pd.DataFrame({'year': [1900, 1901, 1904], 'A': [1.0, 1.1, 1.2]}).to_csv(path, index=False)

    rwl = RingWidthLoader(config).load_ring_widths(path)

    assert list(rwl.index) == [1900, 1901, 1902, 1903, 1904]
    assert rwl.loc[1902:1903, 'A'].isna().all()


def test_unnamed_index_column(tmp_path, config):
    path = tmp_path / 'indexed.csv'
    pd.DataFrame({'A': [1.0, 2.0]}, index=[2001, 2000]).to_csv(path)

    rwl = RingWidthLoader(config).load_ring_widths(path)
    assert list(rwl.index) == [2000, 2001]
    assert rwl.loc[2000, 'A'] == 2.0


@pytest.mark.parametrize('frame, message', [
    (pd.DataFrame({'year': [1900, 1901], 'A': [1.0, -0.2]}), 'Negative'),
    (pd.DataFrame({'year': [1900, 1900], 'A': [1.0, 1.0]}), 'Duplicate'),
    (pd.DataFrame({'year': [1900, 'x'], 'A': [1.0, 1.0]}), 'Non-numeric'),
    (pd.DataFrame({'tree': ['a', 'b'], 'A': [1.0, 1.0]}), 'No year column'),
])
def test_bad_ring_width_tables(tmp_path, config, frame, message):
    path = tmp_path / 'bad.csv'
    frame.to_csv(path, index=False)

    with pytest.raises(ValueError, match=message):
        RingWidthLoader(config).load_ring_widths(path)


def test_missing_file(config):
    with pytest.raises(FileNotFoundError):
        RingWidthLoader(config).load_ring_widths('nope.csv')


def test_load_sites(config):
    sites = RingWidthLoader(config).load_sites()

    assert list(sites['site_id']) == ['SITEA', 'SITEX']
    assert sites['latitude'].dtype == float


def test_sites_require_columns(tmp_path, config):
    path = tmp_path / 'sites.csv'
    pd.DataFrame({'site_id': ['A'], 'latitude': [1.0]}).to_csv(path, index=False)

    with pytest.raises(ValueError, match='missing columns'):
        RingWidthLoader(config).load_sites(path)


def test_drought_indices_wide_and_monthly(config):
    indices = RingWidthLoader(config).load_drought_indices()

    assert set(indices) == {'pdsi', 'spei'}
    assert list(indices['pdsi'].columns) == ['pdsi']
    assert indices['pdsi'].index.min() == 1900
    assert list(indices['spei'].columns) == list(range(1, 13))
    assert indices['spei'].index.min() == 1901


def test_monthly_long_to_wide():
    long = pd.DataFrame({
        'Year': [2000, 2000, 2001, 2001],
        'Month': [1, 2, 1, 2],
        'value': [0.1, 0.2, 0.3, 0.4]
    })
    wide = monthly_long_to_wide(long)

    assert list(wide.columns) == [1, 2]
    assert wide.loc[2001, 2] == 0.4

    with pytest.raises(ValueError):
        monthly_long_to_wide(long.assign(other=1.0))


def test_complete_years():
    df = pd.DataFrame({'a': [1.0, 2.0]}, index=[1990, 1993])
    full = complete_years(df)

    assert list(full.index) == [1990, 1991, 1992, 1993]
    assert np.isnan(full.loc[1991, 'a'])
    assert complete_years(pd.DataFrame()).empty
