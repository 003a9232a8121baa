"""Shared fixtures: synthetic ring-width tables and a throwaway config."""

import numpy as np
import pandas as pd
import pytest
import yaml

from dendroclim.utils.config import ConfigLoader


FIRST_YEAR = 1800
LAST_YEAR = 1999


def make_common_signal(first=FIRST_YEAR, last=LAST_YEAR, seed=7):
    """Year-to-year growth signal shared by every tree of a stand"""
    rng = np.random.default_rng(seed)
    years = np.arange(first, last + 1)
    return pd.Series(rng.normal(0.0, 1.0, len(years)), index=pd.Index(years, name='year'))


def make_rwl(n_series=8, first=FIRST_YEAR, last=LAST_YEAR, stagger=5, seed=42, prefix='SITEA', signal=None):
    """
    Ring widths = negative-exponential age trend x (1 + common signal + noise)

    Series start `stagger` years apart and all end in the last year.
    """
    rng = np.random.default_rng(seed)
    if signal is None:
        signal = make_common_signal(first, last)
    years = signal.index

    data = {}
    for i in range(n_series):
        start = first + stagger * i
        t = np.arange(last - start + 1, dtype=float)
        trend = 1.5 * np.exp(-0.02 * t) + 0.5
        index = 1.0 + 0.25 * signal.loc[start:].to_numpy() + 0.08 * rng.normal(0.0, 1.0, len(t))
        column = pd.Series(np.nan, index=years, dtype=float)
        column.loc[start:] = np.clip(trend * index, 0.05, None)
        data[f'{prefix}{i:02d}'] = column

    return pd.DataFrame(data, index=years)


def step_series(first=1900, before=1.0, after=1.3, step_year=1930, last=1959, name='STEP'):
    """Constant growth that steps up in step_year"""
    years = pd.Index(np.arange(first, last + 1), name='year')
    values = np.where(years < step_year, before, after).astype(float)
    return pd.Series(values, index=years, name=name)


@pytest.fixture
def signal():
    return make_common_signal()


@pytest.fixture
def rwl(signal):
    return make_rwl(signal=signal)


@pytest.fixture
def rwl_with_outlier(signal):
    """Eight crossdated series plus one series with an unrelated signal"""
    table = make_rwl(signal=signal)
    rogue = make_rwl(n_series=1, signal=make_common_signal(seed=99), seed=3, prefix='SITEX')
    return table.join(rogue)


@pytest.fixture
def study_dir(tmp_path, signal):
    """
    Project-like directory with input tables and a config file

    Returns the config path. Ring widths include one unrelated series,
    PDSI is an annual table driven by the common signal and SPEI is a
    long monthly table.
    """
    raw = tmp_path / 'raw'
    raw.mkdir()

    table = make_rwl(signal=signal)
    rogue = make_rwl(n_series=1, signal=make_common_signal(seed=99), seed=3, prefix='SITEX')
    table.join(rogue).to_csv(raw / 'ring_widths.csv', index_label='year')

    pd.DataFrame({
        'site_id': ['SITEA', 'SITEX'],
        'latitude': [46.5, 47.1],
        'longitude': [8.2, 9.0],
        'taxon': ['Picea abies', 'Larix decidua']
    }).to_csv(raw / 'sites.csv', index=False)

    rng = np.random.default_rng(11)
    pdsi = signal.loc[1900:] + 0.3 * rng.normal(0.0, 1.0, len(signal.loc[1900:]))
    pd.DataFrame({'year': pdsi.index, 'pdsi': pdsi.values}).to_csv(raw / 'pdsi.csv', index=False)

    rows = [
        {'year': year, 'month': month, 'spei': float(signal.loc[year] + 0.5 * rng.normal())}
        for year in range(1901, 2000) for month in range(1, 13)
    ]
    pd.DataFrame(rows).to_csv(raw / 'spei.csv', index=False)

    config = {
        'data': {
            'raw_path': str(raw),
            'ring_widths': 'ring_widths.csv',
            'sites': 'sites.csv',
            'drought_indices': {'pdsi': 'pdsi.csv', 'spei': 'spei.csv'},
            'output_path': str(tmp_path / 'output')
        },
        'results': {'path': str(tmp_path / 'results')},
        'logging': {'level': 'INFO', 'file': str(tmp_path / 'logs' / 'dendroclim.log'), 'console': False},
        'correlation': {'method': 'spearman', 'prewhiten': True, 'biweight': True},
        'filtering': {'min_correlation': 0.3, 'drop_undefined': True},
        'crossdating': {'seg_length': 50, 'bin_floor': 100, 'pcrit': 0.05},
        'detrending': {'method': 'ModNegExp', 'pos_slope': False},
        'chronology': {'biweight': True, 'prewhiten': True, 'smoothing_window': 20, 'min_overlap': 30},
        'climate': {'method': 'pearson', 'lags': [0, 1], 'alpha': 0.05, 'seasons': {'JJA': [6, 7, 8]}},
        'releases': {
            'backward_window': 10, 'forward_window': 10, 'buffer': 10,
            'minor_threshold': 0.25, 'major_threshold': 0.50, 'min_duration': 2
        },
        'pointer_years': {'rgv_threshold': 10, 'nseries_threshold': 75, 'min_series': 5},
        'validation': {'min_series_length': 30, 'min_completeness_pct': 50}
    }

    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump(config))
    return path


@pytest.fixture
def config(study_dir):
    return ConfigLoader(str(study_dir))
