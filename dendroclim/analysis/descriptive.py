"""Descriptive statistics of ring-width series and sites"""

import numpy as np
import pandas as pd
from typing import Optional


def mean_sensitivity(series: pd.Series) -> float:
    """Mean absolute relative difference between consecutive rings"""
    x = series.dropna()
    if len(x) < 2:
        return np.nan

    current, previous = x.to_numpy()[1:], x.to_numpy()[:-1]
    total = current + previous
    with np.errstate(divide='ignore', invalid='ignore'):
        ratio = np.abs(2.0 * (current - previous) / total)
    ratio = ratio[np.isfinite(ratio)]
    return float(ratio.mean()) if ratio.size else np.nan


def series_statistics(rwl: pd.DataFrame) -> pd.DataFrame:
    """
    Summary statistics for every series of a ring-width table

    Args:
        rwl: Ring-width table (year x series)

    Returns:
        DataFrame indexed by series with first, last, n_years, mean,
        median, stdev, skew, sens1, ar1
    """
    rows = []
    for name in rwl.columns:
        x = rwl[name].dropna()
        if x.empty:
            continue
        rows.append({
            'series': name,
            'first': int(x.index.min()),
            'last': int(x.index.max()),
            'n_years': len(x),
            'mean': x.mean(),
            'median': x.median(),
            'stdev': x.std(),
            'skew': x.skew(),
            'sens1': mean_sensitivity(rwl[name]),
            'ar1': rwl[name].autocorr(lag=1) if len(x) > 2 else np.nan
        })

    columns = ['series', 'first', 'last', 'n_years', 'mean', 'median', 'stdev', 'skew', 'sens1', 'ar1']
    return pd.DataFrame(rows, columns=columns).set_index('series')


def assign_sites(series_ids, sites: pd.DataFrame) -> pd.Series:
    """
    Assign each series to the site whose id is its longest prefix

    Args:
        series_ids: Iterable of series identifiers
        sites: Site table with a site_id column

    Returns:
        Series mapping series id -> site id (NaN when no site matches)
    """
    site_ids = sorted(sites['site_id'].astype(str), key=len, reverse=True)
    mapping = {}
    for series_id in series_ids:
        mapping[series_id] = next(
            (site for site in site_ids if str(series_id).startswith(site)), np.nan
        )
    return pd.Series(mapping, dtype=object, name='site_id')


def site_summary(rwl: pd.DataFrame, sites: pd.DataFrame, assignment: Optional[pd.Series] = None) -> pd.DataFrame:
    """
    Per-site series counts and common span

    Args:
        rwl: Ring-width table
        sites: Site table
        assignment: Precomputed series -> site mapping

    Returns:
        Site table extended with n_series, first, last
    """
    if assignment is None:
        assignment = assign_sites(rwl.columns, sites)

    summary = sites.copy().set_index('site_id')
    summary['n_series'] = 0
    summary['first'] = pd.NA
    summary['last'] = pd.NA

    for site_id, members in assignment.dropna().groupby(assignment.dropna()):
        if site_id not in summary.index:
            continue
        measured = rwl[members.index.tolist()].dropna(how='all')
        summary.loc[site_id, 'n_series'] = len(members)
        if len(measured):
            summary.loc[site_id, 'first'] = int(measured.index.min())
            summary.loc[site_id, 'last'] = int(measured.index.max())

    return summary.reset_index()
