"""Tests for growth-curve detrending."""

import numpy as np
import pandas as pd
import pytest

from dendroclim.analysis.detrend import Detrender, negative_exponential


def neg_exp_widths(n=150, seed=5, first=1850):
    rng = np.random.default_rng(seed)
    t = np.arange(n, dtype=float)
    widths = negative_exponential(t, 2.0, 0.03, 0.4) * (1 + 0.1 * rng.normal(0.0, 1.0, n))
    return pd.Series(widths, index=np.arange(first, first + n), name='tree')


def test_negative_exponential_fit_gives_unit_mean_index():
    series = neg_exp_widths()
    detrender = Detrender()

    curve, kind = detrender.fit_curve(series)
    rwi = series / curve

    assert kind == 'neg_exp'
    assert rwi.mean() == pytest.approx(1.0, abs=0.05)
    # Age trend is gone from the index
    first_half, second_half = rwi.iloc[:75].mean(), rwi.iloc[75:].mean()
    assert abs(first_half - second_half) < 0.1


def test_increasing_series_falls_back():
    years = np.arange(1900, 1960)
    series = pd.Series(np.linspace(0.5, 2.0, len(years)), index=years)

    curve, kind = Detrender(pos_slope=False).fit_curve(series)
    assert kind == 'mean'
    assert np.allclose(curve, series.mean())

    curve, kind = Detrender(pos_slope=True).fit_curve(series)
    assert kind == 'linear'
    assert np.allclose(series / curve, 1.0)


def test_mean_method():
    series = neg_exp_widths()
    curve, kind = Detrender(method='Mean').fit_curve(series)

    assert kind == 'mean'
    assert np.allclose(curve, series.mean())


def test_run_keeps_shape_and_gaps(rwl):
    detrender = Detrender()
    rwi = detrender.run(rwl)

    assert rwi.shape == rwl.shape
    assert (rwi.isna() == rwl.isna()).all().all()
    assert (rwi.mean() - 1.0).abs().max() < 0.1
    assert set(detrender.curve_summary()['curve']) <= {'neg_exp', 'linear', 'mean'}


def test_empty_series():
    series = pd.Series(np.nan, index=np.arange(1900, 1910))
    curve, kind = Detrender().fit_curve(series)

    assert kind == 'none'
    assert curve.isna().all()


def test_unknown_method():
    with pytest.raises(ValueError):
        Detrender(method='Spline')
