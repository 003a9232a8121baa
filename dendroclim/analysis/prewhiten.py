"""Autoregressive prewhitening of ring-width series"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple
import warnings
from dendroclim.utils.logging_config import get_logger

from statsmodels.tsa.ar_model import AutoReg, ar_select_order


logger = get_logger(__name__)


def max_ar_order(n: int) -> int:
    """Largest AR order tried for a series of n values: min(n/2 - 1, 10 * log10(n))"""
    if n < 4:
        return 0
    return int(min(n // 2 - 1, np.floor(10 * np.log10(n))))


def select_ar_order(x: np.ndarray, max_order: Optional[int] = None) -> Tuple[int, np.ndarray]:
    """
    Choose an AR order by AIC

    Args:
        x: Demeaned series without gaps
        max_order: Largest order tried (default max_ar_order(len(x)))

    Returns:
        Tuple of (order, AR coefficients)
    """
    if max_order is None:
        max_order = max_ar_order(len(x))
    if max_order < 1:
        return 0, np.array([])

    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        try:
            selection = ar_select_order(x, maxlag=max_order, ic='aic', trend='n')
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.debug(f"AR order selection failed: {e}")
            return 0, np.array([])

    lags = selection.ar_lags or []
    if not lags:
        return 0, np.array([])

    order = int(max(lags))
    fit = AutoReg(x, lags=order, trend='n').fit()
    return order, np.asarray(fit.params, dtype=float)


def ar_prewhiten(series: pd.Series, max_order: Optional[int] = None) -> pd.Series:
    """
    Remove autocorrelation from a series with an AIC-selected AR model

    Missing years are dropped before fitting; residuals are placed back at
    their years and shifted by the series mean so prewhitened values stay on
    the original scale. The first `order` years have no residual.

    Args:
        series: Year-indexed series (NaN allowed)
        max_order: Largest AR order tried

    Returns:
        Prewhitened series indexed like the input
    """
    result = pd.Series(np.nan, index=series.index, dtype=float)
    y = series.dropna()

    if len(y) < 3:
        return result

    mean = float(y.mean())
    x = y.to_numpy(dtype=float) - mean

    if np.allclose(x, 0):
        result.loc[y.index] = y.to_numpy(dtype=float)
        return result

    order, _ = select_ar_order(x, max_order)
    residuals = np.full(len(x), np.nan)

    if order == 0:
        residuals = x.copy()
    else:
        with warnings.catch_warnings():
            warnings.filterwarnings('ignore')
            residuals[order:] = AutoReg(x, lags=order, trend='n').fit().resid

    logger.debug(f"Prewhitened {series.name} with AR({order})")

    result.loc[y.index] = residuals + mean
    return result


def prewhiten_table(df: pd.DataFrame, max_order: Optional[int] = None) -> pd.DataFrame:
    """Prewhiten every column of a year-indexed table"""
    return df.apply(lambda col: ar_prewhiten(col, max_order), axis=0)
