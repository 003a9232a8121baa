"""Robust central estimates used for chronology and master series"""

import numpy as np
import pandas as pd


def tukey_biweight_mean(
    values,
    c: float = 9.0,
    epsilon: float = 1e-6,
    max_iter: int = 20,
    tol: float = 1e-10
) -> float:
    """
    Tukey's biweight robust mean

    Starts from the median and iteratively reweights observations by their
    distance from the current center, scaled by c times the median absolute
    deviation. Observations further than c*MAD get zero weight.

    Args:
        values: Array-like of observations (NaN ignored)
        c: Tuning constant
        epsilon: Added to the scale so a zero MAD cannot divide by zero
        max_iter: Maximum reweighting iterations
        tol: Convergence tolerance on the center

    Returns:
        Robust mean, or NaN when no observations are present
    """
    x = np.asarray(values, dtype=float)
    x = x[~np.isnan(x)]

    if x.size == 0:
        return np.nan
    if x.size == 1:
        return float(x[0])

    center = np.median(x)
    scale = c * np.median(np.abs(x - center)) + epsilon

    for _ in range(max_iter):
        u = (x - center) / scale
        weights = np.where(np.abs(u) <= 1.0, (1.0 - u ** 2) ** 2, 0.0)
        total = weights.sum()
        if total == 0:
            break

        updated = float(np.sum(weights * x) / total)
        converged = abs(updated - center) < tol
        center = updated
        if converged:
            break

    return float(center)


def robust_row_mean(df: pd.DataFrame, biweight: bool = True) -> pd.Series:
    """
    Per-row central estimate across the columns of a table

    Args:
        df: Year-indexed table
        biweight: Use Tukey's biweight mean instead of the arithmetic mean

    Returns:
        Series indexed like df; NaN for rows without observations
    """
    if df.shape[1] == 0:
        return pd.Series(np.nan, index=df.index, dtype=float)

    if not biweight:
        return df.mean(axis=1, skipna=True)

    values = df.to_numpy(dtype=float)
    means = [tukey_biweight_mean(row) for row in values]
    return pd.Series(means, index=df.index, dtype=float)
