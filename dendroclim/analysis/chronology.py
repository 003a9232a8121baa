"""Mean-value chronology aggregation and chronology statistics"""

import numpy as np
import pandas as pd
from typing import Dict
from dendroclim.analysis.prewhiten import prewhiten_table
from dendroclim.analysis.robust import robust_row_mean
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


def hanning_smooth(series: pd.Series, window: int = 20) -> pd.Series:
    """
    Smooth a year-indexed series with a Hanning filter

    Only the span between the first and last valid value is smoothed;
    edge years use the part of the window that overlaps the data.

    Args:
        series: Year-indexed series
        window: Filter length in years (even lengths are rounded up to odd)

    Returns:
        Smoothed series indexed like the input
    """
    result = pd.Series(np.nan, index=series.index, dtype=float)
    valid = series.dropna()

    if valid.empty or window < 2:
        result.loc[valid.index] = valid
        return result

    span = series.loc[valid.index.min():valid.index.max()]
    values = span.to_numpy(dtype=float)
    present = ~np.isnan(values)

    # Odd kernel keeps the filter centred on each year
    length = window + 1 if window % 2 == 0 else window
    limit = len(values) if len(values) % 2 else len(values) - 1
    length = max(min(length, limit), 1)
    weights = np.hanning(length + 2)[1:-1]

    numerator = np.convolve(np.where(present, values, 0.0), weights, mode='same')
    denominator = np.convolve(present.astype(float), weights, mode='same')

    with np.errstate(invalid='ignore', divide='ignore'):
        smoothed = numerator / denominator

    result.loc[span.index] = np.where(denominator > 0, smoothed, np.nan)
    return result


class ChronologyBuilder:
    """
    Aggregate ring-width indices into a mean-value chronology

    Columns produced:
    - std: robust mean of RWI per year
    - res: robust mean of AR-prewhitened RWI per year (residual chronology)
    - samp_depth: number of series contributing to the year
    - smooth: Hanning overlay of std, for display only

    Years without any contributing series keep NaN values.
    """

    def __init__(
        self,
        biweight: bool = True,
        prewhiten: bool = True,
        smoothing_window: int = 20,
        min_overlap: int = 30
    ):
        """
        Initialize chronology builder

        Args:
            biweight: Tukey's biweight mean instead of the arithmetic mean
            prewhiten: Also build the residual chronology
            smoothing_window: Hanning filter length for the overlay
            min_overlap: Minimum common years for a pair to enter rbar
        """
        self.biweight = biweight
        self.prewhiten = prewhiten
        self.smoothing_window = smoothing_window
        self.min_overlap = min_overlap

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'ChronologyBuilder':
        return cls(
            biweight=config.get('chronology.biweight', True),
            prewhiten=config.get('chronology.prewhiten', True),
            smoothing_window=config.get('chronology.smoothing_window', 20),
            min_overlap=config.get('chronology.min_overlap', 30)
        )

    def build(self, rwi: pd.DataFrame) -> pd.DataFrame:
        """
        Build the chronology from a ring-width index table

        Args:
            rwi: RWI table (year x series)

        Returns:
            DataFrame indexed by year with std, res, samp_depth, smooth
        """
        log_section(logger, "CHRONOLOGY")

        chron = pd.DataFrame(index=rwi.index)
        chron['std'] = robust_row_mean(rwi, biweight=self.biweight)

        if self.prewhiten:
            chron['res'] = robust_row_mean(prewhiten_table(rwi), biweight=self.biweight)

        chron['samp_depth'] = rwi.notna().sum(axis=1).astype(int)
        chron['smooth'] = hanning_smooth(chron['std'], self.smoothing_window)

        covered = chron[chron['samp_depth'] > 0]
        if len(covered):
            logger.info(
                f"  {len(covered)} years ({covered.index.min()}-{covered.index.max()}), "
                f"max depth {covered['samp_depth'].max()}"
            )

        return chron

    def statistics(self, rwi: pd.DataFrame) -> Dict[str, float]:
        """
        Signal statistics of a ring-width index table

        Args:
            rwi: RWI table (year x series)

        Returns:
            Dictionary with n_series, n_pairs, rbar, mean_depth, eps, snr
        """
        corr = rwi.corr(method='pearson', min_periods=self.min_overlap)
        upper = corr.where(np.triu(np.ones(corr.shape, dtype=bool), k=1))
        pair_r = upper.stack().dropna()

        depth = rwi.notna().sum(axis=1)
        depth = depth[depth > 0]
        n = float(depth.mean()) if len(depth) else np.nan
        rbar = float(pair_r.mean()) if len(pair_r) else np.nan

        eps = n * rbar / (1 + (n - 1) * rbar) if np.isfinite(rbar) else np.nan
        snr = n * rbar / (1 - rbar) if np.isfinite(rbar) and rbar < 1 else np.nan

        stats = {
            'n_series': int(rwi.shape[1]),
            'n_pairs': int(len(pair_r)),
            'rbar': rbar,
            'mean_depth': n,
            'eps': float(eps),
            'snr': float(snr)
        }

        logger.info(f"  rbar = {rbar:.3f}, EPS = {eps:.3f}, SNR = {snr:.2f} ({len(pair_r)} pairs)")

        return stats
