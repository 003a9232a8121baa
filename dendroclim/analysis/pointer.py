"""Indicator (pointer) years from relative growth variation"""

import numpy as np
import pandas as pd
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


class PointerYearAnalyzer:
    """
    Find years with unusually narrow or wide rings across many series

    A year is a positive (negative) pointer year when at least
    nseries_threshold percent of the series show a relative growth
    variation of at least +rgv_threshold (-rgv_threshold) percent against
    the previous year.
    """

    def __init__(self, rgv_threshold: float = 10.0, nseries_threshold: float = 75.0, min_series: int = 5):
        self.rgv_threshold = rgv_threshold
        self.nseries_threshold = nseries_threshold
        self.min_series = min_series

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'PointerYearAnalyzer':
        return cls(
            rgv_threshold=config.get('pointer_years.rgv_threshold', 10.0),
            nseries_threshold=config.get('pointer_years.nseries_threshold', 75.0),
            min_series=config.get('pointer_years.min_series', 5)
        )

    @staticmethod
    def relative_growth_variation(rwl: pd.DataFrame) -> pd.DataFrame:
        """Percent change of each ring width against the previous year"""
        previous = rwl.shift(1)
        with np.errstate(divide='ignore', invalid='ignore'):
            rgv = 100.0 * (rwl - previous) / previous
        return rgv.replace([np.inf, -np.inf], np.nan)

    def run(self, rwl: pd.DataFrame) -> pd.DataFrame:
        """
        Classify every year of a ring-width table

        Args:
            rwl: Ring-width table (year x series)

        Returns:
            DataFrame indexed by year with n_series, pct_positive,
            pct_negative, mean_rgv, nature (+1, -1 or 0)
        """
        log_section(logger, "POINTER YEARS")

        rgv = self.relative_growth_variation(rwl)
        n_series = rgv.notna().sum(axis=1)
        denominator = n_series.where(n_series > 0)

        result = pd.DataFrame(index=rwl.index)
        result['n_series'] = n_series.astype(int)
        result['pct_positive'] = 100.0 * (rgv >= self.rgv_threshold).sum(axis=1) / denominator
        result['pct_negative'] = 100.0 * (rgv <= -self.rgv_threshold).sum(axis=1) / denominator
        result['mean_rgv'] = rgv.mean(axis=1)

        enough = result['n_series'] >= self.min_series
        nature = np.where(enough & (result['pct_positive'] >= self.nseries_threshold), 1, 0)
        nature = np.where(enough & (result['pct_negative'] >= self.nseries_threshold), -1, nature)
        result['nature'] = nature.astype(int)

        positive = result.index[result['nature'] == 1].tolist()
        negative = result.index[result['nature'] == -1].tolist()
        logger.info(f"  Positive pointer years: {positive}")
        logger.info(f"  Negative pointer years: {negative}")

        return result
