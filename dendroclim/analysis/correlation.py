"""Interseries correlation and segment crossdating checks

Each series is compared with a master built from all *other* series, so a
series never correlates against itself. Series are optionally prewhitened
first so shared low-frequency trends do not inflate the correlations.
"""

import numpy as np
import pandas as pd
from scipy import stats
from typing import Dict, List, Tuple
from dendroclim.analysis.prewhiten import prewhiten_table
from dendroclim.analysis.robust import robust_row_mean
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


CORRELATION_METHODS = ('spearman', 'pearson', 'kendall')


def correlate(
    x,
    y,
    method: str = 'spearman',
    alternative: str = 'two-sided'
) -> Tuple[float, float, int]:
    """
    Correlate two aligned series over their pairwise-complete values

    Args:
        x, y: Aligned array-likes (NaN allowed)
        method: 'spearman', 'pearson' or 'kendall'
        alternative: Passed to the scipy test ('two-sided', 'greater', 'less')

    Returns:
        Tuple of (r, p_value, n); r and p are NaN when fewer than three
        pairs exist or either side is constant
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    mask = ~np.isnan(x) & ~np.isnan(y)
    n = int(mask.sum())

    if n < 3:
        return np.nan, np.nan, n

    x, y = x[mask], y[mask]
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return np.nan, np.nan, n

    if method == 'spearman':
        result = stats.spearmanr(x, y, alternative=alternative)
    elif method == 'pearson':
        result = stats.pearsonr(x, y, alternative=alternative)
    elif method == 'kendall':
        result = stats.kendalltau(x, y, alternative=alternative)
    else:
        raise ValueError(f"Unknown correlation method '{method}'. Use one of {CORRELATION_METHODS}")

    r, p = float(result[0]), float(result[1])
    return float(np.clip(r, -1.0, 1.0)), p, n


def leave_one_out_master(df: pd.DataFrame, series: str, biweight: bool = True) -> pd.Series:
    """
    Master series built from every column except one

    Args:
        df: Year-indexed table
        series: Column to leave out
        biweight: Use Tukey's biweight mean

    Returns:
        Year-indexed master series
    """
    return robust_row_mean(df.drop(columns=series), biweight=biweight)


class InterseriesCorrelation:
    """
    Correlate each series with the mean of all other series

    Output per series: correlation, p-value and number of paired years.
    """

    def __init__(
        self,
        method: str = 'spearman',
        prewhiten: bool = True,
        biweight: bool = True
    ):
        """
        Initialize interseries correlation

        Args:
            method: Correlation method ('spearman', 'pearson', 'kendall')
            prewhiten: Remove AR autocorrelation from all series first
            biweight: Build the master with Tukey's biweight mean
        """
        if method not in CORRELATION_METHODS:
            raise ValueError(f"Unknown correlation method '{method}'. Use one of {CORRELATION_METHODS}")

        self.method = method
        self.prewhiten = prewhiten
        self.biweight = biweight

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'InterseriesCorrelation':
        return cls(
            method=config.get('correlation.method', 'spearman'),
            prewhiten=config.get('correlation.prewhiten', True),
            biweight=config.get('correlation.biweight', True)
        )

    def prepare(self, rwl: pd.DataFrame) -> pd.DataFrame:
        """Apply the configured prewhitening to a ring-width table"""
        return prewhiten_table(rwl) if self.prewhiten else rwl

    def run(self, rwl: pd.DataFrame) -> pd.DataFrame:
        """
        Correlate every series against its leave-one-out master

        Args:
            rwl: Ring-width table (year x series)

        Returns:
            DataFrame indexed by series with columns r, p_value, n_years
        """
        log_section(logger, "INTERSERIES CORRELATION")
        logger.info(f"  Method: {self.method}, prewhiten: {self.prewhiten}, biweight: {self.biweight}")

        table = self.prepare(rwl)
        rows = []

        for name in table.columns:
            if table.shape[1] < 2:
                r, p, n = np.nan, np.nan, 0
            else:
                master = leave_one_out_master(table, name, self.biweight)
                r, p, n = correlate(table[name], master, self.method)

            rows.append({'series': name, 'r': r, 'p_value': p, 'n_years': n})

            if np.isnan(r):
                logger.warning(f"  {name}: correlation undefined ({n} paired years)")

        result = pd.DataFrame(rows, columns=['series', 'r', 'p_value', 'n_years']).set_index('series')

        if len(result):
            logger.info(f"  Mean interseries correlation: {result['r'].mean():.3f} ({len(result)} series)")

        return result


class SegmentCrossdating:
    """
    Check crossdating over overlapping fixed-length segments

    Segments of seg_length years are lagged by half their length. Every
    series is correlated with its leave-one-out master over each segment it
    fully covers; a segment whose correlation is below the critical value
    is flagged for visual inspection.
    """

    def __init__(
        self,
        seg_length: int = 50,
        bin_floor: int = 100,
        pcrit: float = 0.05,
        method: str = 'spearman',
        prewhiten: bool = True,
        biweight: bool = True
    ):
        """
        Initialize segment crossdating

        Args:
            seg_length: Segment length in years (even)
            bin_floor: First segment starts at the first year rounded up to a
                multiple of bin_floor (0 starts at the first year)
            pcrit: Critical p-value for the one-sided test
            method: Correlation method
            prewhiten: Remove AR autocorrelation first
            biweight: Build the master with Tukey's biweight mean
        """
        if seg_length < 4 or seg_length % 2:
            raise ValueError(f"seg_length must be an even number >= 4, got {seg_length}")
        if not 0 < pcrit < 1:
            raise ValueError(f"pcrit must be in (0, 1), got {pcrit}")

        self.seg_length = seg_length
        self.seg_lag = seg_length // 2
        self.bin_floor = bin_floor
        self.pcrit = pcrit
        self.correlation = InterseriesCorrelation(method=method, prewhiten=prewhiten, biweight=biweight)

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'SegmentCrossdating':
        return cls(
            seg_length=config.get('crossdating.seg_length', 50),
            bin_floor=config.get('crossdating.bin_floor', 100),
            pcrit=config.get('crossdating.pcrit', 0.05),
            method=config.get('correlation.method', 'spearman'),
            prewhiten=config.get('correlation.prewhiten', True),
            biweight=config.get('correlation.biweight', True)
        )

    @property
    def critical_r(self) -> float:
        """Critical correlation for a segment at the configured p-value"""
        return float(stats.norm.ppf(1 - self.pcrit) / np.sqrt(self.seg_length))

    def segments(self, rwl: pd.DataFrame) -> List[Tuple[int, int]]:
        """
        Segment (start, end) years covering the measured span of a table

        Args:
            rwl: Ring-width table

        Returns:
            List of inclusive (start, end) year pairs
        """
        measured = rwl.dropna(how='all').index
        if measured.empty:
            return []

        first, last = int(measured.min()), int(measured.max())
        if self.bin_floor:
            start = int(np.ceil(first / self.bin_floor) * self.bin_floor)
        else:
            start = first

        last_start = last - self.seg_length + 1
        if last_start < start:
            return []

        return [
            (s, s + self.seg_length - 1)
            for s in range(start, last_start + 1, self.seg_lag)
        ]

    def run(self, rwl: pd.DataFrame) -> pd.DataFrame:
        """
        Correlate every series with its master over every covered segment

        Args:
            rwl: Filtered ring-width table

        Returns:
            Long DataFrame with series, seg_start, seg_end, r, p_value,
            n_years, flagged
        """
        log_section(logger, "SEGMENT CROSSDATING")

        bins = self.segments(rwl)
        r_crit = self.critical_r
        logger.info(
            f"  {len(bins)} segments of {self.seg_length} years (lag {self.seg_lag}), "
            f"critical r = {r_crit:.3f} (p = {self.pcrit})"
        )

        columns = ['series', 'seg_start', 'seg_end', 'r', 'p_value', 'n_years', 'flagged']
        if not bins or rwl.shape[1] < 2:
            return pd.DataFrame(columns=columns)

        table = self.correlation.prepare(rwl)
        method = self.correlation.method
        rows = []

        for name in table.columns:
            measured = rwl[name].dropna().index
            if measured.empty:
                continue
            first, last = int(measured.min()), int(measured.max())
            master = leave_one_out_master(table, name, self.correlation.biweight)

            for start, end in bins:
                if first > start or last < end:
                    continue

                window = slice(start, end)
                r, p, n = correlate(table.loc[window, name], master.loc[window], method, alternative='greater')
                flagged = bool(np.isnan(r) or r < r_crit)
                rows.append({
                    'series': name,
                    'seg_start': start,
                    'seg_end': end,
                    'r': r,
                    'p_value': p,
                    'n_years': n,
                    'flagged': flagged
                })

        result = pd.DataFrame(rows, columns=columns)
        n_flagged = int(result['flagged'].sum()) if len(result) else 0
        logger.info(f"  Tested {len(result)} series-segments, {n_flagged} flagged")

        return result

    @staticmethod
    def to_wide(segments: pd.DataFrame) -> pd.DataFrame:
        """Pivot segment correlations to series x segment-start"""
        if segments.empty:
            return pd.DataFrame()
        return segments.pivot(index='series', columns='seg_start', values='r')

    @staticmethod
    def summarize(segments: pd.DataFrame) -> pd.DataFrame:
        """
        Per-series count of tested and flagged segments

        Returns:
            DataFrame indexed by series with n_segments, n_flagged,
            flagged_segments (e.g. "1850-1899; 1875-1924")
        """
        columns = ['n_segments', 'n_flagged', 'flagged_segments']
        if segments.empty:
            return pd.DataFrame(columns=columns)

        summary: Dict[str, Dict] = {}
        for name, group in segments.groupby('series', sort=False):
            flagged = group[group['flagged']]
            summary[name] = {
                'n_segments': len(group),
                'n_flagged': len(flagged),
                'flagged_segments': '; '.join(
                    f"{s}-{e}" for s, e in zip(flagged['seg_start'], flagged['seg_end'])
                )
            }

        result = pd.DataFrame.from_dict(summary, orient='index', columns=columns)
        result.index.name = 'series'
        return result
