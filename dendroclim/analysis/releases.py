"""Growth-release detection by radial growth averaging

For every year t the mean ring width of the backward window ending at t
(M1) is compared with the mean of the forward window after t (M2):

    %GC = (M2 - M1) / M1

A sustained run of years above the minor threshold is one release, dated
at the run's peak. Defaults follow the Nowacki & Abrams (1997) criteria:
10-year windows, 25% minor and 50% major increase.
"""

import numpy as np
import pandas as pd
from typing import Dict, List
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


NO_RELEASE = 0
MINOR_RELEASE = 1
MAJOR_RELEASE = 2

RELEASE_KINDS = {MINOR_RELEASE: 'minor', MAJOR_RELEASE: 'major'}


class ReleaseDetector:
    """
    Detect growth releases in ring-width series

    Outputs:
    - percent growth change per series and year
    - release flags per series and year (0 none, 1 minor, 2 major)
    - an event list and a year-by-year count of releasing trees
    """

    def __init__(
        self,
        backward_window: int = 10,
        forward_window: int = 10,
        buffer: int = 10,
        minor_threshold: float = 0.25,
        major_threshold: float = 0.50,
        min_duration: int = 2
    ):
        """
        Initialize release detector

        Args:
            backward_window: Years averaged up to and including t (M1)
            forward_window: Years averaged after t (M2)
            buffer: Years at either end of a series that are not evaluated
            minor_threshold: Relative increase for a minor release (0.25 = 25%)
            major_threshold: Relative increase for a major release
            min_duration: Consecutive years above minor_threshold required
        """
        if backward_window < 1 or forward_window < 1:
            raise ValueError("Window lengths must be positive")
        if major_threshold < minor_threshold:
            raise ValueError(
                f"major_threshold ({major_threshold}) must not be below "
                f"minor_threshold ({minor_threshold})"
            )
        if min_duration < 1:
            raise ValueError(f"min_duration must be >= 1, got {min_duration}")

        self.backward_window = backward_window
        self.forward_window = forward_window
        self.buffer = max(int(buffer), 0)
        self.minor_threshold = minor_threshold
        self.major_threshold = major_threshold
        self.min_duration = min_duration

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'ReleaseDetector':
        return cls(
            backward_window=config.get('releases.backward_window', 10),
            forward_window=config.get('releases.forward_window', 10),
            buffer=config.get('releases.buffer', 10),
            minor_threshold=config.get('releases.minor_threshold', 0.25),
            major_threshold=config.get('releases.major_threshold', 0.50),
            min_duration=config.get('releases.min_duration', 2)
        )

    def criteria(self) -> Dict:
        """Parameters in effect, for reports"""
        return {
            'backward_window': self.backward_window,
            'forward_window': self.forward_window,
            'buffer': self.buffer,
            'minor_threshold': self.minor_threshold,
            'major_threshold': self.major_threshold,
            'min_duration': self.min_duration
        }

    def percent_growth_change(self, series: pd.Series) -> pd.Series:
        """
        Relative change between the forward and backward window means

        Years without complete windows, and years within the buffer of the
        series' first or last measurement, are NaN.

        Args:
            series: Year-indexed ring widths on a contiguous year index

        Returns:
            Series of %GC as fractions (0.3 = 30%)
        """
        pgc = pd.Series(np.nan, index=series.index, dtype=float, name=series.name)
        valid = series.dropna()
        if valid.empty:
            return pgc

        prior = series.rolling(self.backward_window, min_periods=self.backward_window).mean()
        after = (
            series[::-1]
            .rolling(self.forward_window, min_periods=self.forward_window)
            .mean()[::-1]
            .shift(-1)
        )

        with np.errstate(divide='ignore', invalid='ignore'):
            change = (after - prior) / prior
        change = change.replace([np.inf, -np.inf], np.nan)

        first = valid.index.min() + self.buffer
        last = valid.index.max() - self.buffer
        inside = (series.index >= first) & (series.index <= last)

        pgc[inside] = change[inside]
        return pgc

    def flag_series(self, pgc: pd.Series) -> pd.Series:
        """
        Turn a %GC series into release flags

        Args:
            pgc: Percent growth change series

        Returns:
            Integer series: 0 none, 1 minor, 2 major (at each run's peak year)
        """
        flags = pd.Series(NO_RELEASE, index=pgc.index, dtype=int, name=pgc.name)
        above = (pgc >= self.minor_threshold).to_numpy()
        values = pgc.to_numpy(dtype=float)

        start = None
        for i, is_above in enumerate(np.append(above, False)):
            if is_above and start is None:
                start = i
            elif not is_above and start is not None:
                if i - start >= self.min_duration:
                    peak = start + int(np.nanargmax(values[start:i]))
                    kind = MAJOR_RELEASE if values[peak] >= self.major_threshold else MINOR_RELEASE
                    flags.iloc[peak] = kind
                start = None

        return flags

    def run(self, rwl: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        """
        Detect releases in every series of a ring-width table

        Args:
            rwl: Unfiltered ring-width table (year x series)

        Returns:
            Dictionary with 'pgc', 'flags', 'events' and 'counts' tables
        """
        log_section(logger, "GROWTH RELEASE DETECTION")
        logger.info(
            f"  Windows: {self.backward_window}/{self.forward_window} years, "
            f"buffer {self.buffer}, thresholds {self.minor_threshold:.0%}/{self.major_threshold:.0%}, "
            f"min duration {self.min_duration}"
        )

        pgc = rwl.apply(self.percent_growth_change, axis=0)
        flags = pgc.apply(self.flag_series, axis=0).astype(int)

        events = self.events(flags, pgc)
        counts = self.count_by_year(flags, rwl)

        n_minor = int((events['kind'] == 'minor').sum())
        n_major = int((events['kind'] == 'major').sum())
        logger.info(f"  Found {n_minor} minor and {n_major} major releases in {rwl.shape[1]} series")

        return {'pgc': pgc, 'flags': flags, 'events': events, 'counts': counts}

    @staticmethod
    def events(flags: pd.DataFrame, pgc: pd.DataFrame) -> pd.DataFrame:
        """
        List individual release events

        Returns:
            DataFrame with series, year, pgc, kind
        """
        rows: List[Dict] = []
        for name in flags.columns:
            flagged = flags[name][flags[name] > NO_RELEASE]
            for year, kind in flagged.items():
                rows.append({
                    'series': name,
                    'year': int(year),
                    'pgc': float(pgc.at[year, name]),
                    'kind': RELEASE_KINDS[int(kind)]
                })

        events = pd.DataFrame(rows, columns=['series', 'year', 'pgc', 'kind'])
        return events.sort_values(['year', 'series']).reset_index(drop=True)

    @staticmethod
    def count_by_year(flags: pd.DataFrame, rwl: pd.DataFrame) -> pd.DataFrame:
        """
        Year-by-year count of trees releasing

        Returns:
            DataFrame indexed by year with n_trees, n_minor, n_major,
            n_releases, pct_releasing
        """
        counts = pd.DataFrame(index=flags.index)
        counts['n_trees'] = rwl.notna().sum(axis=1).astype(int)
        counts['n_minor'] = (flags == MINOR_RELEASE).sum(axis=1).astype(int)
        counts['n_major'] = (flags == MAJOR_RELEASE).sum(axis=1).astype(int)
        counts['n_releases'] = counts['n_minor'] + counts['n_major']
        counts['pct_releasing'] = (
            100.0 * counts['n_releases'] / counts['n_trees'].where(counts['n_trees'] > 0)
        )
        return counts
