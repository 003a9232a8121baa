"""Series filtering for the ring-width table"""

import pandas as pd
from typing import Iterable, List, Optional
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger


logger = get_logger(__name__)


class SeriesFilter:
    """
    Remove poorly correlated or manually excluded series

    Rules:
    1. Series in exclude_series are always removed
    2. Series with r below min_correlation are removed
       (unless listed in keep_series)
    3. Series with an undefined correlation are removed when drop_undefined
    """

    def __init__(
        self,
        min_correlation: float = 0.3,
        drop_undefined: bool = True,
        exclude_series: Optional[Iterable[str]] = None,
        keep_series: Optional[Iterable[str]] = None
    ):
        """
        Initialize series filter

        Args:
            min_correlation: Minimum interseries correlation kept
            drop_undefined: Remove series whose correlation is NaN
            exclude_series: Series removed regardless of correlation
            keep_series: Series never removed by the correlation rule
        """
        self.min_correlation = min_correlation
        self.drop_undefined = drop_undefined
        self.exclude_series = set(exclude_series or [])
        self.keep_series = set(keep_series or [])
        self.removed: List[dict] = []

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'SeriesFilter':
        return cls(
            min_correlation=config.get('filtering.min_correlation', 0.3),
            drop_undefined=config.get('filtering.drop_undefined', True),
            exclude_series=config.get('filtering.exclude_series', []),
            keep_series=config.get('filtering.keep_series', [])
        )

    def select(self, correlations: pd.DataFrame) -> List[str]:
        """
        Decide which series to remove

        Args:
            correlations: Interseries correlation table indexed by series
                with an 'r' column

        Returns:
            List of series names to remove
        """
        self.removed = []

        for name, row in correlations.iterrows():
            reason = None
            if name in self.exclude_series:
                reason = 'excluded'
            elif name in self.keep_series:
                continue
            elif pd.isna(row['r']):
                if self.drop_undefined:
                    reason = 'undefined correlation'
            elif row['r'] < self.min_correlation:
                reason = f"r = {row['r']:.3f} < {self.min_correlation}"

            if reason:
                self.removed.append({'series': name, 'r': row['r'], 'reason': reason})

        return [item['series'] for item in self.removed]

    def apply(self, rwl: pd.DataFrame, correlations: pd.DataFrame) -> pd.DataFrame:
        """
        Remove series from a ring-width table

        Args:
            rwl: Ring-width table (year x series)
            correlations: Interseries correlation table

        Returns:
            Filtered copy of the table
        """
        initial_count = rwl.shape[1]
        logger.info(f"Filtering {initial_count} series (min r = {self.min_correlation})")

        to_remove = [name for name in self.select(correlations) if name in rwl.columns]
        unknown = self.exclude_series - set(rwl.columns)
        if unknown:
            logger.warning(f"  Excluded series not in table: {sorted(unknown)}")

        for item in self.removed:
            logger.info(f"  Removed {item['series']}: {item['reason']}")

        filtered = rwl.drop(columns=to_remove)
        # Years no remaining series covers are trimmed from the ends
        measured = filtered.dropna(how='all').index
        if len(measured):
            filtered = filtered.loc[measured.min():measured.max()]

        logger.info(
            f"Filtering complete: {len(to_remove)} series removed, "
            f"{filtered.shape[1]} remaining"
        )

        return filtered

    def removed_table(self) -> pd.DataFrame:
        """Series removed by the last call, with the reason"""
        return pd.DataFrame(self.removed, columns=['series', 'r', 'reason'])
