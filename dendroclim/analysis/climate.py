"""Correlation of the chronology with drought indices"""

import numpy as np
import pandas as pd
from typing import Dict, Iterable, List, Optional
from dendroclim.analysis.correlation import correlate, CORRELATION_METHODS
from dendroclim.data.loaders import complete_years
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


MONTH_NAMES = ['january', 'february', 'march', 'april', 'may', 'june',
               'july', 'august', 'september', 'october', 'november', 'december']

# Full names and three-letter abbreviations
MONTH_LOOKUP = {name: i + 1 for i, name in enumerate(MONTH_NAMES)}
MONTH_LOOKUP.update({name[:3]: i + 1 for i, name in enumerate(MONTH_NAMES)})

RESULT_COLUMNS = ['source', 'chronology', 'variable', 'lag', 'r', 'p_value', 'n_years', 'significant']


def month_columns(table: pd.DataFrame) -> Dict[int, object]:
    """
    Map month numbers to the columns holding them

    Recognizes integer columns 1-12, their string forms, and English month
    names written in full or as three-letter abbreviations.

    Returns:
        Dictionary month number -> column label
    """
    found = {}
    for col in table.columns:
        label = str(col).strip().lower()
        if label.isdigit() and 1 <= int(label) <= 12:
            found[int(label)] = col
        elif label in MONTH_LOOKUP:
            found[MONTH_LOOKUP[label]] = col
    return found


def add_seasonal_means(table: pd.DataFrame, seasons: Optional[Dict[str, List[int]]] = None) -> pd.DataFrame:
    """
    Add seasonal and annual means of monthly columns

    Args:
        table: Year-indexed drought-index table
        seasons: Season name -> list of month numbers

    Returns:
        Copy of the table with one extra column per season plus 'annual'
        when all twelve months are present
    """
    table = table.copy()
    months = month_columns(table)
    if not months:
        return table

    for name, members in (seasons or {}).items():
        cols = [months[m] for m in members if m in months]
        if len(cols) != len(members):
            logger.warning(f"Season {name}: months {members} not all present, skipping")
            continue
        table[name] = table[cols].mean(axis=1)

    if len(months) == 12:
        table['annual'] = table[[months[m] for m in range(1, 13)]].mean(axis=1)

    return table


class ClimateCorrelation:
    """
    Correlate chronology columns with every drought-index variable

    A lag of k compares climate in year t - k with growth in year t.
    """

    def __init__(
        self,
        method: str = 'pearson',
        lags: Iterable[int] = (0, 1),
        alpha: float = 0.05,
        seasons: Optional[Dict[str, List[int]]] = None
    ):
        """
        Initialize climate correlation

        Args:
            method: Correlation method
            lags: Climate lags in years
            alpha: Significance level for the 'significant' column
            seasons: Seasons to aggregate from monthly columns
        """
        if method not in CORRELATION_METHODS:
            raise ValueError(f"Unknown correlation method '{method}'. Use one of {CORRELATION_METHODS}")

        self.method = method
        self.lags = [int(lag) for lag in lags]
        self.alpha = alpha
        self.seasons = seasons or {}

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'ClimateCorrelation':
        return cls(
            method=config.get('climate.method', 'pearson'),
            lags=config.get('climate.lags', [0, 1]),
            alpha=config.get('climate.alpha', 0.05),
            seasons=config.get('climate.seasons', {})
        )

    def correlate_source(
        self,
        chronology: pd.DataFrame,
        index_table: pd.DataFrame,
        source: str
    ) -> pd.DataFrame:
        """
        Correlate chronology columns with the variables of one source

        Args:
            chronology: Chronology table (std and optionally res)
            index_table: Year-indexed drought-index table
            source: Source name

        Returns:
            Long DataFrame of correlations
        """
        table = complete_years(add_seasonal_means(index_table, self.seasons))
        chron_cols = [c for c in ('std', 'res') if c in chronology.columns]
        rows = []

        for lag in self.lags:
            shifted = table.shift(lag)
            common = chronology.index.intersection(shifted.index)
            for chron_col in chron_cols:
                growth = chronology.loc[common, chron_col]
                for variable in shifted.columns:
                    r, p, n = correlate(growth, shifted.loc[common, variable], self.method)
                    rows.append({
                        'source': source,
                        'chronology': chron_col,
                        'variable': str(variable),
                        'lag': lag,
                        'r': r,
                        'p_value': p,
                        'n_years': n,
                        'significant': bool(p < self.alpha) if not np.isnan(p) else False
                    })

        return pd.DataFrame(rows, columns=RESULT_COLUMNS)

    def run(self, chronology: pd.DataFrame, indices: Dict[str, pd.DataFrame]) -> pd.DataFrame:
        """
        Correlate the chronology with every drought-index source

        Args:
            chronology: Chronology table
            indices: Source name -> drought-index table

        Returns:
            Long DataFrame of correlations for all sources
        """
        log_section(logger, "DROUGHT INDEX CORRELATION")

        frames = [self.correlate_source(chronology, table, name) for name, table in indices.items()]
        if not frames:
            logger.warning("No drought indices configured")
            return pd.DataFrame(columns=RESULT_COLUMNS)

        result = pd.concat(frames, ignore_index=True)

        for source, group in result.groupby('source'):
            valid = group.dropna(subset=['r'])
            if valid.empty:
                logger.warning(f"  {source}: no overlapping years with the chronology")
                continue
            best = valid.loc[valid['r'].abs().idxmax()]
            logger.info(
                f"  {source}: strongest r = {best['r']:.3f} ({best['chronology']} vs "
                f"{best['variable']}, lag {best['lag']}, n = {best['n_years']})"
            )

        return result
