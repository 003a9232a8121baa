"""Data loaders for ring-width, site and drought-index tables"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, Optional, Union
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger


logger = get_logger(__name__)


YEAR_COLUMN_NAMES = ['year', 'Year', 'YEAR', 'yr']

SITE_COLUMNS = ['site_id', 'latitude', 'longitude', 'taxon']


class RingWidthLoader:
    """
    Load the input tables of a chronology study

    Handles loading of:
    - Ring-width matrix (CSV, year x core)
    - Site coordinates and taxon (CSV)
    - Drought-index series (CSV, wide or long monthly format)
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize data loader

        Args:
            config: Configuration loader instance
        """
        self.config = config if config else ConfigLoader()
        self.data_path = self.config.get_path('data.raw_path', 'data/raw')
        logger.info(f"Data loader initialized with path: {self.data_path}")

    def _resolve(self, file_name: Union[str, Path]) -> Path:
        """Resolve a file name against the raw data directory"""
        path = Path(file_name)
        if not path.is_absolute():
            path = self.data_path / path
        return path

    @staticmethod
    def _set_year_index(df: pd.DataFrame, source: Path) -> pd.DataFrame:
        """Move the year column into a sorted integer index"""
        year_col = next((c for c in YEAR_COLUMN_NAMES if c in df.columns), None)
        if year_col is None:
            # Unnamed first column written by DataFrame.to_csv()
            first = df.columns[0]
            if str(first).startswith('Unnamed') or first == '':
                year_col = first
            else:
                raise ValueError(
                    f"No year column found in {source}. "
                    f"Expected one of {YEAR_COLUMN_NAMES}"
                )

        years = pd.to_numeric(df[year_col], errors='coerce')
        if years.isna().any():
            raise ValueError(f"Non-numeric year values in {source}")

        df = df.drop(columns=year_col)
        df.index = years.astype(int)
        df.index.name = 'year'

        if df.index.duplicated().any():
            dupes = df.index[df.index.duplicated()].unique().tolist()
            raise ValueError(f"Duplicate years in {source}: {dupes[:10]}")

        return df.sort_index()

    def load_ring_widths(self, file_name: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """
        Load the ring-width matrix

        Rows are calendar years, columns are cores. The year index is made
        contiguous so that window computations see explicit gaps.

        Args:
            file_name: Override default file name from config

        Returns:
            DataFrame indexed by year with one float column per core
        """
        if file_name is None:
            file_name = self.config.get('data.ring_widths', 'ring_widths.csv')

        file_path = self._resolve(file_name)
        logger.info(f"Loading ring widths from: {file_path}")

        if not file_path.exists():
            raise FileNotFoundError(f"Ring-width file not found: {file_path}")

        df = pd.read_csv(file_path)
        df = self._set_year_index(df, file_path)
        df.columns = [str(c).strip() for c in df.columns]
        df = df.apply(pd.to_numeric, errors='coerce').astype(float)

        if (df < 0).any().any():
            bad = df.columns[(df < 0).any()].tolist()
            raise ValueError(f"Negative ring widths in series: {bad}")

        df = df.dropna(how='all', axis=1)
        df = complete_years(df)

        logger.info(
            f"Loaded {df.shape[1]} series spanning {df.index.min()}-{df.index.max()} "
            f"({len(df)} years)"
        )

        return df

    def load_sites(self, file_name: Optional[Union[str, Path]] = None) -> pd.DataFrame:
        """
        Load site coordinates and taxon

        Args:
            file_name: Override default file name from config

        Returns:
            DataFrame with one row per site
        """
        if file_name is None:
            file_name = self.config.get('data.sites', 'sites.csv')

        file_path = self._resolve(file_name)
        logger.info(f"Loading sites from: {file_path}")

        if not file_path.exists():
            raise FileNotFoundError(f"Site file not found: {file_path}")

        df = pd.read_csv(file_path)
        df.columns = [str(c).strip().lower() for c in df.columns]

        missing = [c for c in SITE_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Site table {file_path} is missing columns: {missing}")

        df['site_id'] = df['site_id'].astype(str).str.strip()
        df['latitude'] = pd.to_numeric(df['latitude'], errors='coerce')
        df['longitude'] = pd.to_numeric(df['longitude'], errors='coerce')

        logger.info(f"Loaded {len(df)} sites")

        return df

    def load_drought_index(self, file_name: Union[str, Path]) -> pd.DataFrame:
        """
        Load one drought-index series

        Accepts wide tables (year + value columns) and long monthly tables
        (year, month, value), which are pivoted to one column per month.

        Args:
            file_name: File name or path

        Returns:
            DataFrame indexed by year with one column per variable
        """
        file_path = self._resolve(file_name)
        logger.info(f"Loading drought index from: {file_path}")

        if not file_path.exists():
            raise FileNotFoundError(f"Drought index file not found: {file_path}")

        df = pd.read_csv(file_path)
        df.columns = [str(c).strip() for c in df.columns]

        if 'month' in [c.lower() for c in df.columns]:
            df = monthly_long_to_wide(df)
        else:
            df = self._set_year_index(df, file_path)

        df = df.apply(pd.to_numeric, errors='coerce').astype(float)

        logger.info(
            f"Loaded {df.shape[1]} variables spanning {df.index.min()}-{df.index.max()}"
        )

        return df

    def load_drought_indices(self) -> Dict[str, pd.DataFrame]:
        """
        Load every drought-index source named in the configuration

        Returns:
            Dictionary mapping source name to its table
        """
        sources = self.config.get('data.drought_indices', {}) or {}
        return {name: self.load_drought_index(file_name) for name, file_name in sources.items()}


def complete_years(df: pd.DataFrame) -> pd.DataFrame:
    """Reindex a year-indexed table so every year between its bounds is present"""
    if df.empty:
        return df
    years = np.arange(int(df.index.min()), int(df.index.max()) + 1)
    df = df.reindex(years)
    df.index.name = 'year'
    return df


def monthly_long_to_wide(df: pd.DataFrame) -> pd.DataFrame:
    """
    Pivot a long monthly table (year, month, value) to wide format

    Args:
        df: DataFrame with year, month and exactly one value column

    Returns:
        DataFrame indexed by year with integer month columns 1-12
    """
    lower = {c.lower(): c for c in df.columns}
    year_col = lower.get('year')
    month_col = lower['month']

    if year_col is None:
        raise ValueError("Monthly drought index needs a 'year' column")

    value_cols = [c for c in df.columns if c not in (year_col, month_col)]
    if len(value_cols) != 1:
        raise ValueError(f"Expected one value column in monthly table, found {value_cols}")

    wide = df.pivot_table(index=year_col, columns=month_col, values=value_cols[0], aggfunc='mean')
    wide.index = wide.index.astype(int)
    wide.index.name = 'year'
    wide.columns = [int(c) for c in wide.columns]
    wide.columns.name = None

    return wide.sort_index()
