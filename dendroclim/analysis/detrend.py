"""Detrending of ring-width series into ring-width indices (RWI)"""

import numpy as np
import pandas as pd
from scipy.optimize import curve_fit
from typing import Dict, Optional, Tuple
import warnings
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


FLAT_CURVE_TOLERANCE = 1e-3


def negative_exponential(t, a, b, k):
    """Modified negative exponential growth curve a * exp(-b * t) + k"""
    return a * np.exp(-b * t) + k


class Detrender:
    """
    Standardize ring-width series by dividing by a fitted growth curve

    Methods:
    - ModNegExp: modified negative exponential, falling back to a straight
      line and then to the series mean when the fit is not usable
    - Mean: horizontal line at the series mean
    """

    METHODS = ('ModNegExp', 'Mean')

    def __init__(self, method: str = 'ModNegExp', pos_slope: bool = False, max_evaluations: int = 10000):
        """
        Initialize detrender

        Args:
            method: Curve type ('ModNegExp' or 'Mean')
            pos_slope: Allow a positive slope in the linear fallback
            max_evaluations: Function evaluation limit for the curve fit
        """
        if method not in self.METHODS:
            raise ValueError(f"Unknown detrending method '{method}'. Use one of {self.METHODS}")

        self.method = method
        self.pos_slope = pos_slope
        self.max_evaluations = max_evaluations

        # Curve actually used per series ('neg_exp', 'linear', 'mean')
        self.curve_types: Dict[str, str] = {}
        self.curves: Optional[pd.DataFrame] = None

    @classmethod
    def from_config(cls, config: ConfigLoader) -> 'Detrender':
        return cls(
            method=config.get('detrending.method', 'ModNegExp'),
            pos_slope=config.get('detrending.pos_slope', False)
        )

    def _fit_neg_exp(self, t: np.ndarray, y: np.ndarray) -> Optional[np.ndarray]:
        """Fit the negative exponential; None when the fit is unusable"""
        tenth = max(1, len(y) // 10)
        a0 = max(float(np.mean(y[:tenth]) - np.mean(y[-tenth:])), 1e-3)
        k0 = max(float(np.mean(y[-tenth:])), 1e-3)

        try:
            with warnings.catch_warnings():
                warnings.filterwarnings('ignore')
                params, _ = curve_fit(
                    negative_exponential, t, y,
                    p0=(a0, 0.01, k0),
                    bounds=([0.0, 0.0, 0.0], [np.inf, np.inf, np.inf]),
                    maxfev=self.max_evaluations
                )
        except (RuntimeError, ValueError) as e:
            logger.debug(f"Negative exponential fit failed: {e}")
            return None

        a, b, _ = params
        curve = negative_exponential(t, *params)

        if a <= 0 or b <= 0 or not np.all(np.isfinite(curve)) or np.any(curve <= 0):
            return None

        # A flat curve means the data have no declining age trend
        if curve[0] - curve[-1] < FLAT_CURVE_TOLERANCE * np.mean(curve):
            return None

        return curve

    def _fit_linear(self, t: np.ndarray, y: np.ndarray) -> Optional[np.ndarray]:
        """Straight-line fallback; None when the line is unusable"""
        slope, intercept = np.polyfit(t, y, 1)
        if slope > 0 and not self.pos_slope:
            return None

        curve = intercept + slope * t
        if np.any(curve <= 0):
            return None

        return curve

    def fit_curve(self, series: pd.Series) -> Tuple[pd.Series, str]:
        """
        Fit the growth curve of one series

        Args:
            series: Year-indexed ring widths (NaN allowed)

        Returns:
            Tuple of (curve indexed like series, curve type)
        """
        curve = pd.Series(np.nan, index=series.index, dtype=float)
        y_series = series.dropna()

        if y_series.empty:
            return curve, 'none'

        t = (y_series.index.to_numpy() - y_series.index.min()).astype(float)
        y = y_series.to_numpy(dtype=float)
        fitted, kind = None, 'mean'

        if self.method == 'ModNegExp' and len(y) >= 3:
            fitted = self._fit_neg_exp(t, y)
            kind = 'neg_exp'
            if fitted is None:
                fitted = self._fit_linear(t, y)
                kind = 'linear'

        if fitted is None:
            fitted = np.full(len(y), np.mean(y))
            kind = 'mean'

        curve.loc[y_series.index] = fitted
        return curve, kind

    def run(self, rwl: pd.DataFrame) -> pd.DataFrame:
        """
        Detrend every series of a ring-width table

        Args:
            rwl: Ring-width table (year x series)

        Returns:
            RWI table with the same shape (width / curve)
        """
        log_section(logger, "DETRENDING")
        logger.info(f"  Method: {self.method}")

        curves = {}
        self.curve_types = {}

        for name in rwl.columns:
            curves[name], self.curve_types[name] = self.fit_curve(rwl[name])
            if self.curve_types[name] != 'neg_exp' and self.method == 'ModNegExp':
                logger.debug(f"  {name}: fell back to {self.curve_types[name]} curve")

        self.curves = pd.DataFrame(curves, index=rwl.index, columns=rwl.columns)

        # Mean curves of all-zero series are zero
        rwi = rwl / self.curves.where(self.curves > 0)

        counts = pd.Series(self.curve_types).value_counts().to_dict()
        logger.info(f"  Curves used: {counts}")

        return rwi

    def curve_summary(self) -> pd.DataFrame:
        """Curve type used per series"""
        return pd.DataFrame(
            {'curve': pd.Series(self.curve_types, dtype=object)}
        ).rename_axis('series')
