"""Statistical analysis steps of the chronology study"""

from .robust import tukey_biweight_mean, robust_row_mean
from .prewhiten import ar_prewhiten, prewhiten_table
from .correlation import InterseriesCorrelation, SegmentCrossdating, correlate
from .detrend import Detrender
from .chronology import ChronologyBuilder, hanning_smooth
from .releases import ReleaseDetector, NO_RELEASE, MINOR_RELEASE, MAJOR_RELEASE
from .climate import ClimateCorrelation, add_seasonal_means
from .pointer import PointerYearAnalyzer
from .descriptive import series_statistics, assign_sites, site_summary

__all__ = [
    'tukey_biweight_mean',
    'robust_row_mean',
    'ar_prewhiten',
    'prewhiten_table',
    'InterseriesCorrelation',
    'SegmentCrossdating',
    'correlate',
    'Detrender',
    'ChronologyBuilder',
    'hanning_smooth',
    'ReleaseDetector',
    'NO_RELEASE',
    'MINOR_RELEASE',
    'MAJOR_RELEASE',
    'ClimateCorrelation',
    'add_seasonal_means',
    'PointerYearAnalyzer',
    'series_statistics',
    'assign_sites',
    'site_summary'
]
