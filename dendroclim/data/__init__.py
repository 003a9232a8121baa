"""Data loading, validation and filtering modules"""

from .loaders import RingWidthLoader, complete_years, monthly_long_to_wide
from .cleaners import SeriesFilter
from .validators import RingWidthValidator

__all__ = [
    'RingWidthLoader',
    'complete_years',
    'monthly_long_to_wide',
    'SeriesFilter',
    'RingWidthValidator'
]
