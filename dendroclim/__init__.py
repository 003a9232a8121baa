"""
dendroclim

Tree-ring chronology building and drought-signal analysis.
Screens and crossdates ring-width series, detrends them into ring-width
indices, aggregates a robust mean chronology, correlates it with drought
indices and detects growth-release disturbance events.
"""

__version__ = "1.0.0"
__author__ = "dendroclim contributors"
