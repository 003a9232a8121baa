"""Chronology analysis pipeline orchestration

This module implements the DendroPipeline class that runs the study from
data loading through series screening, crossdating checks, detrending,
chronology building, drought-index correlation and release detection to
the written tables and report.
"""

import pandas as pd
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime

from dendroclim.data import RingWidthLoader, RingWidthValidator, SeriesFilter
from dendroclim.analysis import (
    InterseriesCorrelation,
    SegmentCrossdating,
    Detrender,
    ChronologyBuilder,
    ClimateCorrelation,
    ReleaseDetector,
    PointerYearAnalyzer,
    series_statistics,
    assign_sites,
    site_summary
)
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger, log_section


logger = get_logger(__name__)


class DendroPipeline:
    """
    Main analysis pipeline orchestrator

    Coordinates the workflow:
    1. Data loading and validation
    2. Interseries correlation and series filtering
    3. Segment crossdating check
    4. Detrending and chronology aggregation
    5. Drought-index correlation
    6. Growth-release detection (unfiltered table)
    7. Pointer years, summary tables and report
    """

    def __init__(self, config_path: Optional[str] = None, config: Optional[ConfigLoader] = None):
        """
        Initialize pipeline

        Args:
            config_path: Path to config YAML file (optional)
            config: Already loaded configuration (takes precedence)
        """
        self.config = config if config else ConfigLoader(config_path)

        self.loader = RingWidthLoader(self.config)
        self.validator = RingWidthValidator(self.config)
        self.series_filter = SeriesFilter.from_config(self.config)
        self.correlation = InterseriesCorrelation.from_config(self.config)
        self.crossdating = SegmentCrossdating.from_config(self.config)
        self.detrender = Detrender.from_config(self.config)
        self.chronology_builder = ChronologyBuilder.from_config(self.config)
        self.climate = ClimateCorrelation.from_config(self.config)
        self.release_detector = ReleaseDetector.from_config(self.config)
        self.pointer = PointerYearAnalyzer.from_config(self.config)

        # Data cache
        self.rwl: Optional[pd.DataFrame] = None
        self.sites: Optional[pd.DataFrame] = None
        self.indices: Dict[str, pd.DataFrame] = {}
        self.results: Dict = {}

        self.output_path = self.config.get_path('data.output_path', 'data/output')
        self.output_path.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Steps

    def load_data(self, validate: bool = True, raise_on_fail: bool = True) -> pd.DataFrame:
        """
        Load ring widths, sites and drought indices

        Args:
            validate: Run data validation after loading
            raise_on_fail: Raise ValueError when the ring-width table fails
                validation (otherwise the report is only kept)

        Returns:
            Unfiltered ring-width table
        """
        log_section(logger, "DATA LOADING")

        self.rwl = self.loader.load_ring_widths()

        if self.config.get('data.sites'):
            self.sites = self.loader.load_sites()
        self.indices = self.loader.load_drought_indices()

        if validate:
            report = self.validator.validate_ring_widths(self.rwl)
            if report['status'] == 'fail' and raise_on_fail:
                raise ValueError(f"Ring-width table failed validation: {report['errors']}")
            if self.sites is not None:
                self.validator.validate_sites(self.sites)
            for name, table in self.indices.items():
                self.validator.check_overlap(self.rwl, table, name)

        return self.rwl

    def _require_data(self) -> pd.DataFrame:
        if self.rwl is None:
            self.load_data()
        return self.rwl

    def screen_series(self) -> pd.DataFrame:
        """
        Correlate every series with the others and drop poor series

        Returns:
            Filtered ring-width table
        """
        rwl = self._require_data()

        correlations = self.correlation.run(rwl)
        filtered = self.series_filter.apply(rwl, correlations)

        self.results['correlations'] = correlations
        self.results['removed'] = self.series_filter.removed_table()
        self.results['filtered'] = filtered
        return filtered

    def check_crossdating(self, rwl: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Segment crossdating check of the filtered table"""
        if rwl is None:
            rwl = self.results.get('filtered')
        if rwl is None:
            rwl = self.screen_series()

        segments = self.crossdating.run(rwl)
        self.results['segments'] = segments
        self.results['segment_summary'] = self.crossdating.summarize(segments)
        self.results['critical_r'] = self.crossdating.critical_r
        return segments

    def build_chronology(self, rwl: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Detrend the filtered table and aggregate the chronology"""
        if rwl is None:
            rwl = self.results.get('filtered')
        if rwl is None:
            rwl = self.screen_series()

        rwi = self.detrender.run(rwl)
        chronology = self.chronology_builder.build(rwi)

        self.results['rwi'] = rwi
        self.results['curves'] = self.detrender.curve_summary()
        self.results['chronology'] = chronology
        self.results['chronology_stats'] = self.chronology_builder.statistics(rwi)
        return chronology

    def correlate_climate(self) -> pd.DataFrame:
        """Correlate the chronology with every drought index"""
        chronology = self.results.get('chronology')
        if chronology is None:
            chronology = self.build_chronology()

        climate = self.climate.run(chronology, self.indices)
        self.results['climate'] = climate
        self.results['indices'] = self.indices
        return climate

    def detect_releases(self) -> Dict[str, pd.DataFrame]:
        """Growth-release detection on the unfiltered table"""
        rwl = self._require_data()
        releases = self.release_detector.run(rwl)
        self.results['releases'] = releases
        self.results['release_criteria'] = self.release_detector.criteria()
        return releases

    def find_pointer_years(self) -> pd.DataFrame:
        """Indicator years of the filtered table"""
        rwl = self.results.get('filtered')
        if rwl is None:
            rwl = self.screen_series()
        pointer = self.pointer.run(rwl)
        self.results['pointer_years'] = pointer
        return pointer

    def describe(self) -> pd.DataFrame:
        """Descriptive statistics per series and per site"""
        rwl = self._require_data()
        stats = series_statistics(rwl)

        if self.sites is not None:
            assignment = assign_sites(rwl.columns, self.sites)
            stats['site_id'] = assignment.reindex(stats.index)
            self.results['sites'] = site_summary(rwl, self.sites, assignment)

        self.results['series_stats'] = stats
        return stats

    # ------------------------------------------------------------------
    # Orchestration

    def run(self, write_outputs: bool = True, make_report: bool = True) -> Dict:
        """
        Run every step of the study

        Args:
            write_outputs: Save result tables as CSV
            make_report: Write plotly figures and the HTML report

        Returns:
            Dictionary of result tables
        """
        start_time = datetime.now()
        log_section(logger, "TREE-RING CHRONOLOGY PIPELINE", f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S')}")

        self.load_data()
        self.describe()
        self.screen_series()
        self.check_crossdating()
        self.build_chronology()
        self.correlate_climate()
        self.detect_releases()
        self.find_pointer_years()

        if write_outputs:
            self.save_outputs()

        if make_report:
            self.generate_report()

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Pipeline complete in {duration:.1f} seconds")

        return self.results

    def save_outputs(self) -> Dict[str, Path]:
        """
        Write every available result table as CSV

        Returns:
            Mapping of table name to written path
        """
        tables = {
            'series_statistics': ('series_stats', True),
            'site_summary': ('sites', False),
            'series_correlation': ('correlations', True),
            'removed_series': ('removed', False),
            'ring_widths_filtered': ('filtered', True),
            'segment_correlation': ('segments', False),
            'segment_summary': ('segment_summary', True),
            'detrend_curves': ('curves', True),
            'rwi': ('rwi', True),
            'chronology': ('chronology', True),
            'climate_correlation': ('climate', False),
            'pointer_years': ('pointer_years', True)
        }

        written = {}
        for file_stem, (key, keep_index) in tables.items():
            table = self.results.get(key)
            if table is None:
                continue
            path = self.output_path / f'{file_stem}.csv'
            table.to_csv(path, index=keep_index)
            written[file_stem] = path

        if 'chronology_stats' in self.results:
            path = self.output_path / 'chronology_statistics.csv'
            pd.DataFrame([self.results['chronology_stats']]).to_csv(path, index=False)
            written['chronology_statistics'] = path

        releases = self.results.get('releases')
        if releases is not None:
            for name, keep_index in (('pgc', True), ('flags', True), ('events', False), ('counts', True)):
                path = self.output_path / f'release_{name}.csv'
                releases[name].to_csv(path, index=keep_index)
                written[f'release_{name}'] = path

        logger.info(f"Saved {len(written)} tables to: {self.output_path}")
        return written

    def generate_report(self) -> Path:
        """Write per-series release plots, the chronology plot and the HTML report"""
        from dendroclim.report import ReportGenerator

        generator = ReportGenerator(self.config)
        if 'releases' in self.results:
            generator.write_release_plots(
                self._require_data(), self.results['releases'], self.results['release_criteria']
            )
        if 'chronology' in self.results:
            generator.write_chronology_plot(self.results['chronology'], self.indices)

        return generator.write_report(self.results)
