"""Data validation for ring-width and site tables"""

import pandas as pd
from typing import Dict, Optional
from dendroclim.utils.config import ConfigLoader
from dendroclim.utils.logging_config import get_logger


logger = get_logger(__name__)


class RingWidthValidator:
    """
    Validate ring-width data quality before analysis

    Performs checks on:
    - Table shape and year coverage
    - Per-series length and completeness
    - Value ranges (no negative widths)
    - Site table coordinates
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize validator

        Args:
            config: Configuration loader instance (thresholds)
        """
        self.config = config
        get = config.get if config else (lambda key, default=None: default)
        self.min_series_length = get('validation.min_series_length', 30)
        self.min_completeness_pct = get('validation.min_completeness_pct', 50)
        self.validation_results = {}

    def validate_ring_widths(self, rwl: pd.DataFrame) -> Dict:
        """
        Check the ring-width matrix

        Args:
            rwl: Ring-width table (year x series)

        Returns:
            Validation report dict
        """
        logger.info("Validating ring-width table...")

        report = {
            'status': 'pass',
            'n_series': rwl.shape[1],
            'first_year': int(rwl.index.min()) if len(rwl) else None,
            'last_year': int(rwl.index.max()) if len(rwl) else None,
            'errors': [],
            'warnings': [],
            'series': {}
        }

        if rwl.shape[1] == 0:
            report['status'] = 'fail'
            report['errors'].append("No series in table")
            logger.error("❌ Ring-width table has no series")
            self.validation_results['ring_widths'] = report
            return report

        if not rwl.index.is_monotonic_increasing or rwl.index.has_duplicates:
            report['status'] = 'fail'
            report['errors'].append("Year index is not strictly increasing")
            logger.error("❌ Year index is not strictly increasing")

        if (rwl < 0).any().any():
            report['status'] = 'fail'
            report['errors'].append("Negative ring widths present")
            logger.error("❌ Negative ring widths present")

        for name in rwl.columns:
            values = rwl[name]
            valid = values.dropna()
            if valid.empty:
                report['warnings'].append(f"{name}: no measurements")
                logger.warning(f"⚠️  {name}: no measurements")
                continue

            first, last = int(valid.index.min()), int(valid.index.max())
            span = last - first + 1
            completeness = 100.0 * len(valid) / span
            n_zero = int((valid == 0).sum())

            report['series'][name] = {
                'first': first,
                'last': last,
                'n_years': len(valid),
                'internal_gaps': span - len(valid),
                'zero_rings': n_zero,
                'completeness_pct': completeness
            }

            if len(valid) < self.min_series_length:
                report['warnings'].append(f"{name}: only {len(valid)} years")
                logger.warning(f"⚠️  {name}: only {len(valid)} measured years")

            if completeness < self.min_completeness_pct:
                report['warnings'].append(f"{name}: {completeness:.1f}% complete")
                logger.warning(f"⚠️  {name}: {completeness:.1f}% complete within its span")

        if report['status'] == 'pass' and report['warnings']:
            report['status'] = 'warning'

        if report['status'] == 'pass':
            logger.info(f"✅ {report['n_series']} series passed validation")

        self.validation_results['ring_widths'] = report
        return report

    def validate_sites(self, sites: pd.DataFrame) -> Dict:
        """
        Check site coordinates and identifiers

        Args:
            sites: Site table

        Returns:
            Validation report dict
        """
        logger.info("Validating site table...")

        errors = []
        bad_lat = ~sites['latitude'].between(-90, 90)
        bad_lon = ~sites['longitude'].between(-180, 180)

        if bad_lat.any():
            errors.append(f"Invalid latitude for sites: {sites.loc[bad_lat, 'site_id'].tolist()}")
        if bad_lon.any():
            errors.append(f"Invalid longitude for sites: {sites.loc[bad_lon, 'site_id'].tolist()}")
        if sites['site_id'].duplicated().any():
            errors.append(f"Duplicate site ids: {sites.loc[sites['site_id'].duplicated(), 'site_id'].tolist()}")

        for message in errors:
            logger.error(f"❌ {message}")

        report = {
            'status': 'fail' if errors else 'pass',
            'n_sites': len(sites),
            'taxa': sorted(sites['taxon'].dropna().astype(str).unique().tolist()),
            'errors': errors
        }

        if not errors:
            logger.info(f"✅ {len(sites)} sites passed validation")

        self.validation_results['sites'] = report
        return report

    def check_overlap(self, rwl: pd.DataFrame, index_table: pd.DataFrame, name: str) -> Dict:
        """
        Report the common period of the ring-width table and a drought index

        Args:
            rwl: Ring-width table
            index_table: Drought-index table
            name: Source name (for logging)

        Returns:
            Validation report dict
        """
        measured = rwl.dropna(how='all').index
        common = measured.intersection(index_table.dropna(how='all').index)

        report = {
            'status': 'pass' if len(common) >= 10 else 'warning',
            'source': name,
            'n_common_years': len(common),
            'first_common': int(common.min()) if len(common) else None,
            'last_common': int(common.max()) if len(common) else None
        }

        if report['status'] == 'warning':
            logger.warning(f"⚠️  {name}: only {len(common)} years overlap the ring-width table")
        else:
            logger.info(f"  {name}: {len(common)} common years ({common.min()}-{common.max()})")

        self.validation_results[f'overlap_{name}'] = report
        return report

    def get_summary(self) -> pd.DataFrame:
        """
        Summarize all validation results run so far

        Returns:
            DataFrame with one row per check
        """
        rows = []
        for check, report in self.validation_results.items():
            rows.append({
                'check': check,
                'status': report.get('status'),
                'n_errors': len(report.get('errors', [])),
                'n_warnings': len(report.get('warnings', []))
            })
        return pd.DataFrame(rows, columns=['check', 'status', 'n_errors', 'n_warnings'])
